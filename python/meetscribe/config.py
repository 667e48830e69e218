from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigurationError

LARGE_FILE_BYTES = 20 * 1024 * 1024


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


def work_dir() -> Path:
    configured = os.environ.get("MEETSCRIBE_WORK_DIR", "").strip()
    if configured:
        base = Path(configured).expanduser()
    else:
        base = Path(tempfile.gettempdir())
    base.mkdir(parents=True, exist_ok=True)
    return base


def api_key() -> str:
    key = os.environ.get("OPENAI_API_KEY", "").strip()
    if not key:
        raise ConfigurationError("OPENAI_API_KEY is not set")
    return key


@dataclass(slots=True, frozen=True)
class Settings:
    api_key: str
    transcribe_model: str = "whisper-1"
    analysis_model: str = "gpt-4o-mini"
    analysis_language: str = "English"
    request_timeout_sec: float = 600.0
    segment_length_sec: int = 300
    segment_pause_sec: float = 10.0
    max_attempts: int = 3
    retry_base_delay_sec: float = 5.0
    large_file_bytes: int = LARGE_FILE_BYTES
    work_dir: Path = Path(tempfile.gettempdir())

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError(f"MEETSCRIBE_MAX_ATTEMPTS must be at least 1, got {self.max_attempts}")
        if self.segment_length_sec <= 0:
            raise ConfigurationError(f"MEETSCRIBE_SEGMENT_SEC must be positive, got {self.segment_length_sec}")
        for name, value in (
            ("OPENAI_REQUEST_TIMEOUT_SEC", self.request_timeout_sec),
            ("MEETSCRIBE_SEGMENT_PAUSE_SEC", self.segment_pause_sec),
            ("MEETSCRIBE_RETRY_BASE_DELAY_SEC", self.retry_base_delay_sec),
        ):
            if value < 0:
                raise ConfigurationError(f"{name} must not be negative, got {value}")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_key=api_key(),
            transcribe_model=os.environ.get("MEETSCRIBE_TRANSCRIBE_MODEL", "whisper-1"),
            analysis_model=os.environ.get("MEETSCRIBE_ANALYSIS_MODEL", "gpt-4o-mini"),
            analysis_language=os.environ.get("MEETSCRIBE_ANALYSIS_LANGUAGE", "English"),
            request_timeout_sec=_env_float("OPENAI_REQUEST_TIMEOUT_SEC", 600.0),
            segment_length_sec=_env_int("MEETSCRIBE_SEGMENT_SEC", 300),
            segment_pause_sec=_env_float("MEETSCRIBE_SEGMENT_PAUSE_SEC", 10.0),
            max_attempts=_env_int("MEETSCRIBE_MAX_ATTEMPTS", 3),
            retry_base_delay_sec=_env_float("MEETSCRIBE_RETRY_BASE_DELAY_SEC", 5.0),
            large_file_bytes=_env_int("MEETSCRIBE_LARGE_FILE_BYTES", LARGE_FILE_BYTES),
            work_dir=work_dir(),
        )
