"""Connectivity self-tests run before a long transcription job.

None of these checks raise: each one returns a :class:`CheckResult` so the
caller can report every problem at once before any audio is uploaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx
from openai import OpenAI

from .openai_engine import TEXT_MODEL, _to_dict

logger = logging.getLogger(__name__)

ECHO_URL = "https://httpbin.org/post"
SAMPLE_FILE = Path("/tmp/test_small.wav")


@dataclass(slots=True, frozen=True)
class CheckResult:
    name: str
    ok: bool
    detail: str

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "ok": self.ok, "detail": self.detail}


def check_api_connectivity(client: OpenAI) -> CheckResult:
    try:
        client.models.list()
    except Exception as exc:  # noqa: BLE001 - reported, not raised
        logger.warning("Connectivity check failed: %s", exc)
        return CheckResult("api_connectivity", False, f"{type(exc).__name__}: {exc}")
    logger.info("Basic connectivity OK")
    return CheckResult("api_connectivity", True, "Model listing succeeded")


def check_multipart_upload(
    http_client: httpx.Client | None = None,
    *,
    url: str = ECHO_URL,
    timeout: float = 30.0,
) -> CheckResult:
    owned = http_client is None
    client = http_client or httpx.Client(timeout=timeout)
    files = {"file": ("test.bin", b"A" * 1024, "application/octet-stream")}
    try:
        response = client.post(url, files=files, data={"testparam": "test"})
    except httpx.HTTPError as exc:
        logger.warning("Multipart upload check failed: %s", exc)
        return CheckResult("multipart_upload", False, f"{type(exc).__name__}: {exc}")
    finally:
        if owned:
            client.close()

    if response.is_success:
        logger.info("Multipart upload OK")
        return CheckResult("multipart_upload", True, f"HTTP {response.status_code}")
    logger.warning("Multipart upload check returned HTTP %s", response.status_code)
    return CheckResult("multipart_upload", False, f"HTTP {response.status_code}")


def check_small_file_transcription(
    client: OpenAI,
    sample: Path = SAMPLE_FILE,
    *,
    model: str = TEXT_MODEL,
) -> CheckResult:
    if not sample.exists():
        return CheckResult("small_file_transcription", False, f"Sample file not found: {sample}")

    logger.info("  -> Sample file: %d bytes", sample.stat().st_size)
    try:
        with sample.open("rb") as audio_file:
            response = client.audio.transcriptions.create(
                model=model,
                file=audio_file,
                response_format="json",
            )
    except Exception as exc:  # noqa: BLE001 - reported, not raised
        logger.warning("Small file transcription failed: %s", exc)
        return CheckResult("small_file_transcription", False, f"{type(exc).__name__}: {exc}")

    text = str(_to_dict(response).get("text") or "")
    logger.info("Small file transcription OK")
    return CheckResult("small_file_transcription", True, text[:100])


def run_self_tests(
    client: OpenAI,
    *,
    sample: Path = SAMPLE_FILE,
    http_client: httpx.Client | None = None,
) -> list[CheckResult]:
    return [
        check_api_connectivity(client),
        check_multipart_upload(http_client),
        check_small_file_transcription(client, sample),
    ]
