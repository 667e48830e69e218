from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from uuid import uuid4

from .errors import DurationProbeError, SegmentationError

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
CHANNELS = 1


def ffmpeg_bin() -> str:
    return os.environ.get("FFMPEG_BIN", "ffmpeg")


def ffprobe_bin() -> str:
    return os.environ.get("FFPROBE_BIN", "ffprobe")


def run(cmd: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, check=False, stdout=subprocess.PIPE, stderr=subprocess.PIPE)


def _stderr_tail(completed: subprocess.CompletedProcess, limit: int = 400) -> str:
    stderr = completed.stderr or b""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    return stderr.strip()[-limit:]


def unique_wav_path(directory: Path, prefix: str) -> Path:
    return directory / f"{prefix}_{uuid4().hex}.wav"


def probe_duration_seconds(source: Path) -> float:
    cmd = [
        ffprobe_bin(),
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(source),
    ]
    try:
        completed = run(cmd)
    except OSError as exc:
        raise DurationProbeError(f"Could not run ffprobe on {source}: {exc}") from exc

    if completed.returncode != 0:
        raise DurationProbeError(
            f"ffprobe exited with code {completed.returncode} for {source}: {_stderr_tail(completed)}"
        )

    raw = completed.stdout.decode("utf-8", errors="replace").strip()
    # float() ignores the process locale, so "1234.5" always parses the same way.
    try:
        duration = float(raw)
    except ValueError as exc:
        raise DurationProbeError(f"Could not read audio duration from ffprobe output: {raw!r}") from exc
    if duration <= 0:
        raise DurationProbeError(f"ffprobe reported a non-positive duration: {raw!r}")
    return duration


def extract_segment(
    source: Path,
    out_path: Path,
    start_sec: float,
    duration_sec: float,
    *,
    index: int | None = None,
) -> Path:
    label = f"segment {index + 1}" if index is not None else "segment"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        ffmpeg_bin(),
        "-y",
        "-i",
        str(source),
        "-vn",
        "-ss",
        f"{start_sec:.3f}",
        "-t",
        f"{duration_sec:.3f}",
        "-ac",
        str(CHANNELS),
        "-ar",
        str(SAMPLE_RATE),
        "-c:a",
        "pcm_s16le",
        str(out_path),
    ]
    try:
        completed = run(cmd)
    except OSError as exc:
        raise SegmentationError(f"Could not start ffmpeg for {label}: {exc}", index=index) from exc

    if completed.returncode != 0:
        raise SegmentationError(
            f"ffmpeg failed to create {label} (exit code {completed.returncode}): {_stderr_tail(completed)}",
            index=index,
            exit_code=completed.returncode,
        )
    if not out_path.exists():
        raise SegmentationError(
            f"ffmpeg finished but {label} was not written to {out_path}",
            index=index,
            exit_code=completed.returncode,
        )
    return out_path


def ffmpeg_available() -> bool:
    try:
        completed = run([ffmpeg_bin(), "-version"])
    except OSError:
        return False
    return completed.returncode == 0


def normalize_audio_if_possible(source: Path, work_dir: Path) -> Path:
    """Return a 16 kHz mono WAV copy of ``source``, or ``source`` itself when ffmpeg can't make one.

    The caller owns the returned file when it differs from ``source``.
    """
    if not ffmpeg_available():
        logger.info("ffmpeg not available, using the original file")
        return source

    out_path = unique_wav_path(work_dir, "normalized")
    cmd = [
        ffmpeg_bin(),
        "-y",
        "-i",
        str(source),
        "-ar",
        str(SAMPLE_RATE),
        "-ac",
        str(CHANNELS),
        str(out_path),
    ]
    logger.info("Normalizing audio with ffmpeg...")
    try:
        completed = run(cmd)
    except OSError as exc:
        logger.warning("Could not normalize audio (%s), using the original file", exc)
        return source

    if completed.returncode == 0 and out_path.exists():
        logger.info("Audio normalized to %s", out_path.name)
        return out_path

    logger.warning("Could not normalize audio (exit code %s), using the original file", completed.returncode)
    out_path.unlink(missing_ok=True)
    return source
