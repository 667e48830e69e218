from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Callable

from openai import OpenAI

from .config import api_key
from .errors import ClientRequestRejectedError, EmptyTranscriptionError, RetriesExhaustedError
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

TEXT_MODEL = "whisper-1"
REQUEST_TIMEOUT_SEC = float(os.environ.get("OPENAI_REQUEST_TIMEOUT_SEC", "600"))

ClientFactory = Callable[[], OpenAI]


def _to_dict(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        return {"text": value}
    if hasattr(value, "model_dump"):
        return value.model_dump()  # pydantic style
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return dict(value)


def make_client(key: str, timeout: float = REQUEST_TIMEOUT_SEC) -> OpenAI:
    # SDK retries are off: RetryPolicy owns the retry schedule.
    return OpenAI(api_key=key, timeout=timeout, max_retries=0)


def default_client_factory(timeout: float = REQUEST_TIMEOUT_SEC) -> ClientFactory:
    key = api_key()
    return lambda: make_client(key, timeout)


def _request_transcription(
    *,
    client_factory: ClientFactory,
    chunk_path: Path,
    model: str,
    timeout: float,
) -> dict[str, Any]:
    # A fresh client per attempt: no pooled connection outlives a single upload.
    with client_factory() as client:
        with chunk_path.open("rb") as audio_file:
            response = client.audio.transcriptions.create(
                model=model,
                file=audio_file,
                response_format="json",
                timeout=timeout,
            )
    return _to_dict(response)


def transcribe_segment(
    chunk_path: Path,
    *,
    index: int = 0,
    policy: RetryPolicy | None = None,
    client_factory: ClientFactory | None = None,
    model: str = TEXT_MODEL,
    timeout: float = REQUEST_TIMEOUT_SEC,
) -> str:
    """Upload one audio payload and return the recognized text.

    5xx responses, connection errors, timeouts and local I/O errors are retried
    according to ``policy``. A 4xx response or an empty result fails at once.
    """
    policy = policy or RetryPolicy()
    if client_factory is None:
        client_factory = default_client_factory(timeout)

    label = f"segment {index + 1}"
    last_status: int | None = None
    attempt = 0

    # decide() stops retrying at max_attempts, so the loop always ends in a return or raise.
    while True:
        attempt += 1
        try:
            size_kb = chunk_path.stat().st_size / 1024
            logger.info("  -> Uploading %s (%.1f KB), attempt %d/%d", label, size_kb, attempt, policy.max_attempts)
            payload = _request_transcription(
                client_factory=client_factory,
                chunk_path=chunk_path,
                model=model,
                timeout=timeout,
            )
        except Exception as exc:  # noqa: BLE001 - classified by the retry policy
            decision = policy.decide(exc, attempt)
            failure = decision.failure
            if failure.status_code is not None:
                last_status = failure.status_code

            if decision.retry:
                logger.warning("%s on %s: %s", failure.category, label, exc)
                logger.warning(
                    "Retrying in %.0f seconds... (attempt %d/%d)",
                    decision.delay_sec,
                    attempt,
                    policy.max_attempts,
                )
                time.sleep(decision.delay_sec)
                continue

            if decision.exhausted:
                logger.error("%s on %s: %s (no attempts left)", failure.category, label, exc)
                raise RetriesExhaustedError(
                    f"Transcription of {label} failed after {attempt} attempts: {failure.category}: {exc}",
                    index=index,
                    status_code=last_status,
                    attempts=attempt,
                ) from exc

            if failure.status_code is not None and 400 <= failure.status_code < 500:
                logger.error("%s on %s: %s", failure.category, label, exc)
                raise ClientRequestRejectedError(
                    f"Transcription request for {label} was rejected ({failure.status_code}): {exc}",
                    index=index,
                    status_code=failure.status_code,
                ) from exc
            raise

        text = str(payload.get("text") or "").strip()
        if not text:
            raise EmptyTranscriptionError(
                f"Transcription of {label} is empty. Full response: {payload}",
                index=index,
            )
        return text
