from __future__ import annotations

from dataclasses import dataclass

import httpx
import openai


@dataclass(slots=True, frozen=True)
class Failure:
    category: str
    retryable: bool
    status_code: int | None = None


@dataclass(slots=True, frozen=True)
class RetryDecision:
    failure: Failure
    retry: bool
    delay_sec: float = 0.0

    @property
    def exhausted(self) -> bool:
        return self.failure.retryable and not self.retry


def classify_failure(exc: BaseException) -> Failure:
    # APITimeoutError subclasses APIConnectionError, so it has to be checked first.
    if isinstance(exc, (openai.APITimeoutError, httpx.TimeoutException)):
        return Failure("Upload timeout", retryable=True)
    if isinstance(exc, (openai.APIConnectionError, httpx.TransportError)):
        return Failure("HTTP connection error", retryable=True)
    if isinstance(exc, openai.APIStatusError):
        status = exc.status_code
        if status >= 500:
            return Failure(f"Temporary server error ({status})", retryable=True, status_code=status)
        if 400 <= status < 500:
            return Failure(f"Request rejected ({status})", retryable=False, status_code=status)
        return Failure(f"Unexpected HTTP status ({status})", retryable=False, status_code=status)
    if isinstance(exc, OSError):
        return Failure("I/O error during upload", retryable=True)
    return Failure(f"Unexpected error ({type(exc).__name__})", retryable=False)


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_sec: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def delay_for(self, attempt: int) -> float:
        """Linear backoff: the wait after failed attempt ``n`` is ``n * base_delay_sec``."""
        return self.base_delay_sec * attempt

    def decide(self, exc: BaseException, attempt: int) -> RetryDecision:
        failure = classify_failure(exc)
        if not failure.retryable or attempt >= self.max_attempts:
            return RetryDecision(failure=failure, retry=False)
        return RetryDecision(failure=failure, retry=True, delay_sec=self.delay_for(attempt))
