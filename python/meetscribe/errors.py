from __future__ import annotations


class TranscriptionError(RuntimeError):
    """Base class for every failure raised by the transcription pipeline."""


class ConfigurationError(TranscriptionError):
    pass


class DurationProbeError(TranscriptionError):
    pass


class InvalidDurationError(TranscriptionError, ValueError):
    pass


class SegmentationError(TranscriptionError):
    def __init__(self, message: str, *, index: int | None = None, exit_code: int | None = None):
        super().__init__(message)
        self.index = index
        self.exit_code = exit_code


class SegmentTranscriptionError(TranscriptionError):
    """A single segment could not be transcribed.

    ``index`` is the segment index (0 for single-shot uploads) and ``status_code``
    the last HTTP status seen, when the endpoint answered at all.
    """

    def __init__(self, message: str, *, index: int | None = None, status_code: int | None = None):
        super().__init__(message)
        self.index = index
        self.status_code = status_code


class ClientRequestRejectedError(SegmentTranscriptionError):
    pass


class EmptyTranscriptionError(SegmentTranscriptionError):
    pass


class RetriesExhaustedError(SegmentTranscriptionError):
    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        status_code: int | None = None,
        attempts: int = 0,
    ):
        super().__init__(message, index=index, status_code=status_code)
        self.attempts = attempts


class CleanupError(TranscriptionError):
    """Deleting a temporary artifact failed. Logged, never raised out of the pipeline."""


class AnalysisError(TranscriptionError):
    pass
