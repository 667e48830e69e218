from __future__ import annotations

import logging
import tempfile
import time
from enum import Enum
from pathlib import Path
from typing import Callable

from .audio import extract_segment, probe_duration_seconds, unique_wav_path
from .config import Settings
from .errors import CleanupError
from .models import AudioSource, SegmentArtifact, Transcript, TranscriptionResult
from .openai_engine import ClientFactory, make_client, transcribe_segment
from .planner import DEFAULT_SEGMENT_SEC, plan_segments
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

SEGMENT_PAUSE_SEC = 10.0

Transcriber = Callable[[Path, int], str]
ProgressCallback = Callable[[int, int, str], None]


class PipelineState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    SEGMENTING = "segmenting"
    TRANSCRIBING = "transcribing"
    JOINING = "joining"
    DONE = "done"
    ABORTING = "aborting"
    CLEANED_UP = "cleaned_up"
    FAILED = "failed"


_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.PLANNING}),
    PipelineState.PLANNING: frozenset({PipelineState.SEGMENTING, PipelineState.ABORTING}),
    PipelineState.SEGMENTING: frozenset({PipelineState.TRANSCRIBING, PipelineState.ABORTING}),
    PipelineState.TRANSCRIBING: frozenset(
        {PipelineState.SEGMENTING, PipelineState.JOINING, PipelineState.ABORTING}
    ),
    PipelineState.JOINING: frozenset({PipelineState.DONE, PipelineState.ABORTING}),
    PipelineState.ABORTING: frozenset({PipelineState.CLEANED_UP}),
    PipelineState.CLEANED_UP: frozenset({PipelineState.FAILED}),
    PipelineState.DONE: frozenset(),
    PipelineState.FAILED: frozenset(),
}


class ArtifactScope:
    """Owns the temporary segment files of one pipeline run and deletes them on exit."""

    def __init__(self, directory: Path):
        self.directory = directory
        self.artifacts: list[SegmentArtifact] = []

    def new_artifact(self, index: int) -> SegmentArtifact:
        artifact = SegmentArtifact(index=index, path=unique_wav_path(self.directory, f"segment_{index}"))
        # Registered before ffmpeg runs so a half-written file is cleaned up too.
        self.artifacts.append(artifact)
        return artifact

    def cleanup(self) -> list[Path]:
        removed: list[Path] = []
        for artifact in self.artifacts:
            try:
                if artifact.path.exists():
                    artifact.path.unlink()
                    removed.append(artifact.path)
            except OSError as exc:
                error = CleanupError(f"Could not delete {artifact.path}: {exc}")
                logger.warning("%s", error)
        self.artifacts.clear()
        return removed

    def __enter__(self) -> "ArtifactScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


class LargeFilePipeline:
    """Sequential split / transcribe / join of one oversized recording.

    Every run walks ``PLANNING -> (SEGMENTING -> TRANSCRIBING)* -> JOINING -> DONE``;
    any error moves it through ``ABORTING -> CLEANED_UP -> FAILED`` and is re-raised
    once all segment files are gone.
    """

    def __init__(
        self,
        *,
        transcriber: Transcriber,
        probe: Callable[[Path], float] | None = None,
        segmenter: Callable[..., Path] | None = None,
        segment_length_sec: int = DEFAULT_SEGMENT_SEC,
        pause_sec: float = SEGMENT_PAUSE_SEC,
        work_dir: Path | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.transcriber = transcriber
        self.probe = probe or probe_duration_seconds
        self.segmenter = segmenter or extract_segment
        self.segment_length_sec = segment_length_sec
        self.pause_sec = pause_sec
        self.work_dir = work_dir or Path(tempfile.gettempdir())
        self.on_progress = on_progress
        self.state = PipelineState.IDLE
        self.history: list[PipelineState] = [PipelineState.IDLE]

    def _enter(self, state: PipelineState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _report(self, done: int, total: int, message: str) -> None:
        if self.on_progress is not None:
            self.on_progress(done, total, message)

    def transcribe(self, source: AudioSource | Path) -> Transcript:
        if not isinstance(source, AudioSource):
            source = AudioSource.from_path(source)

        self.state = PipelineState.IDLE
        self.history = [PipelineState.IDLE]

        with ArtifactScope(self.work_dir) as scope:
            try:
                results = self._process(source, scope)
                self._enter(PipelineState.JOINING)
                transcript = Transcript.join(results)
            except BaseException:
                self._enter(PipelineState.ABORTING)
                scope.cleanup()
                self._enter(PipelineState.CLEANED_UP)
                self._enter(PipelineState.FAILED)
                raise

        self._enter(PipelineState.DONE)
        return transcript

    def _process(self, source: AudioSource, scope: ArtifactScope) -> list[TranscriptionResult]:
        self._enter(PipelineState.PLANNING)
        duration = self.probe(source.path)
        spans = plan_segments(duration, self.segment_length_sec)
        total = len(spans)
        logger.info("Total duration: %.0f seconds. Splitting into %d segments...", duration, total)
        self._report(0, total, f"Split into {total} segments")

        results: list[TranscriptionResult] = []
        for span in spans:
            self._enter(PipelineState.SEGMENTING)
            logger.info("Processing segment %d/%d...", span.index + 1, total)
            artifact = scope.new_artifact(span.index)
            self.segmenter(source.path, artifact.path, span.start_sec, span.duration_sec, index=span.index)

            self._enter(PipelineState.TRANSCRIBING)
            logger.info(
                "Transcribing segment %d/%d (%.1f KB)...",
                span.index + 1,
                total,
                artifact.path.stat().st_size / 1024,
            )
            text = self.transcriber(artifact.path, span.index)
            results.append(TranscriptionResult(index=span.index, text=text))
            self._report(len(results), total, f"Segment {span.index + 1}/{total} transcribed")

            if span.index < total - 1:
                logger.info("  -> Pausing %.0f seconds...", self.pause_sec)
                time.sleep(self.pause_sec)

        return results


def transcribe_audio(
    source: AudioSource,
    settings: Settings,
    *,
    client_factory: ClientFactory | None = None,
    on_progress: ProgressCallback | None = None,
) -> Transcript:
    """Transcribe ``source`` in one upload, or through :class:`LargeFilePipeline` above the size threshold."""
    policy = RetryPolicy(max_attempts=settings.max_attempts, base_delay_sec=settings.retry_base_delay_sec)
    if client_factory is None:
        client_factory = lambda: make_client(settings.api_key, settings.request_timeout_sec)  # noqa: E731

    def transcriber(path: Path, index: int) -> str:
        return transcribe_segment(
            path,
            index=index,
            policy=policy,
            client_factory=client_factory,
            model=settings.transcribe_model,
            timeout=settings.request_timeout_sec,
        )

    if source.size_bytes <= settings.large_file_bytes:
        text = transcriber(source.path, 0)
        return Transcript.join([TranscriptionResult(index=0, text=text)])

    logger.info("Large file detected (%.2f MB). Splitting into segments...", source.size_mb)
    pipeline = LargeFilePipeline(
        transcriber=transcriber,
        segment_length_sec=settings.segment_length_sec,
        pause_sec=settings.segment_pause_sec,
        work_dir=settings.work_dir,
        on_progress=on_progress,
    )
    return pipeline.transcribe(source)
