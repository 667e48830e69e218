#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import openai

# Ensure local package is importable when running from source.
SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from meetscribe.analysis import analyze_transcript
from meetscribe.audio import normalize_audio_if_possible
from meetscribe.config import Settings
from meetscribe.diagnostics import SAMPLE_FILE, run_self_tests
from meetscribe.errors import TranscriptionError
from meetscribe.exporters import export_docx, export_json, export_markdown, export_transcript_txt, output_paths
from meetscribe.models import AudioSource
from meetscribe.openai_engine import make_client
from meetscribe.pipeline import transcribe_audio

logger = logging.getLogger("meetscribe")


def configure_logging(verbose: bool = False) -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def emit(event_type: str, payload: object) -> None:
    print(json.dumps({"type": event_type, "payload": payload}, ensure_ascii=False), flush=True)


def progress_payload(
    *,
    stage: str,
    percent: float,
    segments_done: int,
    segments_total: int,
    message: str,
) -> dict[str, object]:
    return {
        "stage": stage,
        "percent": round(max(0.0, min(100.0, percent)), 2),
        "segmentsDone": segments_done,
        "segmentsTotal": segments_total,
        "message": message,
    }


def _emit_self_tests(settings: Settings, sample: Path) -> bool:
    with make_client(settings.api_key, settings.request_timeout_sec) as client:
        results = run_self_tests(client, sample=sample)
    emit("self-test", [result.to_dict() for result in results])
    return all(result.ok for result in results)


def run_job(source_path: Path, settings: Settings, *, output_dir: Path | None, docx: bool) -> dict[str, str]:
    source = AudioSource.from_path(source_path)
    logger.info("Processing file: %s", source.path)

    emit(
        "progress",
        progress_payload(stage="normalize", percent=2, segments_done=0, segments_total=0, message="Normalizing audio..."),
    )
    audio_path = normalize_audio_if_possible(source.path, settings.work_dir)

    def on_progress(done: int, total: int, message: str) -> None:
        emit(
            "progress",
            progress_payload(
                stage="transcribe",
                percent=5 + (done / max(total, 1)) * 80,
                segments_done=done,
                segments_total=total,
                message=message,
            ),
        )

    try:
        started = time.monotonic()
        transcript = transcribe_audio(AudioSource.from_path(audio_path), settings, on_progress=on_progress)
        logger.info(
            "Transcription complete (%d characters, %.1fs)",
            len(transcript.text),
            time.monotonic() - started,
        )

        segment_count = len(transcript.segments)
        emit(
            "progress",
            progress_payload(
                stage="analyze",
                percent=88,
                segments_done=segment_count,
                segments_total=segment_count,
                message="Analyzing transcript...",
            ),
        )
        with make_client(settings.api_key, settings.request_timeout_sec) as client:
            analysis = analyze_transcript(
                transcript,
                client=client,
                model=settings.analysis_model,
                language=settings.analysis_language,
            )
    finally:
        if audio_path != source.path:
            try:
                audio_path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not delete normalized file %s: %s", audio_path, exc)

    paths = output_paths(source.path, output_dir)
    export_json(analysis, paths["json"])
    export_markdown(analysis, paths["markdown"])
    export_transcript_txt(transcript, paths["transcript"])
    written = {"json": str(paths["json"]), "markdown": str(paths["markdown"]), "transcript": str(paths["transcript"])}
    if docx:
        export_docx(analysis, paths["docx"])
        written["docx"] = str(paths["docx"])
    return written


def command_run(args: argparse.Namespace) -> int:
    source_path = Path(args.source).expanduser().resolve()
    if not source_path.exists():
        emit("error", {"message": f"Audio file does not exist: {source_path}"})
        return 1

    try:
        settings = Settings.from_env()
    except TranscriptionError as exc:
        emit("error", {"message": str(exc)})
        return 1

    if args.self_test:
        logger.info("Running connectivity self-tests...")
        _emit_self_tests(settings, Path(args.sample))

    output_dir = Path(args.output_dir).expanduser().resolve() if args.output_dir else None
    try:
        written = run_job(source_path, settings, output_dir=output_dir, docx=bool(args.docx))
    except TranscriptionError as exc:
        payload: dict[str, object] = {"message": str(exc), "errorType": type(exc).__name__}
        for attr in ("index", "status_code", "exit_code", "attempts"):
            value = getattr(exc, attr, None)
            if value is not None:
                payload[attr] = value
        emit("error", payload)
        return 1
    except openai.OpenAIError as exc:
        emit("error", {"message": f"API error: {exc}", "errorType": type(exc).__name__})
        return 1
    except OSError as exc:
        emit("error", {"message": f"File error: {exc}", "errorType": type(exc).__name__})
        return 1

    emit("result", written)
    return 0


def command_self_test(args: argparse.Namespace) -> int:
    try:
        settings = Settings.from_env()
    except TranscriptionError as exc:
        emit("error", {"message": str(exc)})
        return 1
    return 0 if _emit_self_tests(settings, Path(args.sample)) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Meeting transcription and analysis worker")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run")
    run.add_argument("--source", required=True)
    run.add_argument("--output-dir", required=False)
    run.add_argument("--docx", action="store_true")
    run.add_argument("--self-test", action="store_true")
    run.add_argument("--sample", default=str(SAMPLE_FILE))
    run.set_defaults(func=command_run)

    self_test = sub.add_parser("self-test")
    self_test.add_argument("--sample", default=str(SAMPLE_FILE))
    self_test.set_defaults(func=command_self_test)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
