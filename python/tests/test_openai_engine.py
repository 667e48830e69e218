import logging
import types
from pathlib import Path

import httpx
import openai

from meetscribe import openai_engine
from meetscribe.errors import ClientRequestRejectedError, EmptyTranscriptionError, RetriesExhaustedError
from meetscribe.retry import RetryPolicy

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")


def status_error(status: int) -> openai.APIStatusError:
    return openai.APIStatusError(
        f"Error code: {status}",
        response=httpx.Response(status, request=REQUEST),
        body={"error": {"message": "boom"}},
    )


class FakeTranscriptions:
    def __init__(self, actions: list[object]):
        self.actions = actions
        self.calls: list[dict[str, object]] = []

    def create(self, **kwargs):
        kwargs["payload"] = kwargs["file"].read()
        self.calls.append(kwargs)
        if not self.actions:
            raise RuntimeError("no more actions configured")
        action = self.actions.pop(0)
        if isinstance(action, Exception):
            raise action
        return action


class FakeClient:
    def __init__(self, transcriptions: FakeTranscriptions):
        self.audio = types.SimpleNamespace(transcriptions=transcriptions)
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True


class FakeClientFactory:
    def __init__(self, actions: list[object]):
        self.transcriptions = FakeTranscriptions(actions)
        self.clients: list[FakeClient] = []

    def __call__(self) -> FakeClient:
        client = FakeClient(self.transcriptions)
        self.clients.append(client)
        return client


def _record_sleeps(monkeypatch) -> list[float]:
    sleeps: list[float] = []
    monkeypatch.setattr(openai_engine.time, "sleep", sleeps.append)
    return sleeps


def _write_dummy_chunk(tmp_path: Path) -> Path:
    chunk_path = tmp_path / "segment_0.wav"
    chunk_path.write_bytes(b"fake-audio")
    return chunk_path


def test_transcribe_segment_returns_text_on_first_attempt(monkeypatch, tmp_path: Path):
    sleeps = _record_sleeps(monkeypatch)
    factory = FakeClientFactory([{"text": "  Good morning everyone  "}])

    text = openai_engine.transcribe_segment(_write_dummy_chunk(tmp_path), client_factory=factory)

    assert text == "Good morning everyone"
    assert sleeps == []
    call = factory.transcriptions.calls[0]
    assert call["model"] == "whisper-1"
    assert call["response_format"] == "json"
    assert call["payload"] == b"fake-audio"


def test_transcribe_segment_retries_transport_errors_with_linear_backoff(monkeypatch, tmp_path: Path, caplog):
    sleeps = _record_sleeps(monkeypatch)
    factory = FakeClientFactory(
        [
            openai.APIConnectionError(request=REQUEST),
            openai.APITimeoutError(request=REQUEST),
            types.SimpleNamespace(model_dump=lambda: {"text": "Third time lucky"}),
        ]
    )

    with caplog.at_level(logging.WARNING, logger="meetscribe.openai_engine"):
        text = openai_engine.transcribe_segment(
            _write_dummy_chunk(tmp_path),
            client_factory=factory,
            policy=RetryPolicy(max_attempts=3, base_delay_sec=5.0),
        )

    assert text == "Third time lucky"
    assert sleeps == [5.0, 10.0]
    assert len(factory.transcriptions.calls) == 3
    warnings = [record.getMessage() for record in caplog.records]
    assert warnings[0].startswith("HTTP connection error on segment 1")
    assert warnings[1] == "Retrying in 5 seconds... (attempt 1/3)"
    assert warnings[2].startswith("Upload timeout on segment 1")
    assert warnings[3] == "Retrying in 10 seconds... (attempt 2/3)"


def test_transcribe_segment_uses_a_fresh_client_per_attempt(monkeypatch, tmp_path: Path):
    _record_sleeps(monkeypatch)
    factory = FakeClientFactory([status_error(503), {"text": "ok"}])

    openai_engine.transcribe_segment(_write_dummy_chunk(tmp_path), client_factory=factory)

    assert len(factory.clients) == 2
    assert factory.clients[0] is not factory.clients[1]
    assert all(client.closed for client in factory.clients)


def test_transcribe_segment_does_not_retry_client_errors(monkeypatch, tmp_path: Path):
    sleeps = _record_sleeps(monkeypatch)
    factory = FakeClientFactory([status_error(400), {"text": "never reached"}])

    try:
        openai_engine.transcribe_segment(_write_dummy_chunk(tmp_path), index=4, client_factory=factory)
    except ClientRequestRejectedError as exc:
        assert exc.status_code == 400
        assert exc.index == 4
        assert "segment 5" in str(exc)
    else:
        raise AssertionError("Expected ClientRequestRejectedError for a 400 response")

    assert len(factory.transcriptions.calls) == 1
    assert sleeps == []


def test_transcribe_segment_stops_on_client_error_after_server_error(monkeypatch, tmp_path: Path):
    sleeps = _record_sleeps(monkeypatch)
    factory = FakeClientFactory([status_error(500), status_error(401), {"text": "never reached"}])

    try:
        openai_engine.transcribe_segment(_write_dummy_chunk(tmp_path), client_factory=factory)
    except ClientRequestRejectedError as exc:
        assert exc.status_code == 401
    else:
        raise AssertionError("Expected ClientRequestRejectedError for a 401 response")

    assert len(factory.transcriptions.calls) == 2
    assert sleeps == [5.0]


def test_transcribe_segment_raises_after_retry_exhaustion(monkeypatch, tmp_path: Path):
    sleeps = _record_sleeps(monkeypatch)
    factory = FakeClientFactory([status_error(500), status_error(502), status_error(503)])

    try:
        openai_engine.transcribe_segment(_write_dummy_chunk(tmp_path), index=1, client_factory=factory)
    except RetriesExhaustedError as exc:
        assert exc.attempts == 3
        assert exc.status_code == 503
        assert exc.index == 1
        assert "failed after 3 attempts" in str(exc)
    else:
        raise AssertionError("Expected RetriesExhaustedError after retries")

    assert len(factory.transcriptions.calls) == 3
    assert sleeps == [5.0, 10.0]


def test_transcribe_segment_rejects_empty_text_without_retry(monkeypatch, tmp_path: Path):
    sleeps = _record_sleeps(monkeypatch)
    factory = FakeClientFactory([{"text": "   "}, {"text": "never reached"}])

    try:
        openai_engine.transcribe_segment(_write_dummy_chunk(tmp_path), client_factory=factory)
    except EmptyTranscriptionError as exc:
        assert "is empty" in str(exc)
    else:
        raise AssertionError("Expected EmptyTranscriptionError for a blank result")

    assert len(factory.transcriptions.calls) == 1
    assert sleeps == []


def test_transcribe_segment_treats_missing_payload_as_io_failure(monkeypatch, tmp_path: Path):
    sleeps = _record_sleeps(monkeypatch)
    factory = FakeClientFactory([])

    try:
        openai_engine.transcribe_segment(
            tmp_path / "vanished.wav",
            client_factory=factory,
            policy=RetryPolicy(max_attempts=2, base_delay_sec=1.0),
        )
    except RetriesExhaustedError as exc:
        assert "I/O error during upload" in str(exc)
        assert exc.status_code is None
    else:
        raise AssertionError("Expected RetriesExhaustedError for a missing payload")

    assert sleeps == [1.0]
    assert factory.transcriptions.calls == []
