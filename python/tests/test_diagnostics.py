import types
from pathlib import Path

import httpx

from meetscribe import diagnostics


def _client(*, list_error: Exception | None = None, transcription=None):
    def _list():
        if list_error:
            raise list_error
        return []

    def _create(**kwargs):
        if isinstance(transcription, Exception):
            raise transcription
        return transcription

    return types.SimpleNamespace(
        models=types.SimpleNamespace(list=_list),
        audio=types.SimpleNamespace(transcriptions=types.SimpleNamespace(create=_create)),
    )


def test_api_connectivity_reports_failure_without_raising():
    ok = diagnostics.check_api_connectivity(_client())
    failed = diagnostics.check_api_connectivity(_client(list_error=RuntimeError("401 Unauthorized")))

    assert ok.ok is True
    assert failed.ok is False
    assert "401 Unauthorized" in failed.detail


def test_multipart_upload_posts_one_kilobyte_file():
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"files": {"file": "A" * 1024}})

    with httpx.Client(transport=httpx.MockTransport(_handler)) as http_client:
        result = diagnostics.check_multipart_upload(http_client)

    assert result.ok is True
    assert seen[0].headers["content-type"].startswith("multipart/form-data")
    assert b"A" * 1024 in seen[0].read()


def test_multipart_upload_reports_http_errors():
    with httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(502))) as http_client:
        result = diagnostics.check_multipart_upload(http_client)

    assert result.ok is False
    assert result.detail == "HTTP 502"


def test_small_file_check_skips_missing_sample(tmp_path: Path):
    result = diagnostics.check_small_file_transcription(_client(), tmp_path / "absent.wav")

    assert result.ok is False
    assert "not found" in result.detail


def test_small_file_check_returns_transcribed_preview(tmp_path: Path):
    sample = tmp_path / "test_small.wav"
    sample.write_bytes(b"RIFF")

    result = diagnostics.check_small_file_transcription(_client(transcription={"text": "testing one two"}), sample)

    assert result.ok is True
    assert result.detail == "testing one two"
    assert result.to_dict()["name"] == "small_file_transcription"
