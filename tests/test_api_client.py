"""Tests for the Pouch API client, audio uploader and transcription trigger."""

from __future__ import annotations

from typing import Any

import pytest
import requests

from pouch_publisher.core.audit_log import DebugLog
from pouch_publisher.core.errors import (
    ApiError,
    AudioUploadError,
    NetworkError,
    TranscriptionError,
)
from pouch_publisher.core.state import Destination
from pouch_publisher.platforms.pouch import (
    PUBLISH_ENDPOINT,
    TRANSCRIBE_ENDPOINT,
    UPLOAD_ENDPOINT,
    PouchApiClient,
    PouchAudioUploader,
    PouchTranscriptionTrigger,
    classify_response,
)
from pouch_publisher.platforms.pouch.transcription import (
    NOTICE_FAILED,
    NOTICE_STARTED,
    NOTICE_STARTED_AI,
)
from pouch_publisher.utils.logging import REDACTED


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    def __init__(self, *responses: FakeResponse | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def post(self, url: str, data: Any = None, headers: Any = None, timeout: Any = None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


DESTINATION = Destination(name="main", url="https://pouch.example/", api_key="secret")


def _client(session: FakeSession, *, debug: bool = False) -> PouchApiClient:
    return PouchApiClient(DebugLog(is_enabled=lambda: debug), session=session, timeout=5)


def test_classify_coded_status_overrides_http_status() -> None:
    with pytest.raises(ApiError) as excinfo:
        classify_response(400, {"status": "ERROR_422", "error": "Slug already exists"})
    assert excinfo.value.status_code == 422
    assert excinfo.value.message == "Slug already exists"


def test_classify_falls_back_to_http_status() -> None:
    with pytest.raises(ApiError) as excinfo:
        classify_response(500, {})
    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "HTTP 500"


def test_classify_success_requires_success_status() -> None:
    assert classify_response(200, {"status": "success", "filename_base": "abc"}) == {
        "status": "success",
        "filename_base": "abc",
    }
    with pytest.raises(ApiError) as excinfo:
        classify_response(200, {"status": "pending"})
    assert excinfo.value.status_code == 200
    assert excinfo.value.message == "Unknown error"


def test_send_posts_form_with_api_key_first() -> None:
    session = FakeSession(FakeResponse(200, {"status": "success", "internal_url": "/p/1"}))
    client = _client(session)

    payload = client.send(
        PUBLISH_ENDPOINT, {"title": "Hello", "tags": "", "filename_base": None}, DESTINATION
    )

    assert payload["internal_url"] == "/p/1"
    call = session.calls[0]
    assert call["url"] == "https://pouch.example/php/api_create_post.php"
    assert list(call["data"]) == ["api_key", "title"]
    assert call["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
    assert call["timeout"] == 5


def test_send_treats_non_json_body_as_empty() -> None:
    client = _client(FakeSession(FakeResponse(502)))
    with pytest.raises(ApiError) as excinfo:
        client.send(PUBLISH_ENDPOINT, {"title": "x"}, DESTINATION)
    assert excinfo.value.status_code == 502


def test_send_wraps_transport_errors() -> None:
    client = _client(FakeSession(requests.ConnectionError("refused")), debug=True)
    with pytest.raises(NetworkError):
        client.send(PUBLISH_ENDPOINT, {"title": "x"}, DESTINATION)
    kinds = [entry.kind for entry in client.debug_log]
    assert kinds == ["error", "request"]
    assert client.debug_log[0].error_details == {"name": "ConnectionError", "message": "refused"}


def test_send_records_redacted_debug_trace() -> None:
    session = FakeSession(FakeResponse(200, {"status": "success"}))
    client = _client(session, debug=True)

    client.send(PUBLISH_ENDPOINT, {"markdown": "x" * 600}, DESTINATION)

    kinds = [entry.kind for entry in client.debug_log]
    assert kinds == ["info", "response", "request"]
    request = client.debug_log[2].request_data
    assert request["api_key"] == REDACTED
    assert request["markdown"].endswith("... [truncated, total length: 600]")
    assert session.calls[0]["data"]["api_key"] == "secret"


def test_uploader_returns_stored_filename() -> None:
    session = FakeSession(FakeResponse(200, {"success": True, "filename": "20240101-clip.mp3"}))
    uploader = PouchAudioUploader(_client(session))

    filename = uploader.upload(
        file_name="clip.mp3",
        data=b"abc",
        mime_type="audio/mpeg",
        slug="my-post",
        destination=DESTINATION,
        remove_silence=True,
    )

    assert filename == "20240101-clip.mp3"
    call = session.calls[0]
    assert call["url"] == "https://pouch.example" + UPLOAD_ENDPOINT
    assert call["headers"]["Content-Type"].startswith("multipart/form-data; boundary=")
    body = call["data"]
    assert b'name="filename_base"\r\n\r\nmy-post\r\n' in body
    assert b'name="remove_silence"\r\n\r\ntrue\r\n' in body
    assert b'filename="clip.mp3"' in body


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (FakeResponse(200, {"success": False}), "Audio upload failed"),
        (FakeResponse(413, {"error": "Too large"}), "Too large"),
        (FakeResponse(500), "HTTP 500"),
    ],
)
def test_uploader_failures(response: FakeResponse, message: str) -> None:
    uploader = PouchAudioUploader(_client(FakeSession(response)))
    with pytest.raises(AudioUploadError) as excinfo:
        uploader.upload(
            file_name="a.wav", data=b"", mime_type="audio/wav", slug="s", destination=DESTINATION
        )
    assert excinfo.value.message == message


def test_uploader_wraps_network_errors() -> None:
    uploader = PouchAudioUploader(_client(FakeSession(requests.Timeout("slow"))))
    with pytest.raises(AudioUploadError):
        uploader.upload(
            file_name="a.wav", data=b"", mime_type="audio/wav", slug="s", destination=DESTINATION
        )


def test_trigger_sends_ai_hints_when_requested() -> None:
    session = FakeSession(FakeResponse(200, {"success": True}))
    trigger = PouchTranscriptionTrigger(_client(session))
    try:
        notice = trigger.trigger(
            "clip.mp3", "my-post", DESTINATION, ai_model="model-x", ai_provider="provider-y"
        )
    finally:
        trigger.shutdown()

    assert notice == NOTICE_STARTED_AI
    call = session.calls[0]
    assert call["url"] == "https://pouch.example" + TRANSCRIBE_ENDPOINT
    assert call["data"] == {
        "audio_filename": "clip.mp3",
        "json_filename": "my-post.json",
        "api_key": "secret",
        "ai_model": "model-x",
        "ai_provider": "provider-y",
    }


def test_trigger_raises_on_rejection() -> None:
    trigger = PouchTranscriptionTrigger(_client(FakeSession(FakeResponse(200, {"success": False}))))
    try:
        with pytest.raises(TranscriptionError):
            trigger.trigger("clip.mp3", "s", DESTINATION)
    finally:
        trigger.shutdown()


def test_fire_resolves_to_notice_and_never_raises() -> None:
    session = FakeSession(
        FakeResponse(200, {"success": True}), requests.ConnectionError("down")
    )
    trigger = PouchTranscriptionTrigger(_client(session))
    try:
        assert trigger.fire("clip.mp3", "s", DESTINATION).result(timeout=5) == NOTICE_STARTED
        assert trigger.fire("clip.mp3", "s", DESTINATION).result(timeout=5) == NOTICE_FAILED
    finally:
        trigger.shutdown()


class FlakySave:
    """on_change hook that fails from the ``fail_from``-th call onwards."""

    def __init__(self, fail_from: int, message: str = "disk full") -> None:
        self.fail_from = fail_from
        self.message = message
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1
        if self.calls >= self.fail_from:
            raise OSError(self.message)


def test_send_returns_payload_when_trace_cannot_be_saved() -> None:
    session = FakeSession(FakeResponse(200, {"status": "success", "filename_base": "abc"}))
    debug = DebugLog(is_enabled=lambda: True, on_change=FlakySave(fail_from=2))
    client = PouchApiClient(debug, session=session, timeout=5)

    payload = client.send(PUBLISH_ENDPOINT, {"title": "x"}, DESTINATION)

    assert payload["filename_base"] == "abc"
    assert len(session.calls) == 1
    assert [entry.kind for entry in debug] == ["info", "response", "request"]


def test_fire_survives_unsaved_trace() -> None:
    session = FakeSession(FakeResponse(200, {"success": True}))
    debug = DebugLog(
        is_enabled=lambda: True, on_change=FlakySave(fail_from=1, message="state file not writable")
    )
    trigger = PouchTranscriptionTrigger(PouchApiClient(debug, session=session, timeout=5))
    try:
        assert trigger.fire("clip.mp3", "s", DESTINATION).result(timeout=5) == NOTICE_STARTED
    finally:
        trigger.shutdown()


def test_fire_turns_unexpected_errors_into_failed_notice() -> None:
    trigger = PouchTranscriptionTrigger(_client(FakeSession(RuntimeError("boom"))))
    try:
        future = trigger.fire("clip.mp3", "s", DESTINATION)
        assert future.result(timeout=5) == NOTICE_FAILED
        assert future.exception() is None
    finally:
        trigger.shutdown()
