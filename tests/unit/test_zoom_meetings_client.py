from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from meeting_pool.accounts.models import MeetingRequest, ZoomAccount
from meeting_pool.common.errors import ProviderError
from meeting_pool.connectors.zoom.meetings import (
    DEFAULT_MEETING_SETTINGS,
    MESSAGE_ALREADY_ENDED,
    MESSAGE_ENDED,
    ZoomMeetingsClient,
)


def _response(status: int, body: Any = None, reason: str = "") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    resp._content = b"" if body is None else json.dumps(body).encode("utf-8")
    return resp


class _FakeHttp:
    def __init__(self, *responses: requests.Response) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, **kwargs: Any) -> requests.Response:
        self.calls.append(kwargs)
        return self.responses.pop(0)


def _account() -> ZoomAccount:
    return ZoomAccount(
        id="account_2",
        client_id="cid-2",
        client_secret="secret-2",
        provider_account_id="pa-2",
        host_user_id="host2@example.com",
    )


def _client(http: _FakeHttp) -> ZoomMeetingsClient:
    return ZoomMeetingsClient(
        api_base="https://api.zoom.test/v2/",
        timeout_sec=10,
        default_topic="Lesson",
        default_duration_min=45,
        default_timezone="UTC",
        http=http,
    )


def test_build_body_merges_settings_overrides() -> None:
    body = _client(_FakeHttp()).build_meeting_body(
        MeetingRequest(
            topic="Demo",
            start_time="2026-01-10T10:00:00",
            settings_overrides={"waiting_room": True, "mute_upon_entry": True},
        )
    )
    assert body["topic"] == "Demo"
    assert body["type"] == 2
    assert body["duration"] == 45
    assert body["timezone"] == "UTC"
    assert body["settings"]["waiting_room"] is True
    assert body["settings"]["mute_upon_entry"] is True
    assert body["settings"]["auto_recording"] == DEFAULT_MEETING_SETTINGS["auto_recording"]
    # дефолты не мутируются
    assert DEFAULT_MEETING_SETTINGS["waiting_room"] is False


def test_create_meeting_success() -> None:
    http = _FakeHttp(
        _response(201, {"id": 123456789, "password": "pw1", "join_url": "https://zoom/j/1"})
    )
    result = _client(http).create_meeting(_account(), "tok", MeetingRequest(topic="T"))

    assert result.meeting_id == "123456789"
    assert result.join_password == "pw1"
    assert result.join_url == "https://zoom/j/1"
    assert result.account_used == "account_2"

    call = http.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.zoom.test/v2/users/host2@example.com/meetings"
    assert call["headers"]["Authorization"] == "Bearer tok"
    assert call["json"]["topic"] == "T"


def test_create_meeting_error_carries_status_and_code() -> None:
    http = _FakeHttp(_response(400, {"code": 1001, "message": "User does not exist"}))
    with pytest.raises(ProviderError) as ei:
        _client(http).create_meeting(_account(), "tok", MeetingRequest())
    assert ei.value.status_code == 400
    assert ei.value.error_code == "1001"
    assert "User does not exist" in ei.value.message
    assert ei.value.is_credential_failure is False


def test_create_meeting_without_id_is_error() -> None:
    http = _FakeHttp(_response(201, {"join_url": "x"}))
    with pytest.raises(ProviderError):
        _client(http).create_meeting(_account(), "tok", MeetingRequest())


def test_end_meeting_success() -> None:
    http = _FakeHttp(_response(204))
    result = _client(http).end_meeting(_account(), "tok", "987")

    assert result.success is True
    assert result.already_ended is False
    assert result.message == MESSAGE_ENDED
    assert http.calls[0]["method"] == "DELETE"
    assert http.calls[0]["url"] == "https://api.zoom.test/v2/meetings/987"


def test_end_meeting_404_is_already_ended() -> None:
    http = _FakeHttp(_response(404, {"code": 3001, "message": "Meeting does not exist"}))
    result = _client(http).end_meeting(_account(), "tok", "987")
    assert result.success is True
    assert result.already_ended is True
    assert result.message == MESSAGE_ALREADY_ENDED


def test_end_meeting_other_error_raises() -> None:
    http = _FakeHttp(_response(500, reason="Internal Server Error"))
    with pytest.raises(ProviderError) as ei:
        _client(http).end_meeting(_account(), "tok", "987")
    assert ei.value.status_code == 500
