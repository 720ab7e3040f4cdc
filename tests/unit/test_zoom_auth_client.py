from __future__ import annotations

import base64
import json
from typing import Any

import pytest
import requests

from meeting_pool.accounts.models import ZoomAccount
from meeting_pool.common.errors import AuthError
from meeting_pool.connectors.zoom.auth import ZoomAuthClient, basic_auth_header


def _response(status: int, body: Any = None, reason: str = "") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    resp._content = b"" if body is None else json.dumps(body).encode("utf-8")
    return resp


class _FakeHttp:
    def __init__(self, response: requests.Response | None = None, exc: Exception | None = None):
        self.response = response
        self.exc = exc
        self.calls: list[dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append({"url": url, **kwargs})
        if self.exc is not None:
            raise self.exc
        assert self.response is not None
        return self.response


def _account() -> ZoomAccount:
    return ZoomAccount(
        id="account_1",
        client_id="cid-1",
        client_secret="secret-1",
        provider_account_id="pa-1",
        host_user_id="host@example.com",
    )


def _client(http: _FakeHttp) -> ZoomAuthClient:
    return ZoomAuthClient(oauth_url="https://zoom.test/oauth/token", timeout_sec=7, http=http)


def test_basic_auth_header_encodes_credentials() -> None:
    header = basic_auth_header("id", "sec")
    assert header == "Basic " + base64.b64encode(b"id:sec").decode()


def test_get_token_success_sends_account_credentials_grant() -> None:
    http = _FakeHttp(_response(200, {"access_token": "tok-1", "expires_in": 3600}))
    assert _client(http).get_token(_account()) == "tok-1"

    call = http.calls[0]
    assert call["url"] == "https://zoom.test/oauth/token"
    assert call["data"] == {"grant_type": "account_credentials", "account_id": "pa-1"}
    assert call["headers"]["Authorization"] == basic_auth_header("cid-1", "secret-1")
    assert call["timeout"] == 7


def test_invalid_client_is_credential_failure() -> None:
    http = _FakeHttp(_response(400, {"error": "invalid_client", "reason": "Invalid client_id"}))
    with pytest.raises(AuthError) as ei:
        _client(http).get_token(_account())

    err = ei.value
    assert err.status_code == 400
    assert err.error_code == "invalid_client"
    assert err.is_credential_failure is True


def test_unauthorized_status_is_credential_failure() -> None:
    http = _FakeHttp(_response(401, reason="Unauthorized"))
    with pytest.raises(AuthError) as ei:
        _client(http).get_token(_account())
    assert ei.value.is_credential_failure is True


def test_server_error_is_not_credential_failure() -> None:
    http = _FakeHttp(_response(503, {"error": "temporarily_unavailable"}))
    with pytest.raises(AuthError) as ei:
        _client(http).get_token(_account())
    assert ei.value.is_credential_failure is False


def test_network_error_becomes_auth_error() -> None:
    http = _FakeHttp(exc=requests.ConnectTimeout("timed out"))
    with pytest.raises(AuthError) as ei:
        _client(http).get_token(_account())
    assert ei.value.status_code is None
    assert ei.value.is_credential_failure is False


def test_missing_access_token_is_auth_error() -> None:
    http = _FakeHttp(_response(200, {"token_type": "bearer"}))
    with pytest.raises(AuthError):
        _client(http).get_token(_account())
