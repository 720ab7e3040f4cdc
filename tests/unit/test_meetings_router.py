from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from apps.api_gateway.main import _create_app, app
from meeting_pool.common.config import get_settings
from meeting_pool.services import pool_service

_ACCOUNTS = [
    {
        "id": "a",
        "client_id": "cid-a",
        "client_secret": "secret-a",
        "account_id": "pa-a",
        "user_id": "a@example.com",
        "sdk_key": "sdk-a",
        "sdk_secret": "sdk-secret-a",
    },
    {
        "id": "b",
        "client_id": "cid-b",
        "client_secret": "secret-b",
        "account_id": "pa-b",
        "user_id": "b@example.com",
    },
]


@pytest.fixture()
def api_settings():
    s = get_settings()
    keys = [
        "app_env",
        "auth_mode",
        "api_keys",
        "service_api_keys",
        "meeting_provider",
        "zoom_accounts_json",
        "cors_allowed_origins",
        "cors_allow_credentials",
    ]
    snapshot = {k: getattr(s, k) for k in keys}
    try:
        s.auth_mode = "api_key"
        s.api_keys = "user-1"
        s.service_api_keys = "svc-1"
        s.meeting_provider = "zoom_mock"
        s.zoom_accounts_json = json.dumps(_ACCOUNTS)
        pool_service.reset_runtime()
        yield s
    finally:
        for k, v in snapshot.items():
            setattr(s, k, v)
        pool_service.reset_runtime()


_HEADERS = {"X-API-Key": "user-1"}


def test_create_meeting_requires_auth(api_settings) -> None:
    client = TestClient(app)
    resp = client.post("/v1/meetings", json={"topic": "x"})
    assert resp.status_code == 401


def test_create_and_end_meeting(api_settings) -> None:
    client = TestClient(app)

    created = client.post(
        "/v1/meetings",
        json={"topic": "Algebra", "duration_minutes": 40, "settings": {"waiting_room": True}},
        headers=_HEADERS,
    )
    assert created.status_code == 200
    body = created.json()
    assert body["account_used"] == "a"
    assert body["join_url"]

    ended = client.post(
        f"/v1/meetings/{body['meeting_id']}/end",
        json={"account_used": "a"},
        headers=_HEADERS,
    )
    assert ended.status_code == 200
    assert ended.json()["already_ended"] is False

    again = client.post(
        f"/v1/meetings/{body['meeting_id']}/end",
        json={"account_used": "a"},
        headers=_HEADERS,
    )
    assert again.status_code == 200
    assert again.json()["message"] == "Meeting already ended"


def test_end_meeting_unknown_account_is_404(api_settings) -> None:
    client = TestClient(app)
    resp = client.post("/v1/meetings/1/end", json={"account_used": "ghost"}, headers=_HEADERS)
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "account_not_found"


def test_create_meeting_when_pool_exhausted_is_503(api_settings) -> None:
    pool_service.get_orchestrator().provider.failing_accounts.update({"a", "b"})
    client = TestClient(app)

    resp = client.post("/v1/meetings", json={}, headers=_HEADERS)
    assert resp.status_code == 503
    detail = resp.json()["detail"]
    assert detail["code"] == "accounts_exhausted"
    assert sorted(detail["details"]["tried_accounts"]) == ["a", "b"]

    again = client.post("/v1/meetings", json={}, headers=_HEADERS)
    assert again.status_code == 503
    assert again.json()["detail"]["code"] == "no_accounts_available"


def test_join_token_endpoint(api_settings) -> None:
    client = TestClient(app)

    ok = client.post(
        "/v1/meetings/join-token",
        json={"meeting_number": "8000000001", "role": 1, "account_used": "a"},
        headers=_HEADERS,
    )
    assert ok.status_code == 200
    assert ok.json()["signing_key_id"] == "sdk-a"

    missing = client.post(
        "/v1/meetings/join-token",
        json={"meeting_number": "8000000001", "role": 0, "account_used": "b"},
        headers=_HEADERS,
    )
    assert missing.status_code == 409

    bad_role = client.post(
        "/v1/meetings/join-token",
        json={"meeting_number": "8000000001", "role": 3, "account_used": "a"},
        headers=_HEADERS,
    )
    assert bad_role.status_code == 422

    bool_role = client.post(
        "/v1/meetings/join-token",
        json={"meeting_number": "8000000001", "role": True, "account_used": "a"},
        headers=_HEADERS,
    )
    assert bool_role.status_code == 422


def test_meetings_preflight_allows_only_configured_origins(api_settings) -> None:
    api_settings.app_env = "prod"
    api_settings.cors_allowed_origins = "https://lms.example, https://admin.example"
    api_settings.cors_allow_credentials = True
    client = TestClient(_create_app())

    preflight = {"Access-Control-Request-Method": "POST"}
    ok = client.options("/v1/meetings", headers={"Origin": "https://lms.example", **preflight})
    assert ok.status_code == 200
    assert ok.headers["access-control-allow-origin"] == "https://lms.example"
    assert ok.headers["access-control-allow-credentials"] == "true"

    foreign = client.options(
        "/v1/meetings", headers={"Origin": "https://evil.example", **preflight}
    )
    assert foreign.status_code == 400

    created = client.post(
        "/v1/meetings",
        json={"topic": "x"},
        headers={"Origin": "https://admin.example", **_HEADERS},
    )
    assert created.status_code == 200
    assert created.headers["access-control-allow-origin"] == "https://admin.example"
    assert created.json()["account_used"] == "a"


def test_wildcard_origin_serves_meetings_without_credentials(api_settings) -> None:
    api_settings.app_env = "dev"
    api_settings.cors_allowed_origins = "*"
    api_settings.cors_allow_credentials = True
    client = TestClient(_create_app())

    resp = client.post(
        "/v1/meetings",
        json={"topic": "x"},
        headers={"Origin": "https://anywhere.example", **_HEADERS},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in resp.headers


def test_prod_app_refuses_wildcard_origin(api_settings) -> None:
    api_settings.app_env = "prod"
    api_settings.cors_allowed_origins = "*"

    with pytest.raises(RuntimeError):
        _create_app()
