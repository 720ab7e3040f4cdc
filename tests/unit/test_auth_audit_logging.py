from __future__ import annotations

import json
import logging

import pytest
from fastapi.testclient import TestClient

from apps.api_gateway.main import app
from meeting_pool.common.config import get_settings
from meeting_pool.services import pool_service

_ACCOUNTS = [
    {
        "id": "a",
        "client_id": "cid-a",
        "client_secret": "secret-a",
        "account_id": "pa-a",
        "user_id": "a@example.com",
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
def audit_settings():
    s = get_settings()
    keys = ["auth_mode", "api_keys", "service_api_keys", "meeting_provider", "zoom_accounts_json"]
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


def _records(caplog, name: str) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.msg == name]


def test_user_key_cannot_reset_account_and_denial_is_logged(caplog, audit_settings) -> None:
    pool = pool_service.get_pool()
    pool.suspend("a", reason="invalid_client")
    client = TestClient(app)

    caplog.set_level(logging.INFO, logger="meeting-pool")
    resp = client.post("/v1/admin/zoom/accounts/a/reset", headers={"X-API-Key": "user-1"})
    assert resp.status_code == 403

    assert pool.usage("a").is_available is False
    assert [acc.id for acc in pool.available_accounts()] == ["b"]

    rec = _records(caplog, "api_access_denied")[-1]
    assert rec.payload["path"] == "/v1/admin/zoom/accounts/a/reset"
    assert rec.payload["method"] == "POST"
    assert rec.payload["account_id"] == "a"
    assert rec.payload["reason"] == "not_service_identity"
    assert rec.payload["status_code"] == 403
    assert rec.payload["auth_type"] == "user_api_key"


def test_unknown_key_reset_is_logged_as_401(caplog, audit_settings) -> None:
    pool = pool_service.get_pool()
    pool.suspend("b", reason="invalid_client")
    client = TestClient(app)

    caplog.set_level(logging.INFO, logger="meeting-pool")
    resp = client.post("/v1/admin/zoom/accounts/b/reset", headers={"X-API-Key": "nope"})
    assert resp.status_code == 401

    assert pool.usage("b").is_available is False
    rec = _records(caplog, "api_access_denied")[-1]
    assert rec.payload["account_id"] == "b"
    assert rec.payload["status_code"] == 401
    assert rec.payload["auth_type"] == "unknown"


def test_service_key_reset_is_logged_and_restores_account(caplog, audit_settings) -> None:
    pool = pool_service.get_pool()
    pool.suspend("a", reason="invalid_client")
    client = TestClient(app)

    caplog.set_level(logging.INFO, logger="meeting-pool")
    resp = client.post("/v1/admin/zoom/accounts/a/reset", headers={"X-API-Key": "svc-1"})
    assert resp.status_code == 200

    assert pool.usage("a").is_available is True
    assert [acc.id for acc in pool.available_accounts()] == ["a", "b"]

    rec = _records(caplog, "api_access_granted")[-1]
    assert rec.payload["account_id"] == "a"
    assert rec.payload["auth_type"] == "service_api_key"
    assert rec.payload["reason"] == "service_api_key"
    assert _records(caplog, "api_access_denied") == []


def test_meeting_create_logs_granted_access_without_account(caplog, audit_settings) -> None:
    client = TestClient(app)

    caplog.set_level(logging.INFO, logger="meeting-pool")
    resp = client.post("/v1/meetings", json={"topic": "x"}, headers={"X-API-Key": "user-1"})
    assert resp.status_code == 200

    rec = _records(caplog, "api_access_granted")[-1]
    assert rec.payload["path"] == "/v1/meetings"
    assert rec.payload["account_id"] is None
    assert rec.payload["reason"] == "auth_ok"
    assert rec.payload["auth_type"] == "user_api_key"
