"""
Runtime-сборка пула и оркестратора + точки входа для внешних модулей.

Внешние потребители (расписания занятий/сессий/событий) используют только:
- create_meeting / end_meeting
- sign_join_token
- get_usage_stats / reset_account / reset_all / get_account_by_id

Пул и оркестратор создаются один раз на процесс из ENV.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from meeting_pool.accounts.models import (
    AccountStats,
    EndResult,
    JoinToken,
    MeetingRequest,
    MeetingResult,
    ZoomAccount,
)
from meeting_pool.accounts.pool import AccountPool, PoolHealth, PoolSummary
from meeting_pool.accounts.validator import load_accounts_from_settings
from meeting_pool.common.config import get_settings
from meeting_pool.common.errors import ProviderError
from meeting_pool.common.logging import get_project_logger
from meeting_pool.common.metrics import record_account_reset
from meeting_pool.connectors.base import MeetingProvider
from meeting_pool.connectors.zoom.adapter import ZoomProvider
from meeting_pool.connectors.zoom.mock import MockZoomProvider
from meeting_pool.services import join_token
from meeting_pool.services.meeting_service import MeetingOrchestrator

log = get_project_logger()


def resolve_provider() -> MeetingProvider:
    s = get_settings()
    provider = (s.meeting_provider or "zoom").strip().lower()
    if provider == "zoom":
        return ZoomProvider(settings=s)
    if provider == "zoom_mock":
        return MockZoomProvider()
    raise ProviderError(
        f"Неизвестный MEETING_PROVIDER: {provider}",
        details={"allowed": "zoom,zoom_mock"},
    )


@lru_cache(maxsize=1)
def get_pool() -> AccountPool:
    accounts, excluded = load_accounts_from_settings(get_settings())
    if excluded:
        log.warning(
            "zoom_pool_partial",
            extra={
                "payload": {
                    "valid": len(accounts),
                    "excluded": [{"account_id": e.account_id, "reason": e.reason} for e in excluded],
                }
            },
        )
    return AccountPool(accounts)


@lru_cache(maxsize=1)
def get_orchestrator() -> MeetingOrchestrator:
    return MeetingOrchestrator(get_pool(), resolve_provider())


def reset_runtime() -> None:
    """Сбросить собранный пул/оркестратор (тесты, перечитка ENV)."""
    get_orchestrator.cache_clear()
    get_pool.cache_clear()


def create_meeting(
    *,
    topic: str | None = None,
    start_time: str | None = None,
    duration_minutes: int | None = None,
    timezone: str | None = None,
    password: str | None = None,
    agenda: str | None = None,
    settings_overrides: dict[str, Any] | None = None,
) -> MeetingResult:
    request = MeetingRequest(
        topic=topic,
        start_time=start_time,
        duration_minutes=duration_minutes,
        timezone=timezone,
        password=password,
        agenda=agenda,
        settings_overrides=settings_overrides,
    )
    return get_orchestrator().create_meeting(request)


def end_meeting(meeting_id: str, account_used: str) -> EndResult:
    return get_orchestrator().end_meeting(meeting_id, account_used)


def sign_join_token(meeting_number: str | int, role: int, account_used: str) -> JoinToken:
    return join_token.sign_join_token(
        get_pool(), meeting_number=meeting_number, role=role, account_id=account_used
    )


def get_usage_stats() -> dict[str, AccountStats]:
    return get_pool().get_usage_stats()


def reset_account(account_id: str) -> bool:
    ok = get_pool().reset_account(account_id)
    if ok:
        record_account_reset(scope="account")
    return ok


def reset_all() -> int:
    count = get_pool().reset_all()
    record_account_reset(scope="all")
    return count


def get_account_by_id(account_id: str) -> ZoomAccount:
    return get_pool().get_account_by_id(account_id)


def get_summary() -> PoolSummary:
    return get_pool().get_summary()


def health() -> PoolHealth:
    return get_pool().health()
