"""
Service-only admin endpoints для пула Zoom аккаунтов.

Назначение:
- статистика нагрузки по аккаунтам
- ручное возвращение аккаунта в пул после починки credentials
- health пула (есть ли хотя бы один доступный аккаунт)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from apps.api_gateway.deps import http_error, service_auth_dep
from meeting_pool.accounts.models import AccountStats
from meeting_pool.common.errors import AccountNotFoundError, ErrCode
from meeting_pool.contracts.http_api import (
    AccountListResponse,
    AccountResetAllResponse,
    AccountResetResponse,
    AccountStatsResponse,
    PoolHealthResponse,
)
from meeting_pool.services import pool_service

router = APIRouter(dependencies=[Depends(service_auth_dep)])


def _as_stats_response(account_id: str, stats: AccountStats) -> AccountStatsResponse:
    return AccountStatsResponse(
        account_id=account_id,
        account=stats.account,
        active_meetings=stats.active_meetings,
        last_selected_at=stats.last_selected_at,
        last_selected_formatted=stats.last_selected_formatted,
        is_available=stats.is_available,
        at_capacity=stats.at_capacity,
    )


@router.get("/admin/zoom/accounts", response_model=AccountListResponse)
def admin_list_accounts() -> AccountListResponse:
    summary = pool_service.get_summary()
    stats = pool_service.get_usage_stats()
    return AccountListResponse(
        total_accounts=summary.total_accounts,
        available_accounts=summary.available_accounts,
        total_active_meetings=summary.total_active_meetings,
        accounts=[_as_stats_response(k, v) for k, v in stats.items()],
    )


@router.get("/admin/zoom/health", response_model=PoolHealthResponse)
def admin_pool_health() -> PoolHealthResponse:
    state = pool_service.health()
    body = PoolHealthResponse(
        healthy=state.healthy,
        available_accounts=state.available_accounts,
        total_accounts=state.total_accounts,
        checked_at=state.checked_at,
    )
    if not state.healthy:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "code": ErrCode.NO_ACCOUNTS_AVAILABLE,
                "message": "Нет доступных Zoom аккаунтов",
                "details": body.model_dump(),
            },
        )
    return body


@router.post("/admin/zoom/accounts/reset-all", response_model=AccountResetAllResponse)
def admin_reset_all() -> AccountResetAllResponse:
    return AccountResetAllResponse(reset_accounts=pool_service.reset_all())


@router.get("/admin/zoom/accounts/{account_id}", response_model=AccountStatsResponse)
def admin_get_account(account_id: str) -> AccountStatsResponse:
    stats = pool_service.get_usage_stats().get(account_id)
    if stats is None:
        raise http_error(AccountNotFoundError(account_id))
    return _as_stats_response(account_id, stats)


@router.post("/admin/zoom/accounts/{account_id}/reset", response_model=AccountResetResponse)
def admin_reset_account(account_id: str) -> AccountResetResponse:
    if not pool_service.reset_account(account_id):
        raise http_error(AccountNotFoundError(account_id))
    return AccountResetResponse(account_id=account_id, reset=True)
