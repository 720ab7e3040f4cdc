"""
HTTP API контракты (Pydantic-модели).

Назначение:
- валидация входа/выхода на уровне FastAPI
- стабильные структуры для клиентов
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# =============================================================================
# ВСТРЕЧИ
# =============================================================================
class MeetingCreateRequest(BaseModel):
    topic: str | None = None
    start_time: str | None = None  # ISO-8601, локальное время в timezone
    duration_minutes: int | None = Field(default=None, ge=1)
    timezone: str | None = None
    password: str | None = None
    agenda: str | None = None
    settings: dict[str, Any] | None = None


class MeetingCreateResponse(BaseModel):
    meeting_id: str
    join_password: str
    join_url: str
    account_used: str


class MeetingEndRequest(BaseModel):
    account_used: str = Field(min_length=1)


class MeetingEndResponse(BaseModel):
    success: bool
    message: str
    account_used: str
    already_ended: bool


class JoinTokenRequest(BaseModel):
    meeting_number: str = Field(min_length=1)
    role: int = Field(default=0, strict=True)
    account_used: str = Field(min_length=1)


class JoinTokenResponse(BaseModel):
    token: str
    signing_key_id: str
    account_used: str
    meeting_number: str
    role: int
    expires_at: int


# =============================================================================
# ADMIN
# =============================================================================
class AccountStatsResponse(BaseModel):
    account_id: str
    account: dict[str, Any]
    active_meetings: int
    last_selected_at: int | None
    last_selected_formatted: str
    is_available: bool
    at_capacity: bool


class AccountListResponse(BaseModel):
    total_accounts: int
    available_accounts: int
    total_active_meetings: int
    accounts: list[AccountStatsResponse]


class AccountResetResponse(BaseModel):
    account_id: str
    reset: bool


class AccountResetAllResponse(BaseModel):
    reset_accounts: int


class PoolHealthResponse(BaseModel):
    healthy: bool
    available_accounts: int
    total_accounts: int
    checked_at: str
