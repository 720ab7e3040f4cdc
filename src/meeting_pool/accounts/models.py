"""
Модели пула Zoom аккаунтов.

- ZoomAccount       : статическая конфигурация (загружается один раз при старте)
- AccountUsageState : изменяемое состояние нагрузки (живёт в памяти процесса)
- MeetingRequest / MeetingResult / EndResult / JoinToken: контракты оркестратора
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ZoomAccount:
    id: str
    client_id: str
    client_secret: str
    provider_account_id: str
    host_user_id: str
    signing_key: str | None = None
    signing_secret: str | None = None
    max_concurrent_meetings: int = 1

    @property
    def has_signing_credentials(self) -> bool:
        return bool((self.signing_key or "").strip() and (self.signing_secret or "").strip())

    def public_view(self) -> dict[str, Any]:
        """Конфигурация без секретов (для статистики/логов)."""
        return {
            "id": self.id,
            "provider_account_id": self.provider_account_id,
            "host_user_id": self.host_user_id,
            "max_concurrent_meetings": self.max_concurrent_meetings,
            "has_signing_credentials": self.has_signing_credentials,
        }


@dataclass
class AccountUsageState:
    active_meetings: int = 0
    last_selected_at: int | None = None  # epoch ms
    is_available: bool = True


@dataclass
class AccountStats:
    account: dict[str, Any]
    active_meetings: int
    last_selected_at: int | None
    last_selected_formatted: str
    is_available: bool
    at_capacity: bool


@dataclass
class MeetingRequest:
    topic: str | None = None
    start_time: str | None = None
    duration_minutes: int | None = None
    timezone: str | None = None
    password: str | None = None
    agenda: str | None = None
    settings_overrides: dict[str, Any] | None = None


@dataclass
class MeetingResult:
    meeting_id: str
    join_password: str
    join_url: str
    account_used: str
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class EndResult:
    account_used: str
    message: str
    success: bool = True
    already_ended: bool = False


@dataclass
class JoinToken:
    token: str
    signing_key_id: str
    account_used: str
    meeting_number: str
    role: int
    expires_at: int  # epoch sec
