"""
Пул Zoom аккаунтов и состояние их нагрузки.

Содержит:
- статический список провалидированных аккаунтов (read-only после старта)
- AccountUsageState на каждый аккаунт (active_meetings / last_selected_at / is_available)
- admin-операции: статистика, reset одного/всех аккаунтов

Состояние живёт только в памяти процесса: вывод аккаунта из ротации
(is_available=False) сбрасывается рестартом или явным reset.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

from meeting_pool.accounts.models import AccountStats, AccountUsageState, ZoomAccount
from meeting_pool.common.errors import AccountNotFoundError
from meeting_pool.common.logging import get_pool_logger
from meeting_pool.common.time import ms_to_iso, utc_ms, utc_now_iso

log = get_pool_logger()


@dataclass
class PoolSummary:
    total_accounts: int
    available_accounts: int
    total_active_meetings: int


@dataclass
class PoolHealth:
    healthy: bool
    available_accounts: int
    total_accounts: int
    checked_at: str


class AccountPool:
    def __init__(
        self,
        accounts: Iterable[ZoomAccount],
        *,
        clock: Callable[[], int] = utc_ms,
    ) -> None:
        self._accounts: tuple[ZoomAccount, ...] = tuple(accounts)
        self._by_id: dict[str, ZoomAccount] = {a.id: a for a in self._accounts}
        self._usage: dict[str, AccountUsageState] = {
            a.id: AccountUsageState() for a in self._accounts
        }
        self._clock = clock
        # Защищает read-modify-write одного ключа; select+reserve атомарно не связаны
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------
    @property
    def accounts(self) -> tuple[ZoomAccount, ...]:
        return self._accounts

    @property
    def size(self) -> int:
        return len(self._accounts)

    def find(self, account_id: str) -> ZoomAccount | None:
        return self._by_id.get(account_id)

    def get_account_by_id(self, account_id: str) -> ZoomAccount:
        account = self._by_id.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def usage(self, account_id: str) -> AccountUsageState:
        """Копия состояния (снаружи пул не мутируется)."""
        self.get_account_by_id(account_id)
        with self._lock:
            return replace(self._usage[account_id])

    def available_accounts(self) -> list[ZoomAccount]:
        with self._lock:
            return [a for a in self._accounts if self._usage[a.id].is_available]

    def snapshot(self) -> dict[str, AccountUsageState]:
        with self._lock:
            return {k: replace(v) for k, v in self._usage.items()}

    # -------------------------------------------------------------------------
    # Мутации (вызывает только оркестратор и admin)
    # -------------------------------------------------------------------------
    def mark_selected(self, account_id: str) -> None:
        self.get_account_by_id(account_id)
        with self._lock:
            self._usage[account_id].last_selected_at = self._clock()

    def record_meeting_started(self, account_id: str) -> int:
        self.get_account_by_id(account_id)
        with self._lock:
            state = self._usage[account_id]
            state.active_meetings += 1
            state.last_selected_at = self._clock()
            return state.active_meetings

    def record_meeting_ended(self, account_id: str) -> int:
        self.get_account_by_id(account_id)
        with self._lock:
            state = self._usage[account_id]
            state.active_meetings = max(0, state.active_meetings - 1)
            state.last_selected_at = self._clock()
            return state.active_meetings

    def suspend(self, account_id: str, *, reason: str) -> None:
        self.get_account_by_id(account_id)
        with self._lock:
            self._usage[account_id].is_available = False
        log.warning(
            "zoom_account_suspended",
            extra={"payload": {"account_id": account_id, "reason": reason}},
        )

    # -------------------------------------------------------------------------
    # Admin / диагностика
    # -------------------------------------------------------------------------
    def get_usage_stats(self) -> dict[str, AccountStats]:
        usage = self.snapshot()
        stats: dict[str, AccountStats] = {}
        for account in self._accounts:
            state = usage[account.id]
            stats[account.id] = AccountStats(
                account=account.public_view(),
                active_meetings=state.active_meetings,
                last_selected_at=state.last_selected_at,
                last_selected_formatted=ms_to_iso(state.last_selected_at) or "never",
                is_available=state.is_available,
                at_capacity=state.active_meetings >= account.max_concurrent_meetings,
            )
        return stats

    def get_summary(self) -> PoolSummary:
        usage = self.snapshot()
        return PoolSummary(
            total_accounts=len(usage),
            available_accounts=sum(1 for s in usage.values() if s.is_available),
            total_active_meetings=sum(s.active_meetings for s in usage.values()),
        )

    def health(self) -> PoolHealth:
        summary = self.get_summary()
        return PoolHealth(
            healthy=summary.available_accounts > 0,
            available_accounts=summary.available_accounts,
            total_accounts=summary.total_accounts,
            checked_at=utc_now_iso(),
        )

    def reset_account(self, account_id: str) -> bool:
        if account_id not in self._by_id:
            log.warning(
                "zoom_account_reset_unknown",
                extra={"payload": {"account_id": account_id}},
            )
            return False
        with self._lock:
            self._usage[account_id].is_available = True
        log.info("zoom_account_reset", extra={"payload": {"account_id": account_id}})
        return True

    def reset_all(self) -> int:
        with self._lock:
            for state in self._usage.values():
                state.is_available = True
        log.info("zoom_accounts_reset_all", extra={"payload": {"accounts": self.size}})
        return self.size
