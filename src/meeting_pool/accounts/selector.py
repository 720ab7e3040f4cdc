"""
Выбор Zoom аккаунта под новую встречу (load balancing).

Политика:
1. кандидаты: is_available и не в excluded
2. кандидатов нет -> NoAccountsAvailableError
3. в пуле ровно один доступный аккаунт -> он, независимо от нагрузки
4. среди аккаунтов ниже capacity: минимум active_meetings, при равенстве
   давно не выбиравшийся (LRU); если все на/выше capacity, то просто минимум
   active_meetings (capacity является рекомендацией, а не admission control)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from meeting_pool.accounts.models import AccountUsageState, ZoomAccount
from meeting_pool.accounts.pool import AccountPool
from meeting_pool.common.errors import NoAccountsAvailableError
from meeting_pool.common.logging import get_pool_logger

log = get_pool_logger()


def _sort_key(
    account: ZoomAccount, state: AccountUsageState, order: int
) -> tuple[int, int, int]:
    # Никогда не выбиравшийся аккаунт считается самым "старым"
    last = state.last_selected_at if state.last_selected_at is not None else -1
    return state.active_meetings, last, order


def choose_account(
    accounts: Sequence[ZoomAccount],
    usage: Mapping[str, AccountUsageState],
    excluded: set[str] | frozenset[str] = frozenset(),
) -> tuple[ZoomAccount, str]:
    """
    Чистая функция выбора. Возвращает (аккаунт, причина выбора).
    """
    available = [a for a in accounts if usage[a.id].is_available]
    candidates = [a for a in available if a.id not in excluded]

    if not candidates:
        raise NoAccountsAvailableError(
            details={
                "total_accounts": len(accounts),
                "available_accounts": len(available),
                "excluded": sorted(excluded),
            }
        )

    if len(available) == 1:
        return candidates[0], "single_account"

    order = {a.id: idx for idx, a in enumerate(accounts)}
    under_capacity = [
        a for a in candidates if usage[a.id].active_meetings < a.max_concurrent_meetings
    ]
    if under_capacity:
        chosen = min(under_capacity, key=lambda a: _sort_key(a, usage[a.id], order[a.id]))
        return chosen, "least_loaded"

    chosen = min(candidates, key=lambda a: _sort_key(a, usage[a.id], order[a.id]))
    return chosen, "over_capacity"


def select_account(pool: AccountPool, excluded: set[str] | None = None) -> ZoomAccount:
    """
    Выбор + отметка last_selected_at (отмечается попытка, не успех).
    """
    excluded_ids = set(excluded or ())
    usage = pool.snapshot()
    chosen, reason = choose_account(pool.accounts, usage, excluded_ids)
    pool.mark_selected(chosen.id)

    log.info(
        "zoom_account_selected",
        extra={
            "payload": {
                "account_id": chosen.id,
                "reason": reason,
                "active_meetings": usage[chosen.id].active_meetings,
                "max_concurrent_meetings": chosen.max_concurrent_meetings,
                "excluded": sorted(excluded_ids),
            }
        },
    )
    return chosen
