"""
Базовые интерфейсы коннекторов к платформе видеовстреч.

Назначение:
- отделить "как ходим к провайдеру" от логики пула/failover
- оркестратор работает только с этим контрактом (реальный Zoom или mock)
"""

from __future__ import annotations

from typing import Protocol

from meeting_pool.accounts.models import EndResult, MeetingRequest, MeetingResult, ZoomAccount


class MeetingProvider(Protocol):
    """
    Контракт провайдера встреч.
    """

    name: str

    def get_token(self, account: ZoomAccount) -> str:
        """Обменять client credentials аккаунта на bearer token (AuthError при отказе)."""
        ...

    def create_meeting(
        self, account: ZoomAccount, token: str, request: MeetingRequest
    ) -> MeetingResult:
        """Создать встречу от имени host user аккаунта (ProviderError при отказе)."""
        ...

    def end_meeting(self, account: ZoomAccount, token: str, meeting_id: str) -> EndResult:
        """Удалить встречу; "не найдено" считается успешным завершением."""
        ...
