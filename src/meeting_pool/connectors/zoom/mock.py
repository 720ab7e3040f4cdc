"""
Mock-провайдер Zoom для dev/тестов.

Назначение:
- гонять пул и failover без живых credentials
- аккаунты из failing_accounts отвечают invalid_client на OAuth
"""

from __future__ import annotations

import secrets
import threading
from collections.abc import Iterable

from meeting_pool.accounts.models import EndResult, MeetingRequest, MeetingResult, ZoomAccount
from meeting_pool.common.errors import AuthError
from meeting_pool.connectors.base import MeetingProvider
from meeting_pool.connectors.zoom.meetings import MESSAGE_ALREADY_ENDED, MESSAGE_ENDED


class MockZoomProvider(MeetingProvider):
    name = "zoom_mock"

    def __init__(self, *, failing_accounts: Iterable[str] = ()) -> None:
        self.failing_accounts = set(failing_accounts)
        self.meetings: dict[str, str] = {}  # meeting_id -> account_id
        self._seq = 0
        self._lock = threading.Lock()

    def get_token(self, account: ZoomAccount) -> str:
        if account.id in self.failing_accounts:
            raise AuthError(
                f"Не удалось авторизоваться в Zoom аккаунте {account.id}: invalid_client",
                status_code=400,
                error_code="invalid_client",
                details={"account_id": account.id},
            )
        return f"mock-token-{account.id}-{secrets.token_hex(4)}"

    def create_meeting(
        self, account: ZoomAccount, token: str, request: MeetingRequest
    ) -> MeetingResult:
        _ = token
        with self._lock:
            self._seq += 1
            meeting_id = str(8_000_000_000 + self._seq)
            self.meetings[meeting_id] = account.id
        password = request.password or secrets.token_hex(3)
        return MeetingResult(
            meeting_id=meeting_id,
            join_password=password,
            join_url=f"https://zoom.mock/j/{meeting_id}?pwd={password}",
            account_used=account.id,
            raw={"id": meeting_id, "topic": request.topic, "host_id": account.host_user_id},
        )

    def end_meeting(self, account: ZoomAccount, token: str, meeting_id: str) -> EndResult:
        _ = token
        with self._lock:
            owner = self.meetings.pop(meeting_id, None)
        if owner is None:
            return EndResult(
                account_used=account.id, message=MESSAGE_ALREADY_ENDED, already_ended=True
            )
        return EndResult(account_used=account.id, message=MESSAGE_ENDED)
