"""
Адаптер Zoom: OAuth клиент + Meetings API за одним контрактом MeetingProvider.
"""

from __future__ import annotations

from typing import Any

from meeting_pool.accounts.models import EndResult, MeetingRequest, MeetingResult, ZoomAccount
from meeting_pool.common.config import Settings, get_settings
from meeting_pool.connectors.base import MeetingProvider
from meeting_pool.connectors.zoom.auth import ZoomAuthClient
from meeting_pool.connectors.zoom.meetings import ZoomMeetingsClient


class ZoomProvider(MeetingProvider):
    name = "zoom"

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        auth_client: ZoomAuthClient | None = None,
        meetings_client: ZoomMeetingsClient | None = None,
        http: Any = None,
    ) -> None:
        s = settings or get_settings()
        self.auth = auth_client or ZoomAuthClient(
            oauth_url=s.zoom_oauth_url,
            timeout_sec=s.zoom_timeout_sec,
            http=http,
        )
        self.meetings = meetings_client or ZoomMeetingsClient(
            api_base=s.zoom_api_base,
            timeout_sec=s.zoom_timeout_sec,
            default_topic=s.meeting_default_topic,
            default_duration_min=s.meeting_default_duration_min,
            default_timezone=s.meeting_default_timezone,
            http=http,
        )

    def get_token(self, account: ZoomAccount) -> str:
        return self.auth.get_token(account)

    def create_meeting(
        self, account: ZoomAccount, token: str, request: MeetingRequest
    ) -> MeetingResult:
        return self.meetings.create_meeting(account, token, request)

    def end_meeting(self, account: ZoomAccount, token: str, meeting_id: str) -> EndResult:
        return self.meetings.end_meeting(account, token, meeting_id)
