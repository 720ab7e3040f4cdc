"""
Клиент Zoom Meetings API: создание и удаление встреч.

- тело запроса = дефолтные настройки + overrides вызывающего (по полям)
- DELETE с 404 считается успешным (встреча уже завершена/истекла)
"""

from __future__ import annotations

from typing import Any

import requests

from meeting_pool.accounts.models import EndResult, MeetingRequest, MeetingResult, ZoomAccount
from meeting_pool.common.errors import ProviderError
from meeting_pool.common.logging import get_project_logger
from meeting_pool.common.time import utc_now

log = get_project_logger()

# type=2: scheduled meeting
SCHEDULED_MEETING_TYPE = 2

DEFAULT_MEETING_SETTINGS: dict[str, Any] = {
    "host_video": True,
    "participant_video": True,
    "join_before_host": True,
    "approval_type": 1,
    "audio": "both",
    "auto_recording": "local",
    "waiting_room": False,
}

MESSAGE_ENDED = "Meeting ended successfully"
MESSAGE_ALREADY_ENDED = "Meeting already ended"


def _safe_json(resp: requests.Response) -> dict[str, Any]:
    if not resp.content:
        return {}
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _provider_error(
    *, action: str, account: ZoomAccount, resp: requests.Response
) -> ProviderError:
    data = _safe_json(resp)
    error_code = data.get("error") or data.get("code")
    message = str(data.get("message") or data.get("reason") or resp.reason or "")[:200]
    return ProviderError(
        f"Zoom {action} завершился ошибкой {resp.status_code} ({account.id}): {message}",
        status_code=resp.status_code,
        error_code=str(error_code) if error_code is not None else None,
        details={"account_id": account.id, "action": action},
    )


class ZoomMeetingsClient:
    def __init__(
        self,
        *,
        api_base: str,
        timeout_sec: int,
        default_topic: str = "Meeting",
        default_duration_min: int = 60,
        default_timezone: str = "Asia/Kolkata",
        http: Any = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout_sec = int(timeout_sec)
        self.default_topic = default_topic
        self.default_duration_min = int(default_duration_min)
        self.default_timezone = default_timezone
        self._http = http or requests

    def build_meeting_body(self, request: MeetingRequest) -> dict[str, Any]:
        settings = dict(DEFAULT_MEETING_SETTINGS)
        settings.update(request.settings_overrides or {})
        return {
            "topic": request.topic or self.default_topic,
            "type": SCHEDULED_MEETING_TYPE,
            "start_time": request.start_time or utc_now().strftime("%Y-%m-%dT%H:%M:%SZ"),
            "duration": request.duration_minutes or self.default_duration_min,
            "timezone": request.timezone or self.default_timezone,
            "password": request.password or "",
            "agenda": request.agenda or "",
            "settings": settings,
        }

    def _request(
        self,
        method: str,
        path: str,
        *,
        account: ZoomAccount,
        token: str,
        action: str,
        payload: dict[str, Any] | None = None,
    ) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        try:
            return self._http.request(
                method=method,
                url=f"{self.api_base}{path}",
                json=payload,
                headers=headers,
                timeout=self.timeout_sec,
            )
        except requests.RequestException as e:
            raise ProviderError(
                f"Ошибка обращения к Zoom API ({action}, {account.id})",
                details={"account_id": account.id, "action": action, "err": str(e)[:200]},
            ) from e

    def create_meeting(
        self, account: ZoomAccount, token: str, request: MeetingRequest
    ) -> MeetingResult:
        body = self.build_meeting_body(request)
        resp = self._request(
            "POST",
            f"/users/{account.host_user_id}/meetings",
            account=account,
            token=token,
            action="create_meeting",
            payload=body,
        )
        if not 200 <= resp.status_code < 300:
            raise _provider_error(action="create_meeting", account=account, resp=resp)

        data = _safe_json(resp)
        if data.get("id") is None:
            raise ProviderError(
                f"Zoom не вернул id встречи ({account.id})",
                status_code=resp.status_code,
                details={"account_id": account.id, "action": "create_meeting"},
            )

        log.info(
            "zoom_meeting_created",
            extra={"payload": {"account_id": account.id, "meeting_id": str(data["id"])}},
        )
        return MeetingResult(
            meeting_id=str(data["id"]),
            join_password=str(data.get("password") or ""),
            join_url=str(data.get("join_url") or ""),
            account_used=account.id,
            raw=data,
        )

    def end_meeting(self, account: ZoomAccount, token: str, meeting_id: str) -> EndResult:
        resp = self._request(
            "DELETE",
            f"/meetings/{meeting_id}",
            account=account,
            token=token,
            action="end_meeting",
        )
        if resp.status_code == 404:
            log.info(
                "zoom_meeting_already_ended",
                extra={"payload": {"account_id": account.id, "meeting_id": meeting_id}},
            )
            return EndResult(
                account_used=account.id, message=MESSAGE_ALREADY_ENDED, already_ended=True
            )
        if not 200 <= resp.status_code < 300:
            raise _provider_error(action="end_meeting", account=account, resp=resp)

        log.info(
            "zoom_meeting_deleted",
            extra={"payload": {"account_id": account.id, "meeting_id": meeting_id}},
        )
        return EndResult(account_used=account.id, message=MESSAGE_ENDED)
