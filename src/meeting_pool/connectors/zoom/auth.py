"""
OAuth клиент Zoom (Server-to-Server, grant_type=account_credentials).

Токен запрашивается заново на каждый create/end вызов, без кэша.
Ретраев здесь нет: политика повторов и failover живут в оркестраторе.
"""

from __future__ import annotations

import base64
from typing import Any

import requests

from meeting_pool.accounts.models import ZoomAccount
from meeting_pool.common.errors import AuthError
from meeting_pool.common.logging import get_project_logger, mask_credential

log = get_project_logger()


def basic_auth_header(client_id: str, client_secret: str) -> str:
    raw = f"{client_id}:{client_secret}".encode()
    return "Basic " + base64.b64encode(raw).decode("utf-8")


def _safe_json(resp: requests.Response) -> dict[str, Any]:
    if not resp.content:
        return {}
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class ZoomAuthClient:
    def __init__(
        self,
        *,
        oauth_url: str,
        timeout_sec: int,
        http: Any = None,
    ) -> None:
        self.oauth_url = oauth_url
        self.timeout_sec = int(timeout_sec)
        self._http = http or requests

    def get_token(self, account: ZoomAccount) -> str:
        headers = {
            "Authorization": basic_auth_header(account.client_id, account.client_secret),
            "Content-Type": "application/x-www-form-urlencoded",
        }
        params = {
            "grant_type": "account_credentials",
            "account_id": account.provider_account_id,
        }

        try:
            resp = self._http.post(
                self.oauth_url,
                data=params,
                headers=headers,
                timeout=self.timeout_sec,
            )
        except requests.RequestException as e:
            log.warning(
                "zoom_oauth_request_failed",
                extra={"payload": {"account_id": account.id, "error": str(e)[:200]}},
            )
            raise AuthError(
                f"Ошибка обращения к Zoom OAuth для {account.id}",
                details={"account_id": account.id, "err": str(e)[:200]},
            ) from e

        data = _safe_json(resp)
        if not 200 <= resp.status_code < 300:
            error_code = str(data.get("error") or "") or None
            reason = str(data.get("reason") or data.get("message") or "")[:200]
            log.error(
                "zoom_oauth_failed",
                extra={
                    "payload": {
                        "account_id": account.id,
                        "status": resp.status_code,
                        "error": error_code,
                        "reason": reason,
                        "host_user_id": account.host_user_id,
                        "client_id": mask_credential(account.client_id),
                    }
                },
            )
            raise AuthError(
                f"Не удалось авторизоваться в Zoom аккаунте {account.id}: "
                f"{error_code or resp.status_code}",
                status_code=resp.status_code,
                error_code=error_code,
                details={"account_id": account.id, "reason": reason},
            )

        token = data.get("access_token")
        if not token:
            raise AuthError(
                f"Zoom OAuth не вернул access_token для {account.id}",
                status_code=resp.status_code,
                details={"account_id": account.id},
            )

        log.info("zoom_oauth_ok", extra={"payload": {"account_id": account.id}})
        return str(token)
