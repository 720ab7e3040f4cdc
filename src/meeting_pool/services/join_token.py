"""
Подпись join-токена (Zoom Meeting SDK signature).

Токен: HS256 JWT, подписанный SDK secret того аккаунта, который хостит встречу.
Подпись чужим аккаунтом провайдер отклонит, поэтому account_id обязателен.

- iat сдвинут на 30 секунд назад (расхождение часов между сервисами)
- exp = iat_base + 2 часа
"""

from __future__ import annotations

from datetime import datetime

import jwt

from meeting_pool.accounts.models import JoinToken
from meeting_pool.accounts.pool import AccountPool
from meeting_pool.common.config import get_settings
from meeting_pool.common.errors import SigningCredentialsMissingError, ValidationError
from meeting_pool.common.logging import get_project_logger
from meeting_pool.common.time import utc_now

log = get_project_logger()

ROLE_PARTICIPANT = 0
ROLE_HOST = 1
_ALLOWED_ROLES = {ROLE_PARTICIPANT, ROLE_HOST}


def build_join_payload(
    *,
    signing_key: str,
    meeting_number: str,
    role: int,
    now: datetime,
    ttl_sec: int,
    backdate_sec: int,
    audience: str,
) -> dict:
    now_ts = int(now.timestamp())
    iat = now_ts - backdate_sec
    exp = now_ts + ttl_sec
    return {
        "iss": signing_key,
        "sdkKey": signing_key,
        "appKey": signing_key,
        "aud": audience,
        "mn": meeting_number,
        "role": role,
        "iat": iat,
        "exp": exp,
        "tokenExp": exp,
    }


def sign_join_token(
    pool: AccountPool,
    *,
    meeting_number: str | int,
    role: int,
    account_id: str,
    now: datetime | None = None,
) -> JoinToken:
    account = pool.get_account_by_id(account_id)
    if not account.has_signing_credentials:
        raise SigningCredentialsMissingError(account_id)

    mn = str(meeting_number).strip()
    if not mn:
        raise ValidationError("Не указан номер встречи")
    if isinstance(role, bool) or role not in _ALLOWED_ROLES:
        raise ValidationError(
            "Недопустимая роль участника", {"role": role, "allowed": sorted(_ALLOWED_ROLES)}
        )

    s = get_settings()
    payload = build_join_payload(
        signing_key=str(account.signing_key),
        meeting_number=mn,
        role=role,
        now=now or utc_now(),
        ttl_sec=int(s.join_token_ttl_sec),
        backdate_sec=int(s.join_token_backdate_sec),
        audience=s.join_token_audience,
    )
    token = jwt.encode(
        payload,
        str(account.signing_secret),
        algorithm="HS256",
        headers={"typ": "JWT"},
    )

    log.info(
        "join_token_signed",
        extra={"payload": {"account_id": account.id, "meeting_number": mn, "role": role}},
    )
    return JoinToken(
        token=str(token),
        signing_key_id=str(account.signing_key),
        account_used=account.id,
        meeting_number=mn,
        role=role,
        expires_at=payload["exp"],
    )
