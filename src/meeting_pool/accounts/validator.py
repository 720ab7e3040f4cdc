"""
Загрузка и валидация credentials Zoom аккаунтов.

Назначение:
- собрать сырые записи аккаунтов из ENV (ZOOM_ACCOUNTS_JSON или ZOOM_*_<n>)
- очистить OAuth-поля от пробелов/переводов строк
- отбросить неполные и "перепутанные" аккаунты (client id с префиксом account id)

Невалидный аккаунт не роняет старт: он просто не попадает в пул,
причина пишется в лог и в список диагностик.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Iterable, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from meeting_pool.accounts.models import ZoomAccount
from meeting_pool.common.config import Settings
from meeting_pool.common.errors import ValidationExcluded
from meeting_pool.common.logging import get_pool_logger, mask_credential

log = get_pool_logger()

_WS_RE = re.compile(r"\s+")
_CROSS_PREFIX_LEN = 3

REASON_MISSING_FIELDS = "missing_required_fields"
REASON_CROSS_ASSIGNED = "client_id_has_account_id_prefix"
REASON_INVALID_CONFIG = "invalid_config"


class AccountConfig(BaseModel):
    """Запись аккаунта в ZOOM_ACCOUNTS_JSON."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | int | None = None
    client_id: str | None = None
    client_secret: str | None = None
    provider_account_id: str | None = Field(
        default=None, validation_alias=AliasChoices("provider_account_id", "account_id")
    )
    host_user_id: str | None = Field(
        default=None, validation_alias=AliasChoices("host_user_id", "user_id")
    )
    signing_key: str | None = Field(
        default=None, validation_alias=AliasChoices("signing_key", "sdk_key")
    )
    signing_secret: str | None = Field(
        default=None, validation_alias=AliasChoices("signing_secret", "sdk_secret")
    )
    max_concurrent_meetings: int | None = None


def sanitize_credential(value: str | None) -> str:
    if value is None:
        return ""
    return _WS_RE.sub("", str(value))


def exclusion_reason(account: ZoomAccount) -> str | None:
    """
    Очищает OAuth-поля аккаунта (in place) и возвращает причину исключения
    или None, если аккаунт годен для пула.
    """
    account.client_id = sanitize_credential(account.client_id)
    account.client_secret = sanitize_credential(account.client_secret)
    account.provider_account_id = sanitize_credential(account.provider_account_id)
    account.host_user_id = sanitize_credential(account.host_user_id)

    if not (
        account.client_id
        and account.client_secret
        and account.provider_account_id
        and account.host_user_id
    ):
        return REASON_MISSING_FIELDS

    # Частая ошибка в .env: ZOOM_CLIENT_ID_<n> и ZOOM_ACCOUNT_ID_<n> перепутаны местами
    prefix = account.provider_account_id[:_CROSS_PREFIX_LEN].lower()
    if account.client_id.lower().startswith(prefix):
        return REASON_CROSS_ASSIGNED

    return None


def validate_account(account: ZoomAccount) -> bool:
    reason = exclusion_reason(account)
    if reason is None:
        return True
    _log_exclusion(account, reason)
    return False


def _log_exclusion(account: ZoomAccount, reason: str) -> None:
    payload = {
        "account_id": account.id,
        "reason": reason,
        "client_id": mask_credential(account.client_id),
        "has_client_secret": bool(account.client_secret),
        "has_provider_account_id": bool(account.provider_account_id),
        "has_host_user_id": bool(account.host_user_id),
    }
    if reason == REASON_CROSS_ASSIGNED:
        log.error("zoom_account_credentials_mixed_up", extra={"payload": payload})
    else:
        log.warning("zoom_account_skipped", extra={"payload": payload})


def build_pool_members(
    raw_accounts: Iterable[ZoomAccount],
) -> tuple[list[ZoomAccount], list[ValidationExcluded]]:
    """
    Валидационный проход: (валидные аккаунты, диагностика по отброшенным).
    Пул размера 0 допустим.
    """
    valid: list[ZoomAccount] = []
    excluded: list[ValidationExcluded] = []
    seen_ids: set[str] = set()

    for account in raw_accounts:
        if account.id in seen_ids:
            excluded.append(ValidationExcluded(account_id=account.id, reason="duplicate_id"))
            log.warning(
                "zoom_account_skipped",
                extra={"payload": {"account_id": account.id, "reason": "duplicate_id"}},
            )
            continue

        reason = exclusion_reason(account)
        if reason is not None:
            _log_exclusion(account, reason)
            excluded.append(
                ValidationExcluded(
                    account_id=account.id,
                    reason=reason,
                    details={"client_id": mask_credential(account.client_id)},
                )
            )
            continue

        seen_ids.add(account.id)
        valid.append(account)

    log.info(
        "zoom_accounts_initialized",
        extra={
            "payload": {
                "valid": len(valid),
                "excluded": len(excluded),
                "accounts": [
                    {
                        "id": a.id,
                        "host_user_id": a.host_user_id,
                        "client_id": mask_credential(a.client_id),
                        "max_concurrent_meetings": a.max_concurrent_meetings,
                    }
                    for a in valid
                ],
            }
        },
    )
    return valid, excluded


def _capacity(raw: object, default: int) -> int:
    try:
        value = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return max(1, default)
    return max(1, value)


def _from_config(index: int, cfg: AccountConfig, default_capacity: int) -> ZoomAccount:
    return ZoomAccount(
        id=str(cfg.id if cfg.id is not None else "").strip() or f"account_{index}",
        client_id=cfg.client_id or "",
        client_secret=cfg.client_secret or "",
        provider_account_id=cfg.provider_account_id or "",
        host_user_id=cfg.host_user_id or "",
        signing_key=(cfg.signing_key or "").strip() or None,
        signing_secret=(cfg.signing_secret or "").strip() or None,
        max_concurrent_meetings=_capacity(cfg.max_concurrent_meetings, default_capacity),
    )


def _parse_accounts_json(
    raw: str, default_capacity: int
) -> tuple[list[ZoomAccount], list[ValidationExcluded]]:
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise RuntimeError("ZOOM_ACCOUNTS_JSON не является валидным JSON") from e
    if not isinstance(data, list):
        raise RuntimeError("ZOOM_ACCOUNTS_JSON должен быть JSON-массивом")

    out: list[ZoomAccount] = []
    rejected: list[ValidationExcluded] = []
    for idx, item in enumerate(data, start=1):
        try:
            cfg = AccountConfig.model_validate(item)
        except PydanticValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            log.warning(
                "zoom_account_config_invalid",
                extra={"payload": {"index": idx, "fields": fields, "error": str(e)[:200]}},
            )
            rejected.append(
                ValidationExcluded(
                    account_id=f"account_{idx}",
                    reason=REASON_INVALID_CONFIG,
                    details={"index": idx, "fields": fields},
                )
            )
            continue
        out.append(_from_config(idx, cfg, default_capacity))
    return out, rejected


def _parse_indexed_env(
    environ: Mapping[str, str], max_accounts: int, default_capacity: int
) -> list[ZoomAccount]:
    out: list[ZoomAccount] = []
    for n in range(1, max(0, max_accounts) + 1):
        client_id = environ.get(f"ZOOM_CLIENT_ID_{n}")
        client_secret = environ.get(f"ZOOM_CLIENT_SECRET_{n}")
        account_id = environ.get(f"ZOOM_ACCOUNT_ID_{n}")
        user_id = environ.get(f"ZOOM_USER_ID_{n}")
        if not any((client_id, client_secret, account_id, user_id)):
            continue
        cfg = AccountConfig(
            id=f"account_{n}",
            client_id=client_id,
            client_secret=client_secret,
            provider_account_id=account_id,
            host_user_id=user_id,
            signing_key=environ.get(f"ZOOM_SDK_KEY_{n}"),
            signing_secret=environ.get(f"ZOOM_SDK_SECRET_{n}"),
            max_concurrent_meetings=None,
        )
        account = _from_config(n, cfg, default_capacity)
        account.max_concurrent_meetings = _capacity(
            environ.get(f"ZOOM_MAX_CONCURRENT_{n}"), default_capacity
        )
        out.append(account)
    return out


def load_raw_accounts(
    settings: Settings, environ: Mapping[str, str] | None = None
) -> tuple[list[ZoomAccount], list[ValidationExcluded]]:
    """
    Сырые записи аккаунтов (до валидации) + записи, которые не удалось разобрать.
    ZOOM_ACCOUNTS_JSON имеет приоритет над ZOOM_*_<n>.
    """
    env = os.environ if environ is None else environ
    default_capacity = int(settings.zoom_default_max_concurrent)
    raw_json = (settings.zoom_accounts_json or "").strip()
    if raw_json:
        return _parse_accounts_json(raw_json, default_capacity)
    return _parse_indexed_env(env, int(settings.zoom_max_accounts), default_capacity), []


def load_accounts_from_settings(
    settings: Settings, environ: Mapping[str, str] | None = None
) -> tuple[list[ZoomAccount], list[ValidationExcluded]]:
    raw, rejected = load_raw_accounts(settings, environ)
    valid, excluded = build_pool_members(raw)
    return valid, rejected + excluded
