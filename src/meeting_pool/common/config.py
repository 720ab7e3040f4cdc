"""
Централизованная конфигурация сервиса (ENV / .env).

Важно:
- настройки читаются из .env и переменных окружения
- типизированные значения через pydantic-settings
- учётные записи Zoom читаются отдельно (accounts.validator), здесь только
  общие параметры пула и провайдера
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Runtime
    # -------------------------------------------------------------------------
    app_env: str = Field(default="dev", alias="APP_ENV")
    service_name: str = Field(default="meeting-pool", alias="SERVICE_NAME")
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8010, alias="API_PORT")
    cors_allowed_origins: str = Field(default="*", alias="CORS_ALLOWED_ORIGINS")
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------
    auth_mode: str = Field(default="api_key", alias="AUTH_MODE")  # api_key|jwt|none
    api_keys: str = Field(default="", alias="API_KEYS")
    service_api_keys: str = Field(default="", alias="SERVICE_API_KEYS")
    jwt_shared_secret: str | None = Field(default=None, alias="JWT_SHARED_SECRET")
    jwt_algorithms: str = Field(default="HS256", alias="JWT_ALGORITHMS")
    jwt_audience: str | None = Field(default=None, alias="JWT_AUDIENCE")
    jwt_clock_skew_sec: int = Field(default=30, alias="JWT_CLOCK_SKEW_SEC")
    jwt_service_role_claim: str = Field(default="roles", alias="JWT_SERVICE_ROLE_CLAIM")
    jwt_service_allowed_roles: str = Field(
        default="service,admin", alias="JWT_SERVICE_ALLOWED_ROLES"
    )

    # -------------------------------------------------------------------------
    # Meeting provider (Zoom)
    # -------------------------------------------------------------------------
    meeting_provider: str = Field(default="zoom", alias="MEETING_PROVIDER")  # zoom|zoom_mock
    zoom_oauth_url: str = Field(default="https://zoom.us/oauth/token", alias="ZOOM_OAUTH_URL")
    zoom_api_base: str = Field(default="https://api.zoom.us/v2", alias="ZOOM_API_BASE")
    zoom_timeout_sec: int = Field(default=10, alias="ZOOM_TIMEOUT_SEC")

    # -------------------------------------------------------------------------
    # Account pool
    # -------------------------------------------------------------------------
    zoom_accounts_json: str = Field(default="", alias="ZOOM_ACCOUNTS_JSON")
    zoom_max_accounts: int = Field(default=10, alias="ZOOM_MAX_ACCOUNTS")
    zoom_default_max_concurrent: int = Field(default=1, alias="ZOOM_DEFAULT_MAX_CONCURRENT")

    # -------------------------------------------------------------------------
    # Meeting defaults
    # -------------------------------------------------------------------------
    meeting_default_topic: str = Field(default="Meeting", alias="MEETING_DEFAULT_TOPIC")
    meeting_default_duration_min: int = Field(default=60, alias="MEETING_DEFAULT_DURATION_MIN")
    meeting_default_timezone: str = Field(
        default="Asia/Kolkata", alias="MEETING_DEFAULT_TIMEZONE"
    )

    # -------------------------------------------------------------------------
    # Join token
    # -------------------------------------------------------------------------
    join_token_ttl_sec: int = Field(default=7200, alias="JOIN_TOKEN_TTL_SEC")
    join_token_backdate_sec: int = Field(default=30, alias="JOIN_TOKEN_BACKDATE_SEC")
    join_token_audience: str = Field(default="zoom", alias="JOIN_TOKEN_AUDIENCE")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")  # json|text

    def model_post_init(self, __context) -> None:
        _apply_file_overrides(self)


_CSV_ENV_FIELDS = {
    "API_KEYS",
    "SERVICE_API_KEYS",
    "JWT_SERVICE_ALLOWED_ROLES",
    "CORS_ALLOWED_ORIGINS",
}


def _normalize_file_value(env_key: str, raw: str) -> str:
    value = (raw or "").strip()
    if env_key in _CSV_ENV_FIELDS and "\n" in value and "," not in value:
        parts = [p.strip() for p in value.splitlines() if p.strip()]
        return ",".join(parts)
    return value


def _apply_file_overrides(settings: Settings) -> None:
    alias_to_field = {}
    for name, field in type(settings).model_fields.items():
        alias = field.alias or name
        alias_to_field[str(alias)] = name
        alias_to_field[str(name)] = name

    for key, path in os.environ.items():
        if not key.endswith("_FILE"):
            continue
        base = key[: -len("_FILE")]
        target = alias_to_field.get(base)
        if not target:
            continue
        file_path = (path or "").strip()
        if not file_path:
            continue
        try:
            raw = Path(file_path).read_text(encoding="utf-8")
        except Exception as e:
            logging.getLogger("meeting-pool").error(
                "config_file_read_failed",
                extra={"payload": {"env_key": key, "path": file_path, "error": str(e)[:200]}},
            )
            raise RuntimeError(f"Failed to read {key} from {file_path}") from e
        value = _normalize_file_value(base, raw)
        setattr(settings, target, value)


_SETTINGS = Settings()


def get_settings() -> Settings:
    return _SETTINGS
