"""
Логирование сервиса.

- логирование в stdout (Docker-friendly)
- json|text формат через LOG_FORMAT
- структурированные данные передаются через extra={"payload": {...}}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from meeting_pool.common.config import get_settings


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        extra_payload = getattr(record, "payload", None)
        if isinstance(extra_payload, dict):
            payload["payload"] = extra_payload
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _build_formatter() -> logging.Formatter:
    s = get_settings()
    if (s.log_format or "").lower() == "text":
        return logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return JsonFormatter()


def setup_logging() -> None:
    s = get_settings()
    root = logging.getLogger()
    level = getattr(logging, (s.log_level or "INFO").upper(), logging.INFO)
    root.setLevel(level)

    # Не плодим хэндлеры при повторном вызове
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)


def get_project_logger(name: str = "meeting-pool") -> logging.Logger:
    return logging.getLogger(name)


def get_pool_logger() -> logging.Logger:
    """
    Отдельный логгер для пула аккаунтов (удобно фильтровать выбор/failover).
    """
    return logging.getLogger("meeting-pool.accounts")


def mask_credential(value: str | None, head: int = 8, tail: int = 4) -> str:
    """
    Маскирует client id для логов: abcd1234...wxyz
    """
    if not value:
        return "MISSING"
    if len(value) <= head + tail:
        return value[: max(1, len(value) // 2)] + "..."
    return f"{value[:head]}...{value[-tail:]}"
