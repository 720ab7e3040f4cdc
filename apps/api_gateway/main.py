"""
API Gateway (FastAPI).

Функции:
- /health
- /metrics
- HTTP API для встреч (создание с failover, завершение, join-токен)
- admin API пула Zoom аккаунтов
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apps.api_gateway.routers.admin import router as admin_router
from apps.api_gateway.routers.meetings import router as meetings_router
from meeting_pool.common.config import get_settings
from meeting_pool.common.logging import get_project_logger, setup_logging
from meeting_pool.common.metrics import setup_metrics_endpoint
from meeting_pool.common.security import is_prod_env
from meeting_pool.services.pool_service import get_pool

log = get_project_logger()


def _parse_origins(raw: str) -> list[str]:
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    return origins or ["*"]


def _cors_params() -> tuple[list[str], bool]:
    settings = get_settings()
    allow_origins = _parse_origins(settings.cors_allowed_origins)
    allow_credentials = bool(settings.cors_allow_credentials)

    if is_prod_env(settings.app_env) and "*" in allow_origins:
        raise RuntimeError("CORS wildcard '*' запрещён в APP_ENV=prod")

    # '*' нельзя использовать вместе с credentials=true
    if "*" in allow_origins:
        allow_credentials = False

    return allow_origins, allow_credentials


def _create_app() -> FastAPI:
    app = FastAPI(title="Meeting Pool", version="0.1.0")
    allow_origins, allow_credentials = _cors_params()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=allow_credentials,
    )

    setup_metrics_endpoint(app)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    @app.on_event("startup")
    def startup_pool() -> None:
        summary = get_pool().get_summary()
        log.info(
            "zoom_pool_ready",
            extra={
                "payload": {
                    "total_accounts": summary.total_accounts,
                    "available_accounts": summary.available_accounts,
                }
            },
        )

    app.include_router(meetings_router, prefix="/v1")
    app.include_router(admin_router, prefix="/v1")

    return app


setup_logging()

app = _create_app()
