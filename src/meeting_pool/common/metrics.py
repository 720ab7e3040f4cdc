"""
Метрики Prometheus для сервиса.

Назначение:
- экспорт /metrics
- счётчики создания/завершения встреч, failover и вывода аккаунтов из пула
- gauge нагрузки по аккаунтам (обновляются при скрейпе)
"""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

REQUESTS_TOTAL = Counter(
    "meeting_pool_requests_total",
    "Общее количество HTTP запросов",
    ["route", "method", "status"],
)

HTTP_REQUEST_LATENCY_MS = Histogram(
    "meeting_pool_http_request_latency_ms",
    "Задержка HTTP запроса (мс)",
    ["route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

MEETINGS_CREATED_TOTAL = Counter(
    "meeting_pool_meetings_created_total",
    "Количество созданных встреч",
    ["account"],
)

MEETINGS_ENDED_TOTAL = Counter(
    "meeting_pool_meetings_ended_total",
    "Количество завершённых встреч",
    ["account", "outcome"],  # outcome=deleted|already_ended
)

FAILOVER_TOTAL = Counter(
    "meeting_pool_failover_total",
    "Неудачные попытки на аккаунте с переходом к следующему",
    ["account", "stage"],  # stage=auth|create
)

EXHAUSTED_TOTAL = Counter(
    "meeting_pool_exhausted_total",
    "create_meeting не удался ни на одном аккаунте",
)

ACCOUNT_SUSPENSIONS_TOTAL = Counter(
    "meeting_pool_account_suspensions_total",
    "Вывод аккаунта из ротации из-за неверных credentials",
    ["account"],
)

ACCOUNT_RESETS_TOTAL = Counter(
    "meeting_pool_account_resets_total",
    "Ручные reset аккаунтов",
    ["scope"],  # scope=account|all
)

ACCOUNT_ACTIVE_MEETINGS = Gauge(
    "meeting_pool_account_active_meetings",
    "Текущее число активных встреч на аккаунте",
    ["account"],
)

ACCOUNT_AVAILABLE = Gauge(
    "meeting_pool_account_available",
    "Аккаунт в ротации (1) или выведен (0)",
    ["account"],
)

METRICS_COLLECTION_ERRORS_TOTAL = Counter(
    "meeting_pool_metrics_collection_errors_total",
    "Ошибки сборки служебных метрик",
    ["source"],
)


def record_meeting_created(account_id: str) -> None:
    MEETINGS_CREATED_TOTAL.labels(account=account_id).inc()


def record_meeting_ended(account_id: str, *, already_ended: bool) -> None:
    outcome = "already_ended" if already_ended else "deleted"
    MEETINGS_ENDED_TOTAL.labels(account=account_id, outcome=outcome).inc()


def record_failover(account_id: str, *, stage: str) -> None:
    FAILOVER_TOTAL.labels(account=account_id, stage=stage).inc()


def record_exhausted() -> None:
    EXHAUSTED_TOTAL.inc()


def record_account_suspended(account_id: str) -> None:
    ACCOUNT_SUSPENSIONS_TOTAL.labels(account=account_id).inc()


def record_account_reset(*, scope: str) -> None:
    ACCOUNT_RESETS_TOTAL.labels(scope=scope).inc()


def refresh_pool_metrics() -> None:
    try:
        from meeting_pool.services.pool_service import get_pool

        for account_id, stats in get_pool().get_usage_stats().items():
            ACCOUNT_ACTIVE_MEETINGS.labels(account=account_id).set(stats.active_meetings)
            ACCOUNT_AVAILABLE.labels(account=account_id).set(1 if stats.is_available else 0)
    except Exception:
        METRICS_COLLECTION_ERRORS_TOTAL.labels(source="pool_metrics").inc()


# =============================================================================
# ENDPOINT /metrics
# =============================================================================
def setup_metrics_endpoint(app: FastAPI) -> None:
    """
    Регистрирует endpoint /metrics для Prometheus.
    """

    @app.middleware("http")
    async def http_metrics(request: Request, call_next):
        route = request.url.path
        method = request.method
        started = time.perf_counter()

        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        REQUESTS_TOTAL.labels(route=route, method=method, status=str(response.status_code)).inc()
        HTTP_REQUEST_LATENCY_MS.labels(route=route, method=method).observe(elapsed_ms)
        return response

    @app.get("/metrics")
    def metrics() -> Response:
        refresh_pool_metrics()
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
