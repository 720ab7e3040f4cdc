"""
FastAPI Depends для API пула встреч.

- auth_dep: клиентские вызовы (создание/завершение встреч, join-токены)
- service_auth_dep: admin-операции над пулом, только service-идентичность
- http_error: AppError -> HTTPException

Каждое решение авторизации пишется в лог (api_access_granted / api_access_denied)
вместе с целевым аккаунтом пула, если он есть в пути запроса.
"""

from __future__ import annotations

from fastapi import Header, HTTPException, Request, status

from meeting_pool.common.errors import AppError, ErrCode, UnauthorizedError
from meeting_pool.common.logging import get_project_logger
from meeting_pool.common.security import (
    AuthContext,
    is_service_jwt_claims,
    require_auth,
)

log = get_project_logger()

_HTTP_STATUS_BY_CODE = {
    ErrCode.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrCode.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrCode.NO_ACCOUNTS_AVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrCode.ACCOUNTS_EXHAUSTED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrCode.SIGNING_CREDENTIALS_MISSING: status.HTTP_409_CONFLICT,
    ErrCode.PROVIDER_AUTH_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrCode.PROVIDER_ERROR: status.HTTP_502_BAD_GATEWAY,
}

_SERVICE_AUTH_TYPES = {"service_api_key", "none"}


def http_error(e: AppError) -> HTTPException:
    return HTTPException(
        status_code=_HTTP_STATUS_BY_CODE.get(e.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"code": e.code, "message": e.message, "details": e.details or {}},
    )


def _log_access(
    request: Request,
    *,
    granted: bool,
    reason: str,
    ctx: AuthContext | None = None,
    status_code: int | None = None,
) -> None:
    payload = {
        "path": request.url.path,
        "method": request.method,
        "account_id": request.path_params.get("account_id"),
        "auth_type": ctx.auth_type if ctx else "unknown",
        "subject": ctx.subject if ctx else "unknown",
        "reason": reason,
        "client_ip": request.client.host if request.client else None,
    }
    if granted:
        log.info("api_access_granted", extra={"payload": payload})
        return
    payload["status_code"] = status_code
    log.warning("api_access_denied", extra={"payload": payload})


def _authenticate(
    request: Request, authorization: str | None, x_api_key: str | None
) -> AuthContext:
    try:
        return require_auth(authorization=authorization, x_api_key=x_api_key)
    except UnauthorizedError as e:
        _log_access(
            request,
            granted=False,
            reason=e.message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": e.code, "message": e.message},
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def auth_dep(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    ctx = _authenticate(request, authorization, x_api_key)
    _log_access(request, granted=True, reason="auth_ok", ctx=ctx)
    return ctx


def service_auth_dep(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    """
    Admin-операции (reset аккаунтов, статистика пула) доступны только
    service API key или JWT с service-ролью.
    """
    ctx = _authenticate(request, authorization, x_api_key)
    if ctx.auth_type in _SERVICE_AUTH_TYPES:
        _log_access(request, granted=True, reason=ctx.auth_type, ctx=ctx)
        return ctx
    if ctx.auth_type == "jwt" and is_service_jwt_claims(ctx.claims):
        _log_access(request, granted=True, reason="service_jwt_claims", ctx=ctx)
        return ctx

    _log_access(
        request,
        granted=False,
        reason="not_service_identity",
        ctx=ctx,
        status_code=status.HTTP_403_FORBIDDEN,
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"code": ErrCode.FORBIDDEN, "message": "Требуется service-авторизация"},
    )
