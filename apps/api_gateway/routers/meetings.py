"""
HTTP роуты для встреч.

- POST /v1/meetings                : создать встречу на наименее загруженном аккаунте
- POST /v1/meetings/{meeting_id}/end: завершить встречу (на аккаунте-создателе)
- POST /v1/meetings/join-token     : подписать SDK join-токен

Авторизация: Depends(auth_dep)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from apps.api_gateway.deps import auth_dep, http_error
from meeting_pool.common.errors import AppError
from meeting_pool.common.logging import get_project_logger
from meeting_pool.common.security import AuthContext
from meeting_pool.contracts.http_api import (
    JoinTokenRequest,
    JoinTokenResponse,
    MeetingCreateRequest,
    MeetingCreateResponse,
    MeetingEndRequest,
    MeetingEndResponse,
)
from meeting_pool.services import pool_service

log = get_project_logger()

router = APIRouter()


@router.post("/meetings", response_model=MeetingCreateResponse)
def create_meeting(
    req: MeetingCreateRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> MeetingCreateResponse:
    try:
        result = pool_service.create_meeting(
            topic=req.topic,
            start_time=req.start_time,
            duration_minutes=req.duration_minutes,
            timezone=req.timezone,
            password=req.password,
            agenda=req.agenda,
            settings_overrides=req.settings,
        )
    except AppError as e:
        raise http_error(e) from e

    log.info(
        "meeting_created",
        extra={
            "payload": {
                "meeting_id": result.meeting_id,
                "account_used": result.account_used,
                "subject": ctx.subject,
            }
        },
    )
    return MeetingCreateResponse(
        meeting_id=result.meeting_id,
        join_password=result.join_password,
        join_url=result.join_url,
        account_used=result.account_used,
    )


@router.post("/meetings/join-token", response_model=JoinTokenResponse)
def create_join_token(
    req: JoinTokenRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> JoinTokenResponse:
    try:
        signed = pool_service.sign_join_token(req.meeting_number, req.role, req.account_used)
    except AppError as e:
        raise http_error(e) from e
    return JoinTokenResponse(
        token=signed.token,
        signing_key_id=signed.signing_key_id,
        account_used=signed.account_used,
        meeting_number=signed.meeting_number,
        role=signed.role,
        expires_at=signed.expires_at,
    )


@router.post("/meetings/{meeting_id}/end", response_model=MeetingEndResponse)
def end_meeting(
    meeting_id: str,
    req: MeetingEndRequest,
    ctx: AuthContext = Depends(auth_dep),
) -> MeetingEndResponse:
    try:
        result = pool_service.end_meeting(meeting_id, req.account_used)
    except AppError as e:
        raise http_error(e) from e
    return MeetingEndResponse(
        success=result.success,
        message=result.message,
        account_used=result.account_used,
        already_ended=result.already_ended,
    )
