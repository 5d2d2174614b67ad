"""
Admin controller: credential check and admin session lifecycle.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from luckycoins.api.controller.session.dto.input_dto import AdminLoginRequestDto
from luckycoins.api.controller.session.dto.output_dto import (
    ActionResponseDto,
    AdminSessionResponseDto,
    GuardResponseDto,
)
from luckycoins.core.dependencies import get_admin_session_service, get_auth_session
from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.admin_session_service import AdminSessionService
from luckycoins.core.service.auth.auth_session import AuthSession
from luckycoins.core.service.auth.guards import admin_login_redirect, require_admin_session
from luckycoins.core.service.auth.models.admin import AdminLoginResult
from luckycoins.core.utils.countdown import calculate_time_left, format_countdown
from luckycoins.core.utils.formatting import NANOS_PER_MILLI

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/login",
    response_model=AdminLoginResult,
    responses={401: {"model": AdminLoginResult, "description": "Credentials rejected"}}
)
async def admin_login(
    request: AdminLoginRequestDto,
    session: AuthSession = Depends(get_auth_session)
):
    """
    Check admin credentials and open an 8 hour admin session.

    A rejected attempt gets the same message whichever field was wrong.
    """
    result = await session.admin_login(request.admin_id.strip(), request.password)
    if not result.success:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=result.model_dump())
    return result


@router.post("/logout", response_model=ActionResponseDto)
async def admin_logout(session: AuthSession = Depends(get_auth_session)):
    await session.admin_logout()
    return ActionResponseDto(message="Admin session closed")


@router.get("/session", response_model=AdminSessionResponseDto)
async def admin_session(
    session: AuthSession = Depends(get_auth_session),
    admin_sessions: AdminSessionService = Depends(get_admin_session_service)
):
    if not await session.check_admin():
        return AdminSessionResponseDto(is_admin=False)

    expires_at = admin_sessions.expires_at
    time_left = calculate_time_left(expires_at * NANOS_PER_MILLI, admin_sessions.clock())
    return AdminSessionResponseDto(
        is_admin=True,
        expires_at=expires_at,
        time_left=format_countdown(time_left),
        expiring_soon=time_left.is_urgent
    )


@router.get("/guard", response_model=GuardResponseDto)
async def admin_guard(session: AuthSession = Depends(get_auth_session)):
    """Guard for admin console views; re-checks expiry on every call."""
    return GuardResponseDto.from_intent(await require_admin_session(session))


@router.get("/guard/login", response_model=GuardResponseDto)
async def admin_login_guard(session: AuthSession = Depends(get_auth_session)):
    """Tells the admin login view to step aside when a session is active."""
    await session.check_admin()
    return GuardResponseDto.from_intent(admin_login_redirect(session))
