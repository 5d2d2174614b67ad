"""
Session controller: identity login/logout, profile bootstrap state and guards.
"""

import asyncio

from fastapi import APIRouter, Depends, Query

from luckycoins.api.controller.session.dto.input_dto import ProfileSetupRequestDto
from luckycoins.api.controller.session.dto.output_dto import GuardResponseDto, ProfileSummaryDto
from luckycoins.core.dependencies import (
    get_auth_session,
    get_identity_provider,
    get_profile_setup_service,
)
from luckycoins.core.exceptions.handler import ServiceError, ServiceErrorCode
from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.auth_session import AuthSession
from luckycoins.core.service.auth.guards import require_admin_role, require_authenticated
from luckycoins.core.service.auth.identity import IdentityProvider
from luckycoins.core.service.auth.models.profile import UserProfile
from luckycoins.core.service.auth.models.state import AuthSnapshot
from luckycoins.core.service.profile.setup_service import ProfileSetupService
from luckycoins.core.service.query_cache import CURRENT_USER_PROFILE_KEY
from luckycoins.core.utils.formatting import format_coins, format_coins_grouped, format_date

logger = get_logger(__name__)
router = APIRouter(prefix="/session", tags=["Session"])

PROFILE_SUMMARY_KEY = CURRENT_USER_PROFILE_KEY + ("summary",)


async def _current_snapshot(session: AuthSession, wait: bool, timeout: float) -> AuthSnapshot:
    # Reading the admin flag through check_admin deletes an expired stored pair
    await session.check_admin()
    if not wait:
        return session.snapshot()
    try:
        return await session.wait_until_loaded(timeout)
    except asyncio.TimeoutError:
        logger.warning("Session still loading after wait", extra={"timeout": timeout})
        return session.snapshot()


@router.get("", response_model=AuthSnapshot)
async def get_session_state(
    wait: bool = Query(False, description="Block until loading has finished"),
    timeout: float = Query(10.0, gt=0, le=60),
    session: AuthSession = Depends(get_auth_session)
):
    """Current session snapshot."""
    return await _current_snapshot(session, wait, timeout)


@router.post("/login", response_model=AuthSnapshot)
async def login(
    wait: bool = Query(True, description="Block until the profile bootstrap has settled"),
    timeout: float = Query(10.0, gt=0, le=60),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    session: AuthSession = Depends(get_auth_session)
):
    """Log in with the saved identity, or a newly generated one."""
    await identity_provider.login(identity_provider.identity)
    return await _current_snapshot(session, wait, timeout)


@router.post("/logout", response_model=AuthSnapshot)
async def logout(
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    session: AuthSession = Depends(get_auth_session)
):
    """Forget the identity; profile state is cleared immediately."""
    await identity_provider.clear()
    return session.snapshot()


@router.post("/profile/refetch", response_model=AuthSnapshot)
async def refetch_profile(session: AuthSession = Depends(get_auth_session)):
    await session.refetch_profile()
    return session.snapshot()


@router.get("/profile/summary", response_model=ProfileSummaryDto)
async def profile_summary(session: AuthSession = Depends(get_auth_session)):
    """Display-ready labels for the signed-in user's profile.

    Served from the query cache; refetches and identity changes invalidate it.
    """
    if not session.is_authenticated:
        raise ServiceError(ServiceErrorCode.NOT_AUTHENTICATED, "Login required", status_code=401)

    async def build_summary() -> ProfileSummaryDto:
        profile = session.user_profile
        if profile is None:
            raise ServiceError(
                ServiceErrorCode.PROFILE_NOT_FOUND,
                session.profile_error or "Profile not loaded",
                status_code=404,
                details={"show_profile_setup": session.show_profile_setup}
            )
        return ProfileSummaryDto(
            name=profile.name,
            role=profile.role,
            balance=profile.coins_balance,
            balance_label=format_coins(profile.coins_balance),
            balance_grouped=format_coins_grouped(profile.coins_balance),
            member_since=format_date(profile.created_at)
        )

    return await session.query_cache.fetch(PROFILE_SUMMARY_KEY, build_summary)


@router.post("/profile/setup", response_model=UserProfile, response_model_by_alias=True)
async def setup_profile(
    request: ProfileSetupRequestDto,
    setup_service: ProfileSetupService = Depends(get_profile_setup_service)
):
    """Register a profile for the signed-in identity."""
    return await setup_service.submit(request.name, request.email)


@router.get("/guard/user", response_model=GuardResponseDto)
async def guard_user(session: AuthSession = Depends(get_auth_session)):
    return GuardResponseDto.from_intent(require_authenticated(session))


@router.get("/guard/admin-role", response_model=GuardResponseDto)
async def guard_admin_role(session: AuthSession = Depends(get_auth_session)):
    return GuardResponseDto.from_intent(require_admin_role(session))
