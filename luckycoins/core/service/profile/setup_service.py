from datetime import datetime, timezone
from typing import Callable, Optional

from luckycoins.core.exceptions.base import BackendCallError
from luckycoins.core.exceptions.handler import ServiceError, ServiceErrorCode
from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.auth_session import AuthSession
from luckycoins.core.service.auth.models.profile import UserProfile, UserRole
from luckycoins.core.utils.formatting import datetime_to_nanos
from luckycoins.core.utils.validators import FormValidator

logger = get_logger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save profile. Please try again."


class ProfileSetupService:
    """Registers a profile for an authenticated identity that has none yet"""

    def __init__(
        self,
        session: AuthSession,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self.session = session
        self.clock = clock

    def build_profile(self, principal_text: str, name: str, email: str = "") -> UserProfile:
        return UserProfile(
            id=principal_text,
            name=name.strip(),
            email=email.strip(),
            coins_balance=0,
            created_at=datetime_to_nanos(self.clock()),
            role=UserRole.USER.value,
            is_verified=False,
            is_blocked=False,
            blocked_at=None,
            referral_code="",
        )

    def validate(self, name: Optional[str], email: Optional[str]) -> None:
        name_error = FormValidator.validate_required(name, "Name")
        if name_error:
            raise ServiceError(ServiceErrorCode.MISSING_FIELD, name_error, status_code=422,
                               details={"field": "name"})
        # Email is optional; validate only what was entered
        if email and email.strip():
            email_error = FormValidator.validate_email(email.strip())
            if email_error:
                raise ServiceError(ServiceErrorCode.INVALID_INPUT, email_error, status_code=422,
                                   details={"field": "email"})

    async def submit(self, name: str, email: str = "") -> UserProfile:
        """Validate, save through the backend, then let the session reload"""
        identity = self.session.identity
        actor = self.session.backend.actor
        if identity is None:
            raise ServiceError(ServiceErrorCode.NOT_AUTHENTICATED, "Login required", status_code=401)
        if actor is None or self.session.backend.is_fetching:
            raise ServiceError(
                ServiceErrorCode.BACKEND_UNAVAILABLE,
                "Backend connection is not ready",
                status_code=503
            )

        self.validate(name, email)
        profile = self.build_profile(identity.principal.to_text(), name, email or "")

        try:
            await actor.save_caller_user_profile(profile)
        except BackendCallError as e:
            logger.error("Profile setup failed", extra={"principal": profile.id, "error": e.message})
            raise ServiceError(
                ServiceErrorCode.PROFILE_SETUP_FAILED,
                e.message or SAVE_FAILED_MESSAGE,
                status_code=502
            ) from e

        logger.info("Profile registered", extra={"principal": profile.id})
        await self.session.complete_profile_setup()
        return profile
