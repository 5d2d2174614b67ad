from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from luckycoins.core.service.auth.models.profile import UserProfile


class AuthSnapshot(BaseModel):
    """Read-only view of the session published to subscribers"""
    model_config = ConfigDict(frozen=True)

    is_authenticated: bool = False
    is_loading: bool = True
    user_profile: Optional[UserProfile] = None
    is_fetched: bool = False
    show_profile_setup: bool = False
    profile_error: Optional[str] = None
    principal: Optional[str] = None
    # Held for in-process subscribers only; never serialized into responses
    admin_session_token: Optional[str] = Field(default=None, exclude=True)
    is_admin: bool = False


class NavigationTarget(str, Enum):
    """Destinations a guard can send the user to"""
    LOGIN = "/login"
    DASHBOARD = "/dashboard"
    ADMIN_LOGIN = "/admin/login"
    ADMIN_DASHBOARD = "/admin/dashboard"


class NavigationIntent(BaseModel):
    """What the hosting router should do instead of rendering the guarded view"""
    model_config = ConfigDict(frozen=True)

    wait: bool = False
    redirect_to: Optional[NavigationTarget] = None
    reason: Optional[str] = None

    @classmethod
    def loading(cls) -> "NavigationIntent":
        return cls(wait=True, reason="Session is still loading")

    @classmethod
    def redirect(cls, target: NavigationTarget, reason: str) -> "NavigationIntent":
        return cls(redirect_to=target, reason=reason)
