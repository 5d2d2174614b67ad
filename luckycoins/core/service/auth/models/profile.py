"""
Profile models shared by the session core and the backend gateway client
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    """Roles the backend assigns to a principal"""
    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


class UserProfile(BaseModel):
    """Backend-held account record for the calling principal"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    email: str = ""
    coins_balance: int = Field(default=0, ge=0, alias="coinsBalance")
    created_at: int = Field(..., alias="createdAt", description="Nanoseconds since epoch")
    role: str = UserRole.USER.value
    is_verified: bool = Field(default=False, alias="isVerified")
    is_blocked: bool = Field(default=False, alias="isBlocked")
    blocked_at: Optional[int] = Field(default=None, alias="blockedAt")
    referral_code: str = Field(default="", alias="referralCode")

    def to_wire(self) -> dict:
        """Serialize with the camelCase names the canister expects"""
        return self.model_dump(by_alias=True)


class ProfileOutcomeKind(str, Enum):
    """Canonical result of one profile fetch"""
    READY = "ready"
    SETUP_REQUIRED = "setup_required"
    UNAUTHORIZED = "unauthorized"
    FAILED = "failed"


class ProfileFetchOutcome(BaseModel):
    """Normalized profile fetch result; only `profile` or `message` is set"""
    model_config = ConfigDict(frozen=True)

    kind: ProfileOutcomeKind
    profile: Optional[UserProfile] = None
    message: Optional[str] = None

    @classmethod
    def ready(cls, profile: UserProfile) -> "ProfileFetchOutcome":
        return cls(kind=ProfileOutcomeKind.READY, profile=profile)

    @classmethod
    def setup_required(cls) -> "ProfileFetchOutcome":
        return cls(kind=ProfileOutcomeKind.SETUP_REQUIRED)

    @classmethod
    def unauthorized(cls, message: str) -> "ProfileFetchOutcome":
        return cls(kind=ProfileOutcomeKind.UNAUTHORIZED, message=message)

    @classmethod
    def failed(cls, message: str) -> "ProfileFetchOutcome":
        return cls(kind=ProfileOutcomeKind.FAILED, message=message)
