"""
Output DTOs for session and admin endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field

from luckycoins.core.service.auth.models.state import NavigationIntent


class GuardResponseDto(BaseModel):
    """DTO for a guard decision."""

    allowed: bool = Field(..., description="Whether the guarded view may render")
    intent: Optional[NavigationIntent] = Field(None, description="Wait/redirect instruction when not allowed")

    @classmethod
    def from_intent(cls, intent: Optional[NavigationIntent]) -> "GuardResponseDto":
        return cls(allowed=intent is None, intent=intent)


class AdminSessionResponseDto(BaseModel):
    """DTO for admin session state; the token itself is never echoed."""

    is_admin: bool = Field(..., description="Whether an unexpired admin session is held")
    expires_at: Optional[int] = Field(None, description="Session expiry as epoch milliseconds")
    time_left: Optional[str] = Field(None, description="Remaining session time, e.g. 07h:59m:00s")
    expiring_soon: Optional[bool] = Field(None, description="Less than an hour of the session left")


class ActionResponseDto(BaseModel):
    """DTO for simple acknowledgements."""

    success: bool = Field(True, description="Operation status")
    message: str = Field(default="OK", description="Human readable result")


class ProfileSummaryDto(BaseModel):
    """DTO for the dashboard header of a registered user."""

    name: str = Field(..., description="Display name")
    role: str = Field(..., description="Backend-assigned role")
    balance: int = Field(..., description="Coin balance")
    balance_label: str = Field(..., description="Compact balance, e.g. 1.5K coins")
    balance_grouped: str = Field(..., description="Balance with thousands separators")
    member_since: str = Field(..., description="Registration date, e.g. Jan 01, 2026")
