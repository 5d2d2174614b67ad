"""
Input DTOs for session and admin endpoints.
"""

from pydantic import BaseModel, Field


class ProfileSetupRequestDto(BaseModel):
    """DTO for first-time profile registration."""

    name: str = Field(..., max_length=100, description="Display name, required")
    email: str = Field(default="", max_length=254, description="Contact email, optional")


class AdminLoginRequestDto(BaseModel):
    """DTO for admin credential check."""

    admin_id: str = Field(..., min_length=1, description="Administrator identifier")
    password: str = Field(..., min_length=1, description="Administrator password")
