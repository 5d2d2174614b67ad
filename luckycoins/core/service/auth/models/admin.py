from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AdminSession(BaseModel):
    """Locally issued admin session; expiry is epoch milliseconds"""
    token: str = Field(..., min_length=64, max_length=64)
    expires_at: int = Field(..., description="Expiry as epoch milliseconds")

    def is_expired(self, now: datetime) -> bool:
        """A session is valid strictly before its expiry instant"""
        return to_epoch_ms(now) >= self.expires_at


class AdminLoginResult(BaseModel):
    """Outcome of an admin credential check; never raised, always returned"""
    success: bool
    error: Optional[str] = None


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)
