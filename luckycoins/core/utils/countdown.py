from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from luckycoins.core.utils.formatting import NANOS_PER_MILLI


MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR


class TimeLeft(BaseModel):
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    total_ms: int = 0

    @property
    def is_complete(self) -> bool:
        return self.total_ms <= 0

    @property
    def is_urgent(self) -> bool:
        """Less than an hour to go"""
        return 0 < self.total_ms < MS_PER_HOUR


def calculate_time_left(target_ns: int, now: Optional[datetime] = None) -> TimeLeft:
    """Time remaining until a canister timestamp; all zero once it has passed"""
    now = now or datetime.now(timezone.utc)
    total = target_ns // NANOS_PER_MILLI - int(now.timestamp() * 1000)
    if total <= 0:
        return TimeLeft()

    return TimeLeft(
        days=total // MS_PER_DAY,
        hours=(total % MS_PER_DAY) // MS_PER_HOUR,
        minutes=(total % MS_PER_HOUR) // MS_PER_MINUTE,
        seconds=(total % MS_PER_MINUTE) // MS_PER_SECOND,
        total_ms=total,
    )


def format_countdown(time_left: TimeLeft) -> str:
    if time_left.is_complete:
        return "Draw Completed"
    clock = f"{time_left.hours:02d}h:{time_left.minutes:02d}m:{time_left.seconds:02d}s"
    if time_left.days > 0:
        return f"{time_left.days}d:{clock}"
    return clock

