from datetime import datetime, timezone

NANOS_PER_MILLI = 1_000_000


def nanos_to_datetime(time_ns: int) -> datetime:
    """Canister timestamps are nanoseconds since the epoch"""
    return datetime.fromtimestamp(time_ns / 1_000_000_000, tz=timezone.utc)


def datetime_to_nanos(moment: datetime) -> int:
    return int(moment.timestamp() * 1000) * NANOS_PER_MILLI


def format_coins(amount: int) -> str:
    """Compact balance label: ``950 coins``, ``1.5K coins``, ``2.0M coins``"""
    if amount >= 1_000_000:
        return f"{amount / 1_000_000:.1f}M coins"
    if amount >= 1_000:
        return f"{amount / 1_000:.1f}K coins"
    return f"{amount} coins"


def format_coins_grouped(amount: int) -> str:
    return f"{amount:,}"


def format_date(time_ns: int) -> str:
    return nanos_to_datetime(time_ns).strftime("%b %d, %Y")
