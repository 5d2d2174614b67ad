from datetime import datetime, timezone

import pytest

from luckycoins.core.utils.formatting import (
    datetime_to_nanos,
    format_coins,
    format_coins_grouped,
    format_date,
    nanos_to_datetime,
)


@pytest.mark.parametrize("amount,label", [
    (0, "0 coins"),
    (950, "950 coins"),
    (1_000, "1.0K coins"),
    (1_500, "1.5K coins"),
    (2_000_000, "2.0M coins"),
])
def test_format_coins(amount, label):
    assert format_coins(amount) == label


def test_format_coins_grouped():
    assert format_coins_grouped(1234567) == "1,234,567"


def test_nanosecond_conversion():
    moment = datetime(2026, 1, 1, tzinfo=timezone.utc)

    assert datetime_to_nanos(moment) == 1_767_225_600_000_000_000
    assert nanos_to_datetime(1_767_225_600_000_000_000) == moment


def test_format_date():
    assert format_date(1_767_225_600_000_000_000) == "Jan 01, 2026"

