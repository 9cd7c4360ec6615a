from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from src.volunteer_tracker.volunteer_tracker.hours.calculator.half_hour_calculator import HalfHourCalculator, round_hours

START = datetime(2026, 1, 5, 9, 0, 0)


@pytest.mark.parametrize(
    "minutes, expected",
    [
        (373, Decimal("6.0")),
        (375, Decimal("6.5")),
        (376, Decimal("6.5")),
        (390, Decimal("6.5")),
        (404, Decimal("6.5")),
        (405, Decimal("7.0")),
        (407, Decimal("7.0")),
        (1, Decimal("0")),
    ],
)
def test_rounds_to_nearest_half_hour(minutes, expected):
    result = HalfHourCalculator().round_hours(START, START + timedelta(minutes=minutes))
    assert result.raw_minutes == minutes
    assert result.hours_worked == expected


def test_partial_minutes_are_dropped():
    result = round_hours(START, START + timedelta(minutes=90, seconds=59))
    assert result.raw_minutes == 90
    assert result.hours_worked == Decimal("1.5")


def test_end_before_start_is_rejected():
    with pytest.raises(ValueError):
        HalfHourCalculator().round_hours(START, START)
