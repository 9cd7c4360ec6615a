from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from .base import HoursCalculator, HoursResult


class HalfHourCalculator(HoursCalculator):
    """Standard rule: whole elapsed minutes, rounded half-up to the nearest 0.5 hour.

    373 min -> 6.0, 376 min -> 6.5, 390 min -> 6.5, 407 min -> 7.0.
    """

    def round_hours(self, start: datetime, end: datetime) -> HoursResult:
        if end <= start:
            raise ValueError("end must be after start")

        raw_minutes = int((end - start).total_seconds() // 60)
        half_hours = (Decimal(raw_minutes) / Decimal(30)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return HoursResult(raw_minutes=raw_minutes, hours_worked=half_hours / Decimal(2))


def round_hours(start: datetime, end: datetime) -> HoursResult:
    return HalfHourCalculator().round_hours(start, end)
