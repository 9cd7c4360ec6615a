from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class HoursResult:
    raw_minutes: int
    hours_worked: Decimal


class HoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked hours)."""

    @abstractmethod
    def round_hours(self, start: datetime, end: datetime) -> HoursResult:
        raise NotImplementedError
