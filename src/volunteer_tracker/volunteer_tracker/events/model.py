from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import Optional

from ..common.datetime_utils import parse_clock
from ..core.constants import DEFAULT_TYPICAL_END, DEFAULT_TYPICAL_START


@dataclass(frozen=True)
class Activity:
    activity_id: str
    name: str
    start_time: Optional[time] = None
    end_time: Optional[time] = None


@dataclass(frozen=True)
class Event:
    """Domain entity: a multi-day event and its activity schedule."""

    event_id: str
    name: str
    typical_start_time: time = field(default_factory=lambda: parse_clock(DEFAULT_TYPICAL_START))
    typical_end_time: time = field(default_factory=lambda: parse_clock(DEFAULT_TYPICAL_END))
    activities: tuple[Activity, ...] = ()

    def activity(self, activity_id: str) -> Optional[Activity]:
        for a in self.activities:
            if a.activity_id == activity_id:
                return a
        return None

    def start_for(self, activity_id: str) -> time:
        a = self.activity(activity_id)
        if a and a.start_time:
            return a.start_time
        return self.typical_start_time

    def end_for(self, activity_id: str) -> time:
        a = self.activity(activity_id)
        if a and a.end_time:
            return a.end_time
        return self.typical_end_time
