from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from ..common.datetime_utils import combine_clock
from ..core.constants import FLAG_THRESHOLD_MINUTES
from ..core.enums import EntryFlag, ReviewStatus

_THRESHOLD = timedelta(minutes=FLAG_THRESHOLD_MINUTES)


def flags_for_check_in(check_in: datetime, typical_start: time | str) -> frozenset[EntryFlag]:
    """Flag arrivals more than 15 minutes before the typical start."""
    typical = combine_clock(check_in.date(), typical_start)
    if check_in < typical - _THRESHOLD:
        return frozenset({EntryFlag.EARLY_ARRIVAL})
    return frozenset()


def flags_for_check_out(check_out: datetime, typical_end: time | str) -> frozenset[EntryFlag]:
    """Flag departures more than 15 minutes after the typical end (exactly 15 is not flagged)."""
    typical = combine_clock(check_out.date(), typical_end)
    if check_out > typical + _THRESHOLD:
        return frozenset({EntryFlag.LATE_STAY})
    return frozenset()


def review_status_for(flags: Iterable[EntryFlag], current: Optional[ReviewStatus] = None) -> ReviewStatus:
    if current == ReviewStatus.APPROVED:
        return ReviewStatus.APPROVED
    return ReviewStatus.FLAGGED if frozenset(flags) else ReviewStatus.PENDING
