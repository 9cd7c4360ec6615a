from datetime import datetime, time

from src.volunteer_tracker.volunteer_tracker.core.enums import EntryFlag, ReviewStatus
from src.volunteer_tracker.volunteer_tracker.hours.flags import (
    flags_for_check_in,
    flags_for_check_out,
    review_status_for,
)


def test_early_arrival_only_beyond_fifteen_minutes():
    assert flags_for_check_in(datetime(2026, 1, 5, 8, 45), time(9, 0)) == frozenset()
    assert flags_for_check_in(datetime(2026, 1, 5, 8, 44, 59), time(9, 0)) == {EntryFlag.EARLY_ARRIVAL}
    assert flags_for_check_in(datetime(2026, 1, 5, 7, 30), "09:00") == {EntryFlag.EARLY_ARRIVAL}


def test_late_stay_only_beyond_fifteen_minutes():
    # Activity ends 14:45: leaving at 15:00 is exactly on the threshold.
    assert flags_for_check_out(datetime(2026, 1, 5, 15, 0), time(14, 45)) == frozenset()
    assert flags_for_check_out(datetime(2026, 1, 5, 15, 1), time(14, 45)) == {EntryFlag.LATE_STAY}


def test_review_status_follows_flags_unless_approved():
    assert review_status_for(frozenset()) == ReviewStatus.PENDING
    assert review_status_for({EntryFlag.LATE_STAY}) == ReviewStatus.FLAGGED
    assert review_status_for({EntryFlag.LATE_STAY}, ReviewStatus.APPROVED) == ReviewStatus.APPROVED
