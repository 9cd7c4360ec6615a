from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from src.volunteer_tracker.volunteer_tracker.attendance.model import AttendanceRecord
from src.volunteer_tracker.volunteer_tracker.core.enums import CheckMethod, EntryFlag, ReviewStatus
from src.volunteer_tracker.volunteer_tracker.core.exceptions import (
    AlreadyExistsError,
    AuthenticationError,
    NotFoundError,
    ValidationError,
)
from tests.fakes import STAFF, InMemoryAttendance, make_container

MONDAY = date(2026, 1, 5)


def _svc(attendance=None):
    attendance = attendance or InMemoryAttendance()
    return make_container(attendance).attendance_service, attendance


def _check_in(svc, at, *, participant="p1", activity="cleanup", method="staff_scan"):
    return svc.check_in(
        participant_id=participant, event_id="camp", activity_id=activity, method=method, actor=STAFF, now=at
    )


def _check_out(svc, at, *, participant="p1", activity="cleanup", method="staff_scan"):
    return svc.check_out(
        participant_id=participant, event_id="camp", activity_id=activity, method=method, actor=STAFF, now=at
    )


def test_check_in_creates_open_record():
    svc, repo = _svc()
    result = _check_in(svc, datetime(2026, 1, 5, 9, 2))

    assert not result.duplicate
    assert result.participant_name == "Ada Lovelace"
    assert result.flags == frozenset()

    rec = repo.get_by_id(result.record_id)
    assert rec.is_open
    assert rec.work_date == MONDAY
    assert rec.check_in_method == CheckMethod.STAFF_SCAN
    assert rec.check_in_by == STAFF.actor_id
    assert rec.review_status == ReviewStatus.PENDING
    assert rec.change_log == ()


def test_second_check_in_reports_duplicate_without_new_record():
    svc, repo = _svc()
    first = _check_in(svc, datetime(2026, 1, 5, 9, 0))
    second = _check_in(svc, datetime(2026, 1, 5, 9, 5))

    assert second.duplicate
    assert second.record_id == first.record_id
    assert second.check_in_time == datetime(2026, 1, 5, 9, 0)
    assert len(repo.records) == 1

    body = second.to_dict()
    assert body["duplicate"] is True
    assert body["success"] is False
    assert body["existingCheckInTime"] == "2026-01-05T09:00:00"


def test_check_in_uses_activity_start_for_early_flag():
    svc, repo = _svc()
    # Morning Session starts 08:00, so 07:40 is early and 07:50 is not.
    early = _check_in(svc, datetime(2026, 1, 5, 7, 40), activity="morning")
    on_time = _check_in(svc, datetime(2026, 1, 5, 7, 50), participant="p2", activity="morning")

    assert early.flags == {EntryFlag.EARLY_ARRIVAL}
    assert repo.get_by_id(early.record_id).review_status == ReviewStatus.FLAGGED
    assert on_time.flags == frozenset()


def test_check_in_validates_inputs():
    svc, _ = _svc()
    with pytest.raises(ValidationError):
        svc.check_in(participant_id="", event_id="camp", activity_id="cleanup", method=None, actor=STAFF)
    with pytest.raises(ValidationError):
        _check_in(svc, datetime(2026, 1, 5, 9, 0), method="manual")
    with pytest.raises(NotFoundError):
        _check_in(svc, datetime(2026, 1, 5, 9, 0), participant="nobody")
    with pytest.raises(AuthenticationError):
        svc.check_in(participant_id="p1", event_id="camp", activity_id="cleanup", method=None, actor=None)


def test_check_out_computes_hours_and_week_total():
    svc, repo = _svc()

    # Monday: 09:00-15:13 -> 6.0h; Tuesday: 09:00-15:16 -> 6.5h
    _check_in(svc, datetime(2026, 1, 5, 9, 0))
    monday = _check_out(svc, datetime(2026, 1, 5, 15, 13))
    assert monday.hours_today == Decimal("6.0")
    assert monday.week_total == Decimal("6.0")

    _check_in(svc, datetime(2026, 1, 6, 9, 0))
    tuesday = _check_out(svc, datetime(2026, 1, 6, 15, 16))
    assert tuesday.hours_today == Decimal("6.5")
    assert tuesday.week_total == Decimal("12.5")

    closed = [r for r in repo.records.values() if not r.is_open]
    assert len(closed) == 2
    assert all(r.check_out_method == CheckMethod.STAFF_SCAN for r in closed)


def test_week_total_ignores_previous_week_and_voided_records():
    repo = InMemoryAttendance()
    repo.insert(
        AttendanceRecord(
            record_id=None,
            participant_id="p1",
            event_id="camp",
            activity_id="cleanup",
            work_date=date(2026, 1, 2),
            check_in_time=datetime(2026, 1, 2, 9, 0),
            check_in_method=CheckMethod.MANUAL,
            check_out_time=datetime(2026, 1, 2, 12, 0),
            hours_worked=Decimal("3.0"),
        )
    )
    repo.insert(
        AttendanceRecord(
            record_id=None,
            participant_id="p1",
            event_id="camp",
            activity_id="morning",
            work_date=MONDAY,
            check_in_time=datetime(2026, 1, 5, 8, 0),
            check_in_method=CheckMethod.MANUAL,
            check_out_time=datetime(2026, 1, 5, 9, 0),
            hours_worked=Decimal("1.0"),
            is_voided=True,
        )
    )
    svc, _ = _svc(repo)

    _check_in(svc, datetime(2026, 1, 5, 10, 0))
    result = _check_out(svc, datetime(2026, 1, 5, 12, 0))

    assert result.hours_today == Decimal("2.0")
    assert result.week_total == Decimal("2.0")


def test_check_out_flags_late_stay_and_keeps_earlier_flags():
    svc, repo = _svc()
    # Afternoon Session: 13:00-16:00
    check_in = _check_in(svc, datetime(2026, 1, 5, 12, 30), activity="afternoon")
    result = _check_out(svc, datetime(2026, 1, 5, 16, 20), activity="afternoon")

    assert result.flags == {EntryFlag.EARLY_ARRIVAL, EntryFlag.LATE_STAY}
    rec = repo.get_by_id(check_in.record_id)
    assert rec.review_status == ReviewStatus.FLAGGED


def test_check_out_without_check_in_is_not_found():
    svc, _ = _svc()
    with pytest.raises(NotFoundError):
        _check_out(svc, datetime(2026, 1, 5, 15, 0))


def test_check_out_loses_race_reports_already_exists():
    repo = InMemoryAttendance()
    svc, _ = _svc(repo)
    check_in = _check_in(svc, datetime(2026, 1, 5, 9, 0))
    stale = repo.get_by_id(check_in.record_id)

    # Both devices read the open record; only the first guarded write wins.
    repo.find_open = lambda key: stale
    _check_out(svc, datetime(2026, 1, 5, 12, 0))

    with pytest.raises(AlreadyExistsError):
        _check_out(svc, datetime(2026, 1, 5, 13, 0))
    assert repo.get_by_id(check_in.record_id).check_out_time == datetime(2026, 1, 5, 12, 0)


def test_check_out_must_be_after_check_in():
    svc, _ = _svc()
    _check_in(svc, datetime(2026, 1, 5, 9, 0))
    with pytest.raises(ValidationError):
        _check_out(svc, datetime(2026, 1, 5, 9, 0))
