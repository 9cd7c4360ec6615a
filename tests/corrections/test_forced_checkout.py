from datetime import date, datetime
from decimal import Decimal

import pytest

from src.volunteer_tracker.volunteer_tracker.core.enums import ChangeType, CheckMethod, EntryFlag, ReviewStatus
from src.volunteer_tracker.volunteer_tracker.core.exceptions import (
    AlreadyExistsError,
    FailedPreconditionError,
    NotFoundError,
    ValidationError,
)
from tests.fakes import ADMIN, STAFF, InMemoryAttendance, make_container

DAY = date(2026, 1, 5)
NOW = datetime(2026, 1, 5, 21, 0)


def _setup():
    repo = InMemoryAttendance()
    container = make_container(repo)
    scans = container.attendance_service
    ids = {}
    for participant, activity, hour in [("p1", "morning", 8), ("p2", "afternoon", 13), ("p3", "cleanup", 9)]:
        result = scans.check_in(
            participant_id=participant,
            event_id="camp",
            activity_id=activity,
            method="staff_scan",
            actor=STAFF,
            now=datetime(2026, 1, 5, hour, 0),
        )
        ids[participant] = result.record_id
    return container.forced_checkout_service, repo, ids


def test_force_single_checkout():
    svc, repo, ids = _setup()
    result = svc.force_check_out(
        record_id=ids["p1"],
        check_out_time="2026-01-05T12:10:00",
        reason="Left without scanning",
        actor=ADMIN,
        now=NOW,
    )

    assert result.participant_name == "Ada Lovelace"
    assert result.hours_worked == Decimal("4.0")
    assert result.raw_minutes == 250

    rec = repo.get_by_id(ids["p1"])
    assert rec.check_out_method == CheckMethod.FORCED
    assert EntryFlag.FORCED_CHECKOUT in rec.flags
    assert rec.review_status == ReviewStatus.FLAGGED
    assert rec.forced_checkout_reason == (
        "Forced Check-Out at 12:10 PM (Checked in: 8:00 AM). Reason: Left without scanning"
    )
    (entry,) = rec.change_log
    assert entry.type == ChangeType.FORCE_CHECKOUT
    assert entry.new_check_out_time == datetime(2026, 1, 5, 12, 10)

    with pytest.raises(AlreadyExistsError):
        svc.force_check_out(record_id=ids["p1"], check_out_time="2026-01-05T12:30:00", reason="again", actor=ADMIN)


def test_force_single_validation():
    svc, repo, ids = _setup()
    with pytest.raises(ValidationError):
        svc.force_check_out(record_id=ids["p1"], check_out_time="2026-01-05T07:00:00", reason="too early", actor=ADMIN)
    with pytest.raises(ValidationError):
        svc.force_check_out(record_id=ids["p1"], check_out_time="2026-01-05T12:00:00", reason="", actor=ADMIN)
    with pytest.raises(NotFoundError):
        svc.force_check_out(record_id=404, check_out_time="2026-01-05T12:00:00", reason="gone", actor=ADMIN)
    assert repo.get_by_id(ids["p1"]).is_open


def test_force_all_uses_explicit_then_activity_then_event_times():
    svc, repo, ids = _setup()
    result = svc.force_all_check_out(
        event_id="camp",
        work_date=DAY,
        reason="End of day",
        activity_check_out_times={"morning": "11:30"},
        actor=ADMIN,
        now=NOW,
    )

    assert result.checked_out_count == 3
    assert repo.batch_calls == 1

    morning, afternoon, cleanup = (repo.get_by_id(ids[p]) for p in ("p1", "p2", "p3"))
    assert morning.check_out_time == datetime(2026, 1, 5, 11, 30)
    assert afternoon.check_out_time == datetime(2026, 1, 5, 16, 0)
    assert cleanup.check_out_time == datetime(2026, 1, 5, 15, 0)
    assert cleanup.hours_worked == Decimal("6.0")

    for rec in (morning, afternoon, cleanup):
        assert rec.check_out_method == CheckMethod.FORCED_BULK
        assert EntryFlag.FORCED_CHECKOUT in rec.flags
        assert rec.forced_checkout_reason.startswith("Bulk Forced Check-Out at ")
        assert rec.change_log[-1].type == ChangeType.FORCE_CHECKOUT_BULK

    again = svc.force_all_check_out(event_id="camp", work_date="2026-01-05", reason="End of day", actor=ADMIN)
    assert again.checked_out_count == 0
    assert again.to_dict()["message"] == "No participants need checkout"


def test_force_all_is_all_or_nothing():
    svc, repo, ids = _setup()
    # An explicit time before one participant's check-in rejects the whole batch.
    with pytest.raises(ValidationError):
        svc.force_all_check_out(
            event_id="camp",
            work_date=DAY,
            reason="End of day",
            activity_check_out_times={"afternoon": "12:00"},
            actor=ADMIN,
        )
    assert all(r.is_open for r in repo.records.values())


def test_force_all_guard_failure_rolls_back_everything():
    svc, repo, ids = _setup()
    stale = list(repo.list_for_event_date("camp", DAY, open_only=True))
    repo.list_for_event_date = lambda *a, **kw: stale

    # One record is closed elsewhere after the list was read.
    svc.force_check_out(record_id=ids["p3"], check_out_time="2026-01-05T14:00:00", reason="Went home", actor=ADMIN)

    with pytest.raises(FailedPreconditionError):
        svc.force_all_check_out(event_id="camp", work_date=DAY, reason="End of day", actor=ADMIN)
    assert repo.get_by_id(ids["p1"]).is_open
    assert repo.get_by_id(ids["p2"]).is_open


def test_force_all_requires_reason_and_event():
    svc, _, _ = _setup()
    with pytest.raises(ValidationError):
        svc.force_all_check_out(event_id="camp", work_date=DAY, reason="  ", actor=ADMIN)
    with pytest.raises(NotFoundError):
        svc.force_all_check_out(event_id="other", work_date=DAY, reason="End of day", actor=ADMIN)


def test_force_all_closes_each_record_at_its_own_activity_time():
    svc, repo, ids = _setup()
    scans = make_container(repo).attendance_service
    # Second participant in each timed activity.
    for participant, activity, hour in [("p3", "morning", 8), ("p1", "afternoon", 13)]:
        result = scans.check_in(
            participant_id=participant,
            event_id="camp",
            activity_id=activity,
            method="staff_scan",
            actor=STAFF,
            now=datetime(2026, 1, 5, hour, 15),
        )
        ids[f"{participant}-{activity}"] = result.record_id

    result = svc.force_all_check_out(
        event_id="camp",
        work_date=DAY,
        reason="End of day",
        activity_check_out_times={"morning": "11:30", "afternoon": "15:45"},
        actor=ADMIN,
        now=NOW,
    )

    assert result.checked_out_count == 5
    assert repo.batch_calls == 1
    expected = {
        "morning": datetime(2026, 1, 5, 11, 30),
        "afternoon": datetime(2026, 1, 5, 15, 45),
        "cleanup": datetime(2026, 1, 5, 15, 0),
    }
    by_activity = {}
    for rec in repo.records.values():
        by_activity.setdefault(rec.activity_id, []).append(rec)
        assert rec.check_out_time == expected[rec.activity_id]
    assert len(by_activity["morning"]) == 2
    assert len(by_activity["afternoon"]) == 2
    assert repo.get_by_id(ids["p3-morning"]).raw_minutes == 195
    assert repo.get_by_id(ids["p1-afternoon"]).raw_minutes == 150


def test_force_all_rejects_unknown_activity_times():
    svc, repo, _ = _setup()
    with pytest.raises(ValidationError):
        svc.force_all_check_out(
            event_id="camp",
            work_date=DAY,
            reason="End of day",
            activity_check_out_times={"morning": "11:30", "lunch": "12:30"},
            actor=ADMIN,
        )
    assert all(r.is_open for r in repo.records.values())
    assert repo.batch_calls == 0
