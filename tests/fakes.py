"""In-memory repositories shared by the service and API tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from typing import Iterable, Optional, Sequence

from werkzeug.security import generate_password_hash

from src.volunteer_tracker.volunteer_tracker.attendance.model import AttendanceKey, AttendanceRecord
from src.volunteer_tracker.volunteer_tracker.attendance.repository import (
    DuplicateOpenRecordError,
    RecordChange,
    guard_holds,
)
from src.volunteer_tracker.volunteer_tracker.container import build_services
from src.volunteer_tracker.volunteer_tracker.core.enums import RecordGuard, Role
from src.volunteer_tracker.volunteer_tracker.events.model import Activity, Event
from src.volunteer_tracker.volunteer_tracker.participants.model import Participant
from src.volunteer_tracker.volunteer_tracker.users.model import Actor, User

QR_SECRET = "test-qr-secret"

ADMIN = Actor(actor_id="1", role=Role.ADMIN)
STAFF = Actor(actor_id="2", role=Role.STAFF)


@dataclass
class InMemoryParticipants:
    by_id: dict[str, Participant] = field(default_factory=dict)

    def get_by_id(self, participant_id: str) -> Optional[Participant]:
        return self.by_id.get(participant_id)

    def get_many(self, participant_ids: Iterable[str]):
        return {pid: self.by_id[pid] for pid in participant_ids if pid in self.by_id}


@dataclass
class InMemoryEvents:
    by_id: dict[str, Event] = field(default_factory=dict)

    def get_by_id(self, event_id: str) -> Optional[Event]:
        return self.by_id.get(event_id)


@dataclass
class InMemoryUsers:
    by_id: dict[int, User] = field(default_factory=dict)

    def get_by_username(self, username: str) -> Optional[User]:
        for u in self.by_id.values():
            if u.username == username:
                return u
        return None


class InMemoryAttendance:
    """Record store with the same guard and all-or-nothing batch semantics as MySQL."""

    def __init__(self):
        self.records: dict[int, AttendanceRecord] = {}
        self._id = 0
        self.batch_calls = 0

    def _next_id(self) -> int:
        self._id += 1
        return self._id

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        return self.records.get(record_id)

    def find_open(self, key: AttendanceKey) -> Optional[AttendanceRecord]:
        for r in self.records.values():
            if r.key == key and r.is_open:
                return r
        return None

    def list_for_event_date(self, event_id: str, work_date: date, *, open_only: bool = False) -> Sequence[AttendanceRecord]:
        items = [
            r
            for r in self.records.values()
            if r.event_id == event_id and r.work_date == work_date and (r.is_open or not open_only)
        ]
        return sorted(items, key=lambda r: (r.check_in_time, r.record_id))

    def list_closed_for_participant(self, *, participant_id, event_id, start_date, end_date):
        return [
            r
            for r in self.records.values()
            if r.participant_id == participant_id
            and r.event_id == event_id
            and start_date <= r.work_date <= end_date
            and not r.is_open
        ]

    def insert_open(self, record: AttendanceRecord) -> int:
        existing = self.find_open(record.key)
        if existing:
            raise DuplicateOpenRecordError(existing)
        return self.insert(record)

    def insert(self, record: AttendanceRecord) -> int:
        record_id = self._next_id()
        self.records[record_id] = replace(record, record_id=record_id)
        return record_id

    def _holds(self, change: RecordChange, expect: Optional[RecordGuard]) -> bool:
        stored = self.records.get(change.record.record_id)
        if stored is None:
            return False
        return guard_holds(expect, is_open=stored.is_open, is_voided=stored.is_voided)

    def apply_change(self, change: RecordChange, *, expect: Optional[RecordGuard] = None) -> bool:
        if not self._holds(change, expect):
            return False
        self.records[change.record.record_id] = change.record
        return True

    def apply_batch(self, changes: Sequence[RecordChange], *, expect: Optional[RecordGuard] = None) -> bool:
        self.batch_calls += 1
        if not all(self._holds(c, expect) for c in changes):
            return False
        for c in changes:
            self.records[c.record.record_id] = c.record
        return True


def make_event() -> Event:
    return Event(
        event_id="camp",
        name="Summer Camp",
        typical_start_time=time(9, 0),
        typical_end_time=time(15, 0),
        activities=(
            Activity(activity_id="morning", name="Morning Session", start_time=time(8, 0), end_time=time(12, 0)),
            Activity(activity_id="afternoon", name="Afternoon Session", start_time=time(13, 0), end_time=time(16, 0)),
            Activity(activity_id="cleanup", name="Cleanup Crew"),
        ),
    )


def make_participants() -> InMemoryParticipants:
    return InMemoryParticipants(
        {
            "p1": Participant(participant_id="p1", first_name="Ada", last_name="Lovelace"),
            "p2": Participant(participant_id="p2", first_name="Alan", last_name="Turing"),
            "p3": Participant(participant_id="p3", first_name="Grace", last_name="Hopper"),
        }
    )


def make_users() -> InMemoryUsers:
    return InMemoryUsers(
        {
            1: User(1, "Admin Demo", "admin", generate_password_hash("admin123"), Role.ADMIN),
            2: User(2, "Front Desk", "frontdesk", generate_password_hash("staff123"), Role.STAFF),
            3: User(3, "Old Account", "retired", generate_password_hash("pw12345"), Role.STAFF, is_active=False),
        }
    )


def make_container(attendance: Optional[InMemoryAttendance] = None):
    return build_services(
        users_repo=make_users(),
        participants_repo=make_participants(),
        events_repo=InMemoryEvents({"camp": make_event()}),
        attendance_repo=attendance or InMemoryAttendance(),
        qr_secret=QR_SECRET,
    )
