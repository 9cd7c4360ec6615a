from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..common.datetime_utils import combine_clock, monday_of, now_local, parse_iso_date
from ..common.validators import require_non_empty
from ..core.enums import SCAN_METHODS, CheckMethod, EntryFlag, RecordGuard, ReviewStatus
from ..core.exceptions import AlreadyExistsError, InternalError, NotFoundError, ValidationError
from ..events.repository import EventRepository
from ..hours.calculator.base import HoursCalculator
from ..hours.calculator.half_hour_calculator import HalfHourCalculator
from ..hours.flags import flags_for_check_in, flags_for_check_out, review_status_for
from ..participants.repository import ParticipantRepository
from ..qr.codec import QRTokenCodec
from ..users.model import Actor
from ..users.service import require_actor, require_admin
from .model import AttendanceKey, AttendanceRecord
from .repository import AttendanceRepository, DuplicateOpenRecordError, RecordChange

logger = logging.getLogger(__name__)


def _flag_values(flags: frozenset[EntryFlag]) -> list[str]:
    return sorted(f.value for f in flags)


@dataclass(frozen=True)
class CheckInResult:
    participant_name: str
    check_in_time: datetime
    record_id: Optional[int]
    flags: frozenset[EntryFlag] = frozenset()
    duplicate: bool = False

    def to_dict(self) -> dict:
        if self.duplicate:
            return {
                "success": False,
                "duplicate": True,
                "participantName": self.participant_name,
                "existingCheckInTime": self.check_in_time.isoformat(),
                "recordId": self.record_id,
                "error": f"{self.participant_name} already checked in at {self.check_in_time.strftime('%H:%M')}",
            }
        return {
            "success": True,
            "participantName": self.participant_name,
            "checkInTime": self.check_in_time.isoformat(),
            "recordId": self.record_id,
            "flags": _flag_values(self.flags),
        }


@dataclass(frozen=True)
class CheckOutResult:
    participant_name: str
    hours_today: Decimal
    week_total: Decimal
    check_out_time: datetime
    flags: frozenset[EntryFlag] = frozenset()

    def to_dict(self) -> dict:
        return {
            "success": True,
            "participantName": self.participant_name,
            "hoursToday": float(self.hours_today),
            "weekTotal": float(self.week_total),
            "checkOutTime": self.check_out_time.isoformat(),
            "flags": _flag_values(self.flags),
        }


@dataclass(frozen=True)
class ManualEntryResult:
    record_id: int
    hours_worked: Decimal

    def to_dict(self) -> dict:
        return {"success": True, "recordId": self.record_id, "hoursWorked": float(self.hours_worked)}


@dataclass(frozen=True)
class ScanResult:
    action: str
    result: CheckInResult | CheckOutResult

    def to_dict(self) -> dict:
        return {"action": self.action, **self.result.to_dict()}


class AttendanceService:
    """Check-in, check-out and manual entry handlers."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        participants: ParticipantRepository,
        events: EventRepository,
        *,
        codec: Optional[QRTokenCodec] = None,
        calculator: Optional[HoursCalculator] = None,
    ):
        self._attendance = attendance
        self._participants = participants
        self._events = events
        self._codec = codec
        self._calculator = calculator or HalfHourCalculator()

    @staticmethod
    def _scan_method(value: CheckMethod | str | None) -> CheckMethod:
        try:
            method = CheckMethod(value or CheckMethod.STAFF_SCAN)
        except ValueError:
            raise ValidationError(f"Unknown scan method {value!r}")
        if method not in SCAN_METHODS:
            raise ValidationError("Scans must use self_scan or staff_scan")
        return method

    def _get_participant(self, participant_id: str):
        participant = self._participants.get_by_id(participant_id)
        if not participant:
            raise NotFoundError("Participant not found")
        return participant

    def _get_event(self, event_id: str):
        event = self._events.get_by_id(event_id)
        if not event:
            raise NotFoundError("Event not found")
        return event

    def check_in(
        self,
        *,
        participant_id: str,
        event_id: str,
        activity_id: str,
        method: CheckMethod | str | None,
        actor: Optional[Actor],
        now: Optional[datetime] = None,
    ) -> CheckInResult:
        actor = require_actor(actor)
        participant_id = require_non_empty(participant_id, "participantId")
        event_id = require_non_empty(event_id, "eventId")
        activity_id = require_non_empty(activity_id, "activityId")
        method = self._scan_method(method)
        now = now or now_local()

        participant = self._get_participant(participant_id)
        event = self._get_event(event_id)

        flags = flags_for_check_in(now, event.start_for(activity_id))
        record = AttendanceRecord(
            record_id=None,
            participant_id=participant_id,
            event_id=event_id,
            activity_id=activity_id,
            work_date=now.date(),
            check_in_time=now,
            check_in_method=method,
            check_in_by=actor.actor_id,
            flags=flags,
            review_status=review_status_for(flags),
            created_at=now,
        )

        try:
            record_id = self._attendance.insert_open(record)
        except DuplicateOpenRecordError as e:
            logger.info(
                "Duplicate check-in participant=%s event=%s activity=%s (open record %s)",
                participant_id, event_id, activity_id, e.existing.record_id,
            )
            return CheckInResult(
                participant_name=participant.full_name,
                check_in_time=e.existing.check_in_time,
                record_id=e.existing.record_id,
                duplicate=True,
            )

        logger.info(
            "Checked in participant=%s event=%s activity=%s record=%s flags=%s",
            participant_id, event_id, activity_id, record_id, _flag_values(flags),
        )
        return CheckInResult(
            participant_name=participant.full_name,
            check_in_time=now,
            record_id=record_id,
            flags=flags,
        )

    def check_out(
        self,
        *,
        participant_id: str,
        event_id: str,
        activity_id: str,
        method: CheckMethod | str | None,
        actor: Optional[Actor],
        now: Optional[datetime] = None,
    ) -> CheckOutResult:
        actor = require_actor(actor)
        participant_id = require_non_empty(participant_id, "participantId")
        event_id = require_non_empty(event_id, "eventId")
        activity_id = require_non_empty(activity_id, "activityId")
        method = self._scan_method(method)
        now = now or now_local()
        today = now.date()

        record = self._attendance.find_open(AttendanceKey(participant_id, event_id, activity_id, today))
        if not record:
            raise NotFoundError("No check-in found for today")
        if now <= record.check_in_time:
            raise ValidationError("Check-out time must be after check-in time")

        event = self._get_event(event_id)
        participant = self._get_participant(participant_id)

        hours = self._calculator.round_hours(record.check_in_time, now)
        flags = record.flags | flags_for_check_out(now, event.end_for(activity_id))

        # Taken before the write: the record being closed is not part of the sum yet.
        closed = self._attendance.list_closed_for_participant(
            participant_id=participant_id,
            event_id=event_id,
            start_date=monday_of(today),
            end_date=today,
        )
        prior_total = sum((r.hours_worked or Decimal(0) for r in closed if not r.is_voided), Decimal(0))

        updated = RecordChange(
            record=replace(
                record,
                check_out_time=now,
                check_out_method=method,
                check_out_by=actor.actor_id,
                hours_worked=hours.hours_worked,
                raw_minutes=hours.raw_minutes,
                flags=flags,
                review_status=review_status_for(flags, record.review_status),
            )
        )
        if not self._attendance.apply_change(updated, expect=RecordGuard.OPEN):
            raise AlreadyExistsError("Participant has already checked out")

        logger.info(
            "Checked out participant=%s event=%s activity=%s record=%s hours=%s",
            participant_id, event_id, activity_id, record.record_id, hours.hours_worked,
        )
        return CheckOutResult(
            participant_name=participant.full_name,
            hours_today=hours.hours_worked,
            week_total=prior_total + hours.hours_worked,
            check_out_time=now,
            flags=flags,
        )

    def scan(
        self,
        *,
        token: str,
        activity_id: str,
        method: CheckMethod | str | None,
        actor: Optional[Actor],
        now: Optional[datetime] = None,
    ) -> ScanResult:
        """Badge scan: check out when a session is open, otherwise check in."""

        require_actor(actor)
        if self._codec is None:
            raise InternalError("QR codec is not configured")

        parsed = self._codec.parse(require_non_empty(token, "token"))
        if not parsed.is_valid:
            raise ValidationError("QR code checksum is invalid")

        activity_id = require_non_empty(activity_id, "activityId")
        now = now or now_local()
        key = AttendanceKey(parsed.participant_id, parsed.event_id, activity_id, now.date())
        kwargs = dict(
            participant_id=parsed.participant_id,
            event_id=parsed.event_id,
            activity_id=activity_id,
            method=method,
            actor=actor,
            now=now,
        )

        if self._attendance.find_open(key):
            return ScanResult(action="check_out", result=self.check_out(**kwargs))
        return ScanResult(action="check_in", result=self.check_in(**kwargs))

    def create_manual_entry(
        self,
        *,
        participant_id: str,
        event_id: str,
        activity_id: str,
        work_date: str,
        start_time: str,
        end_time: str,
        actor: Optional[Actor],
        now: Optional[datetime] = None,
    ) -> ManualEntryResult:
        actor = require_admin(actor)
        participant_id = require_non_empty(participant_id, "participantId")
        event_id = require_non_empty(event_id, "eventId")
        activity_id = require_non_empty(activity_id, "activityId")

        day = parse_iso_date(work_date)
        start = combine_clock(day, require_non_empty(start_time, "startTime"))
        end = combine_clock(day, require_non_empty(end_time, "endTime"))
        if end <= start:
            raise ValidationError("End time must be after start time")

        self._get_participant(participant_id)
        self._get_event(event_id)

        hours = self._calculator.round_hours(start, end)
        record = AttendanceRecord(
            record_id=None,
            participant_id=participant_id,
            event_id=event_id,
            activity_id=activity_id,
            work_date=day,
            check_in_time=start,
            check_in_method=CheckMethod.MANUAL,
            check_in_by=actor.actor_id,
            check_out_time=end,
            check_out_method=CheckMethod.MANUAL,
            check_out_by=actor.actor_id,
            hours_worked=hours.hours_worked,
            raw_minutes=hours.raw_minutes,
            review_status=ReviewStatus.APPROVED,
            created_at=now or now_local(),
        )
        record_id = self._attendance.insert(record)

        logger.info(
            "Manual entry record=%s participant=%s event=%s date=%s hours=%s by=%s",
            record_id, participant_id, event_id, day, hours.hours_worked, actor.actor_id,
        )
        return ManualEntryResult(record_id=record_id, hours_worked=hours.hours_worked)

    def badge_token(self, *, participant_id: str, event_id: str, actor: Optional[Actor]) -> str:
        """Token printed on a participant's badge for one event."""

        require_actor(actor)
        if self._codec is None:
            raise InternalError("QR codec is not configured")
        participant = self._get_participant(require_non_empty(participant_id, "participantId"))
        event = self._get_event(require_non_empty(event_id, "eventId"))
        return self._codec.encode(participant.participant_id, event.event_id)
