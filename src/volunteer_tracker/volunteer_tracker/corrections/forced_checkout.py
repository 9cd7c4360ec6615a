from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository, RecordChange
from ..common.datetime_utils import combine_clock, now_local, parse_iso_date, to_instant
from ..common.validators import require_non_empty
from ..core.enums import ChangeType, CheckMethod, EntryFlag, RecordGuard
from ..core.exceptions import AlreadyExistsError, FailedPreconditionError, NotFoundError, ValidationError
from ..events.repository import EventRepository
from ..hours.calculator.base import HoursCalculator
from ..hours.calculator.half_hour_calculator import HalfHourCalculator
from ..hours.flags import review_status_for
from ..ledger import descriptions
from ..ledger.ledger import append
from ..ledger.model import ChangeLogEntry
from ..participants.model import UNKNOWN_PARTICIPANT
from ..participants.repository import ParticipantRepository
from ..users.model import Actor
from ..users.service import require_admin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForceCheckOutResult:
    participant_name: str
    hours_worked: Decimal
    raw_minutes: int

    def to_dict(self) -> dict:
        return {
            "success": True,
            "participantName": self.participant_name,
            "hoursWorked": float(self.hours_worked),
            "rawMinutes": self.raw_minutes,
            "message": f"Forced checkout recorded for {self.participant_name}",
        }


@dataclass(frozen=True)
class BulkCheckOutResult:
    checked_out_count: int

    def to_dict(self) -> dict:
        if not self.checked_out_count:
            message = "No participants need checkout"
        else:
            message = f"Successfully checked out {self.checked_out_count} participants"
        return {"success": True, "checkedOutCount": self.checked_out_count, "message": message}


class ForcedCheckoutService:
    """Closes records participants forgot to close, one at a time or a whole day at once."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        participants: ParticipantRepository,
        events: EventRepository,
        *,
        calculator: Optional[HoursCalculator] = None,
    ):
        self._attendance = attendance
        self._participants = participants
        self._events = events
        self._calculator = calculator or HalfHourCalculator()

    def _close(
        self,
        record: AttendanceRecord,
        *,
        check_out: datetime,
        reason: str,
        actor: Actor,
        now: datetime,
        bulk: bool,
    ) -> RecordChange:
        if check_out <= record.check_in_time:
            raise ValidationError(
                f"Check-out time must be after check-in time (entry {record.record_id})"
            )

        hours = self._calculator.round_hours(record.check_in_time, check_out)
        flags = record.flags | {EntryFlag.FORCED_CHECKOUT}

        if bulk:
            build, change_type, method = (
                descriptions.build_bulk_force_checkout_description,
                ChangeType.FORCE_CHECKOUT_BULK,
                CheckMethod.FORCED_BULK,
            )
        else:
            build, change_type, method = (
                descriptions.build_force_checkout_description,
                ChangeType.FORCE_CHECKOUT,
                CheckMethod.FORCED,
            )
        description = build(check_out=check_out, check_in=record.check_in_time, reason=reason)

        entry = ChangeLogEntry(
            timestamp=now,
            actor_id=actor.actor_id,
            type=change_type,
            reason=reason,
            description=description,
            old_check_out_time=None,
            new_check_out_time=check_out,
        )
        return append(
            record,
            entry,
            check_out_time=check_out,
            check_out_method=method,
            check_out_by=actor.actor_id,
            hours_worked=hours.hours_worked,
            raw_minutes=hours.raw_minutes,
            flags=flags,
            review_status=review_status_for(flags, record.review_status),
            forced_checkout_reason=description,
        )

    def force_check_out(
        self,
        *,
        record_id: int,
        check_out_time: Any,
        reason: str,
        actor: Optional[Actor],
        now: Optional[datetime] = None,
    ) -> ForceCheckOutResult:
        actor = require_admin(actor)
        reason = require_non_empty(reason, "Reason")
        if check_out_time in (None, ""):
            raise ValidationError("Check-out time is required")
        check_out = to_instant(check_out_time)

        record = self._attendance.get_by_id(int(record_id))
        if not record:
            raise NotFoundError("Time entry not found")
        if not record.is_open:
            raise AlreadyExistsError("Participant has already checked out")

        change = self._close(record, check_out=check_out, reason=reason, actor=actor, now=now or now_local(), bulk=False)
        if not self._attendance.apply_change(change, expect=RecordGuard.OPEN):
            raise AlreadyExistsError("Participant has already checked out")

        participant = self._participants.get_by_id(record.participant_id) or UNKNOWN_PARTICIPANT
        logger.info(
            "Forced checkout record=%s at=%s by=%s hours=%s",
            record.record_id, check_out.isoformat(), actor.actor_id, change.record.hours_worked,
        )
        return ForceCheckOutResult(
            participant_name=participant.full_name,
            hours_worked=change.record.hours_worked,
            raw_minutes=change.record.raw_minutes,
        )

    def force_all_check_out(
        self,
        *,
        event_id: str,
        work_date: date | str,
        reason: str,
        activity_check_out_times: Optional[Mapping[str, Any]] = None,
        actor: Optional[Actor],
        now: Optional[datetime] = None,
    ) -> BulkCheckOutResult:
        """Close every open record of an event day in one atomic batch.

        Checkout time per record: the caller's time for its activity, else the
        activity's end time, else the event's typical end time.
        """

        actor = require_admin(actor)
        event_id = require_non_empty(event_id, "eventId")
        day = work_date if isinstance(work_date, date) else parse_iso_date(work_date)
        reason = require_non_empty(reason, "Reason")

        event = self._events.get_by_id(event_id)
        if not event:
            raise NotFoundError("Event not found")

        if activity_check_out_times is not None and not isinstance(activity_check_out_times, Mapping):
            raise ValidationError("perActivityCheckOutTimes must map activity ids to times")
        unknown = sorted(str(a) for a in (activity_check_out_times or {}) if event.activity(str(a)) is None)
        if unknown:
            raise ValidationError(f"Unknown activity for this event: {', '.join(unknown)}")
        overrides = {
            str(activity_id): to_instant(value, work_date=day)
            for activity_id, value in (activity_check_out_times or {}).items()
            if value not in (None, "")
        }

        records = self._attendance.list_for_event_date(event_id, day, open_only=True)
        if not records:
            return BulkCheckOutResult(checked_out_count=0)

        now = now or now_local()
        changes = []
        for record in records:
            check_out = overrides.get(record.activity_id) or combine_clock(day, event.end_for(record.activity_id))
            changes.append(self._close(record, check_out=check_out, reason=reason, actor=actor, now=now, bulk=True))

        if not self._attendance.apply_batch(changes, expect=RecordGuard.OPEN):
            raise FailedPreconditionError("Entries changed during bulk checkout; no entries were updated")

        logger.info("Bulk forced checkout event=%s date=%s count=%s by=%s", event_id, day, len(changes), actor.actor_id)
        return BulkCheckOutResult(checked_out_count=len(changes))
