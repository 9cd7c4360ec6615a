from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local, to_instant
from ..common.validators import require_min_length, require_non_empty
from ..core.constants import MIN_VOID_REASON_LENGTH
from ..core.enums import ChangeType, CheckMethod, RecordGuard
from ..core.exceptions import AlreadyExistsError, FailedPreconditionError, NotFoundError, ValidationError
from ..hours.calculator.base import HoursCalculator
from ..hours.calculator.half_hour_calculator import HalfHourCalculator
from ..ledger import descriptions
from ..ledger.ledger import append
from ..ledger.model import ChangeLogEntry
from ..participants.model import UNKNOWN_PARTICIPANT
from ..participants.repository import ParticipantRepository
from ..users.model import Actor
from ..users.service import require_admin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditResult:
    success: bool
    description: str

    def to_dict(self) -> dict:
        return {"success": self.success, "description": self.description}


@dataclass(frozen=True)
class ParticipantResult:
    participant_name: str
    message: str

    def to_dict(self) -> dict:
        return {"success": True, "participantName": self.participant_name, "message": self.message}


def _same_minute(a: Optional[datetime], b: Optional[datetime]) -> bool:
    if a is None or b is None:
        return a is b
    return a.replace(second=0, microsecond=0) == b.replace(second=0, microsecond=0)


class CorrectionService:
    """Admin corrections: edit times, void and restore records."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        participants: ParticipantRepository,
        *,
        calculator: Optional[HoursCalculator] = None,
    ):
        self._attendance = attendance
        self._participants = participants
        self._calculator = calculator or HalfHourCalculator()

    def _get_record(self, record_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(record_id))
        if not record:
            raise NotFoundError("Time entry not found")
        return record

    def _participant_name(self, participant_id: str) -> str:
        participant = self._participants.get_by_id(participant_id) or UNKNOWN_PARTICIPANT
        return participant.full_name

    def edit_entry(
        self,
        *,
        record_id: int,
        new_check_in_time: Any,
        new_check_out_time: Any,
        reason: str,
        actor: Optional[Actor],
        now: Optional[datetime] = None,
    ) -> EditResult:
        actor = require_admin(actor)
        reason = require_non_empty(reason, "Reason")
        if new_check_in_time in (None, ""):
            raise ValidationError("Check-in time is required")

        new_in = to_instant(new_check_in_time)
        new_out = to_instant(new_check_out_time) if new_check_out_time not in (None, "") else None
        if new_out is not None and new_out <= new_in:
            raise ValidationError("Check-out time must be after check-in time")

        record = self._get_record(record_id)
        if record.is_voided:
            raise FailedPreconditionError("Voided entries must be restored before editing")
        if new_in.date() != record.work_date:
            raise ValidationError(f"Check-in time must stay on the entry's date ({record.work_date.isoformat()})")
        if new_out is None and record.check_out_time is not None:
            raise ValidationError("Check-out time cannot be cleared")

        # Form inputs carry minute precision; keep stored seconds for untouched fields.
        if _same_minute(record.check_in_time, new_in):
            new_in = record.check_in_time
        if _same_minute(record.check_out_time, new_out):
            new_out = record.check_out_time

        description = descriptions.build_edit_description(
            original_check_in=record.check_in_time,
            new_check_in=new_in,
            original_check_out=record.check_out_time,
            new_check_out=new_out,
            reason=reason,
        )
        if not description:
            return EditResult(success=True, description="")

        if new_out is not None and new_out <= new_in:
            raise ValidationError("Check-out time must be after check-in time")

        hours_worked = raw_minutes = None
        if new_out is not None:
            hours = self._calculator.round_hours(new_in, new_out)
            hours_worked, raw_minutes = hours.hours_worked, hours.raw_minutes

        now = now or now_local()
        entry = ChangeLogEntry(
            timestamp=now,
            actor_id=actor.actor_id,
            type=ChangeType.EDIT,
            reason=reason,
            description=description,
            old_check_in_time=record.check_in_time,
            new_check_in_time=new_in,
            old_check_out_time=record.check_out_time,
            new_check_out_time=new_out,
        )
        closing = record.check_out_time is None and new_out is not None
        change = append(
            record,
            entry,
            check_in_time=new_in,
            check_out_time=new_out,
            check_out_method=CheckMethod.MANUAL if closing else record.check_out_method,
            check_out_by=actor.actor_id if closing else record.check_out_by,
            hours_worked=hours_worked,
            raw_minutes=raw_minutes,
            modification_reason=description,
            modified_by=actor.actor_id,
            modified_at=now,
        )
        if not self._attendance.apply_change(change, expect=RecordGuard.NOT_VOIDED):
            raise FailedPreconditionError("Time entry was voided or removed while editing")

        logger.info("Edited record=%s by=%s: %s", record.record_id, actor.actor_id, description)
        return EditResult(success=True, description=description)

    def void_entry(
        self,
        *,
        record_id: int,
        void_reason: str,
        actor: Optional[Actor],
        now: Optional[datetime] = None,
    ) -> ParticipantResult:
        actor = require_admin(actor)
        reason = require_min_length(void_reason, "Void reason", MIN_VOID_REASON_LENGTH)

        record = self._get_record(record_id)
        if record.is_voided:
            raise AlreadyExistsError("Time entry is already voided")

        now = now or now_local()
        entry = ChangeLogEntry(
            timestamp=now,
            actor_id=actor.actor_id,
            type=ChangeType.VOID,
            reason=reason,
            description=descriptions.build_void_description(reason),
        )
        change = append(record, entry, is_voided=True, void_reason=reason, voided_by=actor.actor_id, voided_at=now)
        if not self._attendance.apply_change(change, expect=RecordGuard.NOT_VOIDED):
            raise AlreadyExistsError("Time entry is already voided")

        name = self._participant_name(record.participant_id)
        logger.info("Voided record=%s by=%s reason=%r", record.record_id, actor.actor_id, reason)
        return ParticipantResult(participant_name=name, message=f"Time entry voided for {name}")

    def restore_entry(
        self,
        *,
        record_id: int,
        actor: Optional[Actor],
        now: Optional[datetime] = None,
    ) -> ParticipantResult:
        actor = require_admin(actor)

        record = self._get_record(record_id)
        if not record.is_voided:
            raise FailedPreconditionError("Time entry is not voided")

        entry = ChangeLogEntry(
            timestamp=now or now_local(),
            actor_id=actor.actor_id,
            type=ChangeType.RESTORE,
            reason=descriptions.build_restore_reason(record.void_reason),
            description=descriptions.RESTORE_DESCRIPTION,
        )
        change = append(record, entry, is_voided=False, void_reason=None, voided_by=None, voided_at=None)
        if not self._attendance.apply_change(change, expect=RecordGuard.VOIDED):
            raise FailedPreconditionError("Time entry is not voided")

        name = self._participant_name(record.participant_id)
        logger.info("Restored record=%s by=%s", record.record_id, actor.actor_id)
        return ParticipantResult(participant_name=name, message=f"Time entry restored for {name}")
