from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import CheckMethod, EntryFlag, ReviewStatus
from ..ledger.model import ChangeLogEntry


@dataclass(frozen=True)
class AttendanceKey:
    """Identity of a session: at most one open record may exist per key."""

    participant_id: str
    event_id: str
    activity_id: str
    work_date: date


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one check-in/check-out session."""

    record_id: Optional[int]
    participant_id: str
    event_id: str
    activity_id: str
    work_date: date
    check_in_time: datetime
    check_in_method: CheckMethod
    check_in_by: Optional[str] = None
    check_out_time: Optional[datetime] = None
    check_out_method: Optional[CheckMethod] = None
    check_out_by: Optional[str] = None
    hours_worked: Optional[Decimal] = None
    raw_minutes: Optional[int] = None
    flags: frozenset[EntryFlag] = frozenset()
    review_status: ReviewStatus = ReviewStatus.PENDING
    is_voided: bool = False
    void_reason: Optional[str] = None
    voided_by: Optional[str] = None
    voided_at: Optional[datetime] = None
    modification_reason: Optional[str] = None
    modified_by: Optional[str] = None
    modified_at: Optional[datetime] = None
    forced_checkout_reason: Optional[str] = None
    change_log: tuple[ChangeLogEntry, ...] = ()
    created_at: Optional[datetime] = None

    @property
    def key(self) -> AttendanceKey:
        return AttendanceKey(self.participant_id, self.event_id, self.activity_id, self.work_date)

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None

    @property
    def is_modified(self) -> bool:
        return bool(self.modification_reason or self.forced_checkout_reason)

    def to_dict(self) -> dict:
        return {
            "recordId": self.record_id,
            "participantId": self.participant_id,
            "eventId": self.event_id,
            "activityId": self.activity_id,
            "date": self.work_date.isoformat(),
            "checkInTime": self.check_in_time.isoformat(),
            "checkInMethod": self.check_in_method.value,
            "checkOutTime": self.check_out_time.isoformat() if self.check_out_time else None,
            "checkOutMethod": self.check_out_method.value if self.check_out_method else None,
            "hoursWorked": float(self.hours_worked) if self.hours_worked is not None else None,
            "rawMinutes": self.raw_minutes,
            "flags": sorted(f.value for f in self.flags),
            "reviewStatus": self.review_status.value,
            "isVoided": self.is_voided,
            "voidReason": self.void_reason,
            "modificationReason": self.modification_reason,
            "forcedCheckoutReason": self.forced_checkout_reason,
            "changeLog": [e.to_dict() for e in self.change_log],
        }
