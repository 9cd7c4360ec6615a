from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import RecordGuard
from ..ledger.model import ChangeLogEntry
from .model import AttendanceKey, AttendanceRecord


@dataclass(frozen=True)
class RecordChange:
    """A record's new state plus the ledger entries appended by this change."""

    record: AttendanceRecord
    appended: tuple[ChangeLogEntry, ...] = ()


class DuplicateOpenRecordError(Exception):
    """Raised by the store when an open record already exists for the key."""

    def __init__(self, existing: AttendanceRecord):
        super().__init__(f"Open record {existing.record_id} already exists")
        self.existing = existing


class AttendanceRepository(Protocol):
    """Record store.

    Every write either commits completely or not at all. Guards are evaluated
    against the stored row inside the same transaction as the write.
    """

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_open(self, key: AttendanceKey) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_event_date(self, event_id: str, work_date: date, *, open_only: bool = False) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_closed_for_participant(
        self,
        *,
        participant_id: str,
        event_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def insert_open(self, record: AttendanceRecord) -> int:
        """Atomically create an open record unless one exists for its key.

        Raises DuplicateOpenRecordError carrying the existing record.
        """

        raise NotImplementedError

    def insert(self, record: AttendanceRecord) -> int:
        raise NotImplementedError

    def apply_change(self, change: RecordChange, *, expect: Optional[RecordGuard] = None) -> bool:
        """Persist one record change; False if missing or the guard no longer holds."""

        raise NotImplementedError

    def apply_batch(self, changes: Sequence[RecordChange], *, expect: Optional[RecordGuard] = None) -> bool:
        """Persist all changes in one transaction, or none of them."""

        raise NotImplementedError


def guard_holds(expect: Optional[RecordGuard], *, is_open: bool, is_voided: bool) -> bool:
    """Evaluate a write guard against the currently stored state of a record."""

    if expect is None:
        return True
    if expect == RecordGuard.OPEN:
        return is_open
    if expect == RecordGuard.VOIDED:
        return is_voided
    return not is_voided
