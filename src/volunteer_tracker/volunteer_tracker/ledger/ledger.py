from __future__ import annotations

from dataclasses import replace
from typing import Any

from ..attendance.model import AttendanceRecord
from ..attendance.repository import RecordChange
from .model import ChangeLogEntry


def append(record: AttendanceRecord, entry: ChangeLogEntry, **changes: Any) -> RecordChange:
    """Apply field changes and append one ledger entry in a single record change.

    The ledger is never rewritten: existing entries are carried over untouched.
    """

    if "change_log" in changes:
        raise ValueError("change_log cannot be replaced")
    updated = replace(record, change_log=record.change_log + (entry,), **changes)
    return RecordChange(record=updated, appended=(entry,))
