from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ChangeType


@dataclass(frozen=True)
class ChangeLogEntry:
    """One immutable line of a record's audit trail."""

    timestamp: datetime
    actor_id: str
    type: ChangeType
    reason: str
    description: str
    old_check_in_time: Optional[datetime] = None
    new_check_in_time: Optional[datetime] = None
    old_check_out_time: Optional[datetime] = None
    new_check_out_time: Optional[datetime] = None

    def to_dict(self) -> dict:
        def _iso(v: Optional[datetime]) -> Optional[str]:
            return v.isoformat() if v else None

        return {
            "timestamp": self.timestamp.isoformat(),
            "modifiedBy": self.actor_id,
            "type": self.type.value,
            "reason": self.reason,
            "description": self.description,
            "oldCheckInTime": _iso(self.old_check_in_time),
            "newCheckInTime": _iso(self.new_check_in_time),
            "oldCheckOutTime": _iso(self.old_check_out_time),
            "newCheckOutTime": _iso(self.new_check_out_time),
        }
