from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles used for authorization."""

    ADMIN = "admin"
    STAFF = "staff"


class CheckMethod(str, Enum):
    """How a check-in or check-out was recorded."""

    SELF_SCAN = "self_scan"
    STAFF_SCAN = "staff_scan"
    MANUAL = "manual"
    FORCED = "forced"
    FORCED_BULK = "forced_bulk"


SCAN_METHODS = frozenset({CheckMethod.SELF_SCAN, CheckMethod.STAFF_SCAN})


class EntryFlag(str, Enum):
    """Anomaly tags attached to a record for review."""

    EARLY_ARRIVAL = "early_arrival"
    LATE_STAY = "late_stay"
    FORCED_CHECKOUT = "forced_checkout"


class ReviewStatus(str, Enum):
    PENDING = "pending"
    FLAGGED = "flagged"
    APPROVED = "approved"


class ChangeType(str, Enum):
    """Kinds of change-log entries."""

    EDIT = "edit"
    FORCE_CHECKOUT = "force_checkout"
    FORCE_CHECKOUT_BULK = "force_checkout_bulk"
    VOID = "void"
    RESTORE = "restore"
    MANUAL_CREATE = "manual_create"


class ReviewFilter(str, Enum):
    ALL = "all"
    FLAGGED = "flagged"
    NO_CHECKOUT = "no-checkout"
    MODIFIED = "modified"


class RecordGuard(str, Enum):
    """State a record must still be in when a write is applied."""

    OPEN = "open"
    VOIDED = "voided"
    NOT_VOIDED = "not_voided"
