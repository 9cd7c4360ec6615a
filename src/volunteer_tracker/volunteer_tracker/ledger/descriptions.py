"""Pre-rendered change descriptions shown in review screens and exports."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..common.datetime_utils import format_clock


def build_edit_description(
    *,
    original_check_in: Optional[datetime],
    new_check_in: Optional[datetime],
    original_check_out: Optional[datetime],
    new_check_out: Optional[datetime],
    reason: str,
) -> str:
    """Describe only the fields that changed; empty string when nothing did."""

    changes = []
    if original_check_in != new_check_in:
        changes.append(f"Changed Check-In from {format_clock(original_check_in)} to {format_clock(new_check_in)}")
    if original_check_out != new_check_out:
        changes.append(f"Changed Check-Out from {format_clock(original_check_out)} to {format_clock(new_check_out)}")

    if not changes:
        return ""

    description = " and ".join(changes)
    return f"{description}. Reason: {reason}" if reason else description


def build_force_checkout_description(*, check_out: datetime, check_in: datetime, reason: str) -> str:
    return f"Forced Check-Out at {format_clock(check_out)} (Checked in: {format_clock(check_in)}). Reason: {reason}"


def build_bulk_force_checkout_description(*, check_out: datetime, check_in: datetime, reason: str) -> str:
    return f"Bulk Forced Check-Out at {format_clock(check_out)} (Checked in: {format_clock(check_in)}). Reason: {reason}"


def build_void_description(reason: str) -> str:
    return f"Entry voided. Reason: {reason}"


def build_restore_reason(void_reason: Optional[str]) -> str:
    return f'Restored from void (was: "{void_reason or ""}")'


RESTORE_DESCRIPTION = "Entry restored from voided state"
