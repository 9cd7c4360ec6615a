from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import format_clock, parse_iso_date
from ..common.validators import require_non_empty
from ..core.enums import ReviewFilter
from ..core.exceptions import NotFoundError, ValidationError
from ..events.repository import EventRepository
from ..participants.model import Participant
from ..participants.repository import ParticipantRepository
from ..users.model import Actor
from ..users.service import require_admin

CSV_HEADERS = ["Date", "Name", "Activity", "Check-In", "Check-Out", "Hours", "Flags", "Override Reason"]


@dataclass(frozen=True)
class DailySummary:
    total: int
    flagged: int
    no_checkout: int
    modified: int
    voided: int

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "flagged": self.flagged,
            "noCheckout": self.no_checkout,
            "modified": self.modified,
            "voided": self.voided,
        }


@dataclass(frozen=True)
class ReviewRow:
    record: AttendanceRecord
    participant: Participant
    activity_name: str

    @property
    def full_name(self) -> str:
        return self.participant.full_name

    def to_dict(self) -> dict:
        return {
            **self.record.to_dict(),
            "participantName": self.full_name,
            "firstName": self.participant.first_name,
            "lastName": self.participant.last_name,
            "activityName": self.activity_name,
        }


def summarize(records: Iterable[AttendanceRecord]) -> DailySummary:
    """Counts for the review header. Voided records only count toward total and voided."""

    total = flagged = no_checkout = modified = voided = 0
    for r in records:
        total += 1
        if r.is_voided:
            voided += 1
            continue
        if r.flags:
            flagged += 1
        if r.is_open:
            no_checkout += 1
        if r.is_modified:
            modified += 1
    return DailySummary(total=total, flagged=flagged, no_checkout=no_checkout, modified=modified, voided=voided)


def _matches(row: ReviewRow, category: ReviewFilter) -> bool:
    r = row.record
    if category == ReviewFilter.ALL:
        return True
    if r.is_voided:
        return False
    if category == ReviewFilter.FLAGGED:
        return bool(r.flags)
    if category == ReviewFilter.NO_CHECKOUT:
        return r.is_open
    return r.is_modified


def filter_rows(rows: Iterable[ReviewRow], *, search: str = "", category: ReviewFilter | str = ReviewFilter.ALL) -> list[ReviewRow]:
    try:
        category = ReviewFilter(category or ReviewFilter.ALL)
    except ValueError:
        raise ValidationError(f"Unknown filter {category!r}")

    needle = (search or "").strip().lower()
    out = [
        row
        for row in rows
        if (not needle or needle in row.full_name.lower()) and _matches(row, category)
    ]
    out.sort(key=lambda row: (row.participant.last_name.lower(), row.participant.first_name.lower()))
    return out


def _csv_row(row: ReviewRow) -> dict:
    r = row.record
    p = row.participant
    return {
        "Date": r.work_date.isoformat(),
        "Name": f"{p.last_name}, {p.first_name}",
        "Activity": row.activity_name or "--",
        "Check-In": format_clock(r.check_in_time),
        "Check-Out": format_clock(r.check_out_time) if r.check_out_time else "Not checked out",
        "Hours": str(r.hours_worked) if r.hours_worked is not None else "--",
        "Flags": "; ".join(sorted(f.value for f in r.flags)),
        "Override Reason": r.forced_checkout_reason or r.modification_reason or "",
    }


def export_csv(rows: Sequence[ReviewRow]) -> str:
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=CSV_HEADERS)
    writer.writeheader()
    for row in rows:
        writer.writerow(_csv_row(row))
    return out.getvalue()


class DailyReviewService:
    """Nightly review of one event day."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        participants: ParticipantRepository,
        events: EventRepository,
    ):
        self._attendance = attendance
        self._participants = participants
        self._events = events

    @staticmethod
    def _day(work_date: date | str) -> date:
        return work_date if isinstance(work_date, date) else parse_iso_date(work_date)

    def get_daily_review_summary(self, *, event_id: str, work_date: date | str, actor: Optional[Actor]) -> DailySummary:
        require_admin(actor)
        event_id = require_non_empty(event_id, "eventId")
        return summarize(self._attendance.list_for_event_date(event_id, self._day(work_date)))

    def list_entries(
        self,
        *,
        event_id: str,
        work_date: date | str,
        actor: Optional[Actor],
        search: str = "",
        category: ReviewFilter | str = ReviewFilter.ALL,
    ) -> list[ReviewRow]:
        require_admin(actor)
        event_id = require_non_empty(event_id, "eventId")
        day = self._day(work_date)

        event = self._events.get_by_id(event_id)
        if not event:
            raise NotFoundError("Event not found")

        records = self._attendance.list_for_event_date(event_id, day)
        people = self._participants.get_many({r.participant_id for r in records})

        rows = []
        for r in records:
            participant = people.get(r.participant_id) or Participant(
                participant_id=r.participant_id, first_name="Unknown", last_name="Participant"
            )
            activity = event.activity(r.activity_id)
            rows.append(ReviewRow(record=r, participant=participant, activity_name=activity.name if activity else "Unknown"))

        return filter_rows(rows, search=search, category=category)

    def export_daily_review(
        self,
        *,
        event_id: str,
        work_date: date | str,
        actor: Optional[Actor],
        search: str = "",
        category: ReviewFilter | str = ReviewFilter.ALL,
    ) -> str:
        rows = self.list_entries(event_id=event_id, work_date=work_date, actor=actor, search=search, category=category)
        return export_csv(rows)
