from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import ChangeType, CheckMethod, EntryFlag, RecordGuard, ReviewStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from ..ledger.model import ChangeLogEntry
from .model import AttendanceKey, AttendanceRecord
from .repository import AttendanceRepository, DuplicateOpenRecordError, RecordChange, guard_holds

logger = logging.getLogger(__name__)

_COLUMNS = """
    record_id, participant_id, event_id, activity_id, work_date,
    check_in_time, check_in_method, check_in_by,
    check_out_time, check_out_method, check_out_by,
    hours_worked, raw_minutes, flags, review_status,
    is_voided, void_reason, voided_by, voided_at,
    modification_reason, modified_by, modified_at,
    forced_checkout_reason, created_at
"""


class _GuardFailed(Exception):
    pass


def _flags_to_db(flags: Iterable[EntryFlag]) -> str:
    return ",".join(sorted(f.value for f in flags))


def _flags_from_db(value: Optional[str]) -> frozenset[EntryFlag]:
    return frozenset(EntryFlag(v) for v in (value or "").split(",") if v)


def _to_entry(row: dict) -> ChangeLogEntry:
    return ChangeLogEntry(
        timestamp=row["changed_at"],
        actor_id=row["modified_by"],
        type=ChangeType(row["change_type"]),
        reason=row["reason"],
        description=row["description"],
        old_check_in_time=row.get("old_check_in_time"),
        new_check_in_time=row.get("new_check_in_time"),
        old_check_out_time=row.get("old_check_out_time"),
        new_check_out_time=row.get("new_check_out_time"),
    )


def _to_record(row: dict, change_log: Sequence[ChangeLogEntry] = ()) -> AttendanceRecord:
    hours = row.get("hours_worked")
    return AttendanceRecord(
        record_id=int(row["record_id"]),
        participant_id=str(row["participant_id"]),
        event_id=str(row["event_id"]),
        activity_id=str(row["activity_id"]),
        work_date=row["work_date"],
        check_in_time=row["check_in_time"],
        check_in_method=CheckMethod(row["check_in_method"]),
        check_in_by=row.get("check_in_by"),
        check_out_time=row.get("check_out_time"),
        check_out_method=CheckMethod(row["check_out_method"]) if row.get("check_out_method") else None,
        check_out_by=row.get("check_out_by"),
        hours_worked=Decimal(str(hours)) if hours is not None else None,
        raw_minutes=row.get("raw_minutes"),
        flags=_flags_from_db(row.get("flags")),
        review_status=ReviewStatus(row["review_status"]),
        is_voided=bool(row.get("is_voided")),
        void_reason=row.get("void_reason"),
        voided_by=row.get("voided_by"),
        voided_at=row.get("voided_at"),
        modification_reason=row.get("modification_reason"),
        modified_by=row.get("modified_by"),
        modified_at=row.get("modified_at"),
        forced_checkout_reason=row.get("forced_checkout_reason"),
        change_log=tuple(change_log),
        created_at=row.get("created_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- reads --------

    @staticmethod
    def _load_records(cur, rows: list[dict]) -> list[AttendanceRecord]:
        if not rows:
            return []
        ids = [int(r["record_id"]) for r in rows]
        placeholders = ",".join(["%s"] * len(ids))
        cur.execute(
            f"""
            SELECT record_id, changed_at, modified_by, change_type, reason, description,
                   old_check_in_time, new_check_in_time, old_check_out_time, new_check_out_time
            FROM attendance_change_log
            WHERE record_id IN ({placeholders})
            ORDER BY log_id
            """,
            tuple(ids),
        )
        logs: dict[int, list[ChangeLogEntry]] = defaultdict(list)
        for log_row in fetchall(cur):
            logs[int(log_row["record_id"])].append(_to_entry(log_row))
        return [_to_record(r, logs.get(int(r["record_id"]), ())) for r in rows]

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (int(record_id),))
            row = fetchone(cur)
            records = self._load_records(cur, [row] if row else [])
            return records[0] if records else None

    def find_open(self, key: AttendanceKey) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE participant_id=%s AND event_id=%s AND activity_id=%s AND work_date=%s
                  AND check_out_time IS NULL
                ORDER BY record_id
                LIMIT 1
                """,
                (key.participant_id, key.event_id, key.activity_id, key.work_date),
            )
            row = fetchone(cur)
            records = self._load_records(cur, [row] if row else [])
            return records[0] if records else None

    def list_for_event_date(self, event_id: str, work_date: date, *, open_only: bool = False) -> Sequence[AttendanceRecord]:
        where = "event_id=%s AND work_date=%s"
        if open_only:
            where += " AND check_out_time IS NULL"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE {where} ORDER BY check_in_time, record_id",
                (event_id, work_date),
            )
            return self._load_records(cur, fetchall(cur))

    def list_closed_for_participant(
        self,
        *,
        participant_id: str,
        event_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE participant_id=%s AND event_id=%s
                  AND work_date BETWEEN %s AND %s
                  AND check_out_time IS NOT NULL
                ORDER BY work_date, record_id
                """,
                (participant_id, event_id, start_date, end_date),
            )
            # Week totals only need hours; skip the change log.
            return [_to_record(r) for r in fetchall(cur)]

    # -------- writes --------

    @staticmethod
    def _insert_row(cur, record: AttendanceRecord) -> int:
        cur.execute(
            """
            INSERT INTO attendance_records(
                participant_id, event_id, activity_id, work_date,
                check_in_time, check_in_method, check_in_by,
                check_out_time, check_out_method, check_out_by, open_slot,
                hours_worked, raw_minutes, flags, review_status, created_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,COALESCE(%s, CURRENT_TIMESTAMP))
            """,
            (
                record.participant_id,
                record.event_id,
                record.activity_id,
                record.work_date,
                record.check_in_time,
                record.check_in_method.value,
                record.check_in_by,
                record.check_out_time,
                record.check_out_method.value if record.check_out_method else None,
                record.check_out_by,
                1 if record.is_open else None,
                record.hours_worked,
                record.raw_minutes,
                _flags_to_db(record.flags),
                record.review_status.value,
                record.created_at,
            ),
        )
        return int(cur.lastrowid)

    @staticmethod
    def _insert_log(cur, record_id: int, entries: Sequence[ChangeLogEntry]) -> None:
        for e in entries:
            cur.execute(
                """
                INSERT INTO attendance_change_log(
                    record_id, changed_at, modified_by, change_type, reason, description,
                    old_check_in_time, new_check_in_time, old_check_out_time, new_check_out_time
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    record_id,
                    e.timestamp,
                    e.actor_id,
                    e.type.value,
                    e.reason,
                    e.description,
                    e.old_check_in_time,
                    e.new_check_in_time,
                    e.old_check_out_time,
                    e.new_check_out_time,
                ),
            )

    def insert_open(self, record: AttendanceRecord) -> int:
        if not record.is_open:
            raise ValueError("insert_open requires a record without check-out")
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                return self._insert_row(cur, record)
        except IntegrityError as e:
            if not is_duplicate_key(e):
                raise
            existing = self.find_open(record.key)
            if existing is None:
                raise
            raise DuplicateOpenRecordError(existing) from e

    def insert(self, record: AttendanceRecord) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            record_id = self._insert_row(cur, record)
            self._insert_log(cur, record_id, record.change_log)
            return record_id

    @staticmethod
    def _lock_and_check(cur, record_id: int, expect: Optional[RecordGuard]) -> bool:
        cur.execute(
            "SELECT check_out_time, is_voided FROM attendance_records WHERE record_id=%s FOR UPDATE",
            (record_id,),
        )
        row = fetchone(cur)
        if not row:
            return False
        return guard_holds(expect, is_open=row["check_out_time"] is None, is_voided=bool(row["is_voided"]))

    @staticmethod
    def _update_row(cur, record: AttendanceRecord) -> None:
        cur.execute(
            """
            UPDATE attendance_records
            SET check_in_time=%s, check_out_time=%s, check_out_method=%s, check_out_by=%s,
                open_slot=%s, hours_worked=%s, raw_minutes=%s, flags=%s, review_status=%s,
                is_voided=%s, void_reason=%s, voided_by=%s, voided_at=%s,
                modification_reason=%s, modified_by=%s, modified_at=%s,
                forced_checkout_reason=%s
            WHERE record_id=%s
            """,
            (
                record.check_in_time,
                record.check_out_time,
                record.check_out_method.value if record.check_out_method else None,
                record.check_out_by,
                1 if record.is_open else None,
                record.hours_worked,
                record.raw_minutes,
                _flags_to_db(record.flags),
                record.review_status.value,
                1 if record.is_voided else 0,
                record.void_reason,
                record.voided_by,
                record.voided_at,
                record.modification_reason,
                record.modified_by,
                record.modified_at,
                record.forced_checkout_reason,
                int(record.record_id),
            ),
        )

    def apply_change(self, change: RecordChange, *, expect: Optional[RecordGuard] = None) -> bool:
        record = change.record
        with db_cursor(self._conn_factory) as (_, cur):
            if not self._lock_and_check(cur, int(record.record_id), expect):
                logger.warning("Guard %s failed for record=%s", expect, record.record_id)
                return False
            self._update_row(cur, record)
            self._insert_log(cur, int(record.record_id), change.appended)
            return True

    def apply_batch(self, changes: Sequence[RecordChange], *, expect: Optional[RecordGuard] = None) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                for change in changes:
                    record_id = int(change.record.record_id)
                    if not self._lock_and_check(cur, record_id, expect):
                        raise _GuardFailed(record_id)
                    self._update_row(cur, change.record)
                    self._insert_log(cur, record_id, change.appended)
        except _GuardFailed as e:
            # db_cursor rolled back every row written so far.
            logger.warning("Batch guard %s failed for record=%s; rolled back %s changes", expect, e.args[0], len(changes))
            return False
        return True
