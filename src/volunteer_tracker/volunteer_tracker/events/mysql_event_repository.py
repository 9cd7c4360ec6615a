from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import Activity, Event
from .repository import EventRepository


class MySQLEventRepository(EventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, event_id: str) -> Optional[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT event_id, name, typical_start_time, typical_end_time
                FROM events
                WHERE event_id=%s
                """,
                (event_id,),
            )
            row = fetchone(cur)
            if not row:
                return None

            cur.execute(
                """
                SELECT activity_id, name, start_time, end_time
                FROM activities
                WHERE event_id=%s
                ORDER BY sort_order, name
                """,
                (event_id,),
            )
            activities = tuple(
                Activity(
                    activity_id=str(a["activity_id"]),
                    name=a["name"],
                    start_time=normalize_mysql_time(a.get("start_time")),
                    end_time=normalize_mysql_time(a.get("end_time")),
                )
                for a in fetchall(cur)
            )

        return Event(
            event_id=str(row["event_id"]),
            name=row["name"],
            typical_start_time=normalize_mysql_time(row["typical_start_time"]),
            typical_end_time=normalize_mysql_time(row["typical_end_time"]),
            activities=activities,
        )
