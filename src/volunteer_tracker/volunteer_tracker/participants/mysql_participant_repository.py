from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Participant
from .repository import ParticipantRepository


def _to_participant(row: dict) -> Participant:
    return Participant(
        participant_id=str(row["participant_id"]),
        first_name=row["first_name"],
        last_name=row["last_name"],
    )


class MySQLParticipantRepository(ParticipantRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, participant_id: str) -> Optional[Participant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT participant_id, first_name, last_name FROM participants WHERE participant_id=%s",
                (participant_id,),
            )
            row = fetchone(cur)
            return _to_participant(row) if row else None

    def get_many(self, participant_ids: Iterable[str]) -> Mapping[str, Participant]:
        ids = sorted(set(participant_ids))
        if not ids:
            return {}
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT participant_id, first_name, last_name FROM participants WHERE participant_id IN ({placeholders})",
                tuple(ids),
            )
            return {p.participant_id: p for p in map(_to_participant, fetchall(cur))}
