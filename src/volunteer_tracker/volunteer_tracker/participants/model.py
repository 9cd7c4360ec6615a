from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Participant:
    """Domain entity: a volunteer who checks in and out of activities."""

    participant_id: str
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


UNKNOWN_PARTICIPANT = Participant(participant_id="", first_name="Unknown", last_name="Participant")
