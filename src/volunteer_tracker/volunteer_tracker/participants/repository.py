from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol

from .model import Participant


class ParticipantRepository(Protocol):
    def get_by_id(self, participant_id: str) -> Optional[Participant]:
        raise NotImplementedError

    def get_many(self, participant_ids: Iterable[str]) -> Mapping[str, Participant]:
        raise NotImplementedError
