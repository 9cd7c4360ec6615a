from __future__ import annotations

from typing import Optional, Protocol

from .model import Event


class EventRepository(Protocol):
    def get_by_id(self, event_id: str) -> Optional[Event]:
        """Return the event with its activities, or None."""

        raise NotImplementedError
