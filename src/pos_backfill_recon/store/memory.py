"""In-process event store."""

from copy import deepcopy
from datetime import datetime
from typing import Optional
import logging

from ..utils.exceptions import InsertConflict
from .base import EventStore, PersistedEvent

logger = logging.getLogger(__name__)


class InMemoryEventStore(EventStore):
    """Event store backed by a dict keyed on event id."""

    def __init__(self, events: Optional[list[PersistedEvent]] = None):
        self._events: dict[str, PersistedEvent] = {}
        for event in events or []:
            self.create(event)

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def get(self, event_id: str) -> Optional[PersistedEvent]:
        return self._events.get(event_id)

    def find_by_day_range(self, start: datetime, end: datetime) -> list[PersistedEvent]:
        found = [e for e in self._events.values() if start <= e.stored_at < end]
        found.sort(key=lambda e: e.stored_at)
        return [deepcopy(e) for e in found]

    def create(self, event: PersistedEvent) -> None:
        if event.event_id in self._events:
            raise InsertConflict(event.event_id)
        self._events[event.event_id] = deepcopy(event)

    def delete_by_prefix(self, start: datetime, end: datetime, prefix: str) -> int:
        doomed = [
            event_id
            for event_id, e in self._events.items()
            if start <= e.stored_at < end and event_id.startswith(prefix)
        ]
        for event_id in doomed:
            del self._events[event_id]
        logger.debug(f"Deleted {len(doomed)} events with prefix '{prefix}'")
        return len(doomed)
