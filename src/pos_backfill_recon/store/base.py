"""Event store interface and the persisted event record."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


@dataclass
class PersistedEvent:
    """
    An event as held by the store.

    The payload is free-form; it may encode transaction fields in any of the
    historical shapes the index builder knows about.
    """

    event_id: str

    # Instant the store buckets the event by (aware, UTC)
    stored_at: datetime

    payload: dict[str, Any] = field(default_factory=dict)
    created_date: Optional[datetime] = None
    entity_type: str = "transaction"
    action: str = "created"
    business_ids: list[str] = field(default_factory=list)
    headers: dict[str, Any] = field(default_factory=dict)
    source_ip: Optional[str] = None
    user_agent: Optional[str] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventStore(ABC):
    """Abstract base class for persisted event stores."""

    @abstractmethod
    def find_by_day_range(self, start: datetime, end: datetime) -> list[PersistedEvent]:
        """
        Events whose stored instant falls in ``[start, end)``.

        Raises:
            StoreUnavailable: If the store cannot be reached
        """
        pass

    @abstractmethod
    def create(self, event: PersistedEvent) -> None:
        """
        Persist a new event.

        Raises:
            InsertConflict: If an event with the same id already exists
            StoreUnavailable: If the store cannot be reached
            StoreError: For any other store failure
        """
        pass

    @abstractmethod
    def delete_by_prefix(self, start: datetime, end: datetime, prefix: str) -> int:
        """
        Delete events in ``[start, end)`` whose id starts with ``prefix``.

        Returns:
            Number of events deleted
        """
        pass

    def close(self) -> None:
        """Release any held connections."""
        pass

    def __enter__(self) -> "EventStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
