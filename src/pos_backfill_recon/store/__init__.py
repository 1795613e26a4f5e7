"""Persisted event stores."""

from .base import EventStore, PersistedEvent
from .memory import InMemoryEventStore
from .sql import SqlEventStore

__all__ = ["EventStore", "PersistedEvent", "InMemoryEventStore", "SqlEventStore"]
