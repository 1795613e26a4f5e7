"""
SQLAlchemy-backed event store.

Events live in a ``webhook_events`` table whose unique ``event_id`` is the
serialization point between concurrent backfill runs. Instants are stored as
naive UTC so SQLite and PostgreSQL compare them the same way.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional
import json
import logging

from sqlalchemy import JSON, DateTime, Integer, String, Text, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from ..utils.exceptions import InsertConflict, StoreError, StoreUnavailable
from .base import EventStore, PersistedEvent

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class WebhookEventRow(Base):
    __tablename__ = "webhook_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    action: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    business_ids: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    created_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    received_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    raw_body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    headers: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    source_ip: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    day: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)


def _to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlEventStore(EventStore):
    """Event store on any SQLAlchemy-supported database."""

    def __init__(
        self,
        database_url: str,
        engine: Optional[Engine] = None,
        create_schema: bool = True,
    ):
        """
        Initialize the store.

        Args:
            database_url: SQLAlchemy database URL
            engine: Pre-built engine (overrides database_url)
            create_schema: Create the events table if missing

        Raises:
            StoreUnavailable: If the schema cannot be created
        """
        self.database_url = database_url
        self.engine = engine or create_engine(database_url)
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)

        if create_schema:
            try:
                Base.metadata.create_all(self.engine)
            except SQLAlchemyError as e:
                raise StoreUnavailable(f"Cannot initialize event store: {e}") from e

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
        except (OperationalError, InterfaceError) as e:
            session.rollback()
            raise StoreUnavailable(f"Event store unavailable: {e}") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Event store error: {e}") from e
        finally:
            session.close()

    def find_by_day_range(self, start: datetime, end: datetime) -> list[PersistedEvent]:
        stmt = (
            select(WebhookEventRow)
            .where(WebhookEventRow.day >= _to_utc_naive(start))
            .where(WebhookEventRow.day < _to_utc_naive(end))
            .order_by(WebhookEventRow.day, WebhookEventRow.id)
        )
        with self._session() as session:
            rows = session.scalars(stmt).all()
            return [self._to_event(row) for row in rows]

    def create(self, event: PersistedEvent) -> None:
        row = WebhookEventRow(
            event_id=event.event_id,
            entity_type=event.entity_type,
            action=event.action,
            business_ids=list(event.business_ids),
            created_date=_to_utc_naive(event.created_date),
            received_at=_to_utc_naive(event.received_at),
            raw_body=json.dumps(event.payload, default=str),
            headers=dict(event.headers),
            payload=event.payload,
            source_ip=event.source_ip,
            user_agent=event.user_agent,
            day=_to_utc_naive(event.stored_at),
        )
        with self._session() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise InsertConflict(event.event_id) from e

    def delete_by_prefix(self, start: datetime, end: datetime, prefix: str) -> int:
        stmt = (
            delete(WebhookEventRow)
            .where(WebhookEventRow.day >= _to_utc_naive(start))
            .where(WebhookEventRow.day < _to_utc_naive(end))
            .where(WebhookEventRow.event_id.startswith(prefix, autoescape=True))
            .execution_options(synchronize_session=False)
        )
        with self._session() as session:
            result = session.execute(stmt)
            session.commit()
            deleted = result.rowcount or 0
        logger.info(f"Deleted {deleted} events with prefix '{prefix}'")
        return deleted

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _to_event(row: WebhookEventRow) -> PersistedEvent:
        payload: Any = row.payload
        if isinstance(payload, str):
            payload = json.loads(payload)
        return PersistedEvent(
            event_id=row.event_id,
            stored_at=_from_utc_naive(row.day),
            payload=payload or {},
            created_date=_from_utc_naive(row.created_date),
            entity_type=row.entity_type or "",
            action=row.action or "",
            business_ids=list(row.business_ids or []),
            headers=dict(row.headers or {}),
            source_ip=row.source_ip,
            user_agent=row.user_agent,
            received_at=_from_utc_naive(row.received_at),
        )
