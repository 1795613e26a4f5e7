"""
Existing-index builder.

Reads the events already persisted for a business day and turns them into
the same match-key space as the candidates.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
import logging

from ..config import ReconConfig
from ..models.transaction import MatchKeys, MatchTier
from ..normalization.payload_fields import PayloadFieldExtractor
from ..normalization.text import ZERO, cell_to_text, parse_money, parse_timestamp
from ..store.base import EventStore, PersistedEvent
from ..utils.business_day import BusinessDayClock
from ..utils.exceptions import InvalidTimestamp, MalformedExistingRecord
from .keys import build_match_keys

logger = logging.getLogger(__name__)


@dataclass
class ExistingIndex:
    """Key sets of the events already persisted for one business day."""

    day: str
    strict: set[str] = field(default_factory=set)
    fallback: set[str] = field(default_factory=set)
    ultra: set[str] = field(default_factory=set)
    record_count: int = 0
    skipped_count: int = 0
    backfilled_count: int = 0

    def match_tier(self, keys: MatchKeys) -> Optional[MatchTier]:
        """
        First tier at which the keys are present, checking strict first.

        A hit at any tier counts as present; broader tiers do not require
        agreement at the narrower ones.
        """
        if keys.strict in self.strict:
            return MatchTier.STRICT
        if keys.fallback in self.fallback:
            return MatchTier.FALLBACK
        if keys.ultra in self.ultra:
            return MatchTier.ULTRA
        return None

    def copy(self) -> "ExistingIndex":
        """Independent copy whose sets can be mutated during a run."""
        return ExistingIndex(
            day=self.day,
            strict=set(self.strict),
            fallback=set(self.fallback),
            ultra=set(self.ultra),
            record_count=self.record_count,
            skipped_count=self.skipped_count,
            backfilled_count=self.backfilled_count,
        )


@dataclass(frozen=True)
class ExistingRecordFields:
    """Canonical fields recovered from a persisted event."""

    business_day: str
    business_minute: str
    service: str
    amount_due: Decimal
    tip: Decimal
    customer_name: str
    provider_name: str


class ExistingIndexBuilder:
    """Builds per-day key sets from the event store."""

    def __init__(
        self,
        store: EventStore,
        clock: BusinessDayClock,
        config: ReconConfig,
    ):
        """
        Initialize the builder.

        Args:
            store: Event store to read from
            clock: Business-day clock
            config: Application configuration
        """
        self.store = store
        self.clock = clock
        self.config = config
        self.fields = PayloadFieldExtractor(config.payload_fields)
        self.date_formats = list(config.normalization.date_formats)
        self.event_id_prefix = config.store.event_id_prefix

    def extract(self, event: PersistedEvent) -> ExistingRecordFields:
        """
        Recover canonical fields from an event of any known shape.

        The business day comes from the event's own timestamp, not from the
        day being indexed.

        Raises:
            MalformedExistingRecord: If service or timestamp is unusable
        """
        payload = event.payload
        service = cell_to_text(self.fields.extract(payload, "service"))
        raw_timestamp = self.fields.extract(payload, "timestamp")

        if not service:
            raise MalformedExistingRecord(f"Event {event.event_id}: no service descriptor")
        if raw_timestamp is None:
            raise MalformedExistingRecord(f"Event {event.event_id}: no timestamp")

        try:
            instant = parse_timestamp(raw_timestamp, self.clock, self.date_formats)
        except InvalidTimestamp as e:
            raise MalformedExistingRecord(f"Event {event.event_id}: {e}") from e

        return ExistingRecordFields(
            business_day=self.clock.to_business_day(instant),
            business_minute=self.clock.to_business_minute(instant),
            service=service,
            amount_due=parse_money(self.fields.extract(payload, "amount_due")),
            tip=parse_money(self.fields.extract(payload, "tip")),
            customer_name=cell_to_text(self.fields.extract(payload, "customer_name")),
            provider_name=cell_to_text(self.fields.extract(payload, "provider_name")),
        )

    def add_to_index(self, index: ExistingIndex, record: ExistingRecordFields) -> None:
        """Add one record's keys to the index."""
        keys = build_match_keys(
            record.business_day,
            record.business_minute,
            record.service,
            record.amount_due,
            record.tip,
            record.customer_name,
            record.provider_name,
        )

        if record.customer_name or record.provider_name:
            index.strict.add(keys.strict)
        index.fallback.add(keys.fallback)

        # Historical events sometimes omitted money fields entirely
        if record.amount_due == ZERO and record.tip == ZERO:
            index.ultra.add(keys.ultra)

    def build(self, day: str) -> ExistingIndex:
        """
        Build the existing-key index for a business day.

        Args:
            day: Business day (YYYY-MM-DD)

        Returns:
            ExistingIndex with the three key sets

        Raises:
            StoreUnavailable: If the store cannot be queried
        """
        start, end = self.clock.business_day_to_utc_range(day)
        events = self.store.find_by_day_range(start, end)

        index = ExistingIndex(day=day, record_count=len(events))

        for event in events:
            if self.event_id_prefix and event.event_id.startswith(self.event_id_prefix):
                index.backfilled_count += 1

            try:
                record = self.extract(event)
            except MalformedExistingRecord as e:
                logger.warning(f"Skipping existing record: {e}")
                index.skipped_count += 1
                continue

            if record.business_day != day:
                logger.debug(
                    f"Event {event.event_id} stored under {day} "
                    f"but its timestamp falls on {record.business_day}"
                )

            self.add_to_index(index, record)

        logger.info(
            f"{day}: indexed {index.record_count - index.skipped_count} of "
            f"{index.record_count} existing events "
            f"({len(index.strict)} strict, {len(index.fallback)} fallback, "
            f"{len(index.ultra)} ultra keys)"
        )
        return index
