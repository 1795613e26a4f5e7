"""
Reconciliation driver.

Processes candidates one business day at a time: build the day's existing
index once, look every candidate up at the strict, fallback and ultra tiers,
and in apply mode insert the ones that are missing exactly once.
"""

from datetime import datetime
from typing import Iterable, Optional
import logging

from ..config import ReconConfig
from ..models.transaction import (
    CanonicalTransaction,
    DayState,
    DaySummary,
    InsertResult,
    ReconciliationReport,
    RunMode,
)
from ..store.base import EventStore
from ..utils.business_day import BusinessDayClock, parse_day
from ..utils.exceptions import InsertError
from .index import ExistingIndex, ExistingIndexBuilder
from .insert_gate import InsertGate
from .keys import keys_for_transaction

logger = logging.getLogger(__name__)


def group_by_day(
    candidates: Iterable[CanonicalTransaction],
) -> dict[str, list[CanonicalTransaction]]:
    """Group candidates by business day, preserving source order within a day."""
    by_day: dict[str, list[CanonicalTransaction]] = {}
    for txn in candidates:
        by_day.setdefault(txn.business_day, []).append(txn)
    return by_day


class ReconciliationEngine:
    """
    Main reconciliation engine that orchestrates the backfill process.

    The store handle is passed in explicitly and shared by the index builder
    and the insert gate.
    """

    def __init__(
        self,
        config: ReconConfig,
        store: EventStore,
        clock: Optional[BusinessDayClock] = None,
    ):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration
            store: Event store to read from and write to
            clock: Business-day clock (built from config if omitted)
        """
        self.config = config
        self.store = store
        self.clock = clock or BusinessDayClock(config.business.timezone)
        self.index_builder = ExistingIndexBuilder(store, self.clock, config)
        self.insert_gate = InsertGate(store, self.clock, config)

    def reconcile(
        self,
        candidates: Iterable[CanonicalTransaction],
        mode: RunMode = RunMode.DRY_RUN,
        days: Optional[Iterable[str]] = None,
    ) -> ReconciliationReport:
        """
        Reconcile candidates against the event store.

        Args:
            candidates: Normalized candidate transactions
            mode: DRY_RUN never writes; APPLY inserts missing candidates
            days: Restrict to these business days (default: all found)

        Returns:
            ReconciliationReport with missing candidates and per-day counts

        Raises:
            StoreUnavailable: If the store cannot be reached; aborts the run
        """
        start_time = datetime.now()
        report = ReconciliationReport(mode=mode, started_at=start_time)

        by_day = group_by_day(candidates)
        if days is None:
            selected = sorted(by_day)
        else:
            selected = sorted({parse_day(d).isoformat() for d in days})

        logger.info(
            f"Starting {mode.value} reconciliation: "
            f"{sum(len(by_day.get(d, [])) for d in selected)} candidates over "
            f"{len(selected)} day(s)"
        )

        for day in selected:
            day_candidates = by_day.get(day, [])
            if not day_candidates:
                logger.info(f"{day}: no source rows, skipping")
                continue

            summary = DaySummary(day=day, source_rows=len(day_candidates))
            report.days.append(summary)

            index, missing = self._reconcile_day(day, day_candidates, summary)
            report.missing.extend(missing)

            if mode is RunMode.APPLY:
                report.inserted += self._apply_day(index, missing, summary)

            summary.state = DayState.DONE
            logger.info(
                f"{day}: {summary.source_rows} source rows, "
                f"{summary.existing_records} existing, {summary.missing} missing, "
                f"{summary.inserted} inserted, {summary.skipped} skipped, "
                f"{summary.failed} failed"
            )

        report.processing_time_seconds = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation complete in {report.processing_time_seconds:.2f}s: "
            f"{len(report.missing)} missing, {report.inserted} inserted"
        )
        return report

    def _reconcile_day(
        self,
        day: str,
        candidates: list[CanonicalTransaction],
        summary: DaySummary,
    ) -> tuple[ExistingIndex, list[CanonicalTransaction]]:
        """Build the day's index and collect candidates not found at any tier."""
        index = self.index_builder.build(day)
        summary.state = DayState.INDEX_BUILT
        summary.existing_records = index.record_count
        summary.backfilled_records = index.backfilled_count
        summary.skipped_existing_records = index.skipped_count

        summary.state = DayState.RECONCILING
        missing: list[CanonicalTransaction] = []
        for txn in candidates:
            tier = index.match_tier(keys_for_transaction(txn))
            if tier is None:
                missing.append(txn)
                continue
            summary.matches_by_tier[tier.value] = summary.matches_by_tier.get(tier.value, 0) + 1

        summary.missing = len(missing)
        return index, missing

    def _apply_day(
        self,
        index: ExistingIndex,
        missing: list[CanonicalTransaction],
        summary: DaySummary,
    ) -> int:
        """
        Insert a day's missing candidates.

        Each candidate is re-checked against a run-local copy of the day's
        key sets right before insert; its strict key is added once it is in
        the store, so a repeat later in the batch is skipped.
        """
        seen = index.copy()
        inserted = 0

        for txn in missing:
            keys = keys_for_transaction(txn)
            if seen.match_tier(keys) is not None:
                logger.debug(
                    f"SKIP duplicate in batch: {txn.source_label} row {txn.row_number}"
                )
                summary.skipped += 1
                continue

            try:
                result = self.insert_gate.insert(txn)
            except InsertError as e:
                logger.error(str(e))
                summary.failed += 1
                continue

            seen.strict.add(keys.strict)
            if result is InsertResult.CREATED:
                inserted += 1
            else:
                summary.skipped += 1

        summary.inserted = inserted
        return inserted

    def purge_backfilled(self, day: str) -> int:
        """
        Delete previously backfilled events for a business day.

        Only events whose id carries the configured backfill prefix are
        removed; live events are never touched.

        Returns:
            Number of events deleted
        """
        start, end = self.clock.business_day_to_utc_range(day)
        prefix = self.config.store.event_id_prefix
        deleted = self.store.delete_by_prefix(start, end, f"{prefix}-")
        logger.info(f"{day}: purged {deleted} backfilled events")
        return deleted
