"""Data models for candidate transactions, match keys and run results."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class RunMode(Enum):
    """Whether a reconciliation run may write to the store."""

    DRY_RUN = "dry-run"
    APPLY = "apply"


class MatchTier(Enum):
    """Match key specificity tiers, most specific first."""

    STRICT = "strict"
    FALLBACK = "fallback"
    ULTRA = "ultra"


class DayState(Enum):
    """Progress of a single business day within a run."""

    PENDING = "pending"
    INDEX_BUILT = "index_built"
    RECONCILING = "reconciling"
    DONE = "done"


class InsertResult(Enum):
    """Outcome of an idempotent insert."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class CanonicalTransaction:
    """
    Canonical in-memory form of a point-of-sale transaction.

    Both tabular rows and event payloads are normalized into this shape so
    that match keys are built the same way on either side.
    """

    # Checkout instant (aware, UTC)
    checkout_at: datetime

    # Business-local day (YYYY-MM-DD) and minute (HH:MM) of checkout_at
    business_day: str
    business_minute: str

    # Service descriptor as it appeared in the source
    service: str

    # Money, quantized to cents
    amount_due: Decimal
    tip: Decimal

    customer_name: str = ""
    provider_name: str = ""
    provider_id: Optional[str] = None

    # Natural key from the source; feeds the storage identifier only
    transaction_ref: str = ""

    # Batch label (e.g. export file stem) and 1-based source row
    source_label: str = ""
    row_number: int = 0

    # Tender details carried into the persisted payload
    cash_tendered: Decimal = Decimal("0.00")
    card_amount: Decimal = Decimal("0.00")
    gift_card_redemption: Decimal = Decimal("0.00")
    change_due: Decimal = Decimal("0.00")
    checked_out_by: str = ""
    sale_source: str = ""
    charge_method: str = ""
    appointment_at: Optional[datetime] = None

    @property
    def tender_total(self) -> Decimal:
        """Cash plus card tendered."""
        return self.cash_tendered + self.card_amount


@dataclass(frozen=True)
class MatchKeys:
    """The three match keys of one transaction."""

    strict: str
    fallback: str
    ultra: str


@dataclass
class DaySummary:
    """Per-day counts reported by a reconciliation run."""

    day: str
    source_rows: int = 0
    existing_records: int = 0
    backfilled_records: int = 0
    skipped_existing_records: int = 0
    missing: int = 0
    inserted: int = 0
    skipped: int = 0
    failed: int = 0
    matches_by_tier: dict[str, int] = field(default_factory=dict)
    state: DayState = DayState.PENDING

    @property
    def already_present(self) -> int:
        """Source rows found in the store at any tier."""
        return self.source_rows - self.missing


@dataclass
class ReconciliationReport:
    """Result of one reconciliation run."""

    mode: RunMode
    missing: list[CanonicalTransaction] = field(default_factory=list)
    inserted: int = 0
    days: list[DaySummary] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    processing_time_seconds: float = 0.0

    @property
    def skipped(self) -> int:
        return sum(d.skipped for d in self.days)

    @property
    def failed(self) -> int:
        return sum(d.failed for d in self.days)

    @property
    def source_rows(self) -> int:
        return sum(d.source_rows for d in self.days)

    def day(self, day: str) -> Optional[DaySummary]:
        """Summary for a given business day, if it was processed."""
        return next((d for d in self.days if d.day == day), None)
