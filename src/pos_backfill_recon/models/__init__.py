"""Data models for reconciliation."""

from .transaction import (
    CanonicalTransaction,
    MatchKeys,
    MatchTier,
    RunMode,
    DayState,
    InsertResult,
    DaySummary,
    ReconciliationReport,
)

__all__ = [
    "CanonicalTransaction",
    "MatchKeys",
    "MatchTier",
    "RunMode",
    "DayState",
    "InsertResult",
    "DaySummary",
    "ReconciliationReport",
]
