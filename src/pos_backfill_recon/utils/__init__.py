"""Utility modules."""

from .business_day import BusinessDayClock, parse_day
from .exceptions import (
    ReconciliationError,
    ConfigurationError,
    SheetParseError,
    InvalidTimestamp,
    RowRejected,
    SummaryRow,
    MissingField,
    MalformedExistingRecord,
    StoreError,
    StoreUnavailable,
    InsertConflict,
    InsertError,
)
from .logging_config import resolve_level, setup_logging

__all__ = [
    "BusinessDayClock",
    "parse_day",
    "ReconciliationError",
    "ConfigurationError",
    "SheetParseError",
    "InvalidTimestamp",
    "RowRejected",
    "SummaryRow",
    "MissingField",
    "MalformedExistingRecord",
    "StoreError",
    "StoreUnavailable",
    "InsertConflict",
    "InsertError",
    "resolve_level",
    "setup_logging",
]
