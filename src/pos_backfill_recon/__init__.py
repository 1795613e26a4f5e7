"""Point-of-sale transaction reconciliation and backfill."""

__version__ = "0.1.0"
