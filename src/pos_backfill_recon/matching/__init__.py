"""Match keys, existing-record index and the reconciliation driver."""

from .engine import ReconciliationEngine, group_by_day
from .index import ExistingIndex, ExistingIndexBuilder, ExistingRecordFields
from .insert_gate import InsertGate
from .keys import KEY_DELIMITER, build_match_keys, keys_for_transaction

__all__ = [
    "ReconciliationEngine",
    "group_by_day",
    "ExistingIndex",
    "ExistingIndexBuilder",
    "ExistingRecordFields",
    "InsertGate",
    "KEY_DELIMITER",
    "build_match_keys",
    "keys_for_transaction",
]
