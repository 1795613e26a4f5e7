"""
Match-key construction.

Keys are plain strings compared by set membership. Both the candidate path
and the existing-index path build keys through ``build_match_keys``.
"""

from decimal import Decimal
from typing import Any

from ..models.transaction import CanonicalTransaction, MatchKeys
from ..normalization.text import money_cents, normalize_person_name, normalize_service

# Never present in normalized text
KEY_DELIMITER = "|"


def _join(*parts: Any) -> str:
    return KEY_DELIMITER.join(str(p) for p in parts)


def build_match_keys(
    day: str,
    minute: str,
    service: str,
    amount_due: Decimal,
    tip: Decimal,
    customer_name: str = "",
    provider_name: str = "",
) -> MatchKeys:
    """
    Build the strict, fallback and ultra-fallback keys.

    Args:
        day: Business day (YYYY-MM-DD)
        minute: Business-local time of day (HH:MM)
        service: Raw service descriptor
        amount_due: Amount due
        tip: Tip amount
        customer_name: Raw customer name
        provider_name: Raw provider name

    Returns:
        MatchKeys for the transaction
    """
    normalized_service = normalize_service(service)
    amount = money_cents(amount_due)
    tip_cents = money_cents(tip)

    return MatchKeys(
        strict=_join(
            day,
            minute,
            normalized_service,
            amount,
            tip_cents,
            normalize_person_name(customer_name),
            normalize_person_name(provider_name),
        ),
        fallback=_join(day, minute, normalized_service, amount, tip_cents),
        ultra=_join(day, minute, normalized_service),
    )


def keys_for_transaction(txn: CanonicalTransaction) -> MatchKeys:
    """Match keys of a canonical transaction."""
    return build_match_keys(
        txn.business_day,
        txn.business_minute,
        txn.service,
        txn.amount_due,
        txn.tip,
        txn.customer_name,
        txn.provider_name,
    )
