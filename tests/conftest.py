"""Shared fixtures for the reconciliation tests."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional
import logging

import pytest

from pos_backfill_recon.config import ReconConfig
from pos_backfill_recon.models.transaction import CanonicalTransaction
from pos_backfill_recon.normalization.normalizer import TransactionNormalizer
from pos_backfill_recon.store.base import PersistedEvent
from pos_backfill_recon.store.memory import InMemoryEventStore
from pos_backfill_recon.utils.business_day import BusinessDayClock
from pos_backfill_recon.utils.logging_config import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_app_logger():
    """CLI runs attach handlers to streams that close with the runner."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def config() -> ReconConfig:
    return ReconConfig()


@pytest.fixture
def clock() -> BusinessDayClock:
    return BusinessDayClock("America/New_York")


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def normalizer(config, clock) -> TransactionNormalizer:
    return TransactionNormalizer(config, clock)


@pytest.fixture
def make_txn(clock):
    """Factory for candidates at a business-local wall-clock time."""

    def factory(
        local: str = "2025-12-12 14:05",
        service: str = "Gel Manicure",
        amount_due: str = "35.00",
        tip: str = "5.00",
        customer_name: str = "Jane Doe",
        provider_name: str = "Ana Lopez",
        transaction_ref: str = "T1",
        source_label: str = "export",
        row_number: int = 24,
        **extra: Any,
    ) -> CanonicalTransaction:
        checkout_at = clock.localize(datetime.strptime(local, "%Y-%m-%d %H:%M")).astimezone(
            timezone.utc
        )
        return CanonicalTransaction(
            checkout_at=checkout_at,
            business_day=clock.to_business_day(checkout_at),
            business_minute=clock.to_business_minute(checkout_at),
            service=service,
            amount_due=Decimal(amount_due),
            tip=Decimal(tip),
            customer_name=customer_name,
            provider_name=provider_name,
            transaction_ref=transaction_ref,
            source_label=source_label,
            row_number=row_number,
            **extra,
        )

    return factory


@pytest.fixture
def make_event(clock):
    """Factory for persisted events bucketed at a business day's start."""

    def factory(
        event_id: str,
        payload: dict[str, Any],
        day: str = "2025-12-12",
        stored_at: Optional[datetime] = None,
    ) -> PersistedEvent:
        return PersistedEvent(
            event_id=event_id,
            stored_at=stored_at or clock.business_day_start(day),
            payload=payload,
        )

    return factory


def live_payload(
    service: str = "Gel Manicure",
    transaction_date: str = "2025-12-12T19:05:00.000Z",
    amount_due: Any = 35,
    tip: Any = 5,
    customer_name: str = "Jane Doe",
    provider_name: str = "Ana Lopez",
) -> dict[str, Any]:
    """A live webhook event in the wrapped shape."""
    return {
        "id": "evt",
        "type": "transaction",
        "action": "created",
        "payload": {
            "itemSold": service,
            "transactionDate": transaction_date,
            "amountDue": amount_due,
            "tip": tip,
            "customerName": customer_name,
            "serviceProviderName": provider_name,
        },
    }
