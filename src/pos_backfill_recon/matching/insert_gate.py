"""
Idempotent insert gate.

Writes a missing candidate to the event store under a deterministic id, so
re-running over the same source can only ever collide with itself.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
import logging
import re

from ..config import ReconConfig
from ..models.transaction import CanonicalTransaction, InsertResult
from ..store.base import EventStore, PersistedEvent
from ..utils.business_day import BusinessDayClock
from ..utils.exceptions import InsertConflict, InsertError, StoreError, StoreUnavailable

logger = logging.getLogger(__name__)

_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _SLUG_CHARS.sub("-", value.strip().lower()).strip("-")


def _money(value: Decimal) -> float:
    return float(value)


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class InsertGate:
    """Creates events for missing transactions, tolerating duplicates."""

    def __init__(self, store: EventStore, clock: BusinessDayClock, config: ReconConfig):
        """
        Initialize the gate.

        Args:
            store: Event store to write to
            clock: Business-day clock
            config: Application configuration
        """
        self.store = store
        self.clock = clock
        self.store_config = config.store

    def event_id_for(self, txn: CanonicalTransaction) -> str:
        """Deterministic storage id: prefix, batch, natural reference, row."""
        return (
            f"{self.store_config.event_id_prefix}-{txn.source_label}-"
            f"{txn.transaction_ref}-{txn.row_number}"
        )

    def build_payload(self, txn: CanonicalTransaction, event_id: str) -> dict[str, Any]:
        """
        Event payload in the webhook wrapper shape.

        The inner payload carries every field the index builder reads back,
        so a later run recognizes the event at the strict tier.
        """
        batch = txn.source_label
        appointment_ref = txn.appointment_at or txn.checkout_at
        body: dict[str, Any] = {
            "tax": "0",
            "tip": _money(txn.tip),
            "itemSold": txn.service,
            "quantity": 1,
            "amountDue": _money(txn.amount_due),
            "changeDue": _money(txn.change_due),
            "cashAmount": _money(txn.cash_tendered),
            "amountCash": _money(txn.cash_tendered),
            "ccAmount": _money(txn.card_amount),
            "cardAmount": _money(txn.card_amount),
            "ccType": txn.charge_method or "Manual",
            "gcRedemption": _money(txn.gift_card_redemption),
            "tenderAmount": _money(txn.tender_total),
            "totalAmount": _money(txn.tender_total),
            "customerName": txn.customer_name,
            "customerId": (
                f"{batch}-customer-{slugify(txn.customer_name) or txn.row_number}"
            ),
            "serviceProviderName": txn.provider_name,
            "serviceProviderId": txn.provider_id or "",
            "transactionId": txn.transaction_ref,
            "transactionDate": _iso(txn.checkout_at),
            "appointmentId": f"{batch}-appt-{slugify(_iso(appointment_ref))}",
            "userPaymentId": f"{batch}-payment-{txn.row_number}",
            "userPaymentsMstId": f"{batch}-mst-{txn.row_number}",
            "createdBy": txn.checked_out_by or "manual-upload",
            "source": txn.sale_source or "Manual",
            "purchaseType": "Service",
            "businessId": self.store_config.business_id,
            "businessGroupId": self.store_config.business_id,
        }
        return {
            "id": event_id,
            "type": "transaction",
            "action": "created",
            "payload": body,
            "createdDate": _iso(txn.checkout_at),
        }

    def build_event(self, txn: CanonicalTransaction) -> PersistedEvent:
        """Persisted event for a candidate, bucketed at its business-day start."""
        event_id = self.event_id_for(txn)
        return PersistedEvent(
            event_id=event_id,
            stored_at=self.clock.business_day_start(txn.business_day),
            payload=self.build_payload(txn, event_id),
            created_date=txn.checkout_at,
            entity_type="transaction",
            action="created",
            business_ids=[self.store_config.business_id],
            headers={"x-manual-upload": txn.source_label},
            source_ip=self.store_config.business_id,
            user_agent=self.store_config.user_agent,
        )

    def insert(self, txn: CanonicalTransaction) -> InsertResult:
        """
        Insert a transaction exactly once.

        Args:
            txn: Candidate to persist

        Returns:
            CREATED, or ALREADY_EXISTS if the id was already taken

        Raises:
            StoreUnavailable: If the store cannot be reached
            InsertError: For any other failure on this record
        """
        event = self.build_event(txn)
        try:
            self.store.create(event)
        except InsertConflict:
            logger.debug(f"Event already exists: {event.event_id}")
            return InsertResult.ALREADY_EXISTS
        except StoreUnavailable:
            raise
        except StoreError as e:
            raise InsertError(f"Failed to insert {event.event_id}: {e}") from e

        logger.debug(f"Inserted event {event.event_id}")
        return InsertResult.CREATED
