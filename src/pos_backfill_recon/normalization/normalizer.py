"""
Transaction normalizer.

Turns raw field bags (from a tabular export row or an event payload) into
CanonicalTransaction values. Pure apart from logging.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Protocol
import logging

from ..config import ReconConfig
from ..models.transaction import CanonicalTransaction
from ..utils.business_day import BusinessDayClock
from ..utils.exceptions import (
    InvalidTimestamp,
    MissingField,
    RowRejected,
    SummaryRow,
)
from .payload_fields import PayloadFieldExtractor
from .providers import ProviderDirectory
from .text import ZERO, cell_to_text, parse_money, parse_timestamp

logger = logging.getLogger(__name__)

# Payload field name -> canonical row field name
_PAYLOAD_TO_ROW_FIELDS = {
    "service": "item_sold",
    "timestamp": "checkout_date",
}


class RawRow(Protocol):
    """A tabular source row as produced by the sheet parser."""

    source_label: str
    row_number: int

    def to_fields(self, columns: Mapping[str, int]) -> dict[str, Any]: ...


@dataclass
class NormalizationResult:
    """Candidates produced from a batch of rows, with rejection counts."""

    transactions: list[CanonicalTransaction] = field(default_factory=list)
    rejected: dict[str, int] = field(default_factory=dict)

    @property
    def rejected_count(self) -> int:
        return sum(self.rejected.values())

    def _reject(self, reason: str) -> None:
        self.rejected[reason] = self.rejected.get(reason, 0) + 1


class TransactionNormalizer:
    """Normalizes raw transactions into the canonical model."""

    def __init__(
        self,
        config: ReconConfig,
        clock: BusinessDayClock,
        providers: Optional[ProviderDirectory] = None,
    ):
        """
        Initialize the normalizer.

        Args:
            config: Application configuration
            clock: Business-day clock
            providers: Provider directory (built from config if omitted)
        """
        self.config = config
        self.clock = clock
        norm_config = config.normalization
        self.date_formats = list(norm_config.date_formats)
        self.summary_labels = {label.strip().lower() for label in norm_config.summary_labels}
        self.summary_prefixes = tuple(p.strip().lower() for p in norm_config.summary_prefixes)
        self.unknown_provider_name = norm_config.unknown_provider_name
        self.providers = providers or ProviderDirectory(
            norm_config.providers, norm_config.provider_aliases
        )
        self.payload_fields = PayloadFieldExtractor(config.payload_fields)

    def is_summary_label(self, service: str) -> bool:
        """Whether a descriptor marks a subtotal/total/section line."""
        lowered = service.strip().lower()
        return lowered in self.summary_labels or lowered.startswith(self.summary_prefixes)

    def normalize(
        self,
        fields: Mapping[str, Any],
        source_label: str = "",
        row_number: int = 0,
    ) -> CanonicalTransaction:
        """
        Normalize one raw field bag.

        Args:
            fields: Canonical field name -> raw value
            source_label: Batch label of the source
            row_number: 1-based position in the source

        Returns:
            Canonical transaction

        Raises:
            SummaryRow: If the row is a total/section line
            MissingField: If no service descriptor is present
            InvalidTimestamp: If the checkout date cannot be parsed
        """
        service = cell_to_text(fields.get("item_sold"))
        if service and self.is_summary_label(service):
            raise SummaryRow(f"Row {row_number}: summary line '{service}'")
        if not service:
            raise MissingField(f"Row {row_number}: no service descriptor")

        checkout_at = parse_timestamp(fields.get("checkout_date"), self.clock, self.date_formats)

        appointment_at = None
        if cell_to_text(fields.get("appointment_date")):
            try:
                appointment_at = parse_timestamp(
                    fields.get("appointment_date"), self.clock, self.date_formats
                )
            except InvalidTimestamp:
                logger.debug(f"Row {row_number}: ignoring unparseable appointment date")

        provider_name, provider_id = self._resolve_provider(
            cell_to_text(fields.get("provider_name")),
            cell_to_text(fields.get("provider_id")) or None,
        )

        transaction_ref = cell_to_text(fields.get("transaction_id"))
        if not transaction_ref:
            transaction_ref = f"{source_label}-row-{row_number}"

        return CanonicalTransaction(
            checkout_at=checkout_at,
            business_day=self.clock.to_business_day(checkout_at),
            business_minute=self.clock.to_business_minute(checkout_at),
            service=service,
            amount_due=parse_money(fields.get("amount_due")),
            tip=parse_money(fields.get("tip")),
            customer_name=cell_to_text(fields.get("customer_name")),
            provider_name=provider_name,
            provider_id=provider_id,
            transaction_ref=transaction_ref,
            source_label=source_label,
            row_number=row_number,
            cash_tendered=max(parse_money(fields.get("cash")), ZERO),
            card_amount=parse_money(fields.get("credit_card")),
            gift_card_redemption=parse_money(fields.get("gift_card")),
            change_due=parse_money(fields.get("change_due")),
            checked_out_by=cell_to_text(fields.get("checked_out_by")),
            sale_source=cell_to_text(fields.get("sale_source")),
            charge_method=cell_to_text(fields.get("charge_method")),
            appointment_at=appointment_at,
        )

    def _resolve_provider(
        self, name: str, provider_id: Optional[str]
    ) -> tuple[str, Optional[str]]:
        """Fill in the provider identifier from the directory when possible."""
        if provider_id:
            return name or self.providers.name_for(provider_id) or "", provider_id

        if not len(self.providers):
            return name, None

        resolved = self.providers.resolve(name)
        if resolved:
            return name, resolved

        logger.debug(f"Provider '{name}' not in directory")
        return self.unknown_provider_name, None

    def normalize_rows(self, rows: Iterable[RawRow]) -> NormalizationResult:
        """
        Normalize a batch of sheet rows.

        Rejected rows are counted by reason and skipped; they never abort
        the batch.

        Args:
            rows: Parsed sheet rows

        Returns:
            NormalizationResult with candidates and rejection counts
        """
        result = NormalizationResult()
        columns = self.config.input.sheet.columns

        for row in rows:
            try:
                txn = self.normalize(
                    row.to_fields(columns),
                    source_label=row.source_label,
                    row_number=row.row_number,
                )
            except RowRejected as e:
                logger.debug(f"{row.source_label}: {e}")
                result._reject(e.reason)
                continue
            except InvalidTimestamp as e:
                logger.warning(f"{row.source_label} row {row.row_number}: {e}")
                result._reject("invalid_timestamp")
                continue
            result.transactions.append(txn)

        if result.rejected:
            logger.info(
                f"Normalized {len(result.transactions)} rows, "
                f"rejected {result.rejected_count}: {result.rejected}"
            )
        return result

    def normalize_payload(
        self,
        payload: Mapping[str, Any],
        source_label: str = "",
        row_number: int = 0,
    ) -> CanonicalTransaction:
        """
        Normalize a live event payload of any known shape.

        Args:
            payload: Event payload (wrapped or bare)
            source_label: Batch label recorded on the result
            row_number: Position recorded on the result

        Returns:
            Canonical transaction
        """
        extracted = self.payload_fields.extract_all(payload)
        fields = {
            _PAYLOAD_TO_ROW_FIELDS.get(name, name): value for name, value in extracted.items()
        }
        return self.normalize(fields, source_label=source_label, row_number=row_number)
