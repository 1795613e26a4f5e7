"""
Field-level normalization helpers.

Shared by the sheet path and the persisted-event path; match keys are only
comparable because both sides go through these exact functions.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable
import math
import re

import pandas as pd

from ..utils.business_day import BusinessDayClock
from ..utils.exceptions import InvalidTimestamp

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_LETTER = re.compile(r"[^a-z\s]")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_DASH_SEPARATOR = re.compile(r"\s+-\s+")


def cell_to_text(value: Any) -> str:
    """Render a raw cell or payload value as trimmed text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def normalize_service(value: Any) -> str:
    """
    Normalize a service descriptor.

    Lowercases, collapses whitespace and strips every non-alphanumeric
    character, so ``"Mani / Pedi  COMBO"`` and ``"mani/pedi combo"`` agree.
    """
    text = _WHITESPACE.sub(" ", cell_to_text(value).lower())
    return _NON_ALNUM.sub("", text)


def normalize_person_name(value: Any) -> str:
    """Lowercase letters and single spaces only."""
    text = _NON_LETTER.sub("", cell_to_text(value).lower())
    return _WHITESPACE.sub(" ", text).strip()


def quantize_money(amount: Decimal) -> Decimal:
    """Round to the cent, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_money(value: Any) -> Decimal:
    """
    Parse a monetary value, defaulting to zero.

    Accepts numbers, currency strings (``"$1,234.50"``) and accounting
    negatives (``"(12.00)"``). Anything unparsable becomes ``0.00``.
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, (int, Decimal)):
        amount = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            return ZERO
        amount = Decimal(str(value))
    else:
        text = cell_to_text(value)
        negative = text.startswith("(") and text.endswith(")")
        cleaned = _NON_NUMERIC.sub("", text)
        if not cleaned:
            return ZERO
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            return ZERO
        if negative:
            amount = -abs(amount)

    if not amount.is_finite():
        return ZERO
    return quantize_money(amount)


def money_cents(amount: Decimal) -> int:
    """Whole cents of an amount, after rounding to the cent."""
    return int(quantize_money(amount) * 100)


def parse_timestamp(
    value: Any,
    clock: BusinessDayClock,
    date_formats: Iterable[str] = (),
) -> datetime:
    """
    Resolve a raw date/time value to an aware UTC instant.

    Strings are first parsed with the explicit formats and read as business
    local time; failing that, a general parse is attempted which honors any
    embedded UTC offset. Naive results are always business-local.

    Args:
        value: Cell value, payload value or datetime
        clock: Business-day clock supplying the local timezone
        date_formats: ``strptime`` formats to try first

    Returns:
        Aware datetime in UTC

    Raises:
        InvalidTimestamp: If no parse succeeds
    """
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            raise InvalidTimestamp("Empty timestamp")
        value = value.to_pydatetime()

    if isinstance(value, datetime):
        aware = value if value.tzinfo is not None else clock.localize(value)
        return aware.astimezone(timezone.utc)

    if isinstance(value, date):
        midnight = datetime(value.year, value.month, value.day)
        return clock.localize(midnight).astimezone(timezone.utc)

    text = _DASH_SEPARATOR.sub(" ", cell_to_text(value))
    if not text:
        raise InvalidTimestamp("Empty timestamp")

    for date_format in date_formats:
        try:
            naive = datetime.strptime(text, date_format)
        except ValueError:
            continue
        return clock.localize(naive).astimezone(timezone.utc)

    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError) as e:
        raise InvalidTimestamp(f"Unparseable timestamp: {text!r}") from e

    if pd.isna(parsed):
        raise InvalidTimestamp(f"Unparseable timestamp: {text!r}")

    result = parsed.to_pydatetime()
    if result.tzinfo is None:
        result = clock.localize(result)
    return result.astimezone(timezone.utc)
