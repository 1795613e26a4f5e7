"""Normalization of raw transactions into the canonical model."""

from .normalizer import NormalizationResult, TransactionNormalizer
from .payload_fields import PayloadFieldExtractor, first_match, path_extractor
from .providers import ProviderDirectory, provider_fingerprint
from .text import (
    cell_to_text,
    money_cents,
    normalize_person_name,
    normalize_service,
    parse_money,
    parse_timestamp,
)

__all__ = [
    "NormalizationResult",
    "TransactionNormalizer",
    "PayloadFieldExtractor",
    "first_match",
    "path_extractor",
    "ProviderDirectory",
    "provider_fingerprint",
    "cell_to_text",
    "money_cents",
    "normalize_person_name",
    "normalize_service",
    "parse_money",
    "parse_timestamp",
]
