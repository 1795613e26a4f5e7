"""Tests for payload field extraction across historical shapes."""

import pytest

from pos_backfill_recon.config import DEFAULT_PAYLOAD_FIELDS
from pos_backfill_recon.normalization.payload_fields import (
    PayloadFieldExtractor,
    first_match,
    path_extractor,
)


@pytest.fixture
def fields() -> PayloadFieldExtractor:
    return PayloadFieldExtractor(DEFAULT_PAYLOAD_FIELDS)


class TestPathExtractor:
    def test_nested_path(self):
        assert path_extractor("a.b.c")({"a": {"b": {"c": 1}}}) == 1

    def test_missing_or_non_mapping(self):
        assert path_extractor("a.b")({"a": "flat"}) is None
        assert path_extractor("a.b")({}) is None

    def test_first_match_skips_empty(self):
        chain = first_match([path_extractor("x"), path_extractor("y"), path_extractor("z")])
        assert chain({"x": "", "y": None, "z": "found"}) == "found"
        assert chain({}) is None


class TestPayloadShapes:
    def test_top_level(self, fields):
        assert fields.extract({"itemSold": "Gel Manicure"}, "service") == "Gel Manicure"

    def test_nested_under_payload(self, fields):
        payload = {"payload": {"itemSold": "Gel Manicure"}}
        assert fields.extract(payload, "service") == "Gel Manicure"

    def test_synonym(self, fields):
        assert fields.extract({"serviceName": "Pedicure"}, "service") == "Pedicure"
        assert fields.extract({"payload": {"tipAmount": 4}}, "tip") == 4

    def test_top_level_wins(self, fields):
        payload = {"itemSold": "Outer", "payload": {"itemSold": "Inner"}}
        assert fields.extract(payload, "service") == "Outer"

    def test_empty_value_falls_through(self, fields):
        payload = {"itemSold": "  ", "payload": {"itemSold": "Inner"}}
        assert fields.extract(payload, "service") == "Inner"

    def test_zero_is_a_value(self, fields):
        payload = {"tip": 0, "payload": {"tip": 5}}
        assert fields.extract(payload, "tip") == 0

    def test_absent_everywhere(self, fields):
        assert fields.extract({"payload": {}}, "customer_name") is None
        assert fields.extract(None, "service") is None
        assert fields.extract({"itemSold": "x"}, "unknown_field") is None

    def test_alias_chains_are_configurable(self):
        custom = PayloadFieldExtractor({"service": ["data.svc", "legacy"]})
        assert custom.extract({"data": {"svc": "Wax"}}, "service") == "Wax"
        assert custom.extract({"legacy": "Brow"}, "service") == "Brow"
        assert custom.extract({"itemSold": "Gel"}, "service") is None

    def test_extract_all(self, fields):
        extracted = fields.extract_all({"payload": {"itemSold": "Gel", "amountDue": 35}})
        assert set(extracted) == set(DEFAULT_PAYLOAD_FIELDS)
        assert extracted["service"] == "Gel"
        assert extracted["amount_due"] == 35
        assert extracted["customer_name"] is None
