"""Tests for match-key construction."""

from decimal import Decimal

from pos_backfill_recon.matching.keys import KEY_DELIMITER, build_match_keys, keys_for_transaction


class TestBuildMatchKeys:
    def test_key_shapes(self):
        keys = build_match_keys(
            "2025-12-12",
            "14:05",
            "Gel Manicure",
            Decimal("35.00"),
            Decimal("5.00"),
            "Jane Doe",
            "Ana Lopez",
        )
        assert keys.strict == "2025-12-12|14:05|gelmanicure|3500|500|jane doe|ana lopez"
        assert keys.fallback == "2025-12-12|14:05|gelmanicure|3500|500"
        assert keys.ultra == "2025-12-12|14:05|gelmanicure"

    def test_customer_difference_changes_only_strict(self):
        a = build_match_keys("2025-12-12", "14:05", "Gel", Decimal("35"), Decimal("5"), "Jane")
        b = build_match_keys("2025-12-12", "14:05", "Gel", Decimal("35"), Decimal("5"), "Janet")
        assert a.strict != b.strict
        assert a.fallback == b.fallback
        assert a.ultra == b.ultra

    def test_amount_difference_keeps_ultra(self):
        a = build_match_keys("2025-12-12", "14:05", "Gel", Decimal("35"), Decimal("0"))
        b = build_match_keys("2025-12-12", "14:05", "Gel", Decimal("0"), Decimal("0"))
        assert a.fallback != b.fallback
        assert a.ultra == b.ultra

    def test_sub_cent_amounts_round_before_keying(self):
        a = build_match_keys("2025-12-12", "14:05", "Gel", Decimal("35.004"), Decimal("0"))
        b = build_match_keys("2025-12-12", "14:05", "Gel", Decimal("35.00"), Decimal("0"))
        assert a.fallback == b.fallback

    def test_delimiter_never_in_normalized_text(self):
        keys = build_match_keys("2025-12-12", "14:05", "A|B", Decimal("1"), Decimal("0"), "x|y")
        assert keys.ultra.count(KEY_DELIMITER) == 2
        assert keys.strict.count(KEY_DELIMITER) == 6

    def test_service_spelling_variants_collide(self):
        a = build_match_keys("2025-12-12", "14:05", "Mani / Pedi  COMBO", Decimal("60"), Decimal("0"))
        b = build_match_keys("2025-12-12", "14:05", "mani/pedi combo", Decimal("60"), Decimal("0"))
        assert a == b


class TestKeysForTransaction:
    def test_uses_business_day_and_minute(self, make_txn):
        keys = keys_for_transaction(make_txn())
        assert keys.ultra == "2025-12-12|14:05|gelmanicure"
        assert keys.strict.endswith("|jane doe|ana lopez")
