"""Tests for provider name resolution."""

import pytest

from pos_backfill_recon.normalization.providers import ProviderDirectory, provider_fingerprint

DIRECTORY = {
    "p1": "Mary Betandcourt",
    "p2": "Ana Lopez",
    "p3": "Kim",
}


@pytest.fixture
def directory() -> ProviderDirectory:
    return ProviderDirectory(DIRECTORY)


class TestProviderResolution:
    @pytest.mark.parametrize(
        "name,expected",
        [
            # exact fingerprint
            ("Ana Lopez", "p2"),
            ("ANA  LOPEZ", "p2"),
            ("ana-lopez", "p2"),
            # alias table
            ("Mary Betancourt", "p1"),
            # containment, either direction
            ("Ana", "p2"),
            ("Kimberly Smith", "p3"),
            ("Ana Lopez Garcia", "p2"),
            # unresolved
            ("Zed", None),
            ("", None),
            ("  ", None),
        ],
    )
    def test_resolve(self, directory, name, expected):
        assert directory.resolve(name) == expected

    def test_exact_match_wins_over_containment(self):
        directory = ProviderDirectory({"a": "Kim Lee", "b": "Kim"})
        assert directory.resolve("Kim") == "b"

    def test_alias_table_is_data(self):
        directory = ProviderDirectory({"x": "Jon Smyth"}, aliases={"johnsmith": "jonsmyth"})
        assert directory.resolve("John Smith") == "x"

    def test_empty_aliases_disable_builtin(self):
        directory = ProviderDirectory(DIRECTORY, aliases={})
        assert directory.resolve("Mary Betancourt") is None

    def test_name_for(self, directory):
        assert directory.name_for("p2") == "Ana Lopez"
        assert directory.name_for("missing") is None

    def test_len(self, directory):
        assert len(directory) == 3
        assert len(ProviderDirectory({})) == 0

    def test_fingerprint(self):
        assert provider_fingerprint("  Mary  Bet-ancourt ") == "marybetancourt"
