"""Tests for configuration loading."""

import logging

import pytest
import yaml

from pos_backfill_recon.config import (
    DEFAULT_PAYLOAD_FIELDS,
    ReconConfig,
    _deep_merge,
    generate_default_config,
    get_default_config,
    load_config,
)
from pos_backfill_recon.utils.exceptions import ConfigurationError
from pos_backfill_recon.utils.logging_config import LOGGER_NAME, resolve_level, setup_logging


class TestDefaults:
    def test_defaults(self):
        config = load_config(None)
        assert config.business.timezone == "America/New_York"
        assert config.input.sheet.xlsx_header_row == 23
        assert config.input.sheet.columns["item_sold"] == 6
        assert config.normalization.provider_aliases == {"marybetancourt": "marybetandcourt"}
        assert config.store.event_id_prefix == "manual-backfill"
        assert config.payload_fields == DEFAULT_PAYLOAD_FIELDS
        assert config.config_file_path is None

    def test_default_dict_matches_model_defaults(self):
        from_dict = ReconConfig(**get_default_config())
        assert from_dict.model_dump() == ReconConfig().model_dump()


class TestLoadConfig:
    def test_yaml_overrides_are_merged(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.dump(
                {
                    "business": {"timezone": "America/Chicago"},
                    "normalization": {"providers": {"p1": "Ana Lopez"}},
                    "input": {"sheet": {"columns": {"item_sold": 7}}},
                }
            )
        )

        config = load_config(path)

        assert config.business.timezone == "America/Chicago"
        assert config.normalization.providers == {"p1": "Ana Lopez"}
        assert config.normalization.summary_labels == ["total", "redeemed", "money earned"]
        assert config.input.sheet.columns["item_sold"] == 7
        assert config.input.sheet.columns["checkout_date"] == 1
        assert config.config_file_path == str(path)

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path).store.database_url == "sqlite:///pos_events.db"

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("business: [unclosed")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_setting(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"input": {"sheet": {"xlsx_header_row": "twenty"}}}))
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_lists_replace(self):
        merged = _deep_merge({"a": [1, 2], "b": {"c": 1, "d": 2}}, {"a": [3], "b": {"d": 5}})
        assert merged == {"a": [3], "b": {"c": 1, "d": 5}}

    def test_generated_file_round_trips(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        generate_default_config(path)

        text = path.read_text()
        assert text.startswith("# POS transaction backfill configuration")
        assert "xlsx header on row 23" in text
        assert "#    6  item_sold" in text
        loaded = load_config(path)
        assert loaded.model_dump(exclude={"config_file_path"}) == ReconConfig().model_dump(
            exclude={"config_file_path"}
        )


class TestLogging:
    def test_setup_does_not_stack_handlers(self, tmp_path):
        setup_logging(logging.DEBUG)
        logger = setup_logging(logging.INFO, log_file=tmp_path / "logs" / "recon.log")

        assert logger.name == LOGGER_NAME
        assert len(logger.handlers) == 2
        assert logger.handlers[0].level == logging.INFO
        # the file handler receives everything
        assert logger.level == logging.DEBUG
        assert (tmp_path / "logs").is_dir()

    def test_level_names_from_config(self):
        assert setup_logging("warning").level == logging.WARNING
        assert resolve_level("Debug") == logging.DEBUG
        assert resolve_level(logging.ERROR) == logging.ERROR

    def test_unknown_level_name(self):
        with pytest.raises(ConfigurationError):
            resolve_level("chatty")
