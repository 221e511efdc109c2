"""
Tests for engine settings loading and validation.

Covers:
- Bundled defaults
- Overrides from a YAML file, flat or nested under engine_settings
- Rejection of unknown keys and out-of-range values
- Load failures and the CLOSE_CONFIG_TRACE record
"""

from pathlib import Path

import pytest

from close_config import (
    DEFAULT_SETTINGS_PATH,
    EngineSettings,
    compute_checksum,
    get_engine_settings,
    load_yaml_file,
    parse_settings,
)
from close_kernel.exceptions import ConfigLoadError, InvalidSettingError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(text)
    return path


class TestDefaults:
    """Tests for the bundled defaults file."""

    def test_bundled_file_matches_schema_defaults(self):
        assert DEFAULT_SETTINGS_PATH.exists()
        assert get_engine_settings() == EngineSettings()

    def test_schema_defaults(self):
        settings = EngineSettings()

        assert settings.default_debt_term_months == 60
        assert settings.line_of_credit_horizon_months == 120
        assert settings.default_straight_line_tax_life_months == 60
        assert settings.bonus_remainder_macrs_class == "macrs_5"


class TestParseSettings:
    """Tests for dict parsing and validation."""

    def test_partial_override_keeps_defaults(self):
        settings = parse_settings({"default_debt_term_months": 36})

        assert settings.default_debt_term_months == 36
        assert settings.line_of_credit_horizon_months == 120

    def test_nested_block(self):
        settings = parse_settings({
            "engine_settings": {"bonus_remainder_macrs_class": "macrs_7"},
        })

        assert settings.bonus_remainder_macrs_class == "macrs_7"

    def test_empty_nested_block(self):
        assert parse_settings({"engine_settings": None}) == EngineSettings()

    @pytest.mark.parametrize("block", [["default_debt_term_months"], "macrs_7", 36])
    def test_non_mapping_block_rejected(self, block):
        with pytest.raises(InvalidSettingError) as exc_info:
            parse_settings({"engine_settings": block})

        assert exc_info.value.key == "engine_settings"
        assert exc_info.value.reason == "must be a mapping"

    def test_non_mapping_block_in_file(self, tmp_path):
        path = _write(tmp_path, "engine_settings:\n  - default_debt_term_months\n")

        with pytest.raises(InvalidSettingError):
            get_engine_settings(path)

    def test_unknown_key_rejected(self):
        with pytest.raises(InvalidSettingError) as exc_info:
            parse_settings({"default_lease_term": 12})

        assert exc_info.value.key == "default_lease_term"
        assert exc_info.value.code == "INVALID_SETTING"

    @pytest.mark.parametrize("value", [0, -12, "60", 1.5, True])
    def test_bad_month_count_rejected(self, value):
        with pytest.raises(InvalidSettingError):
            parse_settings({"line_of_credit_horizon_months": value})

    def test_bad_macrs_class_rejected(self):
        with pytest.raises(InvalidSettingError):
            parse_settings({"bonus_remainder_macrs_class": "macrs_39"})


class TestLoadFromFile:
    """Tests for YAML loading."""

    def test_override_file(self, tmp_path):
        path = _write(tmp_path, "engine_settings:\n  default_debt_term_months: 84\n")

        settings = get_engine_settings(path)

        assert settings.default_debt_term_months == 84

    def test_empty_file_gives_defaults(self, tmp_path):
        path = _write(tmp_path, "")

        assert get_engine_settings(path) == EngineSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigLoadError) as exc_info:
            load_yaml_file(tmp_path / "absent.yaml")

        assert exc_info.value.code == "CONFIG_LOAD_FAILED"

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "engine_settings: [unclosed\n")

        with pytest.raises(ConfigLoadError):
            load_yaml_file(path)

    def test_non_mapping_root(self, tmp_path):
        path = _write(tmp_path, "- 1\n- 2\n")

        with pytest.raises(ConfigLoadError):
            load_yaml_file(path)

    def test_config_trace_logged(self, tmp_path, captured_logs):
        path = _write(tmp_path, "default_debt_term_months: 24\n")

        settings = get_engine_settings(path)

        traces = captured_logs.events("CLOSE_CONFIG_TRACE")
        assert len(traces) == 1
        assert traces[0]["settings_path"] == str(path)
        assert traces[0]["checksum"] == compute_checksum(settings.to_dict())


class TestChecksum:
    """Tests for settings checksums."""

    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_value_sensitive(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
