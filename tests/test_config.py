import os
from unittest.mock import patch

import pytest

from clipkeep.config import Settings, _parse_display_count
from clipkeep.errors import ConfigError


class TestParseDisplayCount:
    def test_default_when_not_set(self):
        env = os.environ.copy()
        env.pop("CLIPKEEP_DISPLAY_COUNT", None)
        with patch.dict("os.environ", env, clear=True):
            assert _parse_display_count() == 10

    def test_valid_value(self):
        with patch.dict("os.environ", {"CLIPKEEP_DISPLAY_COUNT": "20"}):
            assert _parse_display_count() == 20

    def test_clamped_below_minimum(self):
        with patch.dict("os.environ", {"CLIPKEEP_DISPLAY_COUNT": "2"}):
            assert _parse_display_count() == 5

    def test_clamped_above_maximum(self):
        with patch.dict("os.environ", {"CLIPKEEP_DISPLAY_COUNT": "100"}):
            assert _parse_display_count() == 50

    def test_invalid_non_integer(self):
        with patch.dict("os.environ", {"CLIPKEEP_DISPLAY_COUNT": "abc"}):
            assert _parse_display_count() == 10


class TestSettingsDefaults:
    def test_defaults(self):
        settings = Settings()
        assert settings.polling_interval_ms == 500
        assert settings.polling_interval == 0.5
        assert settings.max_items == 100
        assert settings.max_age_days == 7
        assert settings.monitoring_enabled is True
        assert settings.allow_passwords is False
        assert settings.sort_by == "accessed"

    def test_to_dict(self):
        assert Settings().to_dict() == {
            "polling_interval_ms": 500,
            "max_items": 100,
            "max_age_days": 7,
            "monitoring_enabled": True,
            "allow_passwords": False,
            "sort_by": "accessed",
        }


class TestSettingsUpdate:
    def test_full_update(self):
        settings = Settings()
        settings.update({
            "polling_interval_ms": 1000,
            "max_items": 200,
            "max_age_days": 14,
            "monitoring_enabled": False,
            "allow_passwords": True,
            "sort_by": "copied",
        })
        assert settings.polling_interval == 1.0
        assert settings.max_items == 200
        assert settings.max_age_days == 14
        assert settings.monitoring_enabled is False
        assert settings.allow_passwords is True
        assert settings.sort_by == "copied"

    def test_partial_update(self):
        settings = Settings()
        settings.update({"max_age_days": 30})
        assert settings.max_age_days == 30
        assert settings.max_items == 100

    def test_strings_coerced(self):
        settings = Settings()
        settings.update({"max_items": " 42 ", "allow_passwords": "yes", "monitoring_enabled": "off", "sort_by": "COPIED"})
        assert settings.max_items == 42
        assert settings.allow_passwords is True
        assert settings.monitoring_enabled is False
        assert settings.sort_by == "copied"

    @pytest.mark.parametrize(
        "values",
        [
            {"max_items": "invalid"},
            {"max_items": 0},
            {"max_age_days": -3},
            {"polling_interval_ms": True},
            {"polling_interval_ms": 1.5},
            {"monitoring_enabled": "maybe"},
            {"allow_passwords": 1},
            {"sort_by": "random"},
            {"global_hotkey": "Cmd+V"},
        ],
    )
    def test_malformed_value_rejected(self, values):
        settings = Settings()
        with pytest.raises(ConfigError):
            settings.update(values)
        assert settings == Settings()

    def test_all_or_nothing(self):
        settings = Settings()
        with pytest.raises(ConfigError):
            settings.update({"max_items": 50, "max_age_days": "soon"})
        assert settings.max_items == 100
        assert settings.max_age_days == 7

    def test_from_dict(self):
        settings = Settings.from_dict({"max_items": 3})
        assert settings.max_items == 3
