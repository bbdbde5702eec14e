"""Tests for CalculationConfig and its singleton accessor."""

import pytest

from carbonytics.calculation.config import (
    DEFAULT_HIGH_QUALITY_SOURCES,
    DEFAULT_REGION_PRIORITY,
    CalculationConfig,
    get_config,
    reset_config,
    set_config,
)
from carbonytics.exceptions import ConfigurationError


class TestDefaults:

    def test_defaults(self):
        cfg = CalculationConfig()
        assert cfg.local_currency == "EGP"
        assert cfg.region_priority == ["egypt", "global", "mena", "eu", "us"]
        assert cfg.aviation_factor == 0.255
        assert cfg.distance_api_url == "https://airportgap.com/api/airports/distance"
        assert cfg.distance_api_timeout == 10.0
        assert cfg.high_quality_sources == DEFAULT_HIGH_QUALITY_SOURCES
        assert cfg.emissions_decimal_places == 2

    def test_lists_are_not_shared(self):
        cfg = CalculationConfig()
        cfg.region_priority.append("xx")
        assert DEFAULT_REGION_PRIORITY == ["egypt", "global", "mena", "eu", "us"]
        assert CalculationConfig().region_priority == DEFAULT_REGION_PRIORITY


class TestFromEnv:

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("CT_CALC_LOCAL_CURRENCY", "USD")
        monkeypatch.setenv("CT_CALC_REGION_PRIORITY", "eu, global")
        monkeypatch.setenv("CT_CALC_DISTANCE_API_TIMEOUT", "2.5")
        monkeypatch.setenv("CT_CALC_ENABLE_METRICS", "no")
        monkeypatch.setenv("CT_CALC_LOG_LEVEL", "debug")

        cfg = CalculationConfig.from_env()

        assert cfg.local_currency == "USD"
        assert cfg.region_priority == ["eu", "global"]
        assert cfg.distance_api_timeout == 2.5
        assert cfg.enable_metrics is False
        assert cfg.log_level == "DEBUG"

    def test_invalid_number_keeps_default(self, monkeypatch):
        monkeypatch.setenv("CT_CALC_EMISSIONS_DECIMAL_PLACES", "two")
        monkeypatch.setenv("CT_CALC_AVIATION_FACTOR", "n/a")

        cfg = CalculationConfig.from_env()

        assert cfg.emissions_decimal_places == 2
        assert cfg.aviation_factor == 0.255

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("CT_CALC_LOG_LEVEL", "LOUD")
        with pytest.raises(ConfigurationError) as exc_info:
            CalculationConfig.from_env()
        assert "log_level" in exc_info.value.context["errors"]


class TestValidate:

    @pytest.mark.parametrize("field,value", [
        ("distance_api_timeout", 0),
        ("distance_api_timeout", -1.0),
        ("aviation_factor", -0.1),
        ("emissions_decimal_places", -1),
        ("region_priority", []),
        ("region_priority", ["egypt", "mars"]),
    ])
    def test_out_of_range(self, field, value):
        cfg = CalculationConfig(**{field: value})
        with pytest.raises(ConfigurationError) as exc_info:
            cfg.validate()
        assert field in exc_info.value.context["errors"]


class TestSingleton:

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_set_and_reset(self):
        custom = CalculationConfig(local_currency="EUR")
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom

    def test_set_config_validates(self):
        with pytest.raises(ConfigurationError):
            set_config(CalculationConfig(log_level="NOPE"))
