# -*- coding: utf-8 -*-
"""
Calculation Engine Configuration

Centralized configuration for the emission calculation engine covering:
- Local currency for spend-based calculations
- Regional factor search priority
- Aviation factor used for business travel
- Airport distance API endpoint, key and timeout
- High-quality emission factor sources
- Reporting precision
- Prometheus metrics toggle and log level

All settings can be overridden via environment variables with the
``CT_CALC_`` prefix (e.g. ``CT_CALC_LOCAL_CURRENCY``,
``CT_CALC_DISTANCE_API_TIMEOUT``). List values are comma separated.

Example:
    >>> from carbonytics.calculation.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.local_currency, cfg.region_priority)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, List, Optional

from carbonytics.calculation.models import Region
from carbonytics.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "CT_CALC_"

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_REGION_PRIORITY = ["egypt", "global", "mena", "eu", "us"]
DEFAULT_HIGH_QUALITY_SOURCES = ["DEFRA", "IPCC", "IEA", "EEHC", "EPA"]


# ---------------------------------------------------------------------------
# CalculationConfig
# ---------------------------------------------------------------------------


@dataclass
class CalculationConfig:
    """Complete configuration for the calculation engine.

    Attributes:
        local_currency: Currency that needs no conversion in spend-based mode.
        region_priority: Ordered regions searched by the factor selector.
        aviation_factor: kg CO2e per passenger-km for flights.
        distance_api_url: Airport distance lookup endpoint.
        distance_api_key: Optional bearer token for the distance API.
        distance_api_timeout: Seconds before the HTTP client gives up.
        high_quality_sources: Source markers that earn no quality penalty.
        emissions_decimal_places: Precision of reported emissions.
        enable_metrics: Whether to record Prometheus metrics.
        log_level: Logging level for the ``carbonytics`` logger.
    """

    # -- Spend-based ---------------------------------------------------------
    local_currency: str = "EGP"

    # -- Factor selection ----------------------------------------------------
    region_priority: List[str] = field(
        default_factory=lambda: list(DEFAULT_REGION_PRIORITY)
    )

    # -- Business travel -----------------------------------------------------
    aviation_factor: float = 0.255
    distance_api_url: str = "https://airportgap.com/api/airports/distance"
    distance_api_key: Optional[str] = None
    distance_api_timeout: float = 10.0

    # -- Quality assessment --------------------------------------------------
    high_quality_sources: List[str] = field(
        default_factory=lambda: list(DEFAULT_HIGH_QUALITY_SOURCES)
    )

    # -- Reporting -----------------------------------------------------------
    emissions_decimal_places: int = 2

    # -- Observability -------------------------------------------------------
    enable_metrics: bool = True
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> CalculationConfig:
        """Build a CalculationConfig from environment variables.

        Every field can be overridden via ``CT_CALC_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        Unparseable numbers log a warning and keep the default.

        Returns:
            Populated CalculationConfig instance.
        """
        prefix = _ENV_PREFIX
        defaults = cls()

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %.3f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: Optional[str]) -> Optional[str]:
            val = _env(name)
            if val is None:
                return default
            return val

        def _list(name: str, default: List[str]) -> List[str]:
            val = _env(name)
            if val is None:
                return default
            items = [item.strip() for item in val.split(",") if item.strip()]
            return items or default

        config = cls(
            local_currency=_str("LOCAL_CURRENCY", defaults.local_currency),
            region_priority=_list("REGION_PRIORITY", defaults.region_priority),
            aviation_factor=_float("AVIATION_FACTOR", defaults.aviation_factor),
            distance_api_url=_str("DISTANCE_API_URL", defaults.distance_api_url),
            distance_api_key=_str("DISTANCE_API_KEY", defaults.distance_api_key),
            distance_api_timeout=_float(
                "DISTANCE_API_TIMEOUT", defaults.distance_api_timeout,
            ),
            high_quality_sources=_list(
                "HIGH_QUALITY_SOURCES", defaults.high_quality_sources,
            ),
            emissions_decimal_places=_int(
                "EMISSIONS_DECIMAL_PLACES", defaults.emissions_decimal_places,
            ),
            enable_metrics=_bool("ENABLE_METRICS", defaults.enable_metrics),
            log_level=_str("LOG_LEVEL", defaults.log_level).upper(),
        )
        config.validate()

        logger.info(
            "CalculationConfig loaded: currency=%s, regions=%s, "
            "aviation_factor=%.3f, distance_timeout=%.1fs, metrics=%s",
            config.local_currency,
            ",".join(config.region_priority),
            config.aviation_factor,
            config.distance_api_timeout,
            config.enable_metrics,
        )
        return config

    def validate(self) -> None:
        """Reject settings the engine cannot run with.

        Raises:
            ConfigurationError: If a setting is out of range.
        """
        errors = {}
        if self.log_level not in _VALID_LOG_LEVELS:
            errors["log_level"] = f"must be one of {', '.join(_VALID_LOG_LEVELS)}"
        if self.distance_api_timeout <= 0:
            errors["distance_api_timeout"] = "must be positive"
        if self.aviation_factor < 0:
            errors["aviation_factor"] = "must be non-negative"
        if self.emissions_decimal_places < 0:
            errors["emissions_decimal_places"] = "must be non-negative"
        if not self.region_priority:
            errors["region_priority"] = "must list at least one region"
        else:
            known = {region.value for region in Region}
            unknown = [r for r in self.region_priority if r not in known]
            if unknown:
                errors["region_priority"] = f"unknown regions: {', '.join(unknown)}"

        if errors:
            raise ConfigurationError(
                message="Invalid calculation engine configuration",
                component="CalculationConfig",
                context={"errors": errors},
            )


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[CalculationConfig] = None
_config_lock = threading.Lock()


def get_config() -> CalculationConfig:
    """Return the singleton CalculationConfig, creating from env if needed."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = CalculationConfig.from_env()
    return _config_instance


def set_config(config: CalculationConfig) -> None:
    """Replace the singleton CalculationConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    config.validate()
    with _config_lock:
        _config_instance = config
    logger.info("CalculationConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "CalculationConfig",
    "DEFAULT_REGION_PRIORITY",
    "DEFAULT_HIGH_QUALITY_SOURCES",
    "get_config",
    "set_config",
    "reset_config",
]
