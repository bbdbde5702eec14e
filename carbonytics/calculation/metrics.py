# -*- coding: utf-8 -*-
"""
Prometheus Metrics - Emission Calculation Engine

Metrics:
    1. ct_calculations_total (Counter)
    2. ct_calculation_duration_seconds (Histogram)
    3. ct_factor_selections_total (Counter)
    4. ct_unit_conversion_misses_total (Counter)
    5. ct_distance_lookups_total (Counter)
    6. ct_batch_item_failures_total (Counter)

Collectors are registered once at import. ``CalculationMetrics`` is the
handle engine components hold; when disabled in configuration every
``record_*`` call is a no-op.
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Calculations count
calculations_total = Counter(
    "ct_calculations_total",
    "Total emission calculations performed",
    labelnames=["method", "result"],
)

# 2. Calculation duration
calculation_duration_seconds = Histogram(
    "ct_calculation_duration_seconds",
    "Emission calculation duration in seconds",
    labelnames=["method"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 10.0),
)

# 3. Factor selections by region
factor_selections_total = Counter(
    "ct_factor_selections_total",
    "Emission factor selections by region and strategy",
    labelnames=["region", "strategy"],
)

# 4. Unit conversion misses
unit_conversion_misses_total = Counter(
    "ct_unit_conversion_misses_total",
    "Unit conversions with no matching rule (value used as-is), by target unit",
    labelnames=["to_unit"],
)

# 5. Distance lookups by source
distance_lookups_total = Counter(
    "ct_distance_lookups_total",
    "Travel distance resolutions by source",
    labelnames=["source"],
)

# 6. Batch item failures
batch_item_failures_total = Counter(
    "ct_batch_item_failures_total",
    "Batch calculation items skipped after an error",
    labelnames=["error_type"],
)


# ---------------------------------------------------------------------------
# Recorder
# ---------------------------------------------------------------------------


class CalculationMetrics:
    """Records engine metrics when enabled.

    Args:
        enabled: When False, every method returns without touching a collector.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def record_calculation(self, method: str, result: str, duration_seconds: float) -> None:
        """Record a completed or failed calculation.

        Args:
            method: Calculation method of the category.
            result: "success" or "error".
            duration_seconds: Wall time of the calculation.
        """
        if not self.enabled:
            return
        calculations_total.labels(method=method, result=result).inc()
        calculation_duration_seconds.labels(method=method).observe(duration_seconds)

    def record_factor_selection(self, region: str, strategy: str) -> None:
        """Record which region (and strategy) produced the selected factor."""
        if not self.enabled:
            return
        factor_selections_total.labels(region=region, strategy=strategy).inc()

    def record_unit_conversion_miss(self, to_unit: str) -> None:
        """Record a passthrough conversion.

        Only the catalog-defined target unit is a label; caller-supplied
        source units are unbounded.
        """
        if not self.enabled:
            return
        unit_conversion_misses_total.labels(to_unit=to_unit).inc()

    def record_distance_lookup(self, source: str) -> None:
        """Record a distance resolution.

        Args:
            source: "api", "static" or "failed".
        """
        if not self.enabled:
            return
        distance_lookups_total.labels(source=source).inc()

    def record_batch_failure(self, error_type: str) -> None:
        if not self.enabled:
            return
        batch_item_failures_total.labels(error_type=error_type).inc()


__all__ = [
    "calculations_total",
    "calculation_duration_seconds",
    "factor_selections_total",
    "unit_conversion_misses_total",
    "distance_lookups_total",
    "batch_item_failures_total",
    "CalculationMetrics",
]
