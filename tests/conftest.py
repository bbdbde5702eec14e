# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from typing import Dict, Optional

import pytest

from carbonytics.calculation.catalog import InMemoryCatalog
from carbonytics.calculation.config import CalculationConfig, reset_config
from carbonytics.calculation.distance import DistanceLookup
from carbonytics.calculation.engine import CalculationEngine
from carbonytics.calculation.models import (
    AllowedUnit,
    CalculationMethod,
    EmissionCategory,
    EmissionFactor,
    RequiredInput,
)
from carbonytics.determinism import DeterministicClock


class StubDistanceLookup(DistanceLookup):
    """Distance lookup answering from a dict; unknown pairs raise."""

    def __init__(self, distances: Optional[Dict[str, float]] = None, error: Optional[Exception] = None):
        self.distances = distances or {}
        self.error = error
        self.calls = []

    def get_distance(self, origin: str, destination: str) -> float:
        self.calls.append((origin, destination))
        if self.error is not None:
            raise self.error
        key = f"{origin}-{destination}"
        if key not in self.distances:
            raise ConnectionError(f"no route {key}")
        return self.distances[key]


def make_category(**overrides) -> EmissionCategory:
    """Purchased-electricity style category with overridable fields."""
    data = dict(
        id="cat-electricity",
        scope=2,
        name="Purchased Electricity",
        description="Grid electricity consumption",
        base_unit="kWh",
        allowed_units=[
            AllowedUnit(unit="kWh", description="Kilowatt hours", conversion_to_base=1),
            AllowedUnit(unit="MWh", description="Megawatt hours", conversion_to_base=1000),
        ],
        calculation_method=CalculationMethod.ACTIVITY_BASED,
        required_inputs=[
            RequiredInput(field="consumption", type="number", required=True),
            RequiredInput(field="period", type="date", required=True),
        ],
    )
    data.update(overrides)
    return EmissionCategory(**data)


def make_factor(**overrides) -> EmissionFactor:
    """Egyptian grid factor with overridable fields."""
    data = dict(
        id="ef-grid",
        category_id="cat-electricity",
        name="Egyptian Grid Electricity",
        factor=0.458,
        unit="kg CO2e/kWh",
        source="IEA Egypt/EEHC",
        region="egypt",
        year=2024,
        uncertainty=10,
        quality_rating="high",
        is_default=True,
    )
    data.update(overrides)
    return EmissionFactor(**data)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the config singleton and the clock around every test."""
    reset_config()
    DeterministicClock.unfreeze()
    yield
    reset_config()
    DeterministicClock.unfreeze()


@pytest.fixture
def frozen_clock():
    """Clock frozen at mid-2025."""
    with DeterministicClock.frozen(datetime(2025, 6, 1, tzinfo=timezone.utc)):
        yield DeterministicClock


@pytest.fixture
def config():
    """Default configuration with metrics off."""
    return CalculationConfig(enable_metrics=False)


@pytest.fixture
def seed_catalog():
    """Catalog bundled with the package."""
    return InMemoryCatalog.default()


@pytest.fixture
def electricity_category():
    return make_category()


@pytest.fixture
def grid_factor():
    return make_factor()


@pytest.fixture
def engine(seed_catalog, config, frozen_clock):
    """Engine over the seed catalog, static distances only."""
    return CalculationEngine(seed_catalog, distance_lookup=None, config=config)
