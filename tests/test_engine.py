"""End-to-end tests for the calculation engine."""

from decimal import Decimal

import pytest
from prometheus_client import REGISTRY

from carbonytics.calculation.catalog import InMemoryCatalog
from carbonytics.calculation.config import CalculationConfig, set_config
from carbonytics.calculation.distance import AirportGapClient
from carbonytics.calculation.engine import CalculationEngine, create_engine
from carbonytics.calculation.models import CalculationInput, QualityRating, Region
from carbonytics.exceptions import CalculationError, NotFoundError, ValidationError
from tests.conftest import StubDistanceLookup, make_category, make_factor

ELECTRICITY_METADATA = {"consumption": 1000, "period": "2025-01", "renewable": "No"}


def electricity(value=1000, unit="kWh", **kwargs):
    data = dict(
        category_id="cat-purchased-electricity",
        value=value,
        unit=unit,
        metadata=dict(ELECTRICITY_METADATA),
    )
    data.update(kwargs)
    return CalculationInput(**data)


def _engine(categories, factors, config):
    return CalculationEngine(InMemoryCatalog(categories, factors), config=config)


class TestCalculate:
    """Single calculations over the seed catalog."""

    def test_electricity(self, engine):
        result = engine.calculate(electricity())

        assert result.emissions == Decimal("458.00")
        assert str(result.emissions) == "458.00"
        assert result.quality.rating == QualityRating.HIGH
        assert result.quality.confidence == 100
        assert result.factor.id == "ef-eg-grid-2024"
        assert result.category.scope == 2
        assert result.warnings == []

    def test_mwh_normalized(self, engine):
        result = engine.calculate(electricity(value=1, unit="MWh"))

        assert result.calculation.normalized_value == Decimal("1000")
        assert result.emissions == Decimal("458.00")

    def test_echo(self, engine):
        result = engine.calculate(electricity())
        echo = result.calculation

        assert echo.value == 1000
        assert echo.unit == "kWh"
        assert echo.factor == 0.458
        assert echo.emissions == result.emissions
        assert echo.metadata["calculationMethod"] == "activity_based"
        assert echo.metadata["factorRegion"] == "egypt"
        assert echo.metadata["qualityRating"] == "high"
        assert echo.metadata["consumption"] == 1000

    def test_dict_input(self, engine):
        result = engine.calculate({
            "category_id": "cat-purchased-electricity",
            "value": 500,
            "unit": "kWh",
        })
        assert result.emissions == Decimal("229.00")

    def test_invalid_dict_input(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.calculate({"category_id": "cat-purchased-electricity", "value": -1, "unit": "kWh"})
        assert "value" in exc_info.value.invalid_fields

    def test_unknown_unit_warns(self, engine):
        result = engine.calculate(electricity(value=10, unit="barrels"))

        assert result.emissions == Decimal("4.58")
        assert result.warnings == ["No unit conversion found from barrels to kWh, using value as-is"]

    def test_spend_based_foreign_currency(self, engine):
        result = engine.calculate(CalculationInput(
            category_id="cat-purchased-goods", value=100, unit="EGP",
            metadata={"spend": 100, "currency": "USD"},
        ))
        assert result.emissions == Decimal("60.00")
        assert result.calculation.metadata["calculationMethod"] == "spend_based"

    def test_fuel_and_vehicle_type(self, engine):
        result = engine.calculate(CalculationInput(
            category_id="cat-mobile-combustion", value=100, unit="L",
            metadata={"vehicleType": "Truck", "fuelType": "Diesel", "consumption": 100},
        ))
        assert result.factor.id == "ef-eg-diesel-truck-2024"
        assert result.emissions == Decimal("266.70")

    def test_explicit_factor(self, engine):
        result = engine.calculate(electricity(factor_id="ef-eg-grid-2024"))
        assert result.factor.id == "ef-eg-grid-2024"


class TestErrors:

    def test_missing_category(self, engine):
        with pytest.raises(ValidationError, match="Invalid or inactive emission category"):
            engine.calculate(electricity(category_id="cat-missing"))

    def test_inactive_category(self, config, frozen_clock):
        engine = _engine([make_category(is_active=False)], [make_factor()], config)
        with pytest.raises(ValidationError):
            engine.calculate(electricity(category_id="cat-electricity"))

    def test_invalid_metadata(self, engine):
        request = electricity()
        request.metadata["period"] = "sometime"
        with pytest.raises(ValidationError) as exc_info:
            engine.calculate(request)
        assert "period" in exc_info.value.invalid_fields

    def test_no_factor(self, config, frozen_clock):
        engine = _engine([make_category()], [], config)
        with pytest.raises(NotFoundError):
            engine.calculate(electricity(category_id="cat-electricity"))

    def test_missing_explicit_factor(self, engine):
        with pytest.raises(NotFoundError):
            engine.calculate(electricity(factor_id="ef-ghost"))

    def test_unserializable_metadata_wrapped(self, engine):
        request = electricity()
        request.metadata["note"] = object()
        with pytest.raises(CalculationError):
            engine.calculate(request)

    def test_arithmetic_failure_wrapped(self, engine, monkeypatch):
        def broken(*args, **kwargs):
            raise ZeroDivisionError("division by zero")

        monkeypatch.setattr(engine.emission_computer, "compute", broken)
        with pytest.raises(CalculationError) as exc_info:
            engine.calculate(electricity())
        assert exc_info.value.context["cause_type"] == "ZeroDivisionError"
        assert isinstance(exc_info.value.__cause__, ZeroDivisionError)


class TestFactorPreference:

    def test_egypt_beats_global(self, config, frozen_clock):
        engine = _engine([make_category()], [
            make_factor(id="global", region="global", year=2025, factor=0.5),
            make_factor(id="egypt", region="egypt", year=2019, factor=0.4, is_default=False),
        ], config)

        result = engine.calculate(electricity(category_id="cat-electricity"))

        assert result.factor.id == "egypt"
        assert result.factor.region == Region.EGYPT
        assert result.emissions == Decimal("400.00")

    def test_high_uncertainty_rated_low(self, config, frozen_clock):
        engine = _engine([make_category()], [make_factor(uncertainty=60)], config)
        result = engine.calculate(electricity(category_id="cat-electricity"))

        assert result.quality.rating == QualityRating.LOW
        assert "High uncertainty in emission factor" in result.quality.notes

    def test_adjustment_factor(self, config, frozen_clock):
        engine = _engine([make_category()], [make_factor(adjustment_factor=1.05)], config)
        result = engine.calculate(electricity(category_id="cat-electricity"))
        assert result.emissions == Decimal("480.90")


class TestBusinessTravel:

    def test_cairo_dubai_economy(self, engine):
        result = engine.calculate_business_travel("CAI", "DXB", "Economy", False)

        assert result.emissions == Decimal("559.98")
        assert result.factor.id == "ef-global-aviation-2024"
        assert result.calculation.unit == "trip"
        assert result.calculation.metadata["origin"] == "CAI"

    def test_round_trip(self, engine):
        result = engine.calculate_business_travel("CAI", "DXB", "Economy", True)
        assert result.emissions == Decimal("1119.96")

    def test_through_calculate(self, engine):
        result = engine.calculate(CalculationInput(
            category_id="cat-business-travel", value=1, unit="trip",
            metadata={"origin": "CAI", "destination": "DXB", "travelMode": "Flight",
                      "travelClass": "Business", "roundTrip": "false"},
        ))
        assert result.emissions == Decimal("839.97")
        assert result.warnings == ["No unit conversion found from trip to km, using value as-is"]

    def test_unknown_route_falls_back(self, engine):
        result = engine.calculate(CalculationInput(
            category_id="cat-business-travel", value=1200, unit="km",
            metadata={"origin": "AAA", "destination": "BBB", "travelMode": "Flight"},
        ))
        assert result.emissions == Decimal("306.00")

    def test_distance_lookup_used(self, seed_catalog, config, frozen_clock):
        lookup = StubDistanceLookup({"CAI-NBO": 3540.0})
        engine = CalculationEngine(seed_catalog, distance_lookup=lookup, config=config)

        result = engine.calculate_business_travel("CAI", "NBO")

        assert result.emissions == Decimal("902.70")
        assert lookup.calls == [("CAI", "NBO")]

    def test_train_uses_value_times_aviation_factor(self, engine):
        result = engine.calculate(CalculationInput(
            category_id="cat-business-travel", value=100, unit="miles",
            metadata={"origin": "CAI", "destination": "ALY", "travelMode": "Train"},
        ))
        assert result.emissions == Decimal("25.50")

    def test_category_missing(self, config, frozen_clock):
        engine = _engine([make_category()], [make_factor()], config)
        with pytest.raises(NotFoundError, match="Business travel category not found"):
            engine.calculate_business_travel("CAI", "DXB")


class TestBatch:

    def test_invalid_item_skipped(self, engine):
        results = engine.calculate_batch([
            electricity(value=100),
            electricity(category_id="cat-missing"),
            electricity(value=300),
        ])

        assert [r.emissions for r in results] == [Decimal("45.80"), Decimal("137.40")]

    def test_five_inputs_one_bad(self, engine):
        inputs = [electricity(value=v) for v in (1, 2, 3, 4)]
        inputs.insert(2, {"category_id": "nope", "value": 1, "unit": "kWh"})

        results = engine.calculate_batch(inputs)

        assert len(results) == 4
        assert [r.calculation.value for r in results] == [1, 2, 3, 4]

    def test_unserializable_metadata_skipped(self, engine):
        bad = {
            "category_id": "cat-purchased-electricity", "value": 5, "unit": "kWh",
            "metadata": {"note": object()},
        }

        results = engine.calculate_batch([electricity(value=100), bad, electricity(value=300)])

        assert [r.emissions for r in results] == [Decimal("45.80"), Decimal("137.40")]

    def test_empty_batch(self, engine):
        assert engine.calculate_batch([]) == []


class TestSummarize:

    def test_summary(self, engine):
        results = [
            engine.calculate(electricity()),
            engine.calculate_business_travel("CAI", "DXB"),
        ]
        summary = engine.summarize(results)

        assert summary.total_emissions == Decimal("1017.98")
        assert summary.scope_breakdown == {2: Decimal("458.00"), 3: Decimal("559.98")}
        assert summary.category_breakdown == {
            "Purchased Electricity": Decimal("458.00"),
            "Business Travel": Decimal("559.98"),
        }
        assert summary.quality_assessment.average_confidence == 95
        assert summary.quality_assessment.high_quality_count == 2
        assert summary.result_count == 2

    def test_same_category_accumulates(self, engine):
        results = engine.calculate_batch([electricity(value=100), electricity(value=200)])
        summary = engine.summarize(results)
        assert summary.category_breakdown == {"Purchased Electricity": Decimal("137.40")}

    def test_empty(self, engine):
        summary = engine.summarize([])

        assert summary.total_emissions == Decimal("0")
        assert summary.scope_breakdown == {}
        assert summary.quality_assessment.average_confidence == 0
        assert summary.result_count == 0

    def test_to_dict(self, engine):
        data = engine.summarize([engine.calculate(electricity())]).to_dict()
        assert data["total_emissions"] == "458.00"


class TestDeterminism:

    def test_same_input_same_result(self, engine):
        first = engine.calculate(electricity())
        second = engine.calculate(electricity())

        assert first.to_dict() == second.to_dict()
        assert first.provenance_hash == second.provenance_hash
        assert len(first.provenance_hash) == 64

    def test_different_input_different_hash(self, engine):
        assert (engine.calculate(electricity(value=1)).provenance_hash
                != engine.calculate(electricity(value=2)).provenance_hash)

    def test_verify_provenance(self, engine):
        result = engine.calculate(electricity())
        assert result.verify_provenance()

        result.emissions = Decimal("1.00")
        assert not result.verify_provenance()


class TestWiring:

    def test_create_engine_defaults(self):
        set_config(CalculationConfig(enable_metrics=False, distance_api_timeout=4.0))
        engine = create_engine()

        assert engine.catalog.find_category_by_id("cat-business-travel") is not None
        assert isinstance(engine.distance_resolver.lookup, AirportGapClient)
        assert engine.distance_resolver.lookup.timeout == 4.0

    def test_create_engine_overrides(self, config):
        lookup = StubDistanceLookup()
        catalog = InMemoryCatalog([make_category()], [make_factor()])
        engine = create_engine(catalog=catalog, config=config, distance_lookup=lookup)

        assert engine.catalog is catalog
        assert engine.distance_resolver.lookup is lookup
        assert engine.config is config

    def test_config_flows_to_components(self, seed_catalog):
        config = CalculationConfig(
            enable_metrics=False, local_currency="USD", region_priority=["global"],
            aviation_factor=0.3,
        )
        engine = CalculationEngine(seed_catalog, config=config)

        assert engine.emission_computer.local_currency == "USD"
        assert [s.name for s in engine.factor_selector.strategies] == ["region:global", "any_region"]
        assert engine.special_cases.aviation_factor == Decimal("0.3")

    def test_metrics_recorded(self, seed_catalog, frozen_clock):
        engine = CalculationEngine(seed_catalog, config=CalculationConfig(enable_metrics=True))
        labels = {"method": "activity_based", "result": "success"}
        before = REGISTRY.get_sample_value("ct_calculations_total", labels) or 0.0
        static_before = REGISTRY.get_sample_value("ct_distance_lookups_total", {"source": "static"}) or 0.0

        engine.calculate_business_travel("CAI", "DXB")

        assert REGISTRY.get_sample_value("ct_calculations_total", labels) == before + 1
        assert REGISTRY.get_sample_value(
            "ct_distance_lookups_total", {"source": "static"}
        ) == static_before + 1
