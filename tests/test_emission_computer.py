"""Tests for the emission formulas."""

from decimal import Decimal

import pytest

from carbonytics.calculation.emission_computer import CURRENCY_RATES, EmissionComputer
from carbonytics.calculation.models import CalculationInput, CalculationMethod
from tests.conftest import make_category, make_factor


def _input(metadata=None, value=100):
    return CalculationInput(category_id="c", value=value, unit="EGP", metadata=metadata or {})


@pytest.fixture
def computer():
    return EmissionComputer()


@pytest.fixture
def spend_category():
    return make_category(calculation_method=CalculationMethod.SPEND_BASED, base_unit="EGP")


@pytest.fixture
def spend_factor():
    return make_factor(factor=0.012, unit="kg CO2e/EGP")


class TestActivityBased:

    def test_electricity(self, computer, electricity_category, grid_factor):
        result = computer.compute(Decimal("1000"), grid_factor, electricity_category, _input())
        assert result == Decimal("458.00")
        assert str(result) == "458.00"

    def test_direct_uses_same_formula(self, computer, grid_factor):
        category = make_category(calculation_method=CalculationMethod.DIRECT)
        assert computer.compute(10, grid_factor, category, _input()) == Decimal("4.58")

    def test_rounds_half_up(self, computer, electricity_category):
        factor = make_factor(factor=0.005)
        assert computer.compute(1, factor, electricity_category, _input()) == Decimal("0.01")

    def test_zero_value(self, computer, electricity_category, grid_factor):
        assert computer.compute(0, grid_factor, electricity_category, _input()) == Decimal("0.00")


class TestSpendBased:

    def test_local_currency(self, computer, spend_category, spend_factor):
        result = computer.compute(1000, spend_factor, spend_category, _input({"currency": "EGP"}))
        assert result == Decimal("12.00")

    def test_no_currency(self, computer, spend_category, spend_factor):
        assert computer.compute(1000, spend_factor, spend_category, _input()) == Decimal("12.00")

    @pytest.mark.parametrize("currency,expected", [
        ("USD", "60.00"),
        ("EUR", "70.80"),
        ("GBP", "82.80"),
        ("JPY", "1.20"),
    ])
    def test_foreign_currency(self, computer, spend_category, spend_factor, currency, expected):
        result = computer.compute(100, spend_factor, spend_category, _input({"currency": currency}))
        assert result == Decimal(expected)

    def test_configured_local_currency(self, spend_category, spend_factor):
        computer = EmissionComputer(local_currency="USD")
        result = computer.compute(100, spend_factor, spend_category, _input({"currency": "USD"}))
        assert result == Decimal("1.20")

    def test_convert_currency(self, computer):
        assert computer.convert_currency(2, "USD") == CURRENCY_RATES["USD"] * 2
        assert computer.convert_currency(2, "EGP") == Decimal("2")
        assert computer.convert_currency(2, "JPY") == Decimal("2")


class TestHybrid:

    @pytest.fixture
    def hybrid_category(self):
        return make_category(calculation_method=CalculationMethod.HYBRID)

    def test_activity_data_preferred(self, computer, hybrid_category, grid_factor):
        result = computer.compute(999, grid_factor, hybrid_category, _input({"activityData": 200}))
        assert result == Decimal("91.60")

    def test_falls_back_to_spend(self, computer, hybrid_category, spend_factor):
        result = computer.compute(100, spend_factor, hybrid_category, _input({"currency": "USD"}))
        assert result == Decimal("60.00")

    @pytest.mark.parametrize("activity_data", [0, "", None])
    def test_empty_activity_data_uses_spend(self, computer, hybrid_category, spend_factor, activity_data):
        metadata = {"currency": "USD", "activityData": activity_data}
        result = computer.compute(100, spend_factor, hybrid_category, _input(metadata))
        assert result == Decimal("60.00")


class TestAdjustment:

    def test_regional_adjustment_applied_last(self, computer, electricity_category):
        factor = make_factor(adjustment_factor=1.1)
        result = computer.compute(1000, factor, electricity_category, _input())
        assert result == Decimal("503.80")
