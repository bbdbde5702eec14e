# -*- coding: utf-8 -*-
"""
Emission Computation

Applies a category's calculation method to a normalized activity value:

    activity_based:  normalized_value x factor
    spend_based:     spend x currency rate (to local currency) x factor
    hybrid:          metadata.activityData x factor, else spend-based
    direct:          normalized_value x factor

The regional adjustment multiplier is applied last, then the result is
rounded with ROUND_HALF_UP. All arithmetic is Decimal.
"""

import logging
from decimal import Decimal
from typing import Dict, Optional, Union

from carbonytics.calculation.models import (
    CalculationInput,
    CalculationMethod,
    EmissionCategory,
    EmissionFactor,
)
from carbonytics.determinism import round_half_up, to_decimal

logger = logging.getLogger(__name__)

# Approximate rates into EGP
CURRENCY_RATES: Dict[str, Decimal] = {
    "USD": Decimal("50"),
    "EUR": Decimal("59"),
    "GBP": Decimal("69"),
}


class EmissionComputer:
    """
    Deterministic emission formulas.

    Args:
        local_currency: Currency that needs no conversion
        decimal_places: Rounding precision of the result
        currency_rates: Rates into the local currency; unknown currencies use 1
    """

    def __init__(
        self,
        local_currency: str = "EGP",
        decimal_places: int = 2,
        currency_rates: Optional[Dict[str, Decimal]] = None,
    ):
        self.local_currency = local_currency
        self.decimal_places = decimal_places
        self.currency_rates = currency_rates if currency_rates is not None else CURRENCY_RATES

    def compute(
        self,
        normalized_value: Union[Decimal, float],
        factor: EmissionFactor,
        category: EmissionCategory,
        calculation_input: CalculationInput,
    ) -> Decimal:
        """
        Compute emissions in kg CO2e.

        Args:
            normalized_value: Activity value already in the factor's unit
            factor: Selected emission factor
            category: Category providing the calculation method
            calculation_input: Calculation request (metadata carries currency/activityData)

        Returns:
            Emissions rounded to ``decimal_places``
        """
        value = to_decimal(normalized_value)
        factor_value = to_decimal(factor.factor)
        metadata = calculation_input.metadata or {}
        method = category.calculation_method

        if method == CalculationMethod.SPEND_BASED:
            emissions = self._spend_based(value, factor_value, metadata.get("currency"))
        elif method == CalculationMethod.HYBRID:
            activity_data = metadata.get("activityData")
            if activity_data:
                emissions = to_decimal(activity_data) * factor_value
            else:
                emissions = self._spend_based(value, factor_value, metadata.get("currency"))
        else:
            emissions = value * factor_value

        if factor.adjustment_factor:
            emissions *= to_decimal(factor.adjustment_factor)

        return round_half_up(emissions, self.decimal_places)

    def _spend_based(self, spend: Decimal, factor_value: Decimal, currency: Optional[str]) -> Decimal:
        if currency:
            spend = self.convert_currency(spend, currency)
        return spend * factor_value

    def convert_currency(self, amount: Union[Decimal, float], currency: str) -> Decimal:
        """Convert ``amount`` in ``currency`` into the local currency (rate 1 if unknown)."""
        amount = to_decimal(amount)
        if currency == self.local_currency:
            return amount
        rate = self.currency_rates.get(currency)
        if rate is None:
            logger.warning("No exchange rate for %s, using 1", currency)
            rate = Decimal("1")
        return amount * rate


__all__ = ["EmissionComputer", "CURRENCY_RATES"]
