# -*- coding: utf-8 -*-
"""
Unit Conversion Engine

Normalizes an activity value into the unit of the selected emission factor.
All conversions are deterministic Decimal multiplications.

Lookup order:
1. Same unit as the factor (or the category's base unit): unchanged
2. Category-declared allowed unit: ``value * conversion_to_base``
3. Global table keyed by ``(from_unit, to_unit)``
4. Nothing found: value used as-is, with a warning

An unrecognized unit never blocks a calculation.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Tuple, Union

from carbonytics.calculation.metrics import CalculationMetrics
from carbonytics.calculation.models import EmissionCategory, EmissionFactor
from carbonytics.determinism import to_decimal

logger = logging.getLogger(__name__)


def _d(value: str) -> Decimal:
    return Decimal(value)


# (from_unit, to_unit) -> multiplier
GLOBAL_UNIT_CONVERSIONS: Dict[Tuple[str, str], Decimal] = {
    # Energy
    ('MWh', 'kWh'): _d('1000'),
    ('kWh', 'MWh'): _d('0.001'),
    ('GJ', 'kWh'): _d('277.778'),
    ('kWh', 'GJ'): _d('0.0036'),
    ('TJ', 'GJ'): _d('1000'),
    ('GJ', 'TJ'): _d('0.001'),
    ('TJ', 'kWh'): _d('277777.78'),
    ('kWh', 'TJ'): _d('0.0000036'),
    ('therm', 'kWh'): _d('29.31'),
    ('kWh', 'therm'): _d('0.0341'),
    ('therm', 'GJ'): _d('0.1055'),
    ('GJ', 'therm'): _d('9.478'),
    ('toe', 'GJ'): _d('41.868'),
    ('GJ', 'toe'): _d('0.0239'),
    ('toe', 'kWh'): _d('11630'),
    ('kWh', 'toe'): _d('0.000086'),
    ('kcal', 'kWh'): _d('0.001163'),
    ('kWh', 'kcal'): _d('860.05'),
    ('MJ', 'kWh'): _d('0.2778'),
    ('kWh', 'MJ'): _d('3.6'),
    ('Btu', 'kWh'): _d('0.000293'),
    ('kWh', 'Btu'): _d('3412.14'),

    # Mass
    ('t', 'kg'): _d('1000'),
    ('kg', 't'): _d('0.001'),
    ('g', 'kg'): _d('0.001'),
    ('kg', 'g'): _d('1000'),
    ('lb', 'kg'): _d('0.453592'),
    ('kg', 'lb'): _d('2.20462'),
    ('oz', 'kg'): _d('0.0283495'),
    ('kg', 'oz'): _d('35.274'),
    ('ton_UK', 'kg'): _d('1016.05'),
    ('kg', 'ton_UK'): _d('0.000984'),
    ('ton_US', 'kg'): _d('907.185'),
    ('kg', 'ton_US'): _d('0.00110231'),
    ('ton_UK', 't'): _d('1.01605'),
    ('t', 'ton_UK'): _d('0.984207'),
    ('ton_US', 't'): _d('0.907185'),
    ('t', 'ton_US'): _d('1.10231'),

    # Distance
    ('miles', 'km'): _d('1.60934'),
    ('km', 'miles'): _d('0.621371'),
    ('m', 'km'): _d('0.001'),
    ('km', 'm'): _d('1000'),
    ('ft', 'm'): _d('0.3048'),
    ('m', 'ft'): _d('3.28084'),
    ('in', 'm'): _d('0.0254'),
    ('m', 'in'): _d('39.3701'),
    ('nm', 'km'): _d('1.852'),  # nautical miles
    ('km', 'nm'): _d('0.539957'),
    ('miles', 'm'): _d('1609.34'),
    ('m', 'miles'): _d('0.000621371'),

    # Volume (liquid)
    ('m³', 'L'): _d('1000'),
    ('L', 'm³'): _d('0.001'),
    ('gal_US', 'L'): _d('3.78541'),
    ('L', 'gal_US'): _d('0.264172'),
    ('gal_UK', 'L'): _d('4.54609'),
    ('L', 'gal_UK'): _d('0.219969'),
    ('gal', 'L'): _d('3.78541'),  # US gallon
    ('L', 'gal'): _d('0.264172'),
    ('bbl', 'L'): _d('158.987'),  # petroleum barrel
    ('L', 'bbl'): _d('0.00629'),
    ('ft³', 'L'): _d('28.3168'),
    ('L', 'ft³'): _d('0.0353147'),
    ('ft³', 'm³'): _d('0.0283168'),
    ('m³', 'ft³'): _d('35.3147'),
    ('ml', 'L'): _d('0.001'),
    ('L', 'ml'): _d('1000'),

    # Area
    ('hectare', 'm²'): _d('10000'),
    ('m²', 'hectare'): _d('0.0001'),
    ('acre', 'm²'): _d('4046.86'),
    ('m²', 'acre'): _d('0.000247105'),
    ('acre', 'hectare'): _d('0.404686'),
    ('hectare', 'acre'): _d('2.47105'),
    ('km²', 'm²'): _d('1000000'),
    ('m²', 'km²'): _d('0.000001'),
    ('km²', 'hectare'): _d('100'),
    ('hectare', 'km²'): _d('0.01'),
    ('ft²', 'm²'): _d('0.092903'),
    ('m²', 'ft²'): _d('10.7639'),

    # Transport activity
    ('passenger_km', 'passenger_mile'): _d('0.621371'),
    ('passenger_mile', 'passenger_km'): _d('1.60934'),
    ('vehicle_km', 'vehicle_mile'): _d('0.621371'),
    ('vehicle_mile', 'vehicle_km'): _d('1.60934'),
    ('tonne_km', 'tonne_mile'): _d('0.621371'),
    ('tonne_mile', 'tonne_km'): _d('1.60934'),
    ('kg_km', 'kg_mile'): _d('0.621371'),
    ('kg_mile', 'kg_km'): _d('1.60934'),

    # Time
    ('day', 'hour'): _d('24'),
    ('hour', 'day'): _d('0.0416667'),
    ('week', 'day'): _d('7'),
    ('day', 'week'): _d('0.142857'),
    ('year', 'day'): _d('365.25'),
    ('day', 'year'): _d('0.00273973'),
    ('month', 'day'): _d('30'),
    ('day', 'month'): _d('0.0328542'),

    # Pressure
    ('bar', 'psi'): _d('14.5038'),
    ('psi', 'bar'): _d('0.0689476'),
    ('atm', 'bar'): _d('1.01325'),
    ('bar', 'atm'): _d('0.986923'),
    ('Pa', 'bar'): _d('0.00001'),
    ('bar', 'Pa'): _d('100000'),

    # Temperature differences (not absolute temperatures)
    ('degC', 'degF_diff'): _d('1.8'),
    ('degF', 'degC_diff'): _d('0.555556'),
    ('K', 'degC_diff'): _d('1'),
    ('degC', 'K_diff'): _d('1'),

    # Waste volume
    ('yd³', 'm³'): _d('0.764555'),
    ('m³', 'yd³'): _d('1.30795'),
    ('yd³', 'L'): _d('764.555'),
    ('L', 'yd³'): _d('0.00130795'),

    # Water
    ('kgal', 'L'): _d('3785.41'),  # thousand US gallons
    ('L', 'kgal'): _d('0.000264172'),
    ('Mgal', 'L'): _d('3785410'),  # million US gallons
    ('L', 'Mgal'): _d('0.000000264172'),
    ('kgal', 'm³'): _d('3.78541'),
    ('m³', 'kgal'): _d('0.264172'),

    # Currency rates per kWh (approximate)
    ('USD_per_kWh', 'EGP_per_kWh'): _d('50'),
    ('EUR_per_kWh', 'EGP_per_kWh'): _d('59'),
    ('GBP_per_kWh', 'EGP_per_kWh'): _d('69'),

    # Grid transmission and distribution losses (~8%)
    ('kWh_delivered', 'kWh_generated'): _d('1.08'),
    ('kWh_generated', 'kWh_delivered'): _d('0.926'),

    # Fuel density (approximate)
    ('L_diesel', 'kg'): _d('0.85'),
    ('kg', 'L_diesel'): _d('1.176'),
    ('L_petrol', 'kg'): _d('0.75'),
    ('kg', 'L_petrol'): _d('1.333'),
    ('L_LPG', 'kg'): _d('0.55'),
    ('kg', 'L_LPG'): _d('1.818'),

    # Gas volume at standard conditions
    ('Nm³', 'm³'): _d('1'),
    ('m³', 'Nm³'): _d('1'),
    ('scf', 'm³'): _d('0.0283168'),
    ('m³', 'scf'): _d('35.3147'),

    # Fuel energy content (approximate net calorific value)
    ('L_diesel', 'kWh'): _d('10'),
    ('kWh', 'L_diesel'): _d('0.1'),
    ('L_petrol', 'kWh'): _d('9'),
    ('kWh', 'L_petrol'): _d('0.111'),
    ('kg_LPG', 'kWh'): _d('12.8'),
    ('kWh', 'kg_LPG'): _d('0.078'),
    ('kg_natural_gas', 'kWh'): _d('13.5'),
    ('kWh', 'kg_natural_gas'): _d('0.074'),

    # Paper
    ('ream', 'kg'): _d('2.5'),
    ('kg', 'ream'): _d('0.4'),
    ('sheet', 'kg'): _d('0.005'),  # A4 sheet
    ('kg', 'sheet'): _d('200'),
}


@dataclass(frozen=True)
class ConversionOutcome:
    """Normalized value and how it was obtained.

    Attributes:
        value: Value expressed in the factor's unit
        method: ``identity``, ``category``, ``global`` or ``passthrough``
        from_unit: Unit the caller supplied
        to_unit: Factor activity unit
        multiplier: Multiplier applied (1 for identity/passthrough)
        warning: Set when no conversion was found
    """
    value: Decimal
    method: str
    from_unit: str
    to_unit: str
    multiplier: Decimal = Decimal('1')
    warning: Optional[str] = None


class UnitConverter:
    """
    Deterministic unit converter that degrades instead of failing.

    GUARANTEES:
    - Same input -> same output
    - ``from_unit == factor.unit`` returns the value unchanged
    - Unknown units are used as-is and reported as a warning
    """

    def __init__(
        self,
        conversions: Optional[Dict[Tuple[str, str], Decimal]] = None,
        metrics: Optional[CalculationMetrics] = None,
    ):
        """
        Initialize unit converter.

        Args:
            conversions: Global conversion table (defaults to GLOBAL_UNIT_CONVERSIONS)
            metrics: Metrics recorder
        """
        self.conversions = conversions if conversions is not None else GLOBAL_UNIT_CONVERSIONS
        self.metrics = metrics or CalculationMetrics(enabled=False)

    def convert(
        self,
        value: Union[float, Decimal],
        from_unit: str,
        category: EmissionCategory,
        factor: EmissionFactor,
    ) -> Decimal:
        """
        Convert ``value`` from ``from_unit`` into the factor's unit.

        Returns:
            Converted value (never raises for unknown units)
        """
        return self.normalize(value, from_unit, category, factor).value

    def normalize(
        self,
        value: Union[float, Decimal],
        from_unit: str,
        category: EmissionCategory,
        factor: EmissionFactor,
    ) -> ConversionOutcome:
        """
        Convert ``value`` and report which rule applied.

        Args:
            value: Activity quantity
            from_unit: Unit supplied with the activity
            category: Category whose allowed units are consulted
            factor: Selected emission factor

        Returns:
            ConversionOutcome with the normalized value
        """
        amount = to_decimal(value)
        from_unit = from_unit.strip()
        to_unit = factor.activity_unit

        if from_unit in (factor.unit, to_unit, category.base_unit):
            return ConversionOutcome(
                value=amount, method='identity', from_unit=from_unit, to_unit=to_unit,
            )

        allowed = category.find_allowed_unit(from_unit)
        if allowed is not None and allowed.conversion_to_base:
            multiplier = to_decimal(allowed.conversion_to_base)
            return ConversionOutcome(
                value=amount * multiplier,
                method='category',
                from_unit=from_unit,
                to_unit=to_unit,
                multiplier=multiplier,
            )

        multiplier = self.conversions.get((from_unit, to_unit))
        if multiplier is not None:
            return ConversionOutcome(
                value=amount * multiplier,
                method='global',
                from_unit=from_unit,
                to_unit=to_unit,
                multiplier=multiplier,
            )

        warning = f"No unit conversion found from {from_unit} to {to_unit}, using value as-is"
        logger.warning(warning)
        self.metrics.record_unit_conversion_miss(to_unit)
        return ConversionOutcome(
            value=amount,
            method='passthrough',
            from_unit=from_unit,
            to_unit=to_unit,
            warning=warning,
        )

    def has_conversion(self, from_unit: str, to_unit: str) -> bool:
        """Check whether the global table knows ``from_unit -> to_unit``."""
        return from_unit == to_unit or (from_unit, to_unit) in self.conversions

    def list_supported_conversions(self) -> Dict[str, list]:
        """
        List the global table grouped by source unit.

        Returns:
            Dictionary mapping each source unit to its sorted target units
        """
        grouped: Dict[str, list] = {}
        for from_unit, to_unit in self.conversions:
            grouped.setdefault(from_unit, []).append(to_unit)
        return {unit: sorted(targets) for unit, targets in sorted(grouped.items())}
