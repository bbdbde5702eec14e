# -*- coding: utf-8 -*-
"""
Category-specific post-processing of computed emissions.

Business travel flights are recomputed from the resolved route distance.
Cairo commuting and time-of-use electricity carry neutral multipliers that
local data can later refine. Every other category passes through.
"""

import logging
from decimal import Decimal
from typing import Dict, Optional, Union

from carbonytics.calculation.distance import DistanceResolver
from carbonytics.calculation.models import CalculationInput, EmissionCategory
from carbonytics.determinism import round_half_up, to_decimal
from carbonytics.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

CLASS_MULTIPLIERS: Dict[str, Decimal] = {
    "Economy": Decimal("1.0"),
    "Business": Decimal("1.5"),
    "First": Decimal("2.0"),
}

TIME_OF_USE_FACTORS: Dict[str, Decimal] = {
    "peak": Decimal("1.0"),
    "off-peak": Decimal("1.0"),
    "standard": Decimal("1.0"),
}

COMMUTE_LOCATION_FACTORS: Dict[str, Decimal] = {
    "Cairo": Decimal("1.0"),
}


def _truthy(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


class SpecialCaseHandler:
    """
    Applies non-generic rules by category name.

    Args:
        distance_resolver: Resolves flight route distances
        aviation_factor: kg CO2e per passenger-km
        decimal_places: Rounding precision of the result
    """

    def __init__(
        self,
        distance_resolver: Optional[DistanceResolver] = None,
        aviation_factor: Union[float, Decimal] = 0.255,
        decimal_places: int = 2,
    ):
        self.distance_resolver = distance_resolver or DistanceResolver()
        self.aviation_factor = to_decimal(aviation_factor)
        self.decimal_places = decimal_places

    def apply_special_cases(
        self,
        base_emissions: Decimal,
        category: EmissionCategory,
        calculation_input: CalculationInput,
    ) -> Decimal:
        """
        Return the emissions figure after category-specific rules.

        Args:
            base_emissions: Output of the generic computation
            category: Category being calculated
            calculation_input: Calculation request

        Returns:
            Adjusted emissions, rounded
        """
        name = category.name.lower()
        metadata = calculation_input.metadata or {}
        emissions = to_decimal(base_emissions)

        if "business travel" in name and metadata.get("origin") and metadata.get("destination"):
            emissions = self._business_travel(emissions, calculation_input)
        elif "commuting" in name and metadata.get("location") == "Cairo":
            emissions *= COMMUTE_LOCATION_FACTORS["Cairo"]
        elif "electricity" in name and metadata.get("timeOfUse"):
            emissions *= TIME_OF_USE_FACTORS.get(metadata["timeOfUse"], Decimal("1.0"))

        return round_half_up(emissions, self.decimal_places)

    def _business_travel(self, base_emissions: Decimal, calculation_input: CalculationInput) -> Decimal:
        metadata = calculation_input.metadata
        origin = metadata["origin"]
        destination = metadata["destination"]
        if metadata.get("travelMode") != "Flight":
            logger.info(
                "Trip %s-%s by %s: using value x aviation factor",
                origin, destination, metadata.get("travelMode") or "unknown mode",
            )
            return to_decimal(calculation_input.value) * self.aviation_factor

        try:
            distance = to_decimal(self.distance_resolver.resolve_distance(origin, destination))
        except ExternalServiceError as e:
            logger.warning(
                "Flight %s-%s: %s; falling back to value x aviation factor",
                origin, destination, e.message,
            )
            return to_decimal(calculation_input.value) * self.aviation_factor

        multiplier = CLASS_MULTIPLIERS.get(metadata.get("travelClass"), Decimal("1.0"))
        emissions = distance * self.aviation_factor * multiplier
        if _truthy(metadata.get("roundTrip")):
            emissions *= 2

        logger.info(
            "Flight %s-%s: %.0f km, class %s, round trip %s",
            origin, destination, distance, metadata.get("travelClass") or "Economy",
            _truthy(metadata.get("roundTrip")),
        )
        return emissions


__all__ = [
    "SpecialCaseHandler",
    "CLASS_MULTIPLIERS",
    "TIME_OF_USE_FACTORS",
    "COMMUTE_LOCATION_FACTORS",
]
