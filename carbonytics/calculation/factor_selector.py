# -*- coding: utf-8 -*-
"""
Emission Factor Selection

Picks the single best emission factor for a category. An explicit factor id
wins outright; otherwise an ordered chain of strategies is evaluated until
one yields a match:

    RegionStrategy(egypt) -> RegionStrategy(global) -> RegionStrategy(mena)
    -> RegionStrategy(eu) -> RegionStrategy(us) -> AnyRegionStrategy

Within a region, factors are ranked by year (newest first), then default
flag, then quality rating. The any-region fallback ranks by year only.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from carbonytics.calculation.catalog import EmissionCatalog, SortSpec
from carbonytics.calculation.config import DEFAULT_REGION_PRIORITY
from carbonytics.calculation.metrics import CalculationMetrics
from carbonytics.calculation.models import (
    CalculationInput,
    EmissionCategory,
    EmissionFactor,
    Region,
)
from carbonytics.exceptions import NotFoundError

logger = logging.getLogger(__name__)

REGION_SORT: SortSpec = [("year", -1), ("is_default", -1), ("quality_rating", -1)]
FALLBACK_SORT: SortSpec = [("year", -1)]


class SelectionStrategy(ABC):
    """One step of the factor search."""

    name: str = "strategy"

    @abstractmethod
    def candidates(self, catalog: EmissionCatalog, base_filter: Dict[str, Any]) -> List[EmissionFactor]:
        """All factors this step accepts for ``base_filter``, best first."""

    def find(self, catalog: EmissionCatalog, base_filter: Dict[str, Any]) -> Optional[EmissionFactor]:
        """Return the best factor for ``base_filter`` or None."""
        factors = self.candidates(catalog, base_filter)
        return factors[0] if factors else None


class RegionStrategy(SelectionStrategy):
    """Best factor within a single region."""

    def __init__(self, region: Region):
        self.region = Region(region)
        self.name = f"region:{self.region.value}"

    def candidates(self, catalog: EmissionCatalog, base_filter: Dict[str, Any]) -> List[EmissionFactor]:
        return catalog.find_factors(dict(base_filter, region=self.region), sort=REGION_SORT)

    def __repr__(self) -> str:
        return f"RegionStrategy({self.region.value!r})"


class AnyRegionStrategy(SelectionStrategy):
    """Newest factor matching the base filter, whatever its region."""

    name = "any_region"

    def candidates(self, catalog: EmissionCatalog, base_filter: Dict[str, Any]) -> List[EmissionFactor]:
        return catalog.find_factors(dict(base_filter), sort=FALLBACK_SORT)

    def __repr__(self) -> str:
        return "AnyRegionStrategy()"


def build_strategies(region_priority: Optional[Sequence[str]] = None) -> List[SelectionStrategy]:
    """Build the strategy chain for the given region order."""
    regions = region_priority or DEFAULT_REGION_PRIORITY
    strategies: List[SelectionStrategy] = [RegionStrategy(Region(r)) for r in regions]
    strategies.append(AnyRegionStrategy())
    return strategies


class FactorSelector:
    """
    Selects emission factors from a read-only catalog.

    Selection is deterministic: identical catalog state and input always
    yield the same factor.

    Example:
        >>> selector = FactorSelector(InMemoryCatalog.default())
        >>> factor = selector.select(category, CalculationInput(...))
    """

    def __init__(
        self,
        catalog: EmissionCatalog,
        region_priority: Optional[Sequence[str]] = None,
        metrics: Optional[CalculationMetrics] = None,
    ):
        self.catalog = catalog
        self.strategies = build_strategies(region_priority)
        self.metrics = metrics or CalculationMetrics(enabled=False)

    @staticmethod
    def build_filter(
        category: EmissionCategory, calculation_input: Optional[CalculationInput] = None,
    ) -> Dict[str, Any]:
        """Base filter: category, active flag, plus fuel/vehicle type from metadata."""
        base_filter: Dict[str, Any] = {"category_id": category.id, "is_active": True}
        metadata = (calculation_input.metadata if calculation_input else None) or {}
        if metadata.get("fuelType"):
            base_filter["fuel_type"] = metadata["fuelType"]
        if metadata.get("vehicleType"):
            base_filter["vehicle_type"] = metadata["vehicleType"]
        return base_filter

    def select(self, category: EmissionCategory, calculation_input: CalculationInput) -> EmissionFactor:
        """
        Return the best-matching emission factor.

        Args:
            category: Category being calculated
            calculation_input: Request, possibly carrying an explicit factor id

        Returns:
            The selected EmissionFactor

        Raises:
            NotFoundError: If the explicit factor is missing or nothing matches
        """
        if calculation_input.factor_id:
            factor = self.catalog.find_factor_by_id(calculation_input.factor_id)
            if factor is None:
                raise NotFoundError(
                    message="Specified emission factor not found",
                    component="FactorSelector",
                    context={"factor_id": calculation_input.factor_id},
                )
            self.metrics.record_factor_selection(factor.region.value, "explicit")
            return factor

        base_filter = self.build_filter(category, calculation_input)
        for strategy in self.strategies:
            factor = strategy.find(self.catalog, base_filter)
            if factor is not None:
                logger.info(
                    "Selected emission factor %s (%s, %d) for category %s via %s",
                    factor.id, factor.region.value, factor.year, category.id, strategy.name,
                )
                self.metrics.record_factor_selection(factor.region.value, strategy.name)
                return factor
            logger.debug("No factor for category %s via %s", category.id, strategy.name)

        raise NotFoundError(
            message="No suitable emission factor found for this category",
            component="FactorSelector",
            context={"category_id": category.id, "filter": {k: str(v) for k, v in base_filter.items()}},
        )

    def ranked_factors(
        self, category: EmissionCategory, calculation_input: Optional[CalculationInput] = None,
    ) -> List[EmissionFactor]:
        """
        Every matching active factor in the order ``select`` would prefer it.

        The first entry is the factor ``select`` returns for the same input
        (without an explicit factor id).
        """
        base_filter = self.build_filter(category, calculation_input)
        ranked: List[EmissionFactor] = []
        seen = set()
        for strategy in self.strategies:
            for factor in strategy.candidates(self.catalog, base_filter):
                if factor.id not in seen:
                    seen.add(factor.id)
                    ranked.append(factor)
        return ranked


__all__ = [
    "SelectionStrategy",
    "RegionStrategy",
    "AnyRegionStrategy",
    "FactorSelector",
    "build_strategies",
    "REGION_SORT",
    "FALLBACK_SORT",
]
