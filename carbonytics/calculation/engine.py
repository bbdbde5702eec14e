# -*- coding: utf-8 -*-
"""
Emission Calculation Engine

Orchestrates a single calculation:

    category -> metadata validation -> factor selection -> unit conversion
    -> emission formula -> special cases -> quality assessment -> result

plus sequential batch processing, summarization of results and a business
travel convenience entry point.

The engine holds no mutable state; its catalog and distance lookup are
injected. Use ``create_engine()`` for the default wiring from configuration.

Example:
    >>> engine = create_engine()
    >>> result = engine.calculate(CalculationInput(
    ...     category_id="cat-purchased-electricity", value=1000, unit="kWh",
    ...     metadata={"consumption": 1000, "period": "2025-01"},
    ... ))
    >>> result.emissions
    Decimal('458.00')
"""

import logging
import time
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from carbonytics.calculation.catalog import EmissionCatalog, InMemoryCatalog
from carbonytics.calculation.config import CalculationConfig, get_config
from carbonytics.calculation.distance import AirportGapClient, DistanceLookup, DistanceResolver
from carbonytics.calculation.emission_computer import EmissionComputer
from carbonytics.calculation.factor_selector import FactorSelector
from carbonytics.calculation.metrics import CalculationMetrics
from carbonytics.calculation.models import (
    CalculationEcho,
    CalculationInput,
    CalculationResult,
    CalculationSummary,
    QualityRating,
    QualitySummary,
)
from carbonytics.calculation.quality_assessor import QualityAssessor
from carbonytics.calculation.special_cases import SpecialCaseHandler
from carbonytics.calculation.unit_converter import UnitConverter
from carbonytics.calculation.validator import validate_metadata
from carbonytics.exceptions import (
    CalculationError,
    CarbonyticsException,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

InputLike = Union[CalculationInput, Dict[str, Any]]


class CalculationEngine:
    """
    GHG emission calculator.

    Args:
        catalog: Read-only category and factor catalog
        distance_lookup: External distance source for flights (None: static table only)
        config: Engine configuration (defaults to ``get_config()``)
    """

    def __init__(
        self,
        catalog: EmissionCatalog,
        distance_lookup: Optional[DistanceLookup] = None,
        config: Optional[CalculationConfig] = None,
    ):
        self.catalog = catalog
        self.config = config or get_config()
        self.config.validate()
        self.metrics = CalculationMetrics(enabled=self.config.enable_metrics)

        self.factor_selector = FactorSelector(
            catalog, region_priority=self.config.region_priority, metrics=self.metrics,
        )
        self.unit_converter = UnitConverter(metrics=self.metrics)
        self.emission_computer = EmissionComputer(
            local_currency=self.config.local_currency,
            decimal_places=self.config.emissions_decimal_places,
        )
        self.quality_assessor = QualityAssessor(
            high_quality_sources=self.config.high_quality_sources,
        )
        self.distance_resolver = DistanceResolver(lookup=distance_lookup, metrics=self.metrics)
        self.special_cases = SpecialCaseHandler(
            distance_resolver=self.distance_resolver,
            aviation_factor=self.config.aviation_factor,
            decimal_places=self.config.emissions_decimal_places,
        )

    # ------------------------------------------------------------------
    # Single calculation
    # ------------------------------------------------------------------

    def calculate(self, calculation_input: InputLike) -> CalculationResult:
        """
        Calculate emissions for one activity.

        Args:
            calculation_input: CalculationInput or an equivalent dict

        Returns:
            CalculationResult with emissions in kg CO2e

        Raises:
            ValidationError: Unknown or inactive category, malformed input
            NotFoundError: No emission factor matches
            CalculationError: Unexpected arithmetic failure
        """
        start = time.perf_counter()
        request = self._coerce_input(calculation_input)

        category = self.catalog.find_category_by_id(request.category_id)
        if category is None or not category.is_active:
            raise ValidationError(
                message="Invalid or inactive emission category",
                component="CalculationEngine",
                context={"category_id": request.category_id},
            )

        method = category.calculation_method.value
        logger.info(
            "Calculating %s %s for category %s (%s)",
            request.value, request.unit, category.id, category.name,
        )

        try:
            metadata = validate_metadata(category, request.metadata)
            request = request.model_copy(update={"metadata": metadata})

            factor = self.factor_selector.select(category, request)
            conversion = self.unit_converter.normalize(request.value, request.unit, category, factor)
            base_emissions = self.emission_computer.compute(conversion.value, factor, category, request)
            emissions = self.special_cases.apply_special_cases(base_emissions, category, request)
            quality = self.quality_assessor.assess(factor, category, request)

            warnings = [conversion.warning] if conversion.warning else []
            echo_metadata = dict(request.metadata)
            echo_metadata.update({
                "calculationMethod": method,
                "factorRegion": factor.region.value,
                "qualityRating": quality.rating.value,
            })

            result = CalculationResult(
                emissions=emissions,
                calculation=CalculationEcho(
                    category_id=category.id,
                    value=request.value,
                    unit=request.unit,
                    normalized_value=conversion.value,
                    factor=factor.factor,
                    emissions=emissions,
                    metadata=echo_metadata,
                ),
                factor=factor.to_summary(),
                category=category.to_summary(),
                quality=quality,
                warnings=warnings,
            )
        except CarbonyticsException:
            self.metrics.record_calculation(method, "error", time.perf_counter() - start)
            raise
        except (ArithmeticError, TypeError, ValueError) as e:
            self.metrics.record_calculation(method, "error", time.perf_counter() - start)
            raise CalculationError(
                message=f"Emission calculation failed: {e}",
                component="CalculationEngine",
                context={"category_id": category.id},
                step="calculate",
                cause=e,
            ) from e

        duration = time.perf_counter() - start
        self.metrics.record_calculation(method, "success", duration)
        logger.info(
            "Calculated %s kg CO2e for category %s with factor %s (%s, confidence %d) in %.1fms",
            emissions, category.id, factor.id, quality.rating.value, quality.confidence,
            duration * 1000,
        )
        return result

    @staticmethod
    def _coerce_input(calculation_input: InputLike) -> CalculationInput:
        if isinstance(calculation_input, CalculationInput):
            return calculation_input
        try:
            return CalculationInput.model_validate(calculation_input)
        except PydanticValidationError as e:
            invalid = {
                ".".join(str(p) for p in err["loc"]) or "input": err["msg"]
                for err in e.errors()
            }
            raise ValidationError(
                message="Invalid calculation input",
                component="CalculationEngine",
                invalid_fields=invalid,
            ) from e

    # ------------------------------------------------------------------
    # Batch and summary
    # ------------------------------------------------------------------

    def calculate_batch(self, inputs: Iterable[InputLike]) -> List[CalculationResult]:
        """
        Calculate a batch sequentially, in order.

        A failing item is logged and skipped; no placeholder is returned for
        it, so the result list may be shorter than the input.
        """
        inputs = list(inputs)
        logger.info("Starting batch calculation: %d inputs", len(inputs))

        results: List[CalculationResult] = []
        for index, item in enumerate(inputs):
            try:
                results.append(self.calculate(item))
            except CarbonyticsException as e:
                logger.error("Batch item %d failed: %s", index, e)
                self.metrics.record_batch_failure(type(e).__name__)

        logger.info(
            "Batch calculation complete: %d/%d succeeded", len(results), len(inputs),
        )
        return results

    def summarize(self, results: Iterable[CalculationResult]) -> CalculationSummary:
        """Totals, per-scope and per-category breakdowns and quality counts."""
        results = list(results)
        total = Decimal("0")
        by_scope: Dict[int, Decimal] = defaultdict(Decimal)
        by_category: Dict[str, Decimal] = defaultdict(Decimal)
        counts = {rating: 0 for rating in QualityRating}
        confidence_sum = 0

        for result in results:
            total += result.emissions
            by_scope[result.category.scope] += result.emissions
            by_category[result.category.name] += result.emissions
            counts[result.quality.rating] += 1
            confidence_sum += result.quality.confidence

        average = round(confidence_sum / len(results)) if results else 0

        return CalculationSummary(
            total_emissions=total,
            scope_breakdown=dict(by_scope),
            category_breakdown=dict(by_category),
            quality_assessment=QualitySummary(
                average_confidence=average,
                high_quality_count=counts[QualityRating.HIGH],
                medium_quality_count=counts[QualityRating.MEDIUM],
                low_quality_count=counts[QualityRating.LOW],
            ),
            result_count=len(results),
        )

    # ------------------------------------------------------------------
    # Business travel
    # ------------------------------------------------------------------

    def calculate_business_travel(
        self,
        origin: str,
        destination: str,
        travel_class: str = "Economy",
        round_trip: bool = False,
        travel_mode: str = "Flight",
    ) -> CalculationResult:
        """
        Emissions for one business trip between two locations.

        Raises:
            NotFoundError: If the catalog has no scope 3 business travel category
        """
        category = self.catalog.find_category_by_name("business travel", scope=3)
        if category is None:
            raise NotFoundError(
                message="Business travel category not found",
                component="CalculationEngine",
            )

        return self.calculate(CalculationInput(
            category_id=category.id,
            value=1,
            unit="trip",
            metadata={
                "origin": origin,
                "destination": destination,
                "travelClass": travel_class,
                "roundTrip": round_trip,
                "travelMode": travel_mode,
            },
        ))


def create_engine(
    catalog: Optional[EmissionCatalog] = None,
    config: Optional[CalculationConfig] = None,
    distance_lookup: Optional[DistanceLookup] = None,
) -> CalculationEngine:
    """
    Build an engine with default wiring.

    Uses the bundled seed catalog and an ``AirportGapClient`` configured from
    ``config`` unless overridden.
    """
    config = config or get_config()
    logging.getLogger("carbonytics").setLevel(config.log_level)

    if catalog is None:
        catalog = InMemoryCatalog.default()
    if distance_lookup is None:
        distance_lookup = AirportGapClient(
            base_url=config.distance_api_url,
            api_key=config.distance_api_key,
            timeout=config.distance_api_timeout,
        )
    return CalculationEngine(catalog, distance_lookup=distance_lookup, config=config)


__all__ = ["CalculationEngine", "create_engine"]
