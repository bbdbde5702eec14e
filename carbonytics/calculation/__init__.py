"""
Carbonytics Calculation Engine

Deterministic GHG emission calculations:
- Factor selection with regional fallback
- Unit normalization
- Activity, spend, hybrid and direct methods
- Flight distance resolution for business travel
- Quality and confidence scoring
"""

from carbonytics.calculation.catalog import EmissionCatalog, InMemoryCatalog
from carbonytics.calculation.config import (
    CalculationConfig,
    get_config,
    reset_config,
    set_config,
)
from carbonytics.calculation.distance import (
    AirportGapClient,
    DistanceLookup,
    DistanceResolver,
)
from carbonytics.calculation.emission_computer import EmissionComputer
from carbonytics.calculation.engine import CalculationEngine, create_engine
from carbonytics.calculation.factor_selector import (
    AnyRegionStrategy,
    FactorSelector,
    RegionStrategy,
)
from carbonytics.calculation.models import (
    CalculationInput,
    CalculationMethod,
    CalculationResult,
    CalculationSummary,
    EmissionCategory,
    EmissionFactor,
    QualityAssessment,
    QualityRating,
    Region,
)
from carbonytics.calculation.quality_assessor import QualityAssessor
from carbonytics.calculation.special_cases import SpecialCaseHandler
from carbonytics.calculation.unit_converter import UnitConverter
from carbonytics.calculation.validator import validate_metadata

__all__ = [
    'CalculationEngine',
    'create_engine',
    'EmissionCatalog',
    'InMemoryCatalog',
    'CalculationConfig',
    'get_config',
    'set_config',
    'reset_config',
    'AirportGapClient',
    'DistanceLookup',
    'DistanceResolver',
    'EmissionComputer',
    'FactorSelector',
    'RegionStrategy',
    'AnyRegionStrategy',
    'QualityAssessor',
    'SpecialCaseHandler',
    'UnitConverter',
    'validate_metadata',
    'CalculationInput',
    'CalculationMethod',
    'CalculationResult',
    'CalculationSummary',
    'EmissionCategory',
    'EmissionFactor',
    'QualityAssessment',
    'QualityRating',
    'Region',
]
