# -*- coding: utf-8 -*-
"""
Calculation Engine Data Models

Pydantic v2 models for the catalog records the engine reads (categories and
emission factors) and the plain data records it exchanges with its callers
(calculation input, result, quality assessment and batch summary).

Models:
    - Enums: Region, QualityRating, CalculationMethod, InputType
    - Catalog: AllowedUnit, RequiredInput, EmissionCategory, EmissionFactor
    - Boundary: CalculationInput, CalculationResult, CalculationSummary
    - Parts: CalculationEcho, FactorSummary, CategorySummary,
             QualityAssessment, QualitySummary
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from carbonytics.determinism import content_hash


# =============================================================================
# Enumerations
# =============================================================================


class Region(str, Enum):
    """Geographic scope of an emission factor."""
    EGYPT = "egypt"
    GLOBAL = "global"
    MENA = "mena"
    EU = "eu"
    US = "us"


class QualityRating(str, Enum):
    """Categorical quality of a factor or a calculation."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Numeric rank, higher is better (used for sorting)."""
        return _QUALITY_RANK[self]


_QUALITY_RANK = {
    QualityRating.HIGH: 3,
    QualityRating.MEDIUM: 2,
    QualityRating.LOW: 1,
}


class CalculationMethod(str, Enum):
    """How a category turns activity data into emissions."""
    DIRECT = "direct"
    ACTIVITY_BASED = "activity_based"
    SPEND_BASED = "spend_based"
    HYBRID = "hybrid"


class InputType(str, Enum):
    """Declared type of a category's required-input field."""
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"
    SELECT = "select"
    BOOLEAN = "boolean"


# =============================================================================
# Catalog records
# =============================================================================


class AllowedUnit(BaseModel):
    """A unit a category accepts, with its conversion to the base unit."""
    unit: str = Field(..., description="Unit symbol, e.g. 'MWh'")
    description: Optional[str] = Field(None, description="Display name")
    conversion_to_base: Optional[float] = Field(
        None, ge=0, description="Multiplier from this unit to the base unit",
    )

    model_config = ConfigDict(frozen=True)


class RequiredInput(BaseModel):
    """Descriptor of a metadata field a category asks for."""
    field: str = Field(..., description="Metadata key")
    type: InputType = Field(default=InputType.TEXT, description="Declared value type")
    required: bool = Field(default=False, description="Whether the UI marks it mandatory")
    options: List[str] = Field(default_factory=list, description="Allowed values for select fields")

    model_config = ConfigDict(frozen=True)


class EmissionCategory(BaseModel):
    """A reporting bucket (scope 1/2/3) with its units and input schema."""
    id: str = Field(..., description="Catalog identifier")
    scope: int = Field(..., ge=1, le=3, description="GHG Protocol scope")
    name: str = Field(..., description="Category name, e.g. 'Purchased Electricity'")
    subcategory: Optional[str] = Field(None, description="Scope 3 category label")
    description: str = Field(default="", description="Human-readable description")
    base_unit: str = Field(..., description="Unit the category reports in")
    allowed_units: List[AllowedUnit] = Field(default_factory=list)
    calculation_method: CalculationMethod = Field(default=CalculationMethod.ACTIVITY_BASED)
    required_inputs: List[RequiredInput] = Field(default_factory=list)
    is_active: bool = Field(default=True)

    model_config = ConfigDict(frozen=True)

    def find_allowed_unit(self, unit: str) -> Optional[AllowedUnit]:
        """Return the allowed-unit entry for ``unit``, if declared."""
        for allowed in self.allowed_units:
            if allowed.unit == unit:
                return allowed
        return None

    def to_summary(self) -> "CategorySummary":
        return CategorySummary(
            id=self.id,
            name=self.name,
            scope=self.scope,
            description=self.description,
        )


class EmissionFactor(BaseModel):
    """A coefficient mapping one unit of activity to kg CO2e."""
    id: str = Field(..., description="Catalog identifier")
    category_id: str = Field(..., description="Owning category")
    name: str = Field(..., description="Display name")
    factor: float = Field(..., ge=0, description="kg CO2e per activity unit")
    unit: str = Field(..., description="Activity unit or rate, e.g. 'kWh' or 'kg CO2e/kWh'")
    source: str = Field(..., description="Publishing body, e.g. 'DEFRA 2024'")
    region: Region = Field(default=Region.GLOBAL)
    year: int = Field(..., ge=1900, description="Publication year")
    fuel_type: Optional[str] = None
    vehicle_type: Optional[str] = None
    material_type: Optional[str] = None
    uncertainty: Optional[float] = Field(None, ge=0, le=100, description="Uncertainty percentage")
    quality_rating: QualityRating = Field(default=QualityRating.MEDIUM)
    is_default: bool = Field(default=False)
    is_active: bool = Field(default=True)
    adjustment_factor: Optional[float] = Field(
        None, gt=0, description="Regional adjustment multiplier for local conditions",
    )

    model_config = ConfigDict(frozen=True)

    @property
    def activity_unit(self) -> str:
        """Activity unit the factor applies to.

        Rates such as ``kg CO2e/kWh`` or ``kg CO2e per kWh`` yield ``kWh``;
        a bare unit is returned as is.
        """
        if "/" in self.unit:
            return self.unit.rsplit("/", 1)[1].strip()
        if " per " in self.unit:
            return self.unit.rsplit(" per ", 1)[1].strip()
        return self.unit.strip()

    def to_summary(self) -> "FactorSummary":
        return FactorSummary(
            id=self.id,
            name=self.name,
            value=self.factor,
            unit=self.unit,
            source=self.source,
            year=self.year,
            region=self.region,
            uncertainty=self.uncertainty,
        )


# =============================================================================
# Engine boundary
# =============================================================================


class CalculationInput(BaseModel):
    """A single calculation request."""
    category_id: str = Field(..., min_length=1)
    value: float = Field(..., ge=0, description="Activity quantity in ``unit``")
    unit: str = Field(..., min_length=1)
    factor_id: Optional[str] = Field(None, description="Explicit factor, bypasses selection")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = None
    organization_id: Optional[str] = None

    @field_validator("unit")
    @classmethod
    def _strip_unit(cls, v: str) -> str:
        return v.strip()


class QualityAssessment(BaseModel):
    """Confidence in a single calculation."""
    rating: QualityRating
    confidence: int = Field(..., ge=0, le=100)
    notes: List[str] = Field(default_factory=list)


class CalculationEcho(BaseModel):
    """What was actually computed, for display and audit."""
    category_id: str
    value: float
    unit: str
    normalized_value: Decimal
    factor: float
    emissions: Decimal
    metadata: Dict[str, Any] = Field(default_factory=dict)


class FactorSummary(BaseModel):
    id: str
    name: str
    value: float
    unit: str
    source: str
    year: int
    region: Region
    uncertainty: Optional[float] = None


class CategorySummary(BaseModel):
    id: str
    name: str
    scope: int
    description: str = ""


class CalculationResult(BaseModel):
    """
    Complete result of one calculation.

    ``provenance_hash`` is the SHA-256 of every other field, so identical
    input and catalog state always produce the same hash.
    """
    emissions: Decimal = Field(..., description="kg CO2e")
    calculation: CalculationEcho
    factor: FactorSummary
    category: CategorySummary
    quality: QualityAssessment
    warnings: List[str] = Field(default_factory=list)
    provenance_hash: Optional[str] = None

    def model_post_init(self, __context: Any) -> None:
        if self.provenance_hash is None:
            self.provenance_hash = self._calculate_provenance_hash()

    def _calculate_provenance_hash(self) -> str:
        return content_hash(
            self.model_dump(mode="json", exclude={"provenance_hash"})
        )

    def verify_provenance(self) -> bool:
        """Return False if any field changed after the hash was taken."""
        return self.provenance_hash == self._calculate_provenance_hash()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")


class QualitySummary(BaseModel):
    average_confidence: int = 0
    high_quality_count: int = 0
    medium_quality_count: int = 0
    low_quality_count: int = 0


class CalculationSummary(BaseModel):
    """Fold over a set of calculation results."""
    total_emissions: Decimal = Decimal("0")
    scope_breakdown: Dict[int, Decimal] = Field(default_factory=dict)
    category_breakdown: Dict[str, Decimal] = Field(default_factory=dict)
    quality_assessment: QualitySummary = Field(default_factory=QualitySummary)
    result_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


__all__ = [
    "Region",
    "QualityRating",
    "CalculationMethod",
    "InputType",
    "AllowedUnit",
    "RequiredInput",
    "EmissionCategory",
    "EmissionFactor",
    "CalculationInput",
    "QualityAssessment",
    "CalculationEcho",
    "FactorSummary",
    "CategorySummary",
    "CalculationResult",
    "QualitySummary",
    "CalculationSummary",
]
