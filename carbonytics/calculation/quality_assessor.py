# -*- coding: utf-8 -*-
"""
Calculation quality assessment.

Scores confidence in a result from factor region, factor age, source,
uncertainty and input completeness. Starts at 100 / high; each rule adjusts
the score and may downgrade the rating. Notes are kept in firing order.
"""

import logging
from typing import List, Optional, Sequence, Type

from carbonytics.calculation.config import DEFAULT_HIGH_QUALITY_SOURCES
from carbonytics.calculation.models import (
    CalculationInput,
    EmissionCategory,
    EmissionFactor,
    QualityAssessment,
    QualityRating,
    Region,
)
from carbonytics.determinism import DeterministicClock

logger = logging.getLogger(__name__)


class QualityAssessor:
    """Heuristic confidence scorer.

    Args:
        high_quality_sources: Source markers that earn no penalty
        clock: Provides ``current_year()``; freeze it to pin factor age
    """

    def __init__(
        self,
        high_quality_sources: Optional[Sequence[str]] = None,
        clock: Type[DeterministicClock] = DeterministicClock,
    ):
        self.high_quality_sources = list(high_quality_sources or DEFAULT_HIGH_QUALITY_SOURCES)
        self.clock = clock

    def assess(
        self,
        factor: EmissionFactor,
        category: EmissionCategory,
        calculation_input: CalculationInput,
    ) -> QualityAssessment:
        confidence = 100
        rating = QualityRating.HIGH
        notes: List[str] = []

        # Region
        if factor.region == Region.EGYPT:
            confidence += 10
            notes.append("Using Egyptian-specific emission factor")
        else:
            confidence -= 10
            notes.append("Using global emission factor (Egyptian factor not available)")

        # Age
        age = self.clock.current_year() - factor.year
        if age <= 2:
            notes.append("Recent emission factor (≤2 years old)")
        elif age <= 5:
            confidence -= 5
            notes.append("Moderately recent emission factor (3-5 years old)")
        else:
            confidence -= 15
            rating = QualityRating.MEDIUM
            notes.append("Older emission factor (>5 years old) - consider updating")

        # Source
        if any(marker in factor.source for marker in self.high_quality_sources):
            notes.append("High-quality data source")
        else:
            confidence -= 5
            notes.append("Custom or secondary data source")

        # Uncertainty
        if factor.uncertainty:
            if factor.uncertainty > 50:
                confidence -= 20
                rating = QualityRating.LOW
                notes.append("High uncertainty in emission factor")
            elif factor.uncertainty > 20:
                confidence -= 10
                if rating == QualityRating.HIGH:
                    rating = QualityRating.MEDIUM
                notes.append("Moderate uncertainty in emission factor")

        # Completeness
        provided = len(calculation_input.metadata or {})
        completeness = provided / max(len(category.required_inputs), 1)
        if completeness < 0.5:
            confidence -= 15
            rating = QualityRating.MEDIUM
            notes.append("Limited input data provided")
        elif completeness < 1.0:
            confidence -= 5
            notes.append("Some optional input data missing")

        confidence = max(0, min(100, confidence))

        if confidence < 50:
            rating = QualityRating.LOW
        elif confidence < 75 and rating != QualityRating.LOW:
            rating = QualityRating.MEDIUM

        logger.debug(
            "Quality for factor %s: %s (%d), %d notes",
            factor.id, rating.value, confidence, len(notes),
        )
        return QualityAssessment(rating=rating, confidence=confidence, notes=notes)


__all__ = ["QualityAssessor"]
