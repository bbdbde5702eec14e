# -*- coding: utf-8 -*-
"""
Emission Catalog

Read-only access to emission categories and emission factors. The engine
depends only on the ``EmissionCatalog`` interface; persistence lives with
the caller. ``InMemoryCatalog`` is the bundled implementation, loadable from
a YAML registry (the package ships ``carbonytics/data/catalog.yaml``).

Queries mirror what a document store offers: equality filters plus a
multi-key sort, e.g.::

    catalog.find_factors(
        {"category_id": "cat-electricity", "region": "egypt", "is_active": True},
        sort=[("year", -1), ("is_default", -1), ("quality_rating", -1)],
    )
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import yaml

from carbonytics.calculation.models import EmissionCategory, EmissionFactor, QualityRating
from carbonytics.exceptions import ValidationError

logger = logging.getLogger(__name__)

SortSpec = Sequence[Tuple[str, int]]

DEFAULT_CATALOG_PATH = Path(__file__).parent.parent / "data" / "catalog.yaml"


class EmissionCatalog(ABC):
    """Read interface the calculation engine needs from the catalog."""

    @abstractmethod
    def find_category_by_id(self, category_id: str) -> Optional[EmissionCategory]:
        """Return the category with ``category_id`` or None."""

    @abstractmethod
    def find_category_by_name(
        self, pattern: str, scope: Optional[int] = None
    ) -> Optional[EmissionCategory]:
        """Return the first category whose name contains ``pattern`` (case-insensitive)."""

    @abstractmethod
    def find_factors(
        self, filter: Dict[str, Any], sort: Optional[SortSpec] = None
    ) -> List[EmissionFactor]:
        """Return factors whose attributes equal every ``filter`` entry, sorted."""

    @abstractmethod
    def find_factor_by_id(self, factor_id: str) -> Optional[EmissionFactor]:
        """Return the factor with ``factor_id`` or None."""


def _sort_value(value: Any) -> Any:
    # None sorts lowest in either direction
    if isinstance(value, QualityRating):
        return (1, value.rank)
    if isinstance(value, Enum):
        return (1, value.value)
    if value is None:
        return (0, 0)
    return (1, value)


def sort_factors(factors: Iterable[EmissionFactor], sort: Optional[SortSpec]) -> List[EmissionFactor]:
    """Stable multi-key sort; ``1`` ascending, ``-1`` descending.

    Ties keep catalog order, so the same catalog always sorts the same way.
    """
    ordered = list(factors)
    for key, direction in reversed(list(sort or [])):
        ordered.sort(
            key=lambda factor: _sort_value(getattr(factor, key)),
            reverse=direction < 0,
        )
    return ordered


class InMemoryCatalog(EmissionCatalog):
    """
    Catalog held in memory, in insertion order.

    Example:
        >>> catalog = InMemoryCatalog.default()
        >>> category = catalog.find_category_by_name("electricity", scope=2)
    """

    def __init__(
        self,
        categories: Optional[Iterable[EmissionCategory]] = None,
        factors: Optional[Iterable[EmissionFactor]] = None,
    ):
        self._categories: Dict[str, EmissionCategory] = {}
        self._factors: Dict[str, EmissionFactor] = {}

        for category in categories or []:
            self._categories[category.id] = category
        for factor in factors or []:
            self._factors[factor.id] = factor

        logger.debug(
            "InMemoryCatalog created with %d categories and %d factors",
            len(self._categories), len(self._factors),
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryCatalog":
        """Build a catalog from ``{"categories": [...], "factors": [...]}``.

        Raises:
            ValidationError: If a record does not match its model.
        """
        data = data or {}
        try:
            categories = [EmissionCategory.model_validate(c) for c in data.get("categories") or []]
            factors = [EmissionFactor.model_validate(f) for f in data.get("factors") or []]
        except ValueError as e:
            raise ValidationError(
                message=f"Invalid catalog record: {e}",
                component="InMemoryCatalog",
            ) from e

        unknown = sorted({f.category_id for f in factors} - {c.id for c in categories})
        if unknown:
            logger.warning("Catalog factors reference unknown categories: %s", ", ".join(unknown))

        return cls(categories=categories, factors=factors)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "InMemoryCatalog":
        """Load a catalog from a YAML registry file.

        Raises:
            ValidationError: If the file is missing, unparseable or invalid.
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ValidationError(
                message=f"Emission catalog not found: {path}",
                component="InMemoryCatalog",
            ) from e
        except yaml.YAMLError as e:
            raise ValidationError(
                message=f"Failed to parse emission catalog {path}: {e}",
                component="InMemoryCatalog",
            ) from e

        catalog = cls.from_dict(data)
        logger.info(
            "Loaded %d categories and %d emission factors from %s",
            len(catalog._categories), len(catalog._factors), path,
        )
        return catalog

    @classmethod
    def default(cls) -> "InMemoryCatalog":
        """Load the seed catalog bundled with the package."""
        return cls.from_yaml(DEFAULT_CATALOG_PATH)

    # ------------------------------------------------------------------
    # EmissionCatalog
    # ------------------------------------------------------------------

    def find_category_by_id(self, category_id: str) -> Optional[EmissionCategory]:
        return self._categories.get(category_id)

    def find_category_by_name(
        self, pattern: str, scope: Optional[int] = None
    ) -> Optional[EmissionCategory]:
        needle = pattern.lower()
        for category in self._categories.values():
            if scope is not None and category.scope != scope:
                continue
            if needle in category.name.lower():
                return category
        return None

    def find_factors(
        self, filter: Dict[str, Any], sort: Optional[SortSpec] = None
    ) -> List[EmissionFactor]:
        matches = [
            factor for factor in self._factors.values()
            if all(getattr(factor, key, None) == value for key, value in filter.items())
        ]
        return sort_factors(matches, sort)

    def find_factor_by_id(self, factor_id: str) -> Optional[EmissionFactor]:
        return self._factors.get(factor_id)

    def __len__(self) -> int:
        return len(self._factors)


__all__ = [
    "EmissionCatalog",
    "InMemoryCatalog",
    "DEFAULT_CATALOG_PATH",
    "sort_factors",
]
