# -*- coding: utf-8 -*-
"""
Metadata validation against a category's required-input schema.

Provided fields must match their declared type. Missing fields are never an
error here; they only lower completeness in the quality assessment.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from carbonytics.calculation.models import EmissionCategory, InputType
from carbonytics.determinism import to_decimal
from carbonytics.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Metadata keys the engine reads regardless of category schema
KNOWN_FIELD_TYPES: Dict[str, InputType] = {
    "activityData": InputType.NUMBER,
    "roundTrip": InputType.BOOLEAN,
    "currency": InputType.TEXT,
}


def _check_number(value: Any) -> Tuple[Any, Optional[str]]:
    if isinstance(value, bool):
        return value, "must be a number"
    if isinstance(value, (int, float, Decimal)):
        return value, None
    if isinstance(value, str):
        try:
            to_decimal(value)
        except ValueError:
            return value, "must be a number"
        return value, None
    return value, "must be a number"


def _check_date(value: Any) -> Tuple[Any, Optional[str]]:
    if isinstance(value, (date, datetime)):
        return value, None
    if not isinstance(value, str):
        return value, "must be an ISO date"
    text = value.strip()
    for parse in (
        datetime.fromisoformat,
        lambda s: datetime.strptime(s, "%Y-%m"),
    ):
        try:
            parse(text)
            return value, None
        except ValueError:
            continue
    return value, "must be an ISO date"


def _check_boolean(value: Any) -> Tuple[Any, Optional[str]]:
    if isinstance(value, bool):
        return value, None
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true", None
    return value, "must be true or false"


def _check_text(value: Any) -> Tuple[Any, Optional[str]]:
    if isinstance(value, str):
        return value, None
    return value, "must be text"


def _check(input_type: InputType, value: Any, options) -> Tuple[Any, Optional[str]]:
    if input_type == InputType.NUMBER:
        return _check_number(value)
    if input_type == InputType.DATE:
        return _check_date(value)
    if input_type == InputType.BOOLEAN:
        return _check_boolean(value)
    if input_type == InputType.SELECT:
        if options and value not in options:
            return value, f"must be one of: {', '.join(options)}"
        return value, None
    return _check_text(value)


def validate_metadata(category: EmissionCategory, metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Validate ``metadata`` against the category's required inputs.

    Args:
        category: Category whose ``required_inputs`` declare the field types
        metadata: Caller-supplied metadata (may be None)

    Returns:
        A normalized copy of the metadata; boolean fields given as
        ``"true"``/``"false"`` become real booleans.

    Raises:
        ValidationError: If any provided field has the wrong type
    """
    normalized = dict(metadata or {})
    invalid: Dict[str, str] = {}

    declared = {item.field: item for item in category.required_inputs}
    for name, value in list(normalized.items()):
        if value is None:
            continue
        descriptor = declared.get(name)
        if descriptor is not None:
            coerced, problem = _check(descriptor.type, value, descriptor.options)
        elif name in KNOWN_FIELD_TYPES:
            coerced, problem = _check(KNOWN_FIELD_TYPES[name], value, None)
        else:
            continue
        if problem:
            invalid[name] = problem
        else:
            normalized[name] = coerced

    if invalid:
        logger.info(
            "Metadata validation failed for category %s: %s",
            category.id, ", ".join(sorted(invalid)),
        )
        raise ValidationError(
            message=f"Invalid metadata for category '{category.name}'",
            component="MetadataValidator",
            context={"category_id": category.id},
            invalid_fields=invalid,
        )

    return normalized


__all__ = ["validate_metadata", "KNOWN_FIELD_TYPES"]
