"""Carbonytics Exception Hierarchy.

Rich exceptions for the emission calculation engine. Every error carries an
error code, the component that raised it, a context dictionary and a
timestamp so callers (HTTP layer, batch jobs, logs) can surface the specific
error kind and message.

Exception Hierarchy:
    CarbonyticsException (base)
    ├── ValidationError        - missing/inactive category, malformed metadata
    ├── NotFoundError          - no matching emission factor
    ├── ExternalServiceError   - distance lookup exhausted every strategy
    ├── CalculationError       - generic computation failure
    └── ConfigurationError     - invalid engine configuration

Example:
    >>> from carbonytics.exceptions import NotFoundError
    >>> raise NotFoundError(
    ...     message="No suitable emission factor found for this category",
    ...     component="FactorSelector",
    ...     context={"category_id": "cat-electricity"},
    ... )
"""

import json
import re
import traceback as tb
from datetime import datetime
from typing import Any, Dict, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class CarbonyticsException(Exception):
    """Base exception for all Carbonytics errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "CT_NOT_FOUND_ERROR")
        component: Name of the engine component that raised the error
        context: Dictionary with error-specific details
        timestamp: When the error occurred
        traceback_str: Stack at the point the error was created
    """

    ERROR_PREFIX = "CT"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception with rich context.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier (auto-generated if not provided)
            component: Name of the component that raised the error
            context: Dictionary with error-specific details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.component = component
        self.context = context or {}
        self.timestamp = datetime.now()
        self.traceback_str = "".join(tb.format_stack()[:-1])

    def _generate_error_code(self) -> str:
        """Generate an error code from the class name.

        Returns:
            Error code like "CT_VALIDATION_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "component": self.component,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback_str,
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        parts = [f"[{self.error_code}]"]
        if self.component:
            parts.append(f"Component: {self.component}")
        parts.append(self.message)
        return " - ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"component='{self.component}')"
        )


# ==============================================================================
# Engine Exceptions
# ==============================================================================

class ValidationError(CarbonyticsException):
    """Input validation failed.

    Raised when the requested category is missing or inactive, or when the
    metadata does not match the category's required-input schema.

    Example:
        >>> raise ValidationError(
        ...     message="Emission category is not active",
        ...     component="CalculationEngine",
        ...     context={"category_id": "cat-1"},
        ... )
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        invalid_fields: Optional[Dict[str, str]] = None,
    ):
        """Initialize validation error.

        Args:
            message: Error message
            component: Name of the component
            context: Error context
            invalid_fields: Dictionary of field_name -> reason
        """
        if invalid_fields:
            context = context or {}
            context["invalid_fields"] = invalid_fields
        super().__init__(message, component=component, context=context)

    @property
    def invalid_fields(self) -> Dict[str, str]:
        return self.context.get("invalid_fields", {})


class NotFoundError(CarbonyticsException):
    """No emission factor matched the request."""


class ExternalServiceError(CarbonyticsException):
    """An external collaborator could not answer.

    Raised by the distance resolver once both the API lookup and the static
    city-pair table have failed. This is terminal and user-facing: the
    caller must supply the distance manually.

    Example:
        >>> raise ExternalServiceError(
        ...     message="Distance calculation failed - please enter distance manually",
        ...     component="DistanceResolver",
        ...     service="airport_distance",
        ... )
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        service: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        context = context or {}
        if service:
            context["service"] = service
        if cause:
            context["cause"] = str(cause)
            context["cause_type"] = type(cause).__name__
        super().__init__(message, component=component, context=context)


class CalculationError(CarbonyticsException):
    """Generic computation failure.

    Example:
        >>> raise CalculationError(
        ...     message="Emission factor value is not numeric",
        ...     component="EmissionComputer",
        ...     step="compute",
        ... )
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        step: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        context = context or {}
        if step:
            context["step"] = step
        if cause:
            context["cause"] = str(cause)
            context["cause_type"] = type(cause).__name__
        super().__init__(message, component=component, context=context)


class ConfigurationError(CarbonyticsException):
    """Engine configuration is invalid."""


# ==============================================================================
# Exception Utilities
# ==============================================================================

def format_exception_chain(exc: Exception) -> str:
    """Format exception chain for logging/display.

    Args:
        exc: Exception to format

    Returns:
        Formatted string with full exception chain
    """
    lines = []
    current = exc

    while current is not None:
        if isinstance(current, CarbonyticsException):
            lines.append(str(current))
            lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")

        current = getattr(current, "__cause__", None)

    return "\n".join(lines)


__all__ = [
    "CarbonyticsException",
    "ValidationError",
    "NotFoundError",
    "ExternalServiceError",
    "CalculationError",
    "ConfigurationError",
    "format_exception_chain",
]
