"""
Carbonytics - GHG emission calculation engine.
"""

__version__ = "0.1.0"

from carbonytics.exceptions import (
    CalculationError,
    CarbonyticsException,
    ConfigurationError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "__version__",
    "CarbonyticsException",
    "ValidationError",
    "NotFoundError",
    "ExternalServiceError",
    "CalculationError",
    "ConfigurationError",
]
