"""
Carbonytics Determinism Module - Utilities for Deterministic Calculations

Emission results must be reproducible: identical input and catalog state
must yield bit-identical output. This module provides the pieces the
calculation engine relies on for that:

- Freezable clock (the quality assessor scores factor age against "now")
- Decimal conversion through ``str`` to avoid float artefacts
- ROUND_HALF_UP rounding for reported emissions
- Content hashing for result provenance
"""

import hashlib
import json
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Union


class DeterministicClock:
    """
    A clock that can be frozen for testing and auditing.

    Usage:
        with DeterministicClock.frozen(datetime(2025, 1, 1, tzinfo=timezone.utc)):
            assert DeterministicClock.current_year() == 2025
    """

    _instance = None
    _lock = threading.Lock()
    _frozen_time: Optional[datetime] = None

    def __new__(cls):
        """Singleton pattern to ensure single clock instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
            return cls._instance

    @classmethod
    def now(cls, tz=None) -> datetime:
        """
        Get current time, either real or frozen.

        Args:
            tz: Timezone info (defaults to UTC)

        Returns:
            Current datetime without microseconds
        """
        instance = cls()
        if instance._frozen_time is not None:
            if tz is not None:
                return instance._frozen_time.replace(tzinfo=tz)
            return instance._frozen_time

        return datetime.now(tz or timezone.utc).replace(microsecond=0)

    @classmethod
    def current_year(cls) -> int:
        """Get the current (or frozen) calendar year."""
        return cls.now().year

    @classmethod
    def freeze(cls, frozen_time: Optional[datetime] = None):
        """
        Freeze clock at specific time.

        Args:
            frozen_time: Time to freeze at (defaults to current time)
        """
        instance = cls()
        if frozen_time is None:
            frozen_time = datetime.now(timezone.utc).replace(microsecond=0)
        instance._frozen_time = frozen_time

    @classmethod
    def unfreeze(cls):
        """Unfreeze the clock."""
        instance = cls()
        instance._frozen_time = None

    @classmethod
    @contextmanager
    def frozen(cls, frozen_time: Optional[datetime] = None):
        """Context manager for temporarily freezing time."""
        cls.freeze(frozen_time)
        try:
            yield
        finally:
            cls.unfreeze()


def to_decimal(value: Union[Decimal, float, int, str]) -> Decimal:
    """
    Convert a numeric value to Decimal without losing precision.

    Floats go through ``str`` so that ``to_decimal(0.255)`` is exactly
    ``Decimal('0.255')``. Booleans are rejected.

    Raises:
        TypeError: If value is not numeric
        ValueError: If a string value is not a number
    """
    if isinstance(value, bool):
        raise TypeError("Cannot convert bool to Decimal")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.replace(',', '').strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid numeric string: {value!r}") from e
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def round_half_up(value: Union[Decimal, float, int, str], decimal_places: int = 2) -> Decimal:
    """
    Round value with ROUND_HALF_UP to a fixed number of decimal places.

    Example:
        >>> round_half_up(559.975)
        Decimal('559.98')
    """
    if decimal_places < 0:
        raise ValueError(f"decimal_places must be >= 0, got {decimal_places}")
    quantum = Decimal(1).scaleb(-decimal_places)
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def content_hash(content: Union[str, bytes, dict]) -> str:
    """
    Generate SHA-256 hash of content for provenance tracking.

    Dictionaries are serialized with sorted keys; Decimals and dates are
    rendered with ``str``.
    """
    if isinstance(content, dict):
        content = json.dumps(content, sort_keys=True, ensure_ascii=True, default=str)

    if isinstance(content, str):
        content = content.encode('utf-8')

    return hashlib.sha256(content).hexdigest()


__all__ = [
    "DeterministicClock",
    "to_decimal",
    "round_half_up",
    "content_hash",
]
