# -*- coding: utf-8 -*-
"""
Travel distance resolution.

``DistanceResolver`` asks the injected ``DistanceLookup`` once (no retry),
then consults a static Cairo-centric city-pair table in both directions.
Only when both fail does it raise ``ExternalServiceError``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import requests

from carbonytics.calculation.metrics import CalculationMetrics
from carbonytics.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

MANUAL_DISTANCE_MESSAGE = "Distance calculation failed - please enter distance manually"

# Great-circle distances in km, keyed "ORIGIN-DESTINATION"
STATIC_DISTANCES_KM: Dict[str, float] = {
    "CAI-DXB": 2196.0,
    "CAI-LHR": 3520.0,
    "CAI-JFK": 8965.0,
    "CAI-CDG": 3221.0,
    "CAI-FRA": 2895.0,
    "CAI-IST": 1094.0,
    "CAI-DOH": 1832.0,
    "CAI-RUH": 1278.0,
}


class DistanceLookup(ABC):
    """Port for an external distance source."""

    @abstractmethod
    def get_distance(self, origin: str, destination: str) -> float:
        """Return the distance in km between two locations.

        Raises:
            Exception: Any failure; the resolver treats all of them alike.
        """


class AirportGapClient(DistanceLookup):
    """
    Airport distance lookup over the airportgap.com HTTP API.

    The endpoint answers ``GET ?from=CAI&to=DXB`` with
    ``{"data": {"attributes": {"kilometers": ...}}}``.
    """

    def __init__(
        self,
        base_url: str = "https://airportgap.com/api/airports/distance",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session

    def get_distance(self, origin: str, destination: str) -> float:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        http = self.session or requests
        response = http.get(
            self.base_url,
            params={"from": origin, "to": destination},
            headers=headers,
            timeout=self.timeout,
        )
        response.raise_for_status()

        payload = response.json()
        try:
            kilometers = payload["data"]["attributes"]["kilometers"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Unexpected distance API response: {payload!r}") from e
        return float(kilometers)


class DistanceResolver:
    """
    Resolves a travel distance, API first, static table second.

    Args:
        lookup: External lookup; None uses the static table only
        static_distances: City-pair table (defaults to STATIC_DISTANCES_KM)
        metrics: Metrics recorder
    """

    def __init__(
        self,
        lookup: Optional[DistanceLookup] = None,
        static_distances: Optional[Dict[str, float]] = None,
        metrics: Optional[CalculationMetrics] = None,
    ):
        self.lookup = lookup
        self.static_distances = static_distances if static_distances is not None else STATIC_DISTANCES_KM
        self.metrics = metrics or CalculationMetrics(enabled=False)

    def resolve_distance(self, origin: str, destination: str) -> float:
        """
        Distance in km between ``origin`` and ``destination``.

        Raises:
            ExternalServiceError: If neither the lookup nor the table answers
        """
        cause: Optional[Exception] = None

        if self.lookup is not None:
            try:
                distance = self.lookup.get_distance(origin, destination)
                self.metrics.record_distance_lookup("api")
                return distance
            except Exception as e:
                cause = e
                logger.error(
                    "Distance API lookup %s-%s failed: %s", origin, destination, e,
                )

        distance = self.static_distance(origin, destination)
        if distance is not None:
            logger.info("Using static distance %s-%s: %.0f km", origin, destination, distance)
            self.metrics.record_distance_lookup("static")
            return distance

        self.metrics.record_distance_lookup("failed")
        raise ExternalServiceError(
            message=MANUAL_DISTANCE_MESSAGE,
            component="DistanceResolver",
            context={"origin": origin, "destination": destination},
            service="airport_distance",
            cause=cause,
        )

    def static_distance(self, origin: str, destination: str) -> Optional[float]:
        """Table lookup in either direction, or None."""
        forward = self.static_distances.get(f"{origin}-{destination}")
        if forward is not None:
            return forward
        return self.static_distances.get(f"{destination}-{origin}")


__all__ = [
    "DistanceLookup",
    "AirportGapClient",
    "DistanceResolver",
    "STATIC_DISTANCES_KM",
    "MANUAL_DISTANCE_MESSAGE",
]
