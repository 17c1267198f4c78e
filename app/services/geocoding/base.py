from abc import ABC, abstractmethod
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class GeocodingProvider(ABC):
    """
    Abstract reverse-geocoding provider.

    Contract:
    - Input: latitude, longitude (floats)
    - Output: a human-readable address string, or None when unresolved
    - MUST NEVER raise upstream exceptions.
    - Implementations enforce a network timeout (GEOCODING_TIMEOUT_SECONDS).
    """

    name = "base"

    @abstractmethod
    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        raise NotImplementedError


class NoOpProvider(GeocodingProvider):
    """Used when geocoding is disabled; never resolves anything."""

    name = "noop"

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        return None
