"""
Reverse geocoding for complaint locations.

Best-effort: a failed lookup leaves location.address empty.
"""

from app.services.geocoding.base import GeocodingProvider, NoOpProvider
from app.services.geocoding.resolver import get_geocoding_provider

__all__ = ["GeocodingProvider", "NoOpProvider", "get_geocoding_provider"]
