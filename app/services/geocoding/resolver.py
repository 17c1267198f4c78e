import logging
from typing import Optional

from app.core.settings import settings
from .base import GeocodingProvider, NoOpProvider
from .nominatim_provider import NominatimProvider
from .google_provider import GoogleMapsProvider

logger = logging.getLogger(__name__)

_provider_instance: Optional[GeocodingProvider] = None


def get_geocoding_provider() -> GeocodingProvider:
    """
    Resolve the active geocoding provider based on settings.

    Rules:
    - GEOCODING_ENABLED=false: no-op provider (address stays empty).
    - Default: Nominatim (no API key required).
    - GEOCODING_PROVIDER='google' with GOOGLE_MAPS_API_KEY set: Google.
      Without a key, fall back to Nominatim.
    """
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    if not settings.GEOCODING_ENABLED:
        logger.info("Geocoding disabled; addresses will not be resolved")
        _provider_instance = NoOpProvider()
        return _provider_instance

    provider_name = (settings.GEOCODING_PROVIDER or "nominatim").lower()

    if provider_name == "google":
        if settings.GOOGLE_MAPS_API_KEY:
            _provider_instance = GoogleMapsProvider(
                api_key=settings.GOOGLE_MAPS_API_KEY,
                timeout_seconds=settings.GEOCODING_TIMEOUT_SECONDS,
            )
            logger.info("Geocoding provider initialized: google")
            return _provider_instance
        logger.warning("GEOCODING_PROVIDER=google but GOOGLE_MAPS_API_KEY is missing. Falling back to Nominatim.")

    _provider_instance = NominatimProvider(
        user_agent=settings.GEOCODING_USER_AGENT,
        timeout_seconds=settings.GEOCODING_TIMEOUT_SECONDS,
    )
    logger.info("Geocoding provider initialized: nominatim")
    return _provider_instance
