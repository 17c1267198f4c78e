import logging
from typing import Any, Dict, Optional

import requests

from .base import GeocodingProvider

logger = logging.getLogger(__name__)


class GoogleMapsProvider(GeocodingProvider):
    """
    Google Maps reverse-geocoding provider.

    Used only when GEOCODING_PROVIDER=google AND GOOGLE_MAPS_API_KEY is set.
    Fails gracefully and never raises upstream exceptions.
    """

    BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
    name = "google"

    def __init__(self, api_key: Optional[str], timeout_seconds: float = 3.0,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        if not self.api_key:
            logger.info("GoogleMapsProvider called without API key; skipping.")
            return None

        try:
            params = {
                "latlng": f"{latitude},{longitude}",
                "key": self.api_key,
            }
            resp = self.session.get(self.BASE_URL, params=params, timeout=self.timeout_seconds)
            if resp.status_code != 200:
                logger.warning(f"Google Maps reverse-geocode failed with status {resp.status_code}")
                return None

            data: Dict[str, Any] = resp.json()
            if data.get("status") not in (None, "OK"):
                logger.warning(f"Google Maps reverse-geocode status: {data.get('status')}")
                return None

            results = data.get("results") or []
            if not results:
                return None
            return results[0].get("formatted_address") or None
        except Exception as e:
            logger.warning(f"Google Maps reverse-geocode error: {e}")
            return None
