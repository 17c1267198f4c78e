import logging
from typing import Any, Dict, Optional

import requests

from .base import GeocodingProvider

logger = logging.getLogger(__name__)


class NominatimProvider(GeocodingProvider):
    """
    OpenStreetMap Nominatim reverse-geocoding provider.

    - No API key required.
    - Includes a User-Agent header as required by Nominatim usage policy.
    - Never raises upstream exceptions; returns None on failure.
    """

    BASE_URL = "https://nominatim.openstreetmap.org/reverse"
    name = "nominatim"

    def __init__(self, user_agent: str = "clean-city-api/1.0", timeout_seconds: float = 3.0,
                 session: Optional[requests.Session] = None):
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        try:
            params = {
                "lat": latitude,
                "lon": longitude,
                "format": "jsonv2",
            }
            headers = {
                "User-Agent": self.user_agent,
            }
            resp = self.session.get(self.BASE_URL, params=params, headers=headers, timeout=self.timeout_seconds)
            if resp.status_code != 200:
                logger.warning(f"Nominatim reverse-geocode failed with status {resp.status_code}")
                return None

            data: Dict[str, Any] = resp.json()
            return data.get("display_name") or None
        except Exception as e:
            # Fail gracefully, complaint submission must not depend on geocoding
            logger.warning(f"Nominatim reverse-geocode error: {e}")
            return None
