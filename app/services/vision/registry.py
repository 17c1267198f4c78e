"""
Detection Provider Registry - picks the detector from settings.
"""

from typing import Optional
import logging

from app.core.settings import settings
from app.services.vision.base import DetectionProvider
from app.services.vision.google_vision_provider import GoogleVisionProvider
from app.services.vision.mock_provider import MockDetectionProvider

logger = logging.getLogger(__name__)

_provider_instance: Optional[DetectionProvider] = None


def get_detection_provider() -> DetectionProvider:
    """
    Resolve the active detection provider.

    Rules:
    - DETECTION_PROVIDER=mock → MockDetectionProvider
    - Otherwise → GoogleVisionProvider against FIREBASE_STORAGE_BUCKET
    """
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    provider_name = (settings.DETECTION_PROVIDER or "google_vision").lower()

    if provider_name == "mock":
        _provider_instance = MockDetectionProvider()
    else:
        if provider_name != "google_vision":
            logger.warning(f"Unknown DETECTION_PROVIDER '{provider_name}', using google_vision")
        _provider_instance = GoogleVisionProvider(
            bucket_name=settings.FIREBASE_STORAGE_BUCKET,
            timeout_seconds=settings.DETECTION_TIMEOUT_SECONDS,
        )

    logger.info(f"Detection provider initialized: {_provider_instance.get_model_info()['name']}")
    return _provider_instance
