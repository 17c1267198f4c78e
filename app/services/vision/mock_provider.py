"""
Mock Detection Provider - used when DETECTION_PROVIDER=mock (local development, tests).

Returns a fixed detection result without any network call. The default
result is empty, which the fusion engine turns into the weak baseline.
"""

from typing import Dict, Optional
import logging

from app.models.evidence import DetectionResult
from app.services.vision.base import DetectionProvider

logger = logging.getLogger(__name__)


class MockDetectionProvider(DetectionProvider):

    MODEL_NAME = "mock-detector"
    MODEL_VERSION = "1.0.0"
    TIMEOUT_SECONDS = 0.1  # Instant (no network call)

    def __init__(self, result: Optional[DetectionResult] = None):
        self.result = result or DetectionResult()
        logger.info(f"✅ Mock Detection Provider initialized: {self.MODEL_NAME}")

    def get_model_info(self) -> Dict[str, str]:
        return {
            "name": self.MODEL_NAME,
            "version": self.MODEL_VERSION
        }

    def get_timeout_seconds(self) -> float:
        return self.TIMEOUT_SECONDS

    def detect(self, image_path: str) -> DetectionResult:
        return self.result.model_copy(deep=True)
