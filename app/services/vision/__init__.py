"""
Image detection plug-ins for the label/object evidence pipeline.

Detectors may be slow or fail; the pipeline absorbs failures.
"""

from app.services.vision.base import DetectionProvider
from app.services.vision.google_vision_provider import GoogleVisionProvider
from app.services.vision.mock_provider import MockDetectionProvider
from app.services.vision.registry import get_detection_provider

__all__ = [
    "DetectionProvider",
    "GoogleVisionProvider",
    "MockDetectionProvider",
    "get_detection_provider",
]
