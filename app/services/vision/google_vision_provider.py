"""
Google Cloud Vision detection provider.

Runs label detection and object localization against the evidence image in
the Firebase Storage bucket (gs:// URI, no download needed).
"""

from typing import Dict, Optional
import logging

from google.cloud import vision

from app.core.errors import UpstreamDegraded
from app.models.evidence import Detection, DetectionResult
from app.services.storage_service import build_gcs_uri
from app.services.vision.base import DetectionProvider

logger = logging.getLogger(__name__)


def _clamp_score(score: float) -> float:
    return max(0.0, min(float(score), 1.0))


class GoogleVisionProvider(DetectionProvider):
    """
    Requires Application Default Credentials (or the Firebase service account)
    with Vision API access, and FIREBASE_STORAGE_BUCKET.
    """

    MODEL_NAME = "google-cloud-vision"
    MODEL_VERSION = "v1"

    def __init__(self, bucket_name: Optional[str], timeout_seconds: float = 10.0, client=None):
        self.bucket_name = bucket_name
        self.timeout_seconds = timeout_seconds
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = vision.ImageAnnotatorClient()
        return self._client

    def get_model_info(self) -> Dict[str, str]:
        return {
            "name": self.MODEL_NAME,
            "version": self.MODEL_VERSION
        }

    def get_timeout_seconds(self) -> float:
        return self.timeout_seconds

    def detect(self, image_path: str) -> DetectionResult:
        if not self.bucket_name:
            raise UpstreamDegraded("FIREBASE_STORAGE_BUCKET not configured, cannot address image for Vision")

        gcs_uri = build_gcs_uri(self.bucket_name, image_path)

        try:
            client = self._get_client()
            image = vision.Image(source=vision.ImageSource(image_uri=gcs_uri))
            label_response = client.label_detection(image=image, timeout=self.timeout_seconds)
            object_response = client.object_localization(image=image, timeout=self.timeout_seconds)
        except Exception as e:
            raise UpstreamDegraded(f"Vision request failed for {gcs_uri}: {e}") from e

        for response in (label_response, object_response):
            if response.error and response.error.message:
                raise UpstreamDegraded(f"Vision returned error for {gcs_uri}: {response.error.message}")

        labels = [
            Detection(description=label.description, score=_clamp_score(label.score))
            for label in label_response.label_annotations
        ]
        objects = [
            Detection(description=obj.name, score=_clamp_score(obj.score))
            for obj in object_response.localized_object_annotations
        ]

        logger.info(f"Vision detected {len(labels)} label(s) and {len(objects)} object(s) for {image_path}")
        return DetectionResult(labels=labels, objects=objects)
