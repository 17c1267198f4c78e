"""
Storage Service - evidence and after-cleanup images in the Firebase Storage bucket.

Images are referenced by bucket path on the complaint. Callers get signed,
time-limited read URLs; the raw path is never handed to clients.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
import logging

from app.config.firebase import get_bucket
from app.core.errors import StorageError
from app.core.settings import settings

logger = logging.getLogger(__name__)


def build_gcs_uri(bucket_name: str, image_path: str) -> str:
    return f"gs://{bucket_name}/{image_path.lstrip('/')}"


class StorageService:

    CLEANUP_PREFIX = "cleanup"
    CLEANUP_CONTENT_TYPE = "image/jpeg"

    def __init__(self, bucket=None, signed_url_expiry: Optional[timedelta] = None):
        self.bucket = bucket if bucket is not None else get_bucket()
        self.signed_url_expiry = signed_url_expiry or timedelta(hours=settings.SIGNED_URL_EXPIRY_HOURS)

    def download_image(self, image_path: str, timeout: Optional[float] = None) -> bytes:
        """
        Raises:
            StorageError: If the object cannot be read
        """
        try:
            if timeout is None:
                timeout = settings.STORE_TIMEOUT_SECONDS
            return self.bucket.blob(image_path).download_as_bytes(timeout=timeout)
        except Exception as e:
            raise StorageError(f"Failed to download image {image_path}: {e}") from e

    def upload_cleanup_image(self, complaint_id: str, data: bytes) -> Tuple[str, str]:
        """
        Store the worker's after-cleanup photo.

        Returns:
            (bucket path, signed read URL)

        Raises:
            StorageError: If the upload or URL signing fails
        """
        millis = int(datetime.now(timezone.utc).timestamp() * 1000)
        path = f"{self.CLEANUP_PREFIX}/{complaint_id}_{millis}.jpg"

        try:
            blob = self.bucket.blob(path)
            blob.upload_from_string(
                data, content_type=self.CLEANUP_CONTENT_TYPE, timeout=settings.STORE_TIMEOUT_SECONDS
            )
            url = blob.generate_signed_url(expiration=self.signed_url_expiry, version="v4", method="GET")
        except Exception as e:
            logger.error(f"❌ Cleanup image upload failed for complaint {complaint_id}: {e}", exc_info=True)
            raise StorageError(f"Failed to store cleanup image: {e}") from e

        logger.info(f"Stored cleanup image for complaint {complaint_id} at {path} ({len(data)} bytes)")
        return path, url

    def signed_url(self, image_path: Optional[str]) -> Optional[str]:
        """
        Signed read URL for display; None if there is no path or signing fails.
        """
        if not image_path:
            return None
        try:
            return self.bucket.blob(image_path).generate_signed_url(
                expiration=self.signed_url_expiry, version="v4", method="GET"
            )
        except Exception as e:
            logger.warning(f"⚠️ Could not sign URL for {image_path}: {e}")
            return None


# Global service instance (singleton pattern)
_storage_service = None


def get_storage_service() -> StorageService:
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
