"""
In-memory Storage bucket stand-in for local development and tests (USE_MOCK_DB=true).
Mirrors the google-cloud-storage Bucket/Blob calls the storage service makes.
"""

import threading
from datetime import timedelta
from typing import Dict, Optional, Tuple

from google.api_core.exceptions import NotFound


class MockBlob:
    def __init__(self, bucket: "MockBucket", name: str):
        self.bucket = bucket
        self.name = name

    def upload_from_string(
        self, data: bytes, content_type: Optional[str] = None, timeout: Optional[float] = None
    ) -> None:
        with self.bucket._lock:
            self.bucket._objects[self.name] = (bytes(data), content_type or "application/octet-stream")

    def download_as_bytes(self, timeout: Optional[float] = None) -> bytes:
        with self.bucket._lock:
            if self.name not in self.bucket._objects:
                raise NotFound(f"No such object: {self.bucket.name}/{self.name}")
            return self.bucket._objects[self.name][0]

    def exists(self) -> bool:
        with self.bucket._lock:
            return self.name in self.bucket._objects

    @property
    def content_type(self) -> Optional[str]:
        with self.bucket._lock:
            stored = self.bucket._objects.get(self.name)
            return stored[1] if stored else None

    def generate_signed_url(
        self,
        expiration: timedelta,
        version: str = "v4",
        method: str = "GET",
    ) -> str:
        seconds = int(expiration.total_seconds())
        return f"https://storage.mock/{self.bucket.name}/{self.name}?expires_in={seconds}"


class MockBucket:
    def __init__(self, name: str):
        self.name = name
        self._objects: Dict[str, Tuple[bytes, str]] = {}
        self._lock = threading.RLock()

    def blob(self, blob_name: str) -> MockBlob:
        return MockBlob(self, blob_name)
