import os

# Settings are read once at import time; point every backend at the local mocks
os.environ["USE_MOCK_DB"] = "true"
os.environ["DETECTION_PROVIDER"] = "mock"
os.environ["AI_PROVIDER"] = "mock"
os.environ["GEOCODING_ENABLED"] = "false"
os.environ["EVIDENCE_PIPELINE"] = "label_object"
os.environ["FIREBASE_STORAGE_BUCKET"] = "test-bucket"
os.environ.pop("MOCK_DB_PATH", None)

from typing import Optional  # noqa: E402

import pytest  # noqa: E402

from app.config.mock_firestore import MockFirestore  # noqa: E402
from app.config.mock_storage import MockBucket  # noqa: E402
from app.core.errors import UpstreamDegraded  # noqa: E402
from app.models.evidence import Detection, DetectionResult  # noqa: E402
from app.models.user import Actor, Role  # noqa: E402
from app.services.complaint_service import ComplaintService  # noqa: E402
from app.services.evidence_pipeline import LabelObjectPipeline  # noqa: E402
from app.services.geocoding import GeocodingProvider  # noqa: E402
from app.services.priority_scoring import PriorityScoringService  # noqa: E402
from app.services.storage_service import StorageService  # noqa: E402
from app.services.vision import DetectionProvider, MockDetectionProvider  # noqa: E402


class FailingDetector(DetectionProvider):
    def detect(self, image_path: str) -> DetectionResult:
        raise UpstreamDegraded("vision timed out")

    def get_model_info(self):
        return {"name": "failing-detector", "version": "0"}

    def get_timeout_seconds(self) -> float:
        return 0.1


class StaticGeocoder(GeocodingProvider):
    name = "static"

    def __init__(self, address: Optional[str] = "MG Road, Pune, Maharashtra, India"):
        self.address = address
        self.calls = []

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        self.calls.append((latitude, longitude))
        return self.address


def detections(labels=(), objects=()) -> DetectionResult:
    return DetectionResult(
        labels=[Detection(description=d, score=s) for d, s in labels],
        objects=[Detection(description=d, score=s) for d, s in objects],
    )


CITIZEN = Actor(uid="citizen-1", role=Role.CITIZEN)
OTHER_CITIZEN = Actor(uid="citizen-2", role=Role.CITIZEN)
ADMIN = Actor(uid="admin-1", role=Role.ADMIN)
WORKER_W = Actor(uid="worker-w", role=Role.WORKER)
WORKER_X = Actor(uid="worker-x", role=Role.WORKER)


@pytest.fixture
def db():
    return MockFirestore()


@pytest.fixture
def bucket():
    return MockBucket("test-bucket")


@pytest.fixture
def storage(bucket):
    return StorageService(bucket=bucket)


@pytest.fixture
def geocoder():
    return StaticGeocoder()


@pytest.fixture
def make_service(db, storage, geocoder):
    """Build a ComplaintService on the mock stores with a chosen detector or pipeline."""
    def _make(detector: Optional[DetectionProvider] = None, pipeline=None, geocoder_override=None):
        if pipeline is None:
            pipeline = LabelObjectPipeline(
                detector=detector or MockDetectionProvider(),
                scoring=PriorityScoringService(db=db),
            )
        return ComplaintService(
            db=db,
            storage=storage,
            pipeline=pipeline,
            geocoder=geocoder_override or geocoder,
        )
    return _make


@pytest.fixture
def service(make_service):
    return make_service()
