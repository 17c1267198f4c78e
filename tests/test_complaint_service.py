from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import AuthorizationError, NotFoundError, StorageError, ValidationError
from app.core.settings import settings
from app.models.complaint import ComplaintCreate, ComplaintStatus, Location
from app.models.evidence import PriorityTier
from app.services.evidence_pipeline import AIVerdictPipeline
from app.services.ai_plugin import MockVerdictProvider
from app.services.status_workflow import StatusWorkflowEngine
from app.services.vision import MockDetectionProvider

from conftest import (
    ADMIN,
    CITIZEN,
    OTHER_CITIZEN,
    WORKER_W,
    WORKER_X,
    FailingDetector,
    StaticGeocoder,
    detections,
)


def payload(**overrides):
    data = {
        "description": "Garbage pile next to the bus stop",
        "location": Location(lat=18.5204, lng=73.8567),
        "image_path": "complaints/citizen-1/1700000000000.jpg",
    }
    data.update(overrides)
    return ComplaintCreate(**data)


def stored(db, complaint_id):
    return db.collection(settings.COMPLAINTS_COLLECTION).document(complaint_id).get().to_dict()


def submit(service):
    return service.submit_complaint(CITIZEN, payload()).complaint_id


def test_submit_creates_open_scored_complaint(service, db, geocoder):
    result = service.submit_complaint(CITIZEN, payload())

    assert (result.severity_score, result.priority) == (40, PriorityTier.MEDIUM)

    data = stored(db, result.complaint_id)
    assert data["status"] == "OPEN"
    assert data["created_by"] == "citizen-1"
    assert data["severity_score"] == 40
    assert data["priority"] == "MEDIUM"
    assert data["evidence_pipeline"] == "label_object"
    assert data["evidence_summary"]["confidence"] == pytest.approx(0.3)
    assert data["location"]["address"] == geocoder.address
    assert isinstance(data["created_at"], datetime)
    assert "assigned_to" not in data
    assert [(h["from"], h["to"]) for h in data["status_history"]] == [(None, "OPEN")]


def test_submit_strong_evidence_is_critical(make_service, db):
    detector = MockDetectionProvider(detections(
        labels=[("trash", 0.9)],
        objects=[("bottle", 0.5), ("bottle", 0.6), ("bottle", 0.4)],
    ))
    result = make_service(detector=detector).submit_complaint(CITIZEN, payload())

    assert (result.severity_score, result.priority) == (100, PriorityTier.CRITICAL)
    assert stored(db, result.complaint_id)["evidence_summary"]["object_count"] == 3


@pytest.mark.parametrize("missing", ["description", "location", "image_path"])
def test_submit_requires_all_fields(service, db, missing):
    with pytest.raises(ValidationError) as exc:
        service.submit_complaint(CITIZEN, payload(**{missing: None}))

    assert missing in exc.value.message
    assert list(db.collection(settings.COMPLAINTS_COLLECTION).stream()) == []


def test_blank_description_is_missing(service):
    with pytest.raises(ValidationError):
        service.submit_complaint(CITIZEN, payload(description="   "))


@pytest.mark.parametrize("actor", [ADMIN, WORKER_W])
def test_only_citizens_submit(service, actor):
    with pytest.raises(AuthorizationError):
        service.submit_complaint(actor, payload())


def test_detector_failure_does_not_block_submission(make_service, db):
    result = make_service(detector=FailingDetector()).submit_complaint(CITIZEN, payload())

    assert (result.severity_score, result.priority) == (40, PriorityTier.MEDIUM)
    assert stored(db, result.complaint_id)["evidence_summary"]["available"] is False


class ExplodingGeocoder(StaticGeocoder):
    def reverse_geocode(self, latitude, longitude):
        raise RuntimeError("geocoder down")


@pytest.mark.parametrize("failing_geocoder", [ExplodingGeocoder(), StaticGeocoder(address=None)])
def test_unresolved_address_is_omitted(make_service, db, failing_geocoder):
    result = make_service(geocoder_override=failing_geocoder).submit_complaint(CITIZEN, payload())
    assert "address" not in stored(db, result.complaint_id)["location"]


def test_client_supplied_address_skips_geocoding(service, db, geocoder):
    location = Location(lat=18.5204, lng=73.8567, address="Near Shivaji Chowk")
    result = service.submit_complaint(CITIZEN, payload(location=location))

    assert stored(db, result.complaint_id)["location"]["address"] == "Near Shivaji Chowk"
    assert geocoder.calls == []


def test_recent_nearby_complaints_raise_severity(make_service):
    service = make_service(detector=MockDetectionProvider(detections(labels=[("Litter", 0.5)])))
    first = service.submit_complaint(CITIZEN, payload())
    second = service.submit_complaint(OTHER_CITIZEN, payload())

    assert first.severity_score == 40
    assert second.severity_score == 45


class FailingVerdictProvider(MockVerdictProvider):
    def assess(self, image_path, description):
        raise RuntimeError("model overloaded")


def test_ai_pipeline_failure_scores_civic_baseline(make_service, db):
    service = make_service(pipeline=AIVerdictPipeline(provider=FailingVerdictProvider()))
    result = service.submit_complaint(CITIZEN, payload())

    assert (result.severity_score, result.priority) == (40, PriorityTier.MEDIUM)
    data = stored(db, result.complaint_id)
    assert data["evidence_pipeline"] == "ai_verdict"
    assert data["evidence_summary"]["available"] is False


def test_ai_pipeline_disabled_scores_civic_baseline(make_service):
    service = make_service(pipeline=AIVerdictPipeline(provider=None, use_registry=False))
    result = service.submit_complaint(CITIZEN, payload())
    assert (result.severity_score, result.priority) == (40, PriorityTier.MEDIUM)


def test_ai_pipeline_records_verdict(make_service, db):
    service = make_service(pipeline=AIVerdictPipeline(provider=MockVerdictProvider()))
    result = service.submit_complaint(CITIZEN, payload(description="Huge overflowing garbage dump"))

    # mock confidence is below the 0.75 threshold; only severity HIGH counts
    assert (result.severity_score, result.priority) == (50, PriorityTier.MEDIUM)
    summary = stored(db, result.complaint_id)["evidence_summary"]
    assert summary["is_public_garbage"] is True
    assert summary["severity"] == "HIGH"


def test_assign_then_clean_then_other_worker_refused(service, db):
    complaint_id = submit(service)

    assigned = service.assign_complaint(ADMIN, complaint_id, "worker-w")
    assert assigned.status == ComplaintStatus.ASSIGNED
    assert assigned.assigned_to == "worker-w"
    assert assigned.assigned_by == "admin-1"

    cleaned = service.mark_cleaned(WORKER_W, complaint_id)
    assert cleaned.status == ComplaintStatus.CLEANED
    assert cleaned.cleaned_by == "worker-w"
    assert cleaned.cleaned_at is not None

    with pytest.raises((AuthorizationError, ValidationError)):
        service.mark_cleaned(WORKER_X, complaint_id)

    data = stored(db, complaint_id)
    assert data["status"] == "CLEANED"
    assert data["assigned_to"] == "worker-w"
    assert [h["to"] for h in data["status_history"]] == ["OPEN", "ASSIGNED", "CLEANED"]


def test_mark_cleaned_on_open_complaint_changes_nothing(service, db):
    complaint_id = submit(service)
    before = stored(db, complaint_id)

    with pytest.raises((AuthorizationError, ValidationError)):
        service.mark_cleaned(WORKER_W, complaint_id)

    assert stored(db, complaint_id) == before
    assert stored(db, complaint_id)["status"] == "OPEN"


def test_wrong_worker_cannot_clean_assigned_complaint(service, db):
    complaint_id = submit(service)
    service.assign_complaint(ADMIN, complaint_id, "worker-w")

    with pytest.raises(AuthorizationError):
        service.mark_cleaned(WORKER_X, complaint_id)
    with pytest.raises(AuthorizationError):
        service.update_status(WORKER_X, complaint_id, "CLEANED")

    assert stored(db, complaint_id)["status"] == "ASSIGNED"


@pytest.mark.parametrize("actor", [CITIZEN, WORKER_W])
def test_non_admin_assign_refused_without_mutation(service, db, actor):
    complaint_id = submit(service)
    before = stored(db, complaint_id)

    with pytest.raises(AuthorizationError):
        service.assign_complaint(actor, complaint_id, "worker-w")

    assert stored(db, complaint_id) == before


def test_assign_unknown_complaint(service):
    with pytest.raises(NotFoundError):
        service.assign_complaint(ADMIN, "does-not-exist", "worker-w")


def test_reassign_keeps_single_assignee(service, db):
    complaint_id = submit(service)
    service.assign_complaint(ADMIN, complaint_id, "worker-w")
    service.assign_complaint(ADMIN, complaint_id, "worker-x")

    data = stored(db, complaint_id)
    assert data["status"] == "ASSIGNED"
    assert data["assigned_to"] == "worker-x"


def test_cleaned_complaint_cannot_be_reassigned(service, db):
    complaint_id = submit(service)
    service.assign_complaint(ADMIN, complaint_id, "worker-w")
    service.mark_cleaned(WORKER_W, complaint_id)

    with pytest.raises(ValidationError):
        service.assign_complaint(ADMIN, complaint_id, "worker-x")
    assert stored(db, complaint_id)["assigned_to"] == "worker-w"


def test_worker_generic_update_to_cleaned(service, db):
    complaint_id = submit(service)
    service.assign_complaint(ADMIN, complaint_id, "worker-w")

    result = service.update_status(WORKER_W, complaint_id, "cleaned", note="Swept and bagged")
    assert result.status == ComplaintStatus.CLEANED
    assert stored(db, complaint_id)["status_history"][-1]["note"] == "Swept and bagged"


def test_worker_cannot_close(service, db):
    complaint_id = submit(service)
    service.assign_complaint(ADMIN, complaint_id, "worker-w")

    with pytest.raises(AuthorizationError):
        service.update_status(WORKER_W, complaint_id, "CLOSED")
    assert stored(db, complaint_id)["status"] == "ASSIGNED"


def test_admin_closes_and_closed_is_terminal(service, db):
    complaint_id = submit(service)
    service.assign_complaint(ADMIN, complaint_id, "worker-w")

    closed = service.update_status(ADMIN, complaint_id, "CLOSED", note="Duplicate")
    assert closed.status == ComplaintStatus.CLOSED
    assert closed.assigned_to == "worker-w"

    with pytest.raises(ValidationError):
        service.update_status(ADMIN, complaint_id, "OPEN")
    assert stored(db, complaint_id)["status"] == "CLOSED"


def test_closing_keeps_assignee_only_if_there_was_one(service, db):
    unassigned = submit(service)
    service.update_status(ADMIN, unassigned, "CLOSED")
    assert "assigned_to" not in stored(db, unassigned)

    assigned = submit(service)
    service.assign_complaint(ADMIN, assigned, "worker-w")
    service.update_status(ADMIN, assigned, "CLOSED")
    assert stored(db, assigned)["assigned_to"] == "worker-w"


def test_admin_cannot_set_assigned_directly(service, db):
    complaint_id = submit(service)
    with pytest.raises(ValidationError):
        service.update_status(ADMIN, complaint_id, "ASSIGNED")
    assert stored(db, complaint_id)["status"] == "OPEN"


def test_unknown_status_value(service):
    complaint_id = submit(service)
    with pytest.raises(ValidationError):
        service.update_status(ADMIN, complaint_id, "RESOLVED")


def test_severity_is_never_recomputed(service, db):
    complaint_id = submit(service)
    before = stored(db, complaint_id)

    service.assign_complaint(ADMIN, complaint_id, "worker-w")
    service.mark_cleaned(WORKER_W, complaint_id)

    after = stored(db, complaint_id)
    assert after["severity_score"] == before["severity_score"]
    assert after["priority"] == before["priority"]


def test_cleanup_uploads_after_image(service, db, bucket):
    complaint_id = submit(service)
    service.assign_complaint(ADMIN, complaint_id, "worker-w")

    result = service.mark_cleaned(WORKER_W, complaint_id, image_bytes=b"\xff\xd8\xff\xe0jpeg")

    data = stored(db, complaint_id)
    assert data["after_image_path"].startswith(f"cleanup/{complaint_id}_")
    assert data["after_image_path"].endswith(".jpg")
    assert bucket.blob(data["after_image_path"]).download_as_bytes() == b"\xff\xd8\xff\xe0jpeg"
    assert bucket.blob(data["after_image_path"]).content_type == "image/jpeg"
    assert data["after_uploaded_at"] is not None
    assert result.after_image_url.startswith("https://storage.mock/test-bucket/cleanup/")


def test_refused_cleanup_uploads_nothing(service, bucket):
    complaint_id = submit(service)

    with pytest.raises(AuthorizationError):
        service.mark_cleaned(WORKER_W, complaint_id, image_bytes=b"jpeg")
    assert bucket._objects == {}


class BrokenBucket:
    name = "broken"

    def blob(self, name):
        raise RuntimeError("bucket unavailable")


def test_cleanup_upload_failure_is_storage_error(service, db):
    from app.services.storage_service import StorageService

    complaint_id = submit(service)
    service.assign_complaint(ADMIN, complaint_id, "worker-w")
    service.storage = StorageService(bucket=BrokenBucket())

    with pytest.raises(StorageError):
        service.mark_cleaned(WORKER_W, complaint_id, image_bytes=b"jpeg")
    assert stored(db, complaint_id)["status"] == "ASSIGNED"


def test_get_complaint_signs_image_url(service):
    complaint_id = submit(service)
    complaint = service.get_complaint(CITIZEN, complaint_id)

    assert complaint.id == complaint_id
    assert complaint.image_url == (
        "https://storage.mock/test-bucket/complaints/citizen-1/1700000000000.jpg?expires_in=86400"
    )
    assert complaint.status_history[0].to_status == "OPEN"


def test_citizen_reads_only_own_complaints(service):
    complaint_id = submit(service)
    with pytest.raises(AuthorizationError):
        service.get_complaint(OTHER_CITIZEN, complaint_id)
    assert service.get_complaint(WORKER_X, complaint_id).id == complaint_id


def test_get_unknown_complaint(service):
    with pytest.raises(NotFoundError):
        service.get_complaint(ADMIN, "nope")


def seed(db, complaint_id, created_at, **fields):
    data = {
        "description": complaint_id,
        "location": {"lat": 10.0, "lng": 10.0},
        "image_path": f"complaints/{complaint_id}.jpg",
        "status": "OPEN",
        "severity_score": 40,
        "priority": "MEDIUM",
        "created_by": "citizen-1",
        "created_at": created_at,
    }
    data.update(fields)
    db.collection(settings.COMPLAINTS_COLLECTION).document(complaint_id).set(data)


def test_admin_list_is_newest_first_and_bounded(service, db, monkeypatch):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for i in range(5):
        seed(db, f"c{i}", base + timedelta(hours=i))
    monkeypatch.setattr(settings, "ADMIN_LIST_LIMIT", 3)

    complaints = service.list_complaints(ADMIN)
    assert [c.id for c in complaints] == ["c4", "c3", "c2"]


def test_admin_list_status_filter(service, db):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    seed(db, "open", base)
    seed(db, "closed", base, status="CLOSED")

    assert [c.id for c in service.list_complaints(ADMIN, "CLOSED")] == ["closed"]


def test_worker_lists_own_assignments(service, db):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    seed(db, "mine-old", base, status="ASSIGNED", assigned_to="worker-w")
    seed(db, "mine-new", base + timedelta(days=1), status="CLEANED", assigned_to="worker-w")
    seed(db, "theirs", base, status="ASSIGNED", assigned_to="worker-x")
    seed(db, "open", base)

    assert [c.id for c in service.list_complaints(WORKER_W)] == ["mine-new", "mine-old"]
    assert [c.id for c in service.list_complaints(WORKER_W, "ASSIGNED")] == ["mine-old"]


def test_citizen_cannot_list(service):
    with pytest.raises(AuthorizationError):
        service.list_complaints(CITIZEN)


def test_concurrent_transitions_last_write_wins(service, db, monkeypatch):
    """
    Known race: there is no locking or version check between a transition's
    read and its write. Here an admin closes the complaint after the worker's
    guards passed but before the worker's write; the worker's CLEANED lands
    on top of CLOSED.
    """
    complaint_id = submit(service)
    service.assign_complaint(ADMIN, complaint_id, "worker-w")

    check_mark_cleaned = StatusWorkflowEngine.check_mark_cleaned

    def check_then_admin_closes(actor, complaint):
        check_mark_cleaned(actor, complaint)
        service.update_status(ADMIN, complaint_id, "CLOSED")

    monkeypatch.setattr(StatusWorkflowEngine, "check_mark_cleaned", staticmethod(check_then_admin_closes))

    service.mark_cleaned(WORKER_W, complaint_id)

    data = stored(db, complaint_id)
    assert data["status"] == "CLEANED"
    assert [(h["from"], h["to"]) for h in data["status_history"][-2:]] == [
        ("ASSIGNED", "CLOSED"),
        ("ASSIGNED", "CLEANED"),
    ]
