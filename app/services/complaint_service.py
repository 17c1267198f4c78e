"""
Complaint Service - submission, lifecycle transitions and role-scoped reads.

DESIGN PRINCIPLES:
- The acting user is passed into every call, never read from ambient state
- Guards run before any write; a refused request changes nothing
- severity_score and priority are written once, at creation
- Upstream model/geocoder failures degrade the evidence, never the request
- Document/blob store failures surface as StorageError
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from firebase_admin import firestore

from app.config.firebase import get_db
from app.core.errors import AuthorizationError, NotFoundError, StorageError, ValidationError
from app.core.settings import settings
from app.models.complaint import (
    ComplaintCreate,
    ComplaintResponse,
    ComplaintStatus,
    StatusHistoryEntry,
    SubmitComplaintResponse,
)
from app.models.evidence import PriorityTier
from app.models.user import Actor, Role
from app.services.evidence_pipeline import get_evidence_pipeline
from app.services.geocoding import GeocodingProvider, get_geocoding_provider
from app.services.priority_scoring import map_priority
from app.services.status_workflow import StatusWorkflowEngine
from app.services.storage_service import StorageService, get_storage_service
from app.utils.firestore_helpers import snapshot_to_dict, to_datetime, where_filter

logger = logging.getLogger(__name__)


class ComplaintService:

    def __init__(
        self,
        db=None,
        storage: Optional[StorageService] = None,
        pipeline=None,
        geocoder: Optional[GeocodingProvider] = None,
        collection: Optional[str] = None,
    ):
        self.db = db if db is not None else get_db()
        self.storage = storage or get_storage_service()
        self.pipeline = pipeline or get_evidence_pipeline()
        self.geocoder = geocoder or get_geocoding_provider()
        self.collection = collection or settings.COMPLAINTS_COLLECTION

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    def _ref(self, complaint_id: str):
        return self.db.collection(self.collection).document(complaint_id)

    def _load(self, complaint_id: str) -> Dict:
        """
        Raises:
            NotFoundError: Unknown complaint id
            StorageError: Document store failure
        """
        if not complaint_id or not complaint_id.strip():
            raise NotFoundError("Complaint not found")
        try:
            doc = self._ref(complaint_id).get(timeout=settings.STORE_TIMEOUT_SECONDS)
        except Exception as e:
            raise StorageError(f"Failed to read complaint {complaint_id}: {e}") from e
        if not doc.exists:
            raise NotFoundError("Complaint not found")
        return snapshot_to_dict(doc)

    def _update(self, complaint_id: str, updates: Dict) -> None:
        try:
            self._ref(complaint_id).update(updates, timeout=settings.STORE_TIMEOUT_SECONDS)
        except Exception as e:
            logger.error(f"❌ Failed to update complaint {complaint_id}: {e}", exc_info=True)
            raise StorageError(f"Failed to update complaint {complaint_id}: {e}") from e

    def _query(self, query) -> List[Dict]:
        try:
            return [snapshot_to_dict(doc) for doc in query.stream(timeout=settings.STORE_TIMEOUT_SECONDS)]
        except Exception as e:
            logger.error(f"❌ Complaint query failed: {e}", exc_info=True)
            raise StorageError(f"Failed to list complaints: {e}") from e

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _resolve_address(self, lat: float, lng: float) -> Optional[str]:
        try:
            return self.geocoder.reverse_geocode(lat, lng)
        except Exception as e:
            logger.warning(f"⚠️ Reverse geocoding failed for ({lat}, {lng}), storing no address: {e}")
            return None

    def submit_complaint(
        self,
        actor: Actor,
        payload: ComplaintCreate,
        now: Optional[datetime] = None,
    ) -> SubmitComplaintResponse:
        """
        Create a complaint in state OPEN with its one-time severity score.

        Raises:
            AuthorizationError: Actor is not a citizen
            ValidationError: description, location or image_path missing
            StorageError: The complaint could not be written
        """
        if actor.role != Role.CITIZEN:
            raise AuthorizationError("Citizen access only")

        description = (payload.description or "").strip()
        image_path = (payload.image_path or "").strip()
        missing = [
            name for name, value in (
                ("description", description),
                ("location", payload.location),
                ("image_path", image_path),
            ) if not value
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        location = {"lat": payload.location.lat, "lng": payload.location.lng}
        address = payload.location.address or self._resolve_address(location["lat"], location["lng"])
        if address:
            location["address"] = address

        result, summary = self.pipeline.evaluate(image_path, description, location, now)

        doc_ref = self.db.collection(self.collection).document()
        complaint_data = {
            "description": description,
            "location": location,
            "image_path": image_path,
            "status": ComplaintStatus.OPEN.value,
            "severity_score": result.severity_score,
            "priority": result.priority.value,
            "evidence_summary": summary.model_dump(exclude_none=True),
            "evidence_pipeline": summary.pipeline,
            "created_by": actor.uid,
            "created_at": firestore.SERVER_TIMESTAMP,
            "updated_at": firestore.SERVER_TIMESTAMP,
            "status_history": [
                StatusWorkflowEngine.create_status_history_entry(
                    from_status=None,
                    to_status=ComplaintStatus.OPEN.value,
                    changed_by=actor.uid,
                    role=actor.role.value,
                    note="Complaint submitted",
                )
            ],
        }

        try:
            doc_ref.set(complaint_data, timeout=settings.STORE_TIMEOUT_SECONDS)
        except Exception as e:
            logger.error(f"❌ Failed to store complaint from {actor.uid}: {e}", exc_info=True)
            raise StorageError(f"Failed to store complaint: {e}") from e

        logger.info(
            f"✅ Complaint {doc_ref.id} submitted by {actor.uid}: "
            f"severity {result.severity_score} ({result.priority.value}) via {summary.pipeline}"
        )

        return SubmitComplaintResponse(
            message="Complaint submitted",
            complaint_id=doc_ref.id,
            priority=result.priority,
            severity_score=result.severity_score,
        )

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def _history_update(self, complaint: Dict, to_status: ComplaintStatus, actor: Actor, note: Optional[str]) -> Dict:
        entry = StatusWorkflowEngine.create_status_history_entry(
            from_status=StatusWorkflowEngine.current_status(complaint).value,
            to_status=to_status.value,
            changed_by=actor.uid,
            role=actor.role.value,
            note=note,
        )
        return {
            "status": to_status.value,
            "updated_at": firestore.SERVER_TIMESTAMP,
            "status_history": firestore.ArrayUnion([entry]),
        }

    def assign_complaint(self, actor: Actor, complaint_id: str, worker_id: str) -> ComplaintResponse:
        """
        Admin assigns (or re-assigns) a complaint to a worker.

        Raises:
            AuthorizationError: Actor is not an admin
            NotFoundError: Unknown complaint id
            ValidationError: Empty worker id, or complaint already CLEANED/CLOSED
        """
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Admin access only")

        complaint = self._load(complaint_id)
        worker_id = (worker_id or "").strip()
        try:
            StatusWorkflowEngine.check_assign(actor, complaint, worker_id)
        except (AuthorizationError, ValidationError) as e:
            logger.warning(f"Refused assign of {complaint_id} by {actor.uid}: {e.message}")
            raise

        updates = self._history_update(complaint, ComplaintStatus.ASSIGNED, actor, f"Assigned to {worker_id}")
        updates.update({
            "assigned_to": worker_id,
            "assigned_by": actor.uid,
            "assigned_at": firestore.SERVER_TIMESTAMP,
        })
        self._update(complaint_id, updates)

        logger.info(
            f"Complaint {complaint_id}: {StatusWorkflowEngine.current_status(complaint).value} → ASSIGNED "
            f"(worker {worker_id}, by admin {actor.uid})"
        )
        return self.to_response(self._load(complaint_id))

    def _cleaned_fields(self, actor: Actor) -> Dict:
        return {
            "cleaned_by": actor.uid,
            "cleaned_at": firestore.SERVER_TIMESTAMP,
        }

    def mark_cleaned(
        self,
        actor: Actor,
        complaint_id: str,
        image_bytes: Optional[bytes] = None,
    ) -> ComplaintResponse:
        """
        The assigned worker marks a complaint CLEANED, optionally with an
        after-cleanup photo. Guards are checked before anything is uploaded.

        Raises:
            AuthorizationError: Actor is not a worker, or not the assignee
            NotFoundError: Unknown complaint id
            ValidationError: Complaint is not ASSIGNED
            StorageError: Image upload or document update failed
        """
        if actor.role != Role.WORKER:
            raise AuthorizationError("Worker only")

        complaint = self._load(complaint_id)
        try:
            StatusWorkflowEngine.check_mark_cleaned(actor, complaint)
        except (AuthorizationError, ValidationError) as e:
            logger.warning(f"Refused mark-cleaned of {complaint_id} by {actor.uid}: {e.message}")
            raise

        updates = self._history_update(complaint, ComplaintStatus.CLEANED, actor, "Marked cleaned by worker")
        updates.update(self._cleaned_fields(actor))

        if image_bytes:
            path, url = self.storage.upload_cleanup_image(complaint_id, image_bytes)
            updates.update({
                "after_image_path": path,
                "after_image_url": url,
                "after_uploaded_at": firestore.SERVER_TIMESTAMP,
            })

        self._update(complaint_id, updates)

        logger.info(f"Complaint {complaint_id}: ASSIGNED → CLEANED (worker {actor.uid})")
        return self.to_response(self._load(complaint_id))

    def update_status(
        self,
        actor: Actor,
        complaint_id: str,
        status: str,
        note: Optional[str] = None,
    ) -> ComplaintResponse:
        """
        Generic status update.

        Workers may only set CLEANED on their own ASSIGNED complaints.
        Admins may set any status the state graph allows from the current one.

        Raises:
            AuthorizationError: Citizen, or worker asking for anything but CLEANED
            NotFoundError: Unknown complaint id
            ValidationError: Unknown status or illegal transition
        """
        if actor.role not in (Role.WORKER, Role.ADMIN):
            raise AuthorizationError("Worker or admin access only")

        target = StatusWorkflowEngine.parse_status(status)
        complaint = self._load(complaint_id)
        current = StatusWorkflowEngine.current_status(complaint)

        try:
            StatusWorkflowEngine.check_status_update(actor, complaint, target)
        except (AuthorizationError, ValidationError) as e:
            logger.warning(
                f"Refused status update of {complaint_id} by {actor.role.value} {actor.uid} "
                f"({current.value} → {target.value}): {e.message}"
            )
            raise

        updates = self._history_update(complaint, target, actor, note)
        if target == ComplaintStatus.CLEANED and current != ComplaintStatus.CLEANED:
            updates.update(self._cleaned_fields(actor))

        self._update(complaint_id, updates)

        logger.info(f"Complaint {complaint_id}: {current.value} → {target.value} (by {actor.role.value} {actor.uid})")
        return self.to_response(self._load(complaint_id))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_complaint(self, actor: Actor, complaint_id: str) -> ComplaintResponse:
        """
        Raises:
            NotFoundError: Unknown complaint id
            AuthorizationError: A citizen reading someone else's complaint
        """
        complaint = self._load(complaint_id)
        if actor.role == Role.CITIZEN and complaint.get("created_by") != actor.uid:
            raise AuthorizationError("You can only view your own complaints")
        return self.to_response(complaint)

    def list_complaints(self, actor: Actor, status: Optional[str] = None) -> List[ComplaintResponse]:
        """
        Role-scoped listing.

        - admin: every complaint, newest first, at most ADMIN_LIST_LIMIT
        - worker: complaints assigned to them, newest first

        Raises:
            AuthorizationError: Citizens
            ValidationError: Unknown status filter
        """
        status_filter = StatusWorkflowEngine.parse_status(status) if status else None

        if actor.role == Role.ADMIN:
            return self.list_admin_complaints(actor, status_filter)
        if actor.role == Role.WORKER:
            return self.list_worker_complaints(actor, status_filter)
        raise AuthorizationError("Worker or admin access only")

    def list_admin_complaints(
        self,
        actor: Actor,
        status: Optional[ComplaintStatus] = None,
    ) -> List[ComplaintResponse]:
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Admin access only")

        query = self.db.collection(self.collection)
        if status is not None:
            query = where_filter(query, "status", "==", status.value)
        query = query.order_by("created_at", direction=firestore.Query.DESCENDING).limit(settings.ADMIN_LIST_LIMIT)

        complaints = self._query(query)
        logger.info(f"Admin {actor.uid} listed {len(complaints)} complaint(s)")
        return [self.to_response(c) for c in complaints]

    def list_worker_complaints(
        self,
        actor: Actor,
        status: Optional[ComplaintStatus] = None,
    ) -> List[ComplaintResponse]:
        if actor.role != Role.WORKER:
            raise AuthorizationError("Worker access only")

        query = where_filter(self.db.collection(self.collection), "assigned_to", "==", actor.uid)
        if status is not None:
            query = where_filter(query, "status", "==", status.value)

        complaints = self._query(query)
        # Sorted here so the equality query needs no composite index
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        complaints.sort(key=lambda c: to_datetime(c.get("created_at")) or epoch, reverse=True)
        return [self.to_response(c) for c in complaints]

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_response(self, complaint: Dict) -> ComplaintResponse:
        """
        Stored document → API model, with signed URLs in place of bucket paths.
        """
        severity_score = int(complaint.get("severity_score") or 0)
        try:
            priority = PriorityTier(complaint.get("priority"))
        except ValueError:
            priority = map_priority(severity_score)

        after_image_url = complaint.get("after_image_url")
        if complaint.get("after_image_path"):
            after_image_url = self.storage.signed_url(complaint["after_image_path"]) or after_image_url

        history = []
        for entry in complaint.get("status_history") or []:
            try:
                history.append(StatusHistoryEntry.model_validate(entry))
            except Exception as e:
                logger.warning(f"Skipping malformed history entry on {complaint.get('id')}: {e}")

        return ComplaintResponse(
            id=complaint["id"],
            description=complaint.get("description") or "",
            location=complaint.get("location") or {"lat": 0.0, "lng": 0.0},
            image_url=self.storage.signed_url(complaint.get("image_path")),
            status=StatusWorkflowEngine.current_status(complaint),
            severity_score=max(0, min(severity_score, 100)),
            priority=priority,
            evidence_summary=complaint.get("evidence_summary"),
            evidence_pipeline=complaint.get("evidence_pipeline"),
            created_by=complaint.get("created_by") or "",
            created_at=to_datetime(complaint.get("created_at")),
            updated_at=to_datetime(complaint.get("updated_at")),
            assigned_to=complaint.get("assigned_to"),
            assigned_by=complaint.get("assigned_by"),
            assigned_at=to_datetime(complaint.get("assigned_at")),
            cleaned_by=complaint.get("cleaned_by"),
            cleaned_at=to_datetime(complaint.get("cleaned_at")),
            after_image_url=after_image_url,
            after_uploaded_at=to_datetime(complaint.get("after_uploaded_at")),
            status_history=history,
        )


# Global service instance (singleton pattern)
_complaint_service = None


def get_complaint_service() -> ComplaintService:
    """
    Get or create ComplaintService singleton instance.
    """
    global _complaint_service
    if _complaint_service is None:
        _complaint_service = ComplaintService()
    return _complaint_service
