"""
Status Workflow Engine - complaint lifecycle state machine and role guards.

DESIGN PRINCIPLES:
- OPEN → ASSIGNED → CLEANED, CLOSED reachable from any non-closed state
- Who may move a complaint is decided here, before any write
- A refused transition never mutates the complaint
- assigned_to is set exactly when a complaint has been assigned, and never cleared
- All transitions are logged in status_history
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from app.core.errors import AuthorizationError, ValidationError
from app.models.complaint import ComplaintStatus
from app.models.user import Actor, Role

logger = logging.getLogger(__name__)


class StatusWorkflowEngine:
    """
    Lifecycle rules for complaints.

    Transitions:
    - assign: admin only, from OPEN (or ASSIGNED for re-assignment)
    - mark cleaned: the assigned worker only, from ASSIGNED
    - generic status update: worker (CLEANED only, same rules as mark cleaned)
      or admin (any target the state graph allows)
    """

    # Allowed transitions map: {from_status: [to_status, ...]}
    ALLOWED_TRANSITIONS: Dict[ComplaintStatus, List[ComplaintStatus]] = {
        ComplaintStatus.OPEN: [ComplaintStatus.ASSIGNED, ComplaintStatus.CLOSED],
        ComplaintStatus.ASSIGNED: [ComplaintStatus.ASSIGNED, ComplaintStatus.CLEANED, ComplaintStatus.CLOSED],
        ComplaintStatus.CLEANED: [ComplaintStatus.CLOSED],
        ComplaintStatus.CLOSED: [],  # Terminal state, no transitions allowed
    }

    ASSIGNABLE_STATES = (ComplaintStatus.OPEN, ComplaintStatus.ASSIGNED)
    STATES_REQUIRING_ASSIGNEE = (ComplaintStatus.ASSIGNED, ComplaintStatus.CLEANED)

    @classmethod
    def parse_status(cls, value: Optional[str]) -> ComplaintStatus:
        """
        Parse a requested target status.

        Raises:
            ValidationError: If value is not a known status
        """
        try:
            return ComplaintStatus(str(value).upper())
        except ValueError:
            allowed = [s.value for s in ComplaintStatus]
            raise ValidationError(f"Invalid status '{value}'. Allowed values: {allowed}")

    @classmethod
    def current_status(cls, complaint: Dict) -> ComplaintStatus:
        """Stored status, treating a missing or unknown value as OPEN."""
        try:
            return ComplaintStatus(complaint.get("status") or ComplaintStatus.OPEN.value)
        except ValueError:
            logger.warning(f"Complaint {complaint.get('id')} has unknown status {complaint.get('status')!r}, treating as OPEN")
            return ComplaintStatus.OPEN

    @classmethod
    def check_assign(cls, actor: Actor, complaint: Dict, worker_id: str) -> None:
        """
        Assignment is stricter than a status-blind assign: CLEANED and CLOSED
        are terminal for assignment, so re-assigning finished work is refused
        rather than reopening it.

        Raises:
            AuthorizationError: If actor is not an admin
            ValidationError: If worker_id is empty or the complaint is already CLEANED/CLOSED
        """
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Admin access only")

        if not worker_id or not worker_id.strip():
            raise ValidationError("worker_id is required")

        current = cls.current_status(complaint)
        if current not in cls.ASSIGNABLE_STATES:
            raise ValidationError(f"Cannot assign a complaint in state {current.value}")

    @classmethod
    def check_mark_cleaned(cls, actor: Actor, complaint: Dict) -> None:
        """
        Raises:
            AuthorizationError: If actor is not a worker or not the assignee
            ValidationError: If the complaint is not ASSIGNED
        """
        if actor.role != Role.WORKER:
            raise AuthorizationError("Worker only")

        if complaint.get("assigned_to") != actor.uid:
            raise AuthorizationError("Not your assignment")

        current = cls.current_status(complaint)
        if current != ComplaintStatus.ASSIGNED:
            raise ValidationError(f"Only ASSIGNED complaints can be cleaned (current: {current.value})")

    @classmethod
    def check_status_update(cls, actor: Actor, complaint: Dict, target: ComplaintStatus) -> None:
        """
        Validate a generic status update.

        Admins are bound to ALLOWED_TRANSITIONS rather than any target, so
        ASSIGNED → OPEN and OPEN → CLEANED are refused. assigned_to is never
        cleared, which means a CLOSED complaint that was assigned keeps its
        worker while one closed straight from OPEN has none.

        Raises:
            AuthorizationError: Citizens, or workers asking for anything but CLEANED
            ValidationError: Illegal transition for the current state
        """
        if actor.role == Role.WORKER:
            if target != ComplaintStatus.CLEANED:
                raise AuthorizationError("Workers may only mark complaints CLEANED")
            cls.check_mark_cleaned(actor, complaint)
            return

        if actor.role != Role.ADMIN:
            raise AuthorizationError("Worker or admin access only")

        current = cls.current_status(complaint)
        if target != current and target not in cls.ALLOWED_TRANSITIONS[current]:
            allowed = [s.value for s in cls.ALLOWED_TRANSITIONS[current]]
            raise ValidationError(
                f"Invalid status transition: {current.value} → {target.value}. "
                f"Allowed transitions from {current.value}: {allowed}"
            )

        if target in cls.STATES_REQUIRING_ASSIGNEE and not complaint.get("assigned_to"):
            raise ValidationError(f"Cannot set {target.value} on an unassigned complaint; assign a worker first")

    @classmethod
    def create_status_history_entry(
        cls,
        from_status: Optional[str],
        to_status: str,
        changed_by: str,
        role: Optional[str] = None,
        note: Optional[str] = None
    ) -> Dict:
        """
        Create a status history entry for the audit trail.

        Uses a client timestamp: Firestore does not accept server timestamps
        inside array elements.
        """
        return {
            "from": from_status,
            "to": to_status,
            "changed_by": changed_by,
            "role": role,
            "timestamp": datetime.now(timezone.utc),
            "note": note or ""
        }
