"""
Complaint endpoints - submission, detail, role-scoped listing and lifecycle transitions.

Every endpoint requires a Firebase ID token (Authorization: Bearer <token>).
Role and ownership rules are enforced by the complaint service.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.models.complaint import (
    AssignRequest,
    ComplaintActionResponse,
    ComplaintCreate,
    ComplaintListResponse,
    ComplaintResponse,
    StatusUpdateRequest,
    SubmitComplaintResponse,
)
from app.models.user import Actor
from app.services.complaint_service import ComplaintService, get_complaint_service
from app.utils.security import get_current_actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/complaints", tags=["Complaints"])


@router.post("", response_model=SubmitComplaintResponse, status_code=status.HTTP_201_CREATED)
def submit_complaint(
    payload: ComplaintCreate,
    actor: Actor = Depends(get_current_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    Submit a new garbage complaint (citizens only).

    The evidence image must already be uploaded to the bucket; image_path
    points at it. The complaint is scored once, here, and starts OPEN.
    """
    logger.info(f"📝 POST /complaints by {actor.uid}")
    return service.submit_complaint(actor, payload)


@router.get("", response_model=ComplaintListResponse)
def list_complaints(
    status_filter: Optional[str] = Query(None, alias="status", description="Only complaints in this status"),
    actor: Actor = Depends(get_current_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    Admins see every complaint (newest first, bounded); workers see their assignments.
    """
    complaints = service.list_complaints(actor, status_filter)
    return ComplaintListResponse(count=len(complaints), complaints=complaints)


@router.get("/{complaint_id}", response_model=ComplaintResponse)
def get_complaint(
    complaint_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    return service.get_complaint(actor, complaint_id)


@router.post("/{complaint_id}/assign", response_model=ComplaintActionResponse)
def assign_complaint(
    complaint_id: str,
    request: AssignRequest,
    actor: Actor = Depends(get_current_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    Assign a complaint to a worker (admins only).
    """
    complaint = service.assign_complaint(actor, complaint_id, request.worker_id)
    return ComplaintActionResponse(message=f"Complaint assigned to {request.worker_id}", complaint=complaint)


@router.post("/{complaint_id}/status", response_model=ComplaintActionResponse)
def update_complaint_status(
    complaint_id: str,
    request: StatusUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    Change a complaint's status.

    Workers: only CLEANED, only on their own ASSIGNED complaints.
    Admins: any status reachable from the current one.
    """
    complaint = service.update_status(actor, complaint_id, request.status, request.note)
    return ComplaintActionResponse(message=f"Status updated to {complaint.status.value}", complaint=complaint)
