"""
Worker endpoints - assigned complaints and cleanup with an "after" photo.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from app.models.complaint import ComplaintActionResponse, ComplaintListResponse
from app.models.user import Actor, Role
from app.services.complaint_service import ComplaintService, get_complaint_service
from app.utils.security import require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/worker", tags=["Worker"])


@router.get("/complaints", response_model=ComplaintListResponse)
def list_assigned_complaints(
    actor: Actor = Depends(require_role(Role.WORKER)),
    service: ComplaintService = Depends(get_complaint_service),
):
    complaints = service.list_worker_complaints(actor)
    return ComplaintListResponse(count=len(complaints), complaints=complaints)


@router.post("/complaints/{complaint_id}/cleanup", response_model=ComplaintActionResponse)
async def cleanup_complaint(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(require_role(Role.WORKER)),
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    Mark an assigned complaint CLEANED.

    The request body, if any, is the raw JPEG of the cleaned site
    (Content-Type: image/jpeg). It is uploaded only after the lifecycle
    guards pass.
    """
    body = await request.body()
    logger.info(f"🧹 Cleanup of {complaint_id} by worker {actor.uid} ({len(body)} bytes)")

    complaint = await run_in_threadpool(service.mark_cleaned, actor, complaint_id, body or None)
    return ComplaintActionResponse(message="Complaint marked as CLEANED", complaint=complaint)
