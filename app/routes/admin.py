"""
Admin endpoints - bounded complaint listing and role management.

Admins assign and close complaints through /complaints; this router holds
the admin-only views and the user role switch.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.models.complaint import ComplaintListResponse
from app.models.user import Actor, Role, RoleAssignRequest, RoleAssignResponse
from app.services.auth_service import AuthService, get_auth_service
from app.services.complaint_service import ComplaintService, get_complaint_service
from app.services.status_workflow import StatusWorkflowEngine
from app.utils.security import require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/complaints", response_model=ComplaintListResponse)
def list_all_complaints(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    actor: Actor = Depends(require_role(Role.ADMIN)),
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    Newest complaints first, at most ADMIN_LIST_LIMIT of them.
    """
    status = StatusWorkflowEngine.parse_status(status_filter) if status_filter else None
    complaints = service.list_admin_complaints(actor, status)
    return ComplaintListResponse(count=len(complaints), complaints=complaints)


@router.post("/users/{target_uid}/role", response_model=RoleAssignResponse)
def assign_user_role(
    target_uid: str,
    request: RoleAssignRequest,
    actor: Actor = Depends(require_role(Role.ADMIN)),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Set a user's role (citizen, worker or admin).

    Takes effect when the user's ID token is next refreshed.
    """
    role = auth_service.assign_user_role(actor, target_uid, request.role)
    return RoleAssignResponse(message="Role assigned", target_uid=target_uid, role=role)
