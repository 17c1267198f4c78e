"""
User models for authentication and role management.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app.models.base import BaseResponse


class Role(str, Enum):
    """Roles are assigned out-of-band by an admin (Firebase custom claim)."""
    CITIZEN = "citizen"
    WORKER = "worker"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """
    The authenticated caller of a request.
    Passed explicitly into every service call instead of living on the request.
    """
    uid: str
    role: Role = Role.CITIZEN
    email: Optional[str] = None


class RoleAssignRequest(BaseModel):
    role: str = Field(..., description="One of: citizen, worker, admin")


class RoleAssignResponse(BaseResponse):
    target_uid: str
    role: Role
