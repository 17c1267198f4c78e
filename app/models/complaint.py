"""
Pydantic models for garbage complaints.
These models handle validation for complaint submission, lifecycle requests and responses.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict
from enum import Enum

from app.models.base import BaseResponse
from app.models.evidence import PriorityTier


class ComplaintStatus(str, Enum):
    """
    Complaint lifecycle states.

    OPEN → ASSIGNED → CLEANED, and CLOSED reachable from any non-terminal state.
    CLEANED and CLOSED are terminal for assignment.
    """
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    CLEANED = "CLEANED"
    CLOSED = "CLOSED"


class Location(BaseModel):
    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lng: float = Field(..., ge=-180, le=180, description="Longitude")
    address: Optional[str] = Field(None, description="Reverse-geocoded address, if resolved")


class ComplaintCreate(BaseModel):
    """
    Model for submitting a new complaint (incoming POST request).
    Presence of all three fields is checked by the complaint service so a
    missing field is reported as a validation error with no mutation.
    """
    description: Optional[str] = Field(None, max_length=1000, description="What the citizen observed")
    location: Optional[Location] = Field(None, description="Where the garbage is")
    image_path: Optional[str] = Field(None, max_length=500, description="Path of the uploaded evidence image in the bucket")

    class Config:
        json_schema_extra = {
            "example": {
                "description": "Overflowing garbage pile next to the bus stop",
                "location": {"lat": 18.5204, "lng": 73.8567},
                "image_path": "complaints/uid123/1700000000000.jpg",
            }
        }
        extra = "ignore"


class SubmitComplaintResponse(BaseResponse):
    complaint_id: str
    priority: PriorityTier
    severity_score: int = Field(..., ge=0, le=100)


class AssignRequest(BaseModel):
    worker_id: str = Field(..., min_length=1, description="Worker uid to assign the complaint to")


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., description="Target status (OPEN, ASSIGNED, CLEANED, CLOSED)")
    note: Optional[str] = Field(None, max_length=500, description="Optional note explaining the change")


class StatusHistoryEntry(BaseModel):
    """Lifecycle audit entry."""
    from_status: Optional[str] = Field(None, alias="from")
    to_status: str = Field(..., alias="to")
    changed_by: str
    role: Optional[str] = None
    timestamp: Optional[datetime] = None
    note: Optional[str] = None

    class Config:
        populate_by_name = True


class ComplaintResponse(BaseModel):
    """
    Complaint as returned by the API.
    Image fields carry signed URLs, never raw bucket paths.
    """
    id: str = Field(..., description="Firestore document ID")
    description: str
    location: Location
    image_url: Optional[str] = None
    status: ComplaintStatus
    severity_score: int = Field(..., ge=0, le=100)
    priority: PriorityTier
    evidence_summary: Optional[Dict] = None
    evidence_pipeline: Optional[str] = None
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    assigned_to: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None
    cleaned_by: Optional[str] = None
    cleaned_at: Optional[datetime] = None
    after_image_url: Optional[str] = None
    after_uploaded_at: Optional[datetime] = None
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)


class ComplaintListResponse(BaseResponse):
    count: int
    complaints: List[ComplaintResponse]


class ComplaintActionResponse(BaseResponse):
    complaint: ComplaintResponse
