"""
Evidence models: raw detections, fused signals, AI verdicts and scoring output.
These are ephemeral - only the evidence summary is persisted on the complaint.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class PriorityTier(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Severity(str, Enum):
    """Severity suggested by the reasoning model."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Detection(BaseModel):
    """A single (label, score) or (object name, score) pair from the detector."""
    description: str
    score: float = Field(..., ge=0.0, le=1.0)


class DetectionResult(BaseModel):
    labels: List[Detection] = Field(default_factory=list)
    objects: List[Detection] = Field(default_factory=list)


class EvidenceSignals(BaseModel):
    """Normalized output of the label/object fusion."""
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    object_count: int = Field(0, ge=0)
    person_present: bool = False


class AIVerdict(BaseModel):
    """Structured verdict from the reasoning model."""
    is_public_garbage: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    severity: Severity
    reason: str = ""


class ScoringResult(BaseModel):
    priority: PriorityTier
    severity_score: int = Field(..., ge=0, le=100)


class EvidenceSummary(BaseModel):
    """
    Explanation of how a complaint was scored, stored with the complaint.
    Fields not produced by the active pipeline stay None.
    """
    pipeline: str
    model_name: Optional[str] = None
    available: bool = True
    is_public_garbage: Optional[bool] = None
    person_present: Optional[bool] = None
    object_count: Optional[int] = None
    confidence: Optional[float] = None
    severity: Optional[str] = None
    reason: Optional[str] = None
