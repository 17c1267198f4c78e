"""
Priority Scoring Service - severity score (0-100) and priority tier for complaints.

DESIGN PRINCIPLES:
- Priority is SYSTEM-DERIVED, NOT user-editable
- Priority is computed exactly once, at submission; never recalculated
- Scoring is deterministic for a fixed complaint-history snapshot
- The history read is a heuristic input: if it fails, scoring continues without it
- Two formulas, one per evidence pipeline; only the label/object formula
  has the history boost and the anti-false-positive guard
"""

from app.config.firebase import get_db
from app.core.settings import settings
from app.models.evidence import AIVerdict, EvidenceSignals, PriorityTier, ScoringResult, Severity
from app.utils.firestore_helpers import to_datetime, where_filter
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional
import math
import logging

logger = logging.getLogger(__name__)


def map_priority(score: int) -> PriorityTier:
    """Tier thresholds shared by both formulas."""
    if score >= 80:
        return PriorityTier.CRITICAL
    if score >= 60:
        return PriorityTier.HIGH
    if score >= 40:
        return PriorityTier.MEDIUM
    return PriorityTier.LOW


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class PriorityScoringService:
    """
    Calculates severity score (0-100) and priority tier from fused evidence.

    Label/object formula factors:
    1. Garbage object count (15 each, capped at 45, +15 for 3 or more)
    2. Fused garbage confidence (x80)
    3. Repeat complaints within 0.005 degrees over the last 7 days (+5 each, capped at +20)
    4. Severity floor, clamp, anti-false-positive guard

    AI verdict formula: civic baseline 40 adjusted by verdict, clamped to [20, 100].
    """

    # Configuration: object evidence
    OBJECT_WEIGHT = 15
    OBJECT_SCORE_CAP = 45
    STRONG_OBJECT_COUNT = 3
    STRONG_OBJECT_BONUS = 15

    # Configuration: label confidence
    CONFIDENCE_WEIGHT = 80

    # Configuration: repeat complaints nearby
    REPEAT_WINDOW_DAYS = 7
    REPEAT_RADIUS_DEGREES = 0.005
    REPEAT_BONUS = 5
    REPEAT_BONUS_CAP = 20

    # Configuration: severity floor
    WEAK_CONFIDENCE_THRESHOLD = 0.25
    WEAK_SCORE_FLOOR = 20
    SCORE_FLOOR = 40

    # Configuration: anti-false-positive guard (label/object formula only)
    GUARD_SCORE_THRESHOLD = 60
    GUARD_MIN_OBJECTS = 2
    GUARD_MIN_CONFIDENCE = 0.6
    GUARD_SCORE_CAP = 55

    # Configuration: AI verdict formula
    AI_BASELINE_SCORE = 40
    AI_CONFIDENT_THRESHOLD = 0.75
    AI_GARBAGE_BONUS = 20
    AI_NOT_GARBAGE_PENALTY = 15
    AI_SEVERITY_ADJUSTMENT = 10
    AI_MIN_SCORE = 20
    AI_MAX_SCORE = 100

    def __init__(self, db=None, collection: Optional[str] = None):
        self.db = db if db is not None else get_db()
        self.collection = collection or settings.COMPLAINTS_COLLECTION

    @classmethod
    def score_label_object(cls, signals: EvidenceSignals, repeat_count: int = 0) -> ScoringResult:
        """
        Label/object formula for a fixed repeat-complaint count.

        Args:
            signals: Fused evidence signals
            repeat_count: Recent complaints near the same location

        Returns:
            ScoringResult with severity_score in [20, 100]
        """
        score = float(min(signals.object_count * cls.OBJECT_WEIGHT, cls.OBJECT_SCORE_CAP))
        if signals.object_count >= cls.STRONG_OBJECT_COUNT:
            score += cls.STRONG_OBJECT_BONUS

        score += signals.confidence * cls.CONFIDENCE_WEIGHT

        score += min(max(repeat_count, 0) * cls.REPEAT_BONUS, cls.REPEAT_BONUS_CAP)

        if signals.confidence < cls.WEAK_CONFIDENCE_THRESHOLD and score < cls.WEAK_SCORE_FLOOR:
            score = cls.WEAK_SCORE_FLOOR
        elif score < cls.SCORE_FLOOR:
            score = cls.SCORE_FLOOR

        severity_score = max(0, min(_round_half_up(score), 100))

        # A HIGH/CRITICAL verdict needs corroborating object or label evidence
        if (
            severity_score >= cls.GUARD_SCORE_THRESHOLD
            and signals.object_count < cls.GUARD_MIN_OBJECTS
            and signals.confidence < cls.GUARD_MIN_CONFIDENCE
        ):
            severity_score = min(severity_score, cls.GUARD_SCORE_CAP)

        return ScoringResult(priority=map_priority(severity_score), severity_score=severity_score)

    @classmethod
    def score_ai_verdict(cls, verdict: Optional[AIVerdict]) -> ScoringResult:
        """
        AI verdict formula. None means no AI opinion and yields (40, MEDIUM).
        """
        score = cls.AI_BASELINE_SCORE

        if verdict is not None:
            if verdict.confidence >= cls.AI_CONFIDENT_THRESHOLD:
                if verdict.is_public_garbage:
                    score += cls.AI_GARBAGE_BONUS
                else:
                    score -= cls.AI_NOT_GARBAGE_PENALTY

            if verdict.severity == Severity.HIGH:
                score += cls.AI_SEVERITY_ADJUSTMENT
            elif verdict.severity == Severity.LOW:
                score -= cls.AI_SEVERITY_ADJUSTMENT

        score = max(cls.AI_MIN_SCORE, min(score, cls.AI_MAX_SCORE))
        return ScoringResult(priority=map_priority(score), severity_score=score)

    @classmethod
    def count_repeat_complaints(
        cls,
        complaints: Iterable[Dict],
        location: Dict,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Count complaints in a history snapshot that are recent and nearby.

        Recent: created within the last REPEAT_WINDOW_DAYS.
        Nearby: both |dlat| and |dlng| strictly below REPEAT_RADIUS_DEGREES.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=cls.REPEAT_WINDOW_DAYS)
        lat, lng = location["lat"], location["lng"]

        count = 0
        for complaint in complaints:
            created_at = to_datetime(complaint.get("created_at"))
            if created_at is None or created_at < cutoff:
                continue

            other = complaint.get("location") or {}
            other_lat, other_lng = other.get("lat"), other.get("lng")
            if other_lat is None or other_lng is None:
                continue

            if abs(other_lat - lat) < cls.REPEAT_RADIUS_DEGREES and abs(other_lng - lng) < cls.REPEAT_RADIUS_DEGREES:
                count += 1

        return count

    def fetch_recent_nearby(self, location: Dict, now: Optional[datetime] = None) -> List[Dict]:
        """
        Read the history snapshot for a location.

        Range query on created_at and location.lat; longitude is narrowed
        by count_repeat_complaints.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=self.REPEAT_WINDOW_DAYS)

        query = self.db.collection(self.collection)
        query = where_filter(query, "created_at", ">=", cutoff)
        query = where_filter(query, "location.lat", ">", location["lat"] - self.REPEAT_RADIUS_DEGREES)
        query = where_filter(query, "location.lat", "<", location["lat"] + self.REPEAT_RADIUS_DEGREES)

        return [doc.to_dict() or {} for doc in query.stream(timeout=settings.STORE_TIMEOUT_SECONDS)]

    def count_nearby_recent(self, location: Dict, now: Optional[datetime] = None) -> int:
        """
        Repeat-complaint count for a location; 0 if the history read fails.
        """
        try:
            snapshot = self.fetch_recent_nearby(location, now)
        except Exception as e:
            logger.warning(f"⚠️ Complaint history read failed, scoring without repeat boost: {e}")
            return 0

        count = self.count_repeat_complaints(snapshot, location, now)
        logger.info(f"Found {count} recent complaint(s) near ({location['lat']}, {location['lng']})")
        return count

    def calculate_label_object_priority(
        self,
        signals: EvidenceSignals,
        location: Dict,
        now: Optional[datetime] = None,
    ) -> ScoringResult:
        repeat_count = self.count_nearby_recent(location, now)
        result = self.score_label_object(signals, repeat_count)

        logger.info(
            f"Calculated severity {result.severity_score} ({result.priority.value}) from "
            f"confidence={signals.confidence:.2f}, objects={signals.object_count}, repeats={repeat_count}"
        )
        return result


# Global service instance (singleton pattern)
_priority_service = None


def get_priority_scoring_service() -> PriorityScoringService:
    """
    Get or create PriorityScoringService singleton instance.

    Returns:
        PriorityScoringService: The global priority scoring service instance
    """
    global _priority_service
    if _priority_service is None:
        _priority_service = PriorityScoringService()
    return _priority_service
