"""
Evidence Fusion - turns raw image detections into normalized garbage signals.

DESIGN PRINCIPLES:
- Deterministic: same detections always fuse to the same signals
- Weak or absent evidence gets a LOW baseline, never a "likely garbage" level
- Strong object evidence cannot be drowned out by weak labels
- Detector failure is not an error here: callers fuse an empty result
"""

from typing import Iterable, Optional

from app.models.evidence import Detection, DetectionResult, EvidenceSignals
import logging

logger = logging.getLogger(__name__)


class EvidenceFusionEngine:
    """
    Fuses (label, score) and (object, score) detections.

    Rules:
    1. confidence = max score among labels containing a garbage keyword
    2. object_count = objects whose name contains a garbage-object keyword
    3. person_present if a label mentions person/face or an object mentions person
    4. Nothing found at all → confidence 0.3 (weak baseline)
    5. 3+ garbage objects → confidence at least 0.8
    """

    GARBAGE_KEYWORDS = (
        "garbage",
        "trash",
        "waste",
        "dump",
        "dumping",
        "litter",
        "plastic",
        "pollution",
        "rubbish",
        "refuse",
        "landfill",
        "junk",
        "scrap",
        "debris",
    )
    GARBAGE_OBJECT_KEYWORDS = ("plastic", "bag", "bottle", "waste", "container")
    PERSON_LABEL_KEYWORDS = ("person", "face")
    PERSON_OBJECT_KEYWORDS = ("person",)

    BASELINE_CONFIDENCE = 0.3
    STRONG_OBJECT_COUNT = 3
    STRONG_CONFIDENCE = 0.8

    @classmethod
    def fuse(cls, detections: Optional[DetectionResult]) -> EvidenceSignals:
        """
        Fuse detector output into EvidenceSignals.

        Args:
            detections: Detector output, or None when the detector failed

        Returns:
            EvidenceSignals with fallback and strong-signal rules applied
        """
        if detections is None:
            detections = DetectionResult()

        confidence, label_person = cls._scan_labels(detections.labels)
        object_count, object_person = cls._scan_objects(detections.objects)

        return cls.apply_policy(
            EvidenceSignals(
                confidence=confidence,
                object_count=object_count,
                person_present=label_person or object_person,
            )
        )

    @classmethod
    def apply_policy(cls, signals: EvidenceSignals) -> EvidenceSignals:
        """
        Apply the fallback baseline and the strong-signal override to raw signals.
        """
        confidence = signals.confidence

        if confidence == 0 and signals.object_count == 0 and not signals.person_present:
            confidence = cls.BASELINE_CONFIDENCE
            logger.debug("No garbage evidence detected, applying weak baseline confidence")

        if signals.object_count >= cls.STRONG_OBJECT_COUNT:
            confidence = max(confidence, cls.STRONG_CONFIDENCE)

        return EvidenceSignals(
            confidence=confidence,
            object_count=signals.object_count,
            person_present=signals.person_present,
        )

    @classmethod
    def _scan_labels(cls, labels: Iterable[Detection]):
        confidence = 0.0
        person_present = False
        for label in labels:
            text = label.description.lower()
            if any(keyword in text for keyword in cls.GARBAGE_KEYWORDS):
                confidence = max(confidence, label.score)
            if any(keyword in text for keyword in cls.PERSON_LABEL_KEYWORDS):
                person_present = True
        return confidence, person_present

    @classmethod
    def _scan_objects(cls, objects: Iterable[Detection]):
        object_count = 0
        person_present = False
        for obj in objects:
            name = obj.description.lower()
            if any(keyword in name for keyword in cls.GARBAGE_OBJECT_KEYWORDS):
                object_count += 1
            if any(keyword in name for keyword in cls.PERSON_OBJECT_KEYWORDS):
                person_present = True
        return object_count, person_present
