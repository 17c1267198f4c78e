"""
Evidence Pipelines - turn an evidence image into a severity score.

Exactly one pipeline is authoritative per deployment (EVIDENCE_PIPELINE):

- LabelObjectPipeline: detector labels + objects → fused signals →
  label/object formula with the repeat-complaint boost
- AIVerdictPipeline: reasoning-model verdict → AI verdict formula

Neither pipeline ever fails a submission because an upstream model failed:
the detector failing means empty detections, the reasoning model failing
means no verdict.
"""

from datetime import datetime
from typing import Dict, Optional, Tuple
import logging

from app.core.settings import settings
from app.models.evidence import AIVerdict, DetectionResult, EvidenceSummary, ScoringResult
from app.services.ai_plugin import VerdictProvider, get_verdict_provider
from app.services.evidence_fusion import EvidenceFusionEngine
from app.services.priority_scoring import PriorityScoringService, get_priority_scoring_service
from app.services.vision import DetectionProvider, get_detection_provider

logger = logging.getLogger(__name__)

LABEL_OBJECT = "label_object"
AI_VERDICT = "ai_verdict"


class LabelObjectPipeline:

    name = LABEL_OBJECT

    def __init__(
        self,
        detector: Optional[DetectionProvider] = None,
        scoring: Optional[PriorityScoringService] = None,
    ):
        self.detector = detector or get_detection_provider()
        self.scoring = scoring or get_priority_scoring_service()

    def _detect(self, image_path: str) -> Optional[DetectionResult]:
        try:
            return self.detector.detect(image_path)
        except Exception as e:
            logger.warning(f"⚠️ Detection failed for {image_path}, fusing empty detections: {e}")
            return None

    def evaluate(
        self,
        image_path: str,
        description: str,
        location: Dict,
        now: Optional[datetime] = None,
    ) -> Tuple[ScoringResult, EvidenceSummary]:
        detections = self._detect(image_path)
        signals = EvidenceFusionEngine.fuse(detections)
        result = self.scoring.calculate_label_object_priority(signals, location, now)

        summary = EvidenceSummary(
            pipeline=self.name,
            model_name=self.detector.get_model_info().get("name"),
            available=detections is not None,
            person_present=signals.person_present,
            object_count=signals.object_count,
            confidence=round(signals.confidence, 4),
        )
        return result, summary


class AIVerdictPipeline:

    name = AI_VERDICT

    def __init__(self, provider: Optional[VerdictProvider] = None, use_registry: bool = True):
        self.provider = provider if provider is not None or not use_registry else get_verdict_provider()

    def _assess(self, image_path: str, description: str) -> Optional[AIVerdict]:
        if self.provider is None:
            return None
        try:
            return self.provider.assess(image_path, description)
        except Exception as e:
            logger.warning(f"⚠️ AI verdict unavailable for {image_path}, scoring without AI opinion: {e}")
            return None

    def evaluate(
        self,
        image_path: str,
        description: str,
        location: Dict,
        now: Optional[datetime] = None,
    ) -> Tuple[ScoringResult, EvidenceSummary]:
        verdict = self._assess(image_path, description)
        result = PriorityScoringService.score_ai_verdict(verdict)

        logger.info(
            f"Calculated severity {result.severity_score} ({result.priority.value}) from "
            f"{'AI verdict' if verdict else 'no AI verdict'}"
        )

        if verdict is None:
            summary = EvidenceSummary(
                pipeline=self.name,
                model_name=self.provider.get_model_info().get("name") if self.provider else None,
                available=False,
            )
        else:
            summary = EvidenceSummary(
                pipeline=self.name,
                model_name=self.provider.get_model_info().get("name"),
                is_public_garbage=verdict.is_public_garbage,
                confidence=verdict.confidence,
                severity=verdict.severity.value,
                reason=verdict.reason,
            )
        return result, summary


# Global pipeline instance (singleton pattern)
_pipeline = None


def get_evidence_pipeline():
    """
    Get the pipeline selected by EVIDENCE_PIPELINE (label_object by default).
    """
    global _pipeline
    if _pipeline is None:
        name = (settings.EVIDENCE_PIPELINE or LABEL_OBJECT).lower()
        if name == AI_VERDICT:
            _pipeline = AIVerdictPipeline()
        else:
            if name != LABEL_OBJECT:
                logger.warning(f"Unknown EVIDENCE_PIPELINE '{name}', using {LABEL_OBJECT}")
            _pipeline = LabelObjectPipeline()
        logger.info(f"Evidence pipeline: {_pipeline.name}")
    return _pipeline
