"""
Mock AI Provider - rule-based verdict from the citizen's description.

Used when AI_PROVIDER=mock (local development, demos). Never makes a network
call and never looks at the image. Its confidence stays below the threshold
the scoring engine acts on, so it only nudges severity.
"""

from typing import Dict
import logging

from app.models.evidence import AIVerdict, Severity
from app.services.ai_plugin.base import VerdictProvider

logger = logging.getLogger(__name__)


class MockVerdictProvider(VerdictProvider):

    MODEL_NAME = "mock-rules-v1"
    MODEL_VERSION = "1.0.0"
    TIMEOUT_SECONDS = 0.1  # Instant (no network call)

    GARBAGE_WORDS = ("garbage", "trash", "waste", "dump", "litter", "rubbish", "plastic", "kachra")
    HIGH_WORDS = ("huge", "overflowing", "blocking", "stench", "smell", "rotting", "drain", "mosquito")
    LOW_WORDS = ("small", "little", "few", "minor", "wrapper")

    RULE_CONFIDENCE = 0.6

    def __init__(self):
        logger.info(f"✅ Mock Verdict Provider initialized: {self.MODEL_NAME}")

    def is_enabled(self) -> bool:
        """Mock provider is always enabled."""
        return True

    def get_model_info(self) -> Dict[str, str]:
        return {
            "name": self.MODEL_NAME,
            "version": self.MODEL_VERSION
        }

    def get_timeout_seconds(self) -> float:
        return self.TIMEOUT_SECONDS

    def assess(self, image_path: str, description: str) -> AIVerdict:
        desc_lower = (description or "").lower()

        is_garbage = any(word in desc_lower for word in self.GARBAGE_WORDS)

        severity = Severity.MEDIUM
        if any(word in desc_lower for word in self.HIGH_WORDS):
            severity = Severity.HIGH
        elif any(word in desc_lower for word in self.LOW_WORDS):
            severity = Severity.LOW

        reason = (
            "Description mentions garbage" if is_garbage else "Description does not mention garbage"
        ) + f"; keyword severity {severity.value}"

        return AIVerdict(
            is_public_garbage=is_garbage,
            confidence=self.RULE_CONFIDENCE,
            severity=severity,
            reason=reason,
        )
