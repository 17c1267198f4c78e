"""
AI Verdict Provider Base Interface.

Defines the contract for reasoning-model providers that judge an evidence
image, and the shared parser for their JSON answers.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict
import json
import logging

from app.models.evidence import AIVerdict, Severity

logger = logging.getLogger(__name__)


VERDICT_PROMPT = """You are assisting a municipal sanitation team that reviews citizen photos of uncollected garbage.

Look at the attached photo and the citizen's description, then judge:
1. Is this garbage in a PUBLIC place that the municipality should clean
   (street, footpath, park, open plot, drain, market)? Household bins,
   private premises and images with no garbage are NOT public garbage.
2. How confident are you (0.0 to 1.0)?
3. How severe is it: LOW (small litter), MEDIUM (a pile or overflowing bin),
   HIGH (large dump, blocking a road or drain, health hazard)?

Citizen description: {description}

Respond with ONLY a JSON object, no markdown:
{{
  "is_public_garbage": <true|false>,
  "confidence": <float 0.0-1.0>,
  "severity": "<LOW|MEDIUM|HIGH>",
  "reason": "<one short sentence explaining the judgement>"
}}"""


def build_verdict_prompt(description: str) -> str:
    return VERDICT_PROMPT.format(description=(description or "").strip()[:1000] or "(none)")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no"):
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def parse_verdict_text(text: str) -> AIVerdict:
    """
    Parse a model answer into an AIVerdict.

    Strips markdown code fences, clamps confidence to [0, 1] and normalizes
    severity; an unknown severity becomes MEDIUM.

    Raises:
        ValueError: If the answer is not JSON or lacks is_public_garbage/confidence
    """
    text = (text or "").strip()

    # LLM might wrap JSON in markdown code blocks
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    try:
        parsed: Dict[str, Any] = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Verdict is not valid JSON: {e}")

    if not isinstance(parsed, dict):
        raise ValueError("Verdict JSON is not an object")
    if "is_public_garbage" not in parsed or "confidence" not in parsed:
        raise ValueError("Verdict missing is_public_garbage or confidence")

    try:
        confidence = max(0.0, min(float(parsed["confidence"]), 1.0))
    except (TypeError, ValueError):
        raise ValueError(f"Verdict confidence is not a number: {parsed['confidence']!r}")

    severity_raw = str(parsed.get("severity", "")).strip().upper()
    try:
        severity = Severity(severity_raw)
    except ValueError:
        logger.warning(f"Unknown severity {severity_raw!r} in verdict, using MEDIUM")
        severity = Severity.MEDIUM

    return AIVerdict(
        is_public_garbage=_parse_bool(parsed["is_public_garbage"]),
        confidence=confidence,
        severity=severity,
        reason=str(parsed.get("reason") or "").strip(),
    )


class VerdictProvider(ABC):
    """
    Abstract base class for reasoning-model providers.

    This method contract:
    - assess() returns an AIVerdict or raises UpstreamDegraded
    - Every remote call is bounded by get_timeout_seconds()
    """

    @abstractmethod
    def is_enabled(self) -> bool:
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, str]:
        """
        Returns:
            Dict with 'name' and 'version' keys
        """
        pass

    @abstractmethod
    def assess(self, image_path: str, description: str) -> AIVerdict:
        """
        Judge the evidence image at image_path.

        Args:
            image_path: Bucket path of the evidence image
            description: The citizen's description (context only)
        """
        pass

    @abstractmethod
    def get_timeout_seconds(self) -> float:
        pass
