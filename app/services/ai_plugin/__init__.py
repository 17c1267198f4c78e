"""
AI Plug-in Architecture - reasoning-model verdicts on evidence images.

Optional: can be disabled, and a failed call means "no AI opinion",
never a failed complaint submission.
"""

from app.services.ai_plugin.base import VerdictProvider, parse_verdict_text
from app.services.ai_plugin.gemini_provider import GeminiVerdictProvider
from app.services.ai_plugin.mock_provider import MockVerdictProvider
from app.services.ai_plugin.openai_provider import OpenAIVerdictProvider
from app.services.ai_plugin.registry import get_verdict_provider

__all__ = [
    "VerdictProvider",
    "parse_verdict_text",
    "GeminiVerdictProvider",
    "MockVerdictProvider",
    "OpenAIVerdictProvider",
    "get_verdict_provider",
]
