"""
AI Provider Registry - picks the reasoning-model provider from settings.

There is no provider chain: if the configured provider is unavailable the
AI verdict pipeline simply has no opinion.
"""

from app.services.ai_plugin.base import VerdictProvider
from app.services.ai_plugin.gemini_provider import GeminiVerdictProvider
from app.services.ai_plugin.mock_provider import MockVerdictProvider
from app.services.ai_plugin.openai_provider import OpenAIVerdictProvider
from app.core.settings import settings
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Global provider instance (singleton)
_provider: Optional[VerdictProvider] = None
_resolved = False


def _build_provider() -> Optional[VerdictProvider]:
    if not settings.AI_ENABLED:
        logger.info("⚠️ AI is disabled globally (AI_ENABLED=false), verdicts unavailable")
        return None

    provider_name = (settings.AI_PROVIDER or "gemini").lower()

    if provider_name == "mock":
        return MockVerdictProvider()

    if provider_name == "openai":
        provider = OpenAIVerdictProvider(
            api_key=settings.OPENAI_API_KEY,
            model_name=settings.OPENAI_MODEL,
            timeout_seconds=settings.AI_TIMEOUT_SECONDS,
        )
    else:
        if provider_name != "gemini":
            logger.warning(f"Unknown AI_PROVIDER '{provider_name}', using gemini")
        provider = GeminiVerdictProvider(
            api_key=settings.GEMINI_API_KEY,
            model_name=settings.GEMINI_MODEL,
            timeout_seconds=settings.AI_TIMEOUT_SECONDS,
        )

    if not provider.is_enabled():
        logger.warning(f"⚠️ AI provider '{provider_name}' not enabled, verdicts unavailable")
        return None

    return provider


def get_verdict_provider() -> Optional[VerdictProvider]:
    """
    Get the configured verdict provider.

    Returns:
        The provider, or None when AI is disabled or the provider lacks credentials
    """
    global _provider, _resolved
    if not _resolved:
        _provider = _build_provider()
        _resolved = True
    return _provider
