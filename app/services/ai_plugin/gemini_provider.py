"""
Gemini AI Provider - multimodal verdict on the evidence image.

Uses the google-generativeai SDK with the image bytes inline.
"""

from typing import Callable, Dict, Optional
import functools
import logging

import google.generativeai as genai

from app.core.errors import UpstreamDegraded
from app.models.evidence import AIVerdict
from app.services.ai_plugin.base import VerdictProvider, build_verdict_prompt, parse_verdict_text

logger = logging.getLogger(__name__)


class GeminiVerdictProvider(VerdictProvider):
    """
    Google Gemini provider.

    Requires GEMINI_API_KEY. Image bytes come from image_loader (the storage
    service by default).
    """

    MODEL_VERSION = "1.0"

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = "gemini-1.5-flash",
        timeout_seconds: float = 10.0,
        image_loader: Optional[Callable[[str], bytes]] = None,
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.image_loader = image_loader
        self.enabled = bool(self.api_key and self.api_key.strip())

        if self.enabled:
            logger.info(f"✅ Gemini Verdict Provider initialized: {self.model_name}")
        else:
            logger.info("⚠️ Gemini Verdict Provider disabled: No API key configured")

    def is_enabled(self) -> bool:
        return self.enabled

    def get_model_info(self) -> Dict[str, str]:
        return {
            "name": self.model_name,
            "version": self.MODEL_VERSION
        }

    def get_timeout_seconds(self) -> float:
        return self.timeout_seconds

    def _load_image(self, image_path: str) -> bytes:
        loader = self.image_loader
        if loader is None:
            from app.services.storage_service import get_storage_service
            loader = functools.partial(get_storage_service().download_image, timeout=self.timeout_seconds)
        try:
            return loader(image_path)
        except Exception as e:
            raise UpstreamDegraded(f"Could not load image for Gemini: {e}") from e

    def assess(self, image_path: str, description: str) -> AIVerdict:
        if not self.enabled:
            raise UpstreamDegraded("Gemini API key not configured")

        image_bytes = self._load_image(image_path)

        try:
            genai.configure(api_key=self.api_key)
            model = genai.GenerativeModel(
                self.model_name,
                generation_config={"temperature": 0.2, "response_mime_type": "application/json"},
            )
            response = model.generate_content(
                [build_verdict_prompt(description), {"mime_type": "image/jpeg", "data": image_bytes}],
                request_options={"timeout": self.timeout_seconds},
            )
            text = response.text
        except Exception as e:
            raise UpstreamDegraded(f"Gemini API error: {e}") from e

        try:
            return parse_verdict_text(text)
        except ValueError as e:
            logger.debug(f"Gemini response text: {text}")
            raise UpstreamDegraded(f"Unparseable Gemini verdict: {e}") from e
