"""
OpenAI AI Provider - multimodal verdict via the chat completions HTTP API.
"""

from typing import Callable, Dict, Optional
import base64
import functools
import logging

import requests

from app.core.errors import UpstreamDegraded
from app.models.evidence import AIVerdict
from app.services.ai_plugin.base import VerdictProvider, build_verdict_prompt, parse_verdict_text

logger = logging.getLogger(__name__)


class OpenAIVerdictProvider(VerdictProvider):

    API_URL = "https://api.openai.com/v1/chat/completions"
    MODEL_VERSION = "1.0"

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = "gpt-4o-mini",
        timeout_seconds: float = 10.0,
        image_loader: Optional[Callable[[str], bytes]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.image_loader = image_loader
        self.session = session or requests.Session()
        self.enabled = bool(self.api_key and self.api_key.strip())

        if self.enabled:
            logger.info(f"✅ OpenAI Verdict Provider initialized: {self.model_name}")
        else:
            logger.info("⚠️ OpenAI Verdict Provider disabled: No API key configured")

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
            raise UpstreamDegraded(f"Could not load image for OpenAI: {e}") from e

    def assess(self, image_path: str, description: str) -> AIVerdict:
        if not self.enabled:
            raise UpstreamDegraded("OpenAI API key not configured")

        image_b64 = base64.b64encode(self._load_image(image_path)).decode("ascii")

        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": "You review civic garbage reports. Output only valid JSON."},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": build_verdict_prompt(description)},
                        {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"}},
                    ],
                },
            ],
            "temperature": 0.2,
            "max_tokens": 300,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        try:
            response = self.session.post(self.API_URL, headers=headers, json=payload, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise UpstreamDegraded(f"OpenAI request failed: {e}") from e

        if response.status_code != 200:
            raise UpstreamDegraded(f"OpenAI API returned status {response.status_code}: {response.text[:200]}")

        try:
            text = response.json()["choices"][0]["message"]["content"]
            return parse_verdict_text(text)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise UpstreamDegraded(f"Unparseable OpenAI verdict: {e}") from e
