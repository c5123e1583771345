"""
Gemini Client

Thin wrapper around Google's generative AI SDK used by every AI-backed
feature (recommendations, similar books, review analysis, descriptions).

Every failure - missing API key, network error, timeout, blocked or
malformed response - surfaces as AIServiceError, so callers only have one
exception type to turn into their fallback path.

Usage:
    client = get_gemini_client()
    payload = client.generate_json("Suggest three books ...")
"""

import json
import logging
import re
from functools import lru_cache
from typing import Any

import google.generativeai as genai

from app.config import get_settings

logger = logging.getLogger(__name__)

# First {...} block in the model output; models often wrap JSON in prose
JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


class AIServiceError(Exception):
    """Raised when the language model is unavailable or answers unusably."""


class GeminiClient:
    """
    Gemini text/JSON completion client with a per-request deadline.

    The SDK model is created lazily, so constructing a client without an
    API key is fine; only the first call fails.
    """

    def __init__(self, api_key: str | None, model_name: str, timeout: float) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout
        self._model: Any = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_model(self) -> Any:
        if not self.api_key:
            raise AIServiceError("Gemini API key is not configured")

        if self._model is None:
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model_name)
        return self._model

    def generate_text(self, prompt: str) -> str:
        """
        Run a plain text completion.

        Raises:
            AIServiceError: If the model is not configured or the call fails
        """
        model = self._get_model()

        try:
            response = model.generate_content(
                prompt,
                request_options={"timeout": self.timeout},
            )
            # .text raises ValueError when the response was blocked
            return response.text
        except Exception as e:
            logger.warning(f"Gemini text generation failed: {e}")
            raise AIServiceError(f"Gemini request failed: {e}") from e

    def generate_json(self, prompt: str) -> dict[str, Any]:
        """
        Run a completion and parse the first JSON object in the answer.

        Args:
            prompt: Instructions for the model, including the expected JSON shape

        Returns:
            Parsed JSON object

        Raises:
            AIServiceError: If the call fails or no JSON object can be parsed
        """
        text = self.generate_text(f"{prompt}\n\nPlease respond with valid JSON only.")

        match = JSON_BLOCK.search(text or "")
        if match is None:
            raise AIServiceError("No valid JSON found in response")

        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise AIServiceError(f"Invalid JSON in response: {e}") from e

        if not isinstance(payload, dict):
            raise AIServiceError("Expected a JSON object in response")
        return payload


@lru_cache
def get_gemini_client() -> GeminiClient:
    """
    Get the application-wide Gemini client.

    Also used as a FastAPI dependency, so tests can override it with a fake.
    """
    settings = get_settings()
    return GeminiClient(
        api_key=settings.gemini_api_key,
        model_name=settings.gemini_model,
        timeout=settings.ai_request_timeout,
    )
