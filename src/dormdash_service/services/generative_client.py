"""Client for the hosted text-generation API."""

import logging
import time
from typing import Any

import httpx

from dormdash_service.observability.metrics import record_generation_call

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_MODEL = "gemini-2.0-flash"


class GenerativeTextClient:
    """HTTP client for single-prompt text generation.

    Sends one prompt to the generateContent endpoint and returns the text of
    the first candidate.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialize the text generation client.

        Args:
            api_key: API key for the generation service
            model: Model name (e.g., "gemini-2.0-flash")
            base_url: Base URL of the generation API
            timeout_seconds: Request timeout
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    async def generate(self, prompt: str) -> str | None:
        """Generate text for a prompt.

        Args:
            prompt: Full prompt text

        Returns:
            Generated text, or None on failure or an empty response
        """
        url = f"{self.base_url}/v1beta/models/{self.model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(url, params={"key": self.api_key}, json=payload)
                response.raise_for_status()
                data = response.json()

        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(f"Text generation call to {self.model} failed: {e}")
            return None

        finally:
            record_generation_call(self.model, time.time() - start_time)

        text = extract_text(data)
        if not text:
            logger.warning(f"Text generation call to {self.model} returned no text")
            return None

        return text


def extract_text(data: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate of a response."""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""

    parts = candidates[0].get("content", {}).get("parts", [])
    return "".join(part.get("text", "") for part in parts)
