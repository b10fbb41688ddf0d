"""
Gemini REST Client

Thin async wrapper around the Gemini generateContent endpoint. Search
prompts are grounded with the Google Maps tool and come back as free text;
suggestion prompts request JSON with a response schema.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import GEMINI_API_URL, GEMINI_MODEL, UPSTREAM_TIMEOUT, get_api_key
from ..exceptions import ConfigurationError, RateLimitError, UpstreamError

logger = logging.getLogger(__name__)

GOOGLE_MAPS_TOOL = {"googleMaps": {}}


def extract_text(data: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate of a generateContent response."""
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        reason = feedback.get("blockReason")
        if reason:
            raise UpstreamError(f"Prompt blocked: {reason}")
        return ""

    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class GeminiClient:
    """
    Calls Gemini on behalf of the API server.

    Args:
        api_key: Gemini API key (defaults to GEMINI_API_KEY from the environment)
        model: Model name
        transport: Optional httpx transport (used by tests)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = UPSTREAM_TIMEOUT,
    ):
        self.api_key = api_key if api_key is not None else get_api_key()
        self.model = model
        self._transport = transport
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def generate(
        self,
        prompt: str,
        *,
        tools: Optional[List[Dict[str, Any]]] = None,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Run one generateContent call and return the model's text.

        Raises:
            ConfigurationError: If no API key is configured
            RateLimitError: If Gemini answers HTTP 429
            UpstreamError: For any other failure
        """
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is missing in server environment.")

        body: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if tools:
            body["tools"] = tools
        if response_schema:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            }

        url = f"{GEMINI_API_URL}/models/{self.model}:generateContent"
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise UpstreamError("Gemini request timed out", status_code=504) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Gemini request failed: {e!r}", status_code=502) from e

        if response.status_code == 429:
            raise RateLimitError(f"429 RESOURCE_EXHAUSTED: {self._error_message(response)}", status_code=429)
        if response.status_code != 200:
            message = self._error_message(response)
            logger.error("Gemini error %d: %s", response.status_code, message)
            raise UpstreamError(f"Gemini error {response.status_code}: {message}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("Gemini returned a non-JSON response", status_code=502) from e

        return extract_text(data)

    async def search_text(self, prompt: str) -> str:
        """Maps-grounded generation; returns free text expected to contain a JSON array."""
        return await self.generate(prompt, tools=[GOOGLE_MAPS_TOOL])

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            return response.text[:200]
        status = error.get("status")
        message = error.get("message") or response.text[:200]
        return f"{status}: {message}" if status else message
