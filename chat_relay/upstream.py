"""
Gemini generateContent client.

Talks to the REST endpoint directly so the request envelope and the
key-in-query-string contract are exactly what the provider documents.
"""

import logging
from typing import Any, Optional

import httpx

from chat_relay.config import Settings
from chat_relay.exceptions import UpstreamError
from chat_relay.models import GenerateContentRequest, NO_CANDIDATE_RESPONSE

logger = logging.getLogger(__name__)


def extract_text(payload: Any) -> str:
    """
    Pull candidates[0].content.parts[0].text out of a generateContent reply.

    Any other shape yields the fixed fallback sentence instead of an error.
    """
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return NO_CANDIDATE_RESPONSE
    if not isinstance(text, str):
        return NO_CANDIDATE_RESPONSE
    return text


class GeminiClient:
    """One-shot client for a single generateContent call per message."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> Optional["GeminiClient"]:
        if not settings.gemini_configured:
            return None
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_api_base,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.model}:generateContent"

    async def generate(self, message: str) -> str:
        body = GenerateContentRequest.for_message(message).model_dump()

        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json=body,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise UpstreamError(
                    f"Gemini API error: {e.response.status_code}",
                    {"status_code": e.response.status_code},
                ) from e
            except httpx.HTTPError as e:
                raise UpstreamError(f"Gemini API unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("Gemini API returned a non-JSON body") from e

        logger.debug("Gemini API response: %s", data)
        return extract_text(data)
