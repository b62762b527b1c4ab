"""
LLM Client — async client for OpenAI-compatible chat completion APIs.
Supports DeepSeek, OpenAI, and compatible endpoints.
"""

import logging
from typing import Optional

import httpx

from ..config import LLMConfig

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """The provider could not produce a usable reply."""


class LLMClient:
    """
    Thin async wrapper over `/chat/completions` using httpx.
    Raises on failure; callers decide how to degrade.
    """

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    async def initialize(self):
        """Create the HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(self.config.timeout, connect=10.0),
            transport=self._transport,
        )
        logger.info("LLM client initialized (model=%s)", self.config.model)

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def complete(self, prompt: str) -> str:
        """
        Send a single-message prompt and return the reply text.

        Raises ProviderError when unconfigured or when the body has no usable
        content; transport and status failures surface as httpx.HTTPError.
        """
        if not self._client:
            raise ProviderError("LLM client not initialized")
        if not self.config.api_key:
            raise ProviderError("No LLM API key configured")

        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "stream": False,
        }

        response = await self._client.post("/chat/completions", json=payload)
        response.raise_for_status()
        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Malformed completion response: {e}") from e

        if not isinstance(content, str) or not content.strip():
            raise ProviderError("Empty completion")

        text = content.strip()
        logger.debug("LLM completion received (%d chars)", len(text))
        return text
