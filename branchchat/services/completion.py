"""Completion clients used by the orchestrator to turn a user message into a reply.

The relay client posts `{"message": ...}` to the relay endpoint and expects
`{"response": ...}` back, or `{"error": ...}` with a non-2xx status.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from branchchat.core.config import settings
from branchchat.core.errors import ProviderError

logger = logging.getLogger(__name__)


class BaseCompletionClient(ABC):
    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Return the completion text for a single prompt. Raises ProviderError."""
        ...


class RelayCompletionClient(BaseCompletionClient):
    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url or settings.relay_url
        self.timeout = timeout if timeout is not None else settings.completion_timeout
        self._transport = transport

    async def complete(self, prompt: str) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, json={"message": prompt})
        except httpx.HTTPError as e:
            raise ProviderError(f"Completion relay unreachable: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if resp.status_code >= 400:
            detail = data.get("error") or resp.text
            raise ProviderError(f"Completion relay returned {resp.status_code}: {detail}")

        text = data.get("response")
        if not isinstance(text, str) or not text:
            raise ProviderError("Completion relay returned an empty or malformed response")
        return text


class DirectCompletionClient(BaseCompletionClient):
    """Calls the configured LLM provider in-process, skipping the relay."""

    def __init__(self, provider=None):
        self._provider = provider

    async def complete(self, prompt: str) -> str:
        if self._provider is None:
            from branchchat.services.llm import get_llm_provider
            try:
                self._provider = get_llm_provider()
            except ValueError as e:
                raise ProviderError(f"LLM provider misconfigured: {e}") from e
        return await self._provider.generate(prompt)


def get_completion_client() -> BaseCompletionClient:
    """Factory function that returns the configured completion client."""
    if settings.completion_mode == "relay":
        return RelayCompletionClient()
    elif settings.completion_mode == "direct":
        return DirectCompletionClient()
    else:
        raise ValueError(f"Unknown completion mode: {settings.completion_mode}")
