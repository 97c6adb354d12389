"""Abstract LLM provider interface. All providers must implement this."""

from abc import ABC, abstractmethod


class BaseLLMProvider(ABC):
    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Send a single prompt and return the completion text."""
        ...
