"""LLM provider factory."""

from branchchat.core.config import settings
from branchchat.services.llm.base import BaseLLMProvider

PROVIDERS = ("gemini",)


def get_llm_provider(name: str | None = None) -> BaseLLMProvider:
    """Return the provider called `name`, defaulting to `settings.llm_provider`.

    Raises ValueError for unknown names and ProviderError when the provider
    is known but not configured.
    """
    name = name or settings.llm_provider
    if name == "gemini":
        from branchchat.services.llm.gemini import GeminiProvider
        return GeminiProvider()
    raise ValueError(f"Unknown LLM provider: {name} (expected one of {', '.join(PROVIDERS)})")
