"""Google Gemini LLM provider."""

import logging

from google import genai

from branchchat.core.config import settings
from branchchat.core.errors import ProviderError
from branchchat.services.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)


class GeminiProvider(BaseLLMProvider):
    def __init__(self):
        if not settings.gemini_api_key:
            raise ProviderError("Gemini API key not configured. Set BRANCHCHAT_GEMINI_API_KEY.")
        self.client = genai.Client(api_key=settings.gemini_api_key)
        self.model = settings.gemini_model

    async def generate(self, prompt: str) -> str:
        logger.info(f"Sending request to Gemini ({self.model}): {prompt[:200]}")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
            )
        except Exception as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        text = response.text
        if not text:
            raise ProviderError("Gemini returned an empty response")
        logger.info(f"Gemini response: {text[:300]}")
        return text
