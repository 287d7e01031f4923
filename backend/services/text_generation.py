"""
Text generation service - single chat completion against OpenAI or OpenRouter.

OpenRouter is reached through the OpenAI SDK with a different base URL.
"""

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from settings import ai_settings, AIProvider

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class TextGenerationError(RuntimeError):
    """The provider call failed or the provider is not configured."""


class TextGenerationService:

    def __init__(
        self,
        provider: Optional[AIProvider] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        request_timeout: Optional[float] = None
    ):
        self.provider = AIProvider(provider or ai_settings.ai_provider)
        self.request_timeout = request_timeout or ai_settings.ai_request_timeout

        if self.provider == AIProvider.OPENROUTER:
            self.api_key = api_key or ai_settings.openrouter_api_key
            self.model = model or ai_settings.openrouter_model
        else:
            self.api_key = api_key or ai_settings.openai_api_key
            self.model = model or ai_settings.openai_model

        self.client = self._init_client()

    def _init_client(self) -> Optional[OpenAI]:
        """Initialize OpenAI client based on configured provider."""
        if self.provider == AIProvider.MOCK or not self.api_key:
            return None
        if self.provider == AIProvider.OPENROUTER:
            return OpenAI(api_key=self.api_key, base_url=OPENROUTER_BASE_URL)
        return OpenAI(api_key=self.api_key)

    def generate(self, prompt: str, system_instruction: Optional[str] = None) -> str:
        """
        Run one completion and return the raw text.

        Raises:
            TextGenerationError: On provider failure or missing configuration
        """
        if self.provider == AIProvider.MOCK:
            logger.info("[TextGen] Mock provider - returning empty JSON object")
            return "{}"

        if not self.client:
            raise TextGenerationError(
                f"AI provider '{self.provider.value}' API key not configured"
            )

        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.1,
                timeout=self.request_timeout
            )
        except OpenAIError as e:
            raise TextGenerationError(f"{self.provider.value} completion failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        logger.debug(f"[TextGen] Raw response: {(content or '')[:500]}")
        return content or ""
