"""
OpenAI provider implementation.
"""

import logging

from openai import AsyncOpenAI

from .base import AIProvider, AIProviderError

logger = logging.getLogger(__name__)


def is_reasoning_model(model: str) -> bool:
    model = model.lower()
    return "gpt-5" in model or "o1" in model or "o3" in model


class OpenAIProvider(AIProvider):
    """OpenAI chat completions provider."""

    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o", max_tokens: int = 4000, base_url: str = None):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model to use (gpt-4o, gpt-4-turbo, gpt-5, ...)
            max_tokens: Maximum tokens for responses
            base_url: Optional OpenAI-compatible endpoint
        """
        super().__init__(api_key, model, max_tokens)
        self.base_url = base_url
        logger.info(f"Initialized {self.name} provider with model: {model}")

    def _build_params(self, system_prompt: str, user_prompt: str) -> dict:
        if is_reasoning_model(self.model):
            # Reasoning models reject custom temperature and max_tokens
            return {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "max_completion_tokens": self.max_tokens,
            }
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
            "max_tokens": self.max_tokens,
            "temperature": 0.3,
        }

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        # Every review runs in its own event loop, so the client (and its
        # connection pool) must not outlive a single request
        try:
            async with AsyncOpenAI(api_key=self.api_key, base_url=self.base_url) as client:
                response = await client.chat.completions.create(
                    **self._build_params(system_prompt, user_prompt)
                )
        except Exception as e:
            raise AIProviderError(f"{self.name} request failed: {e}") from e

        if response.usage is not None:
            self._total_tokens += response.usage.total_tokens

        if not response.choices:
            raise AIProviderError(f"{self.name} returned no choices")
        content = response.choices[0].message.content
        if not content:
            logger.error(f"{self.name} returned empty content")
            raise AIProviderError(f"{self.name} returned empty content")
        return content
