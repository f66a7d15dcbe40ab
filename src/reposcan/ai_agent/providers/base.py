"""
Base abstract class for AI providers.

Defines the single call the code reviewer needs: one system prompt and one
user prompt in, raw model text out.
"""

from abc import ABC, abstractmethod


class AIProviderError(Exception):
    """Raised when a provider call fails or returns nothing usable."""


class AIProvider(ABC):
    """Abstract base class for AI providers."""

    name = "base"

    def __init__(self, api_key: str, model: str, max_tokens: int = 4000):
        """
        Initialize the AI provider.

        Args:
            api_key: API key for the provider
            model: Model name to use
            max_tokens: Maximum tokens for responses
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self._total_tokens = 0

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Send one chat completion request.

        Returns:
            The model's text response.

        Raises:
            AIProviderError: if the request fails or the response is empty
        """
        pass

    def get_total_tokens(self) -> int:
        """Get total tokens used across all requests."""
        return self._total_tokens

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


def clean_json_response(content: str) -> str:
    """Strip Markdown code fences from a JSON response."""
    content = (content or "").strip()
    if content.startswith("```"):
        # Remove opening ```json or ```
        parts = content.split("\n", 1)
        content = parts[1] if len(parts) > 1 else ""
        # Remove closing ```
        content = content.rstrip()
        if content.endswith("```"):
            content = content.rsplit("```", 1)[0]
    return content.strip()
