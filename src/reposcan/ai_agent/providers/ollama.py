"""
Ollama provider for local LLM review via its OpenAI-compatible endpoint.
"""

import logging

from .openai import OpenAIProvider

logger = logging.getLogger(__name__)


class OllamaProvider(OpenAIProvider):
    """Ollama provider for local LLM analysis."""

    name = "ollama"

    def __init__(self, base_url: str, model: str = "llama3", max_tokens: int = 4000):
        """
        Initialize Ollama provider.

        Args:
            base_url: Ollama API base URL (e.g., http://localhost:11434/v1)
            model: Model name to use
            max_tokens: Maximum tokens for responses
        """
        # Ensure base_url ends with /v1 for OpenAI compatibility if not present
        if not base_url.endswith("/v1"):
            base_url = f"{base_url.rstrip('/')}/v1"
        # The client requires a non-empty key; Ollama ignores it
        super().__init__("ollama", model, max_tokens, base_url=base_url)

    def _build_params(self, system_prompt: str, user_prompt: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self.max_tokens,
            "temperature": 0.3,
        }
