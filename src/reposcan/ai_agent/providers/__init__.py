"""
AI provider implementations.
"""

import logging
from typing import Optional

from .base import AIProvider, AIProviderError, clean_json_response
from .ollama import OllamaProvider
from .openai import OpenAIProvider

logger = logging.getLogger(__name__)

__all__ = [
    'AIProvider',
    'AIProviderError',
    'OpenAIProvider',
    'OllamaProvider',
    'build_provider',
    'clean_json_response',
]


def build_provider(settings) -> Optional[AIProvider]:
    """Create the configured provider, or None when AI review is disabled."""
    provider = (settings.AI_PROVIDER or "").strip().lower()
    if provider in ("", "none", "disabled"):
        logger.info("AI review disabled")
        return None
    if provider == "openai":
        if not settings.OPENAI_API_KEY:
            logger.warning("AI_PROVIDER is openai but OPENAI_API_KEY is not set; AI review disabled")
            return None
        return OpenAIProvider(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)
    if provider == "ollama":
        if not settings.OLLAMA_BASE_URL:
            logger.warning("AI_PROVIDER is ollama but OLLAMA_BASE_URL is not set; AI review disabled")
            return None
        return OllamaProvider(base_url=settings.OLLAMA_BASE_URL, model=settings.OLLAMA_MODEL)
    logger.warning(f"Unknown AI_PROVIDER '{settings.AI_PROVIDER}'; AI review disabled")
    return None
