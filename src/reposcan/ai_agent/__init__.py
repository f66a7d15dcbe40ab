"""
AI-assisted remediation for scan findings.
"""

from .providers import AIProvider, AIProviderError, OllamaProvider, OpenAIProvider, build_provider
from .reviewer import CodeReviewer, ReviewerConfig, ReviewStats

__all__ = [
    'AIProvider',
    'AIProviderError',
    'OpenAIProvider',
    'OllamaProvider',
    'build_provider',
    'CodeReviewer',
    'ReviewerConfig',
    'ReviewStats',
]
