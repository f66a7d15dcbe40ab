"""
Language-independent scanners that run against every repository.
"""

from .gitleaks import GitleaksTool
from .semgrep import SemgrepTool
from .trivy import TrivyTool
from .trufflehog import TruffleHogTool

__all__ = ['TrivyTool', 'SemgrepTool', 'TruffleHogTool', 'GitleaksTool']
