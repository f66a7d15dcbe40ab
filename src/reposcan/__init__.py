"""
reposcan - security scan orchestration for GitHub repositories.

Clones a repository, detects its languages, runs the matching external
security tools, aggregates their findings and optionally asks an AI
reviewer for remediation guidance.
"""

__version__ = "1.0.0"
