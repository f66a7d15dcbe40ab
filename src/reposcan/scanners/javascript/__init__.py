"""
JavaScript and TypeScript security scanners.
"""

from .npm_audit import NpmAuditTool

__all__ = ['NpmAuditTool']
