"""
Ruby security scanners.
"""

from .brakeman import BrakemanTool
from .bundler_audit import BundlerAuditTool

__all__ = ['BundlerAuditTool', 'BrakemanTool']
