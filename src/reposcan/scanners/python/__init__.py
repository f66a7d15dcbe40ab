"""
Python security scanners.
"""

from .bandit import BanditTool
from .pip_audit import PipAuditTool
from .safety import SafetyTool

__all__ = ['BanditTool', 'PipAuditTool', 'SafetyTool']
