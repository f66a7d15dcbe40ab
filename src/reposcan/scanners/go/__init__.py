"""
Go security scanners.
"""

from .govulncheck import GovulncheckTool

__all__ = ['GovulncheckTool']
