"""
Rust security scanners.
"""

from .cargo_audit import CargoAuditTool

__all__ = ['CargoAuditTool']
