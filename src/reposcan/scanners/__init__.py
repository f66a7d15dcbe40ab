"""
Security tool adapters and the runner that drives them.
"""

from .base import BaseTool, Finding, RawFinding, Severity, ToolResult
from .environment import DockerExecEnvironment, ExecutionEnvironment, LocalEnvironment
from .registry import ToolRegistry, default_registry
from .runner import ToolRunner, ToolRunnerConfig

__all__ = [
    'BaseTool',
    'Finding',
    'RawFinding',
    'Severity',
    'ToolResult',
    'ExecutionEnvironment',
    'LocalEnvironment',
    'DockerExecEnvironment',
    'ToolRegistry',
    'default_registry',
    'ToolRunner',
    'ToolRunnerConfig',
]
