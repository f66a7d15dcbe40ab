"""
Base tool adapter for external security scanners.
"""
import abc
import json
import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

from ..cancellation import CancelToken
from ..safe_subprocess import SubprocessCancelled, SubprocessTimeout

if TYPE_CHECKING:
    from .environment import ExecutionEnvironment


class Severity(str, Enum):
    """Normalized finding severity, most severe first."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __str__(self) -> str:
        return self.value


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
    Severity.INFO: 4,
}


@dataclass
class RawFinding:
    """A finding as reported by a single tool, before normalization."""
    file_path: str
    description: str
    severity: str
    line_number: Optional[int] = None
    rule_id: Optional[str] = None


@dataclass
class ToolResult:
    """Outcome of one tool invocation."""
    tool: str
    findings: List[RawFinding] = field(default_factory=list)
    timed_out: bool = False
    error: Optional[str] = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return not self.timed_out and self.error is None


@dataclass
class Finding:
    """A normalized, deduplicated finding."""
    id: str
    severity: Severity
    tool: str
    file_path: str
    description: str
    line_number: Optional[int] = None
    remediation: Optional[str] = None
    code_example: Optional[str] = None
    rule_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "tool": self.tool,
            "file_path": self.file_path,
            "line_number": self.line_number,
            "description": self.description,
            "remediation": self.remediation,
            "code_example": self.code_example,
            "rule_id": self.rule_id,
        }


class BaseTool(abc.ABC):
    """Abstract base class for all tool adapters.

    Subclasses describe how to invoke one binary and how to turn its output
    into ``RawFinding`` objects; running, timing and failure handling are
    shared here.
    """

    name: str = ""
    command: str = ""
    description: str = ""

    def __init__(self):
        self.logger = logging.getLogger(f"scanner.{self.name.lower()}")

    @abc.abstractmethod
    def build_args(self, repo_path: str, languages: Sequence[str]) -> List[str]:
        """Return the argument list passed to ``command``."""

    @abc.abstractmethod
    def parse_output(self, output: str) -> List[RawFinding]:
        """Parse tool output. Must return ``[]`` on malformed input, never raise."""

    def collect_output(self, env: "ExecutionEnvironment", repo_path: str, output: str) -> str:
        """Hook for tools that write their report somewhere other than stdout."""
        return output

    def run(
        self,
        env: "ExecutionEnvironment",
        repo_path: str,
        languages: Sequence[str] = (),
        timeout: float = 300,
        cancel: Optional[CancelToken] = None,
    ) -> ToolResult:
        """Run the tool against ``repo_path``.

        Exit codes are ignored since most scanners exit non-zero when they
        find something; the output is always parsed. Only stdout is handed to
        ``parse_output``: stderr carries progress and log lines that would
        corrupt the JSON reports, so it is logged at debug level and dropped.
        """
        result = ToolResult(tool=self.name)
        start = time.monotonic()
        try:
            proc = env.run(
                self.command,
                self.build_args(repo_path, languages),
                workdir=repo_path,
                timeout=timeout,
                cancel=cancel,
            )
        except SubprocessTimeout:
            result.duration = time.monotonic() - start
            result.timed_out = True
            self.logger.warning(f"{self.name} timed out after {timeout}s")
            return result
        except SubprocessCancelled:
            result.duration = time.monotonic() - start
            result.error = "cancelled"
            self.logger.info(f"{self.name} cancelled")
            return result
        except OSError as e:
            result.duration = time.monotonic() - start
            result.error = f"failed to execute {self.command}: {e.strerror or e}"
            self.logger.error(result.error)
            return result

        result.duration = time.monotonic() - start
        self.logger.debug(
            f"{self.name} exited with {proc.returncode} "
            f"({len(proc.stdout)} bytes of output, {result.duration:.1f}s)"
        )
        if proc.stderr:
            self.logger.debug(f"{self.name} stderr: {proc.stderr[:500]}")

        output = self.collect_output(env, repo_path, proc.stdout)
        findings = self.parse_output(output)
        for finding in findings:
            finding.file_path = self._relative_path(finding.file_path, repo_path)
        result.findings = findings
        self.logger.info(f"{self.name} reported {len(findings)} finding(s)")
        return result

    def _load_json(self, content: str) -> Any:
        """Safely parse JSON content, returning None when it is not valid JSON."""
        if not content or not content.strip():
            return None
        try:
            return json.loads(content)
        except (json.JSONDecodeError, ValueError) as e:
            self.logger.debug(f"Failed to parse {self.name} JSON: {e}")
            return None

    def _iter_json_lines(self, content: str):
        """Yield each decodable JSON object of newline-delimited output."""
        for line in (content or "").splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except (json.JSONDecodeError, ValueError):
                continue
            if isinstance(obj, dict):
                yield obj

    @staticmethod
    def _relative_path(path: str, repo_path: str) -> str:
        """Strip the working-directory prefix tools put on reported paths."""
        if not path or not os.path.isabs(path):
            return path
        root = os.path.normpath(repo_path)
        normalized = os.path.normpath(path)
        if normalized.startswith(root + os.sep):
            return os.path.relpath(normalized, root)
        return path


def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def as_line(value: Any) -> Optional[int]:
    """Positive integer line number or None."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def as_dicts(value: Any) -> List[Dict[str, Any]]:
    """The dict items of a JSON array, ignoring anything else."""
    return [item for item in as_list(value) if isinstance(item, dict)]
