"""
Safety scanner for Python dependencies.
"""
import os
from typing import List

from ..base import BaseTool, RawFinding, as_list, as_str

REQUIREMENTS_FILE = "requirements.txt"


class SafetyTool(BaseTool):
    """Checks ``requirements.txt`` with Safety's legacy JSON report.

    Each report row is ``[package, spec, installed, advisory, id, ...]``.
    """

    name = "safety"
    command = "safety"
    description = "Check Python dependencies for known security vulnerabilities"

    def build_args(self, repo_path, languages):
        return ["check", "-r", os.path.join(repo_path, REQUIREMENTS_FILE), "--json"]

    def parse_output(self, output: str) -> List[RawFinding]:
        findings = []
        for row in as_list(self._load_json(output)):
            row = as_list(row)
            if len(row) < 5:
                continue
            package = as_str(row[0])
            advisory = as_str(row[3])
            findings.append(RawFinding(
                file_path=REQUIREMENTS_FILE,
                description=f"{package}: {advisory}",
                severity="high",
                rule_id=as_str(row[4]) or None,
            ))
        return findings
