"""
pip-audit scanner for Python dependencies.
"""
import os
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_dicts, as_str

REQUIREMENTS_FILE = "requirements.txt"


class PipAuditTool(BaseTool):
    """Audits ``requirements.txt`` against the PyPI advisory database."""

    name = "pip-audit"
    command = "pip-audit"
    description = "Scan Python dependencies for known vulnerabilities using pip-audit"

    def build_args(self, repo_path, languages):
        return ["-r", os.path.join(repo_path, REQUIREMENTS_FILE), "--format", "json"]

    def parse_output(self, output: str) -> List[RawFinding]:
        data = as_dict(self._load_json(output))
        findings = []
        for dep in as_dicts(data.get("dependencies")):
            package = f"{as_str(dep.get('name'))}@{as_str(dep.get('version'))}"
            for vuln in as_dicts(dep.get("vulns")):
                vuln_id = as_str(vuln.get("id"))
                details = as_str(vuln.get("description")) or vuln_id
                findings.append(RawFinding(
                    file_path=REQUIREMENTS_FILE,
                    description=f"{package}: {details}",
                    severity="high",
                    rule_id=vuln_id or None,
                ))
        return findings
