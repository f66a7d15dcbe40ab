"""
Bandit static analysis for Python code.
"""
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_dicts, as_line, as_str


class BanditTool(BaseTool):
    name = "bandit"
    command = "bandit"
    description = "Python static security analysis"

    def build_args(self, repo_path, languages):
        return ["-r", "-f", "json", repo_path]

    def parse_output(self, output: str) -> List[RawFinding]:
        # Bandit may print progress lines before the JSON document
        start = (output or "").find("{")
        if start == -1:
            return []
        data = as_dict(self._load_json(output[start:]))
        findings = []
        for item in as_dicts(data.get("results")):
            findings.append(RawFinding(
                file_path=as_str(item.get("filename")),
                line_number=as_line(item.get("line_number")),
                description=as_str(item.get("issue_text")),
                severity=as_str(item.get("issue_severity")).lower(),
                rule_id=as_str(item.get("test_id")) or None,
            ))
        return findings
