"""
Brakeman static analysis for Rails applications.
"""
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_dicts, as_line, as_str

CONFIDENCE_SEVERITY = {
    "High": "high",
    "Weak": "low",
}


class BrakemanTool(BaseTool):
    name = "brakeman"
    command = "brakeman"
    description = "Rails static security analysis"

    def build_args(self, repo_path, languages):
        return ["-p", repo_path, "-f", "json", "--no-pager"]

    def parse_output(self, output: str) -> List[RawFinding]:
        data = as_dict(self._load_json(output))
        findings = []
        for warning in as_dicts(data.get("warnings")):
            warning_type = as_str(warning.get("warning_type"))
            findings.append(RawFinding(
                file_path=as_str(warning.get("file")),
                line_number=as_line(warning.get("line")),
                description=f"{warning_type}: {as_str(warning.get('message'))}",
                severity=CONFIDENCE_SEVERITY.get(as_str(warning.get("confidence")), "medium"),
                rule_id=warning_type or None,
            ))
        return findings
