"""
govulncheck for Go modules.
"""
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_line, as_list, as_str


class GovulncheckTool(BaseTool):
    name = "govulncheck"
    command = "govulncheck"
    description = "Known vulnerabilities reachable from Go code"

    def build_args(self, repo_path, languages):
        return ["-json", "./..."]

    def parse_output(self, output: str) -> List[RawFinding]:
        findings = []
        for obj in self._iter_json_lines(output):
            finding = as_dict(obj.get("finding"))
            osv = as_str(finding.get("osv"))
            if not osv:
                continue
            file_path = ""
            line = None
            trace = as_list(finding.get("trace"))
            if trace:
                position = as_dict(as_dict(trace[0]).get("position"))
                file_path = as_str(position.get("filename"))
                line = as_line(position.get("line"))
            findings.append(RawFinding(
                # Module-level findings carry no source position
                file_path=file_path or "go.mod",
                line_number=line,
                description=f"Go vulnerability: {osv}",
                severity="high",
                rule_id=osv,
            ))
        return findings
