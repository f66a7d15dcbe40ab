"""
Gitleaks secret detection. Gitleaks writes its report to a file rather than
stdout, so the report is read back and removed after each run.
"""
import os
from typing import List

from ..base import BaseTool, RawFinding, as_dicts, as_line, as_str

REPORT_FILENAME = ".gitleaks-report.json"


class GitleaksTool(BaseTool):
    name = "gitleaks"
    command = "gitleaks"
    description = "Secret detection"

    @staticmethod
    def report_path(repo_path: str) -> str:
        return os.path.join(repo_path, REPORT_FILENAME)

    def build_args(self, repo_path, languages):
        return [
            "detect",
            "--source", repo_path,
            "--report-format", "json",
            "--report-path", self.report_path(repo_path),
            "--no-git",
        ]

    def collect_output(self, env, repo_path, output):
        path = self.report_path(repo_path)
        report = env.read_file(path)
        env.remove_file(path)
        return report

    def parse_output(self, output: str) -> List[RawFinding]:
        findings = []
        for item in as_dicts(self._load_json(output)):
            findings.append(RawFinding(
                file_path=as_str(item.get("File")),
                line_number=as_line(item.get("StartLine")),
                description=as_str(item.get("Description")),
                severity="high",
                rule_id=as_str(item.get("RuleID")) or None,
            ))
        return findings
