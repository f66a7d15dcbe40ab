"""
npm audit for JavaScript/TypeScript dependencies.
"""
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_str


class NpmAuditTool(BaseTool):
    name = "npm-audit"
    command = "npm"
    description = "Known vulnerabilities in npm dependencies"

    def build_args(self, repo_path, languages):
        return ["audit", "--json"]

    def parse_output(self, output: str) -> List[RawFinding]:
        vulnerabilities = as_dict(as_dict(self._load_json(output)).get("vulnerabilities"))
        findings = []
        for key in sorted(vulnerabilities):
            vuln = as_dict(vulnerabilities[key])
            package = as_str(vuln.get("name")) or key
            findings.append(RawFinding(
                file_path="package.json",
                description=f"Vulnerability in {package}",
                severity=as_str(vuln.get("severity")).lower(),
                rule_id=package,
            ))
        return findings
