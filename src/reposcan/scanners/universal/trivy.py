"""
Trivy filesystem scanner (vulnerabilities, secrets and misconfigurations).
"""
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_dicts, as_line, as_str


class TrivyTool(BaseTool):
    name = "trivy"
    command = "trivy"
    description = "Dependency vulnerabilities, secrets and misconfigurations"

    def build_args(self, repo_path, languages):
        return [
            "fs",
            "--format", "json",
            "--scanners", "vuln,secret,misconfig",
            "--severity", "CRITICAL,HIGH,MEDIUM,LOW",
            "--skip-dirs", ".git",
            repo_path,
        ]

    def parse_output(self, output: str) -> List[RawFinding]:
        data = as_dict(self._load_json(output))
        findings = []
        for target in as_dicts(data.get("Results")):
            file_path = as_str(target.get("Target"))

            for vuln in as_dicts(target.get("Vulnerabilities")):
                title = as_str(vuln.get("Title"))
                details = as_str(vuln.get("Description"))
                findings.append(RawFinding(
                    file_path=file_path,
                    description=f"{title}: {details}" if title and details else title or details,
                    severity=as_str(vuln.get("Severity")).lower(),
                    rule_id=as_str(vuln.get("VulnerabilityID")) or None,
                ))

            for secret in as_dicts(target.get("Secrets")):
                findings.append(RawFinding(
                    file_path=file_path,
                    line_number=as_line(secret.get("StartLine")),
                    description=as_str(secret.get("Title")),
                    severity=as_str(secret.get("Severity")).lower(),
                    rule_id=as_str(secret.get("RuleID")) or None,
                ))

            for misconfig in as_dicts(target.get("Misconfigurations")):
                cause = as_dict(misconfig.get("CauseMetadata"))
                title = as_str(misconfig.get("Title"))
                message = as_str(misconfig.get("Message"))
                findings.append(RawFinding(
                    file_path=file_path,
                    line_number=as_line(cause.get("StartLine")),
                    description=f"{title}: {message}" if title and message else title or message,
                    severity=as_str(misconfig.get("Severity")).lower(),
                    rule_id=as_str(misconfig.get("ID")) or None,
                ))
        return findings
