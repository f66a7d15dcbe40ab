"""
Semgrep static analysis with the security-audit and OWASP rulesets.
"""
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_dicts, as_line, as_str

RULESETS = ["p/security-audit", "p/owasp-top-ten"]


class SemgrepTool(BaseTool):
    name = "semgrep"
    command = "semgrep"
    description = "Pattern-based static analysis"

    def build_args(self, repo_path, languages):
        args = ["scan"]
        for ruleset in RULESETS:
            args.extend(["--config", ruleset])
        args.extend(["--json", repo_path])
        return args

    def parse_output(self, output: str) -> List[RawFinding]:
        data = as_dict(self._load_json(output))
        findings = []
        for item in as_dicts(data.get("results")):
            extra = as_dict(item.get("extra"))
            findings.append(RawFinding(
                file_path=as_str(item.get("path")),
                line_number=as_line(as_dict(item.get("start")).get("line")),
                description=as_str(extra.get("message")),
                severity=as_str(extra.get("severity")).lower(),
                rule_id=as_str(item.get("check_id")) or None,
            ))
        return findings
