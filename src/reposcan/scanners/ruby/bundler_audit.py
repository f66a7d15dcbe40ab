"""
bundler-audit for Ruby gems.
"""
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_dicts, as_str


class BundlerAuditTool(BaseTool):
    name = "bundler-audit"
    command = "bundle-audit"
    description = "Known vulnerabilities in Gemfile.lock"

    def build_args(self, repo_path, languages):
        return ["check", "--format", "json"]

    def parse_output(self, output: str) -> List[RawFinding]:
        data = as_dict(self._load_json(output))
        findings = []
        for item in as_dicts(data.get("results")):
            gem = as_dict(item.get("gem"))
            advisory = as_dict(item.get("advisory"))
            findings.append(RawFinding(
                file_path="Gemfile.lock",
                description=(
                    f"{as_str(gem.get('name'))}@{as_str(gem.get('version'))}: "
                    f"{as_str(advisory.get('title'))}"
                ),
                severity="high",
                rule_id=as_str(advisory.get("id")) or None,
            ))
        return findings
