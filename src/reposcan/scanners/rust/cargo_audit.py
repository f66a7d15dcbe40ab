"""
cargo-audit for Rust crates.
"""
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_dicts, as_str


class CargoAuditTool(BaseTool):
    name = "cargo-audit"
    command = "cargo"
    description = "RustSec advisories for Cargo dependencies"

    def build_args(self, repo_path, languages):
        return ["audit", "--json"]

    def parse_output(self, output: str) -> List[RawFinding]:
        data = as_dict(self._load_json(output))
        findings = []
        for item in as_dicts(as_dict(data.get("vulnerabilities")).get("list")):
            advisory = as_dict(item.get("advisory"))
            package = as_dict(item.get("package"))
            findings.append(RawFinding(
                file_path="Cargo.toml",
                description=(
                    f"{as_str(package.get('name'))}@{as_str(package.get('version'))}: "
                    f"{as_str(advisory.get('title'))}"
                ),
                severity="high",
                rule_id=as_str(advisory.get("id")) or None,
            ))
        return findings
