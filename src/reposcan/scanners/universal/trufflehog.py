"""
TruffleHog secret detection over the working tree.
"""
from typing import List

from ..base import BaseTool, RawFinding, as_dict, as_line, as_str


class TruffleHogTool(BaseTool):
    name = "trufflehog"
    command = "trufflehog"
    description = "Secret detection"

    def build_args(self, repo_path, languages):
        return ["filesystem", "--json", repo_path]

    def parse_output(self, output: str) -> List[RawFinding]:
        findings = []
        # One JSON object per line, interleaved with progress logs
        for obj in self._iter_json_lines(output):
            detector = as_str(obj.get("DetectorName"))
            if not detector:
                continue
            location = as_dict(as_dict(as_dict(obj.get("SourceMetadata")).get("Data")).get("Filesystem"))
            file_path = as_str(location.get("file"))
            if "/.git/" in file_path or file_path.endswith("/.git") or file_path.startswith(".git/"):
                continue
            findings.append(RawFinding(
                file_path=file_path,
                line_number=as_line(location.get("line")),
                description=f"Secret detected: {detector}",
                severity="high",
                rule_id=detector,
            ))
        return findings
