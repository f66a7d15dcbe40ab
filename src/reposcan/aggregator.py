"""
Finding aggregation: merge tool results, normalize severities, deduplicate
and rank.
"""
import logging
import uuid
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence

from .scanners.base import Finding, RawFinding, Severity, ToolResult

logger = logging.getLogger(__name__)

SEVERITY_SYNONYMS = {
    "critical": Severity.CRITICAL,
    "crit": Severity.CRITICAL,
    "high": Severity.HIGH,
    "error": Severity.HIGH,
    "medium": Severity.MEDIUM,
    "moderate": Severity.MEDIUM,
    "warning": Severity.MEDIUM,
    "warn": Severity.MEDIUM,
    "low": Severity.LOW,
    "info": Severity.INFO,
    "informational": Severity.INFO,
    "note": Severity.INFO,
}


def normalize_severity(severity: Optional[str]) -> Severity:
    """Map a tool's severity token onto the five-level scale; unknown → medium."""
    token = (severity or "").strip().lower()
    return SEVERITY_SYNONYMS.get(token, Severity.MEDIUM)


def is_valid_severity(severity: str) -> bool:
    return severity in {s.value for s in Severity}


def _convert(raw: RawFinding, tool: str) -> Finding:
    line = raw.line_number if raw.line_number and raw.line_number > 0 else None
    return Finding(
        id=str(uuid.uuid4()),
        severity=normalize_severity(raw.severity),
        tool=tool,
        file_path=raw.file_path,
        line_number=line,
        description=raw.description,
        rule_id=raw.rule_id or None,
    )


def aggregate(results: Iterable[ToolResult]) -> List[Finding]:
    """Convert every raw finding of every successful result, in input order.

    Timed-out and errored results contribute nothing. Raw findings without a
    file path or description are dropped.
    """
    findings = []
    dropped = 0
    for result in results:
        if result.timed_out or result.error:
            continue
        for raw in result.findings:
            if not raw.file_path or not raw.description:
                dropped += 1
                continue
            findings.append(_convert(raw, result.tool))
    if dropped:
        logger.debug(f"Dropped {dropped} incomplete finding(s)")
    return findings


def _dedupe_key(finding: Finding):
    return finding.file_path, finding.line_number or 0, finding.description


def deduplicate(findings: Iterable[Finding]) -> List[Finding]:
    """Keep the first finding for each (file, line, description)."""
    seen = set()
    unique = []
    for finding in findings:
        key = _dedupe_key(finding)
        if key in seen:
            continue
        seen.add(key)
        unique.append(finding)
    return unique


def rank_by_severity(findings: Iterable[Finding]) -> List[Finding]:
    """Most severe first; equal severities keep their relative order."""
    return sorted(findings, key=lambda f: f.severity.rank)


def aggregate_and_process(results: Sequence[ToolResult]) -> List[Finding]:
    findings = aggregate(results)
    unique = deduplicate(findings)
    ranked = rank_by_severity(unique)
    logger.info(
        f"Aggregated {len(findings)} finding(s) from {len(results)} tool(s), "
        f"{len(ranked)} after deduplication"
    )
    return ranked


def unique_files(findings: Iterable[Finding]) -> List[str]:
    """Distinct non-empty file paths in first-seen order."""
    return list(OrderedDict.fromkeys(f.file_path for f in findings if f.file_path))


def group_by_file(findings: Iterable[Finding]) -> Dict[str, List[Finding]]:
    grouped: Dict[str, List[Finding]] = OrderedDict()
    for finding in findings:
        grouped.setdefault(finding.file_path, []).append(finding)
    return grouped


def group_by_severity(findings: Iterable[Finding]) -> Dict[Severity, List[Finding]]:
    grouped: Dict[Severity, List[Finding]] = OrderedDict()
    for finding in findings:
        grouped.setdefault(finding.severity, []).append(finding)
    return grouped


def count_by_severity(findings: Iterable[Finding]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for finding in findings:
        counts[finding.severity.value] = counts.get(finding.severity.value, 0) + 1
    return counts


def filter_by_severity(findings: Iterable[Finding], min_severity) -> List[Finding]:
    """Findings at least as severe as ``min_severity``."""
    threshold = normalize_severity(getattr(min_severity, "value", min_severity)).rank
    return [f for f in findings if f.severity.rank <= threshold]
