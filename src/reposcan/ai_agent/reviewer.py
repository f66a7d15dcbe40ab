"""
AI-assisted remediation for the most severe findings of a scan.

The reviewer is a best-effort annotator: every failure (no provider, nothing
to review, unreadable files, timeout, provider error, malformed response)
returns the input findings unchanged together with statistics naming why.
"""
import asyncio
import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError

from ..cancellation import CancelToken
from ..queue import AcquireCancelledError, RequestQueue
from ..scanners.base import Finding, Severity
from .providers.base import AIProvider, clean_json_response

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES_TO_REVIEW = 10
DEFAULT_MAX_FINDINGS_TO_REVIEW = 10
DEFAULT_MAX_FILE_SIZE = 50 * 1024
DEFAULT_REQUEST_TIMEOUT = 180  # seconds
TRUNCATION_MARKER = "\n... (truncated)"
CANCEL_POLL_INTERVAL = 0.25

REVIEWABLE_SEVERITIES = frozenset({Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM})

CODE_REVIEW_SYSTEM_PROMPT = """You are a security code reviewer. Your task is to analyze code files that have been flagged by security scanning tools and provide actionable remediation guidance.

For each finding:
1. Explain what the security issue is in plain language
2. Explain why it's a problem (potential impact)
3. Provide a concrete code fix with before/after examples
4. Keep explanations concise and actionable

Format your response as JSON:
{
  "findings": [
    {
      "file_path": "path/to/file",
      "line_number": 42,
      "remediation": "Clear explanation of the fix",
      "code_example": "// Before:\\n...\\n\\n// After:\\n..."
    }
  ]
}

Focus on practical fixes. Do not invent new vulnerabilities - only address the specific issues flagged."""


class ReviewItem(BaseModel):
    file_path: str
    line_number: Optional[int] = None
    remediation: str = ""
    code_example: str = ""


class ReviewResponse(BaseModel):
    findings: List[ReviewItem] = []


@dataclass
class ReviewerConfig:
    max_files: int = DEFAULT_MAX_FILES_TO_REVIEW
    max_findings: int = DEFAULT_MAX_FINDINGS_TO_REVIEW
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


@dataclass
class ReviewStats:
    total_findings: int = 0
    reviewable_findings: int = 0
    reviewed_findings: int = 0
    matched_findings: int = 0
    files_reviewed: int = 0
    skipped_reason: Optional[str] = None

    def to_dict(self) -> Dict:
        return dataclasses.asdict(self)


class ReviewCancelled(Exception):
    pass


class CodeReviewer:
    """Sends flagged code to a language model and merges its remediation back."""

    def __init__(
        self,
        provider: Optional[AIProvider],
        config: Optional[ReviewerConfig] = None,
        queue: Optional[RequestQueue] = None,
    ):
        self.provider = provider
        self.config = config or ReviewerConfig()
        self.queue = queue

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    @staticmethod
    def reviewable_findings(findings: Sequence[Finding]) -> List[Finding]:
        """Critical/high/medium findings, most severe first, ties ordered by path."""
        reviewable = [f for f in findings if f.severity in REVIEWABLE_SEVERITIES]
        reviewable.sort(key=lambda f: (f.severity.rank, f.file_path))
        return reviewable

    def select_files_to_review(self, findings: Sequence[Finding]) -> List[str]:
        """Deterministically pick at most ``max_files`` files to send for review.

        Every reviewable finding counts towards its file's score; ``max_findings``
        only limits how many findings go into the prompt.
        """
        scores: Dict[str, int] = {}
        for finding in self.reviewable_findings(findings):
            rank = finding.severity.rank
            if finding.file_path not in scores or rank < scores[finding.file_path]:
                scores[finding.file_path] = rank
        ordered = sorted(scores.items(), key=lambda item: (item[1], item[0]))
        return [path for path, _ in ordered[:max(self.config.max_files, 0)]]

    def review(
        self,
        repo_path: str,
        findings: List[Finding],
        cancel: Optional[CancelToken] = None,
    ) -> Tuple[List[Finding], ReviewStats]:
        stats = ReviewStats(total_findings=len(findings))
        stats.reviewable_findings = sum(1 for f in findings if f.severity in REVIEWABLE_SEVERITIES)

        if self.provider is None:
            logger.info("No AI provider configured, skipping review")
            return self._skip(findings, stats, "no_provider")
        if not findings:
            return self._skip(findings, stats, "no_findings")
        if stats.reviewable_findings == 0:
            return self._skip(findings, stats, "no_reviewable_findings")

        files = self.select_files_to_review(findings)
        logger.info(f"Selected {len(files)} file(s) to review")

        contents: Dict[str, str] = {}
        for file_path in files:
            content = self.read_file_content(repo_path, file_path)
            if content is not None:
                contents[file_path] = content
        if not contents:
            return self._skip(findings, stats, "no_readable_files")

        reviewed = [f for f in self.reviewable_findings(findings) if f.file_path in contents]
        reviewed = reviewed[:max(self.config.max_findings, 0)]
        stats.reviewed_findings = len(reviewed)
        stats.files_reviewed = len({f.file_path for f in reviewed})
        user_prompt = self.build_user_prompt(reviewed, contents)

        try:
            response = self._call_model(user_prompt, cancel)
        except (ReviewCancelled, AcquireCancelledError):
            return self._skip(findings, stats, "cancelled")
        except asyncio.TimeoutError:
            logger.warning(f"AI review timed out after {self.config.request_timeout}s")
            return self._skip(findings, stats, "timeout")
        except Exception as e:
            logger.error(f"AI review failed: {e}")
            return self._skip(findings, stats, "provider_error")

        logger.info(f"AI response received, length: {len(response)}")
        review = self.parse_response(response)
        if review is None:
            return self._skip(findings, stats, "invalid_response")
        logger.info(f"Parsed {len(review.findings)} remediation item(s)")

        merged, matched = self.merge_remediation(repo_path, findings, reviewed, review)
        stats.matched_findings = matched
        return merged, stats

    def read_file_content(self, repo_path: str, file_path: str) -> Optional[str]:
        """Read a flagged file from the working directory.

        Accepts paths relative to the repository or absolute paths inside it;
        anything that resolves outside the repository is refused.
        """
        full_path = self._resolve(repo_path, file_path)
        if full_path is None:
            logger.warning(f"Refusing to read path outside the repository: {file_path}")
            return None
        try:
            with open(full_path, "rb") as f:
                data = f.read(self.config.max_file_size + 1)
        except OSError as e:
            logger.warning(f"Failed to read file {file_path}: {e}")
            return None

        truncated = len(data) > self.config.max_file_size
        text = data[:self.config.max_file_size].decode("utf-8", errors="replace")
        if truncated:
            text += TRUNCATION_MARKER
        return text

    @staticmethod
    def build_user_prompt(findings: Sequence[Finding], contents: Dict[str, str]) -> str:
        parts = ["Review these security findings and provide remediation:\n\n"]
        by_file: Dict[str, List[Finding]] = {}
        for finding in findings:
            if finding.file_path in contents:
                by_file.setdefault(finding.file_path, []).append(finding)

        for file_path, file_findings in by_file.items():
            parts.append(f"## File: {file_path}\n\n")
            parts.append("### Findings:\n")
            for f in file_findings:
                line_info = f" (line {f.line_number})" if f.line_number else ""
                parts.append(f"- [{f.severity.value}] {f.tool}{line_info}: {f.description}\n")
            parts.append("\n")
            parts.append("### Code:\n```\n")
            parts.append(contents[file_path])
            parts.append("\n```\n\n")
        return "".join(parts)

    @staticmethod
    def parse_response(response: str) -> Optional[ReviewResponse]:
        try:
            return ReviewResponse.model_validate_json(clean_json_response(response))
        except ValidationError as e:
            logger.error(f"Failed to parse AI response: {e.error_count()} validation error(s)")
            logger.debug(f"Raw AI response: {response[:500]!r}")
            return None

    def merge_remediation(
        self,
        repo_path: str,
        findings: List[Finding],
        reviewed: Sequence[Finding],
        review: ReviewResponse,
    ) -> Tuple[List[Finding], int]:
        """Attach remediation to each reviewed finding with a matching entry.

        Match order: exact (file, line); resolved full path and line; file
        name and line; resolved full path alone. Returns new Finding objects
        for matched findings and leaves the rest untouched.
        """
        exact: Dict[Tuple[str, int], ReviewItem] = {}
        by_full: Dict[Tuple[str, int], ReviewItem] = {}
        by_name: Dict[Tuple[str, int], ReviewItem] = {}
        by_file: Dict[str, ReviewItem] = {}
        for item in review.findings:
            if not item.remediation and not item.code_example:
                continue
            line = item.line_number or 0
            full = self._full_path(repo_path, item.file_path)
            exact.setdefault((item.file_path, line), item)
            by_full.setdefault((full, line), item)
            by_name.setdefault((os.path.basename(item.file_path), line), item)
            # Prefer file-level entries for the path-only fallback
            if full not in by_file or (line == 0 and (by_file[full].line_number or 0) != 0):
                by_file[full] = item

        reviewed_ids = {f.id for f in reviewed}
        merged = []
        matched = 0
        for finding in findings:
            if finding.id not in reviewed_ids:
                merged.append(finding)
                continue
            line = finding.line_number or 0
            full = self._full_path(repo_path, finding.file_path)
            item = (
                exact.get((finding.file_path, line))
                or by_full.get((full, line))
                or by_name.get((os.path.basename(finding.file_path), line))
                or by_file.get(full)
            )
            if item is None:
                merged.append(finding)
                continue
            matched += 1
            merged.append(dataclasses.replace(
                finding,
                remediation=item.remediation or None,
                code_example=item.code_example or None,
            ))
        logger.info(f"Merged remediation into {matched} of {len(reviewed)} reviewed finding(s)")
        return merged, matched

    def _call_model(self, user_prompt: str, cancel: Optional[CancelToken]) -> str:
        if self.queue is None:
            return self._run_completion(user_prompt, cancel)
        with self.queue.slot(cancel=cancel):
            return self._run_completion(user_prompt, cancel)

    def _run_completion(self, user_prompt: str, cancel: Optional[CancelToken]) -> str:
        # Runs on a scan worker thread, which has no event loop of its own
        return asyncio.run(asyncio.wait_for(
            self._complete_cancellable(user_prompt, cancel),
            timeout=self.config.request_timeout,
        ))

    async def _complete_cancellable(self, user_prompt: str, cancel: Optional[CancelToken]) -> str:
        task = asyncio.ensure_future(self.provider.complete(CODE_REVIEW_SYSTEM_PROMPT, user_prompt))
        try:
            while not task.done():
                if cancel is not None and cancel.cancelled:
                    raise ReviewCancelled()
                await asyncio.wait({task}, timeout=CANCEL_POLL_INTERVAL)
        finally:
            if not task.done():
                task.cancel()
        return task.result()

    @staticmethod
    def _skip(findings: List[Finding], stats: ReviewStats, reason: str) -> Tuple[List[Finding], ReviewStats]:
        stats.skipped_reason = reason
        logger.info(f"AI review skipped: {reason}")
        return findings, stats

    @staticmethod
    def _full_path(repo_path: str, file_path: str) -> str:
        if os.path.isabs(file_path):
            return os.path.normpath(file_path)
        return os.path.normpath(os.path.join(repo_path, file_path))

    @classmethod
    def _resolve(cls, repo_path: str, file_path: str) -> Optional[str]:
        if not file_path:
            return None
        root = os.path.realpath(repo_path)
        candidate = os.path.realpath(cls._full_path(repo_path, file_path))
        try:
            if os.path.commonpath([candidate, root]) != root or candidate == root:
                return None
        except ValueError:
            return None
        return candidate
