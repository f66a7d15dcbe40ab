"""
Exception hierarchy shared across reposcan.
"""
from typing import Any, Dict, Optional


class ReposcanError(Exception):
    """Base class for all reposcan errors."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "", code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(ReposcanError):
    """Raised when a repository URL is rejected before any side effect."""

    def __init__(self, code: str, message: str, field: str = "repo_url", example: str = ""):
        super().__init__(message, code=code)
        self.field = field
        self.example = example

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "message": self.message, "field": self.field}
        if self.example:
            data["example"] = self.example
        return data


class JobNotFoundError(ReposcanError):
    code = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        super().__init__(f"scan job not found: {job_id}")
        self.job_id = job_id


class InvalidTransitionError(ReposcanError):
    """Raised when a job status change would move backwards or leave a terminal state."""

    code = "INVALID_TRANSITION"

    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f"job {job_id}: cannot transition from {current} to {target}")
        self.job_id = job_id
        self.current = current
        self.target = target
