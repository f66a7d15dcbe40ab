"""
Scan job state and its lifecycle.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .ai_agent.reviewer import ReviewStats
from .scanners.base import Finding

DEFAULT_RETENTION_DAYS = 7


class ScanStatus(str, Enum):
    """Job lifecycle: pending → cloning → scanning → reviewing → completed.

    ``failed`` is reachable from any non-terminal state. ``reviewing`` may be
    skipped. Completed and failed are terminal.
    """
    PENDING = "pending"
    CLONING = "cloning"
    SCANNING = "scanning"
    REVIEWING = "reviewing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.FAILED)

    def can_transition_to(self, target: "ScanStatus") -> bool:
        if self.is_terminal:
            return False
        if target is ScanStatus.FAILED:
            return True
        return _ORDER[target] > _ORDER[self]

    def __str__(self) -> str:
        return self.value


_ORDER = {
    ScanStatus.PENDING: 0,
    ScanStatus.CLONING: 1,
    ScanStatus.SCANNING: 2,
    ScanStatus.REVIEWING: 3,
    ScanStatus.COMPLETED: 4,
    ScanStatus.FAILED: 5,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ScanJob:
    id: str
    repo_url: str
    status: ScanStatus = ScanStatus.PENDING
    languages: List[str] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)
    review_stats: Optional[ReviewStats] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def new(cls, repo_url: str, retention_days: int = DEFAULT_RETENTION_DAYS) -> "ScanJob":
        created_at = utcnow()
        return cls(
            id=str(uuid.uuid4()),
            repo_url=repo_url,
            created_at=created_at,
            expires_at=created_at + timedelta(days=retention_days),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "repo_url": self.repo_url,
            "status": self.status.value,
            "languages": list(self.languages),
            "findings": [f.to_dict() for f in self.findings],
            "review_stats": self.review_stats.to_dict() if self.review_stats else None,
            "error": self.error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
