"""
Persistence of scan jobs and their findings.

Every public method opens its own session; completion writes the findings and
the terminal status in a single transaction.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import case, select
from sqlalchemy.orm import Session, sessionmaker

from .ai_agent.reviewer import ReviewStats
from .api.models import ScanFindingRecord, ScanJobRecord
from .errors import InvalidTransitionError, JobNotFoundError
from .jobs import ScanJob, ScanStatus, utcnow
from .scanners.base import Finding, Severity

logger = logging.getLogger(__name__)

SEVERITY_ORDER = case(
    {s.value: s.rank for s in Severity},
    value=ScanFindingRecord.severity,
    else_=len(Severity),
)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite returns naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ScanJobStore:
    """Reads and writes scan jobs through SQLAlchemy sessions."""

    def __init__(self, session_factory: sessionmaker):
        self.SessionLocal = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create(self, job: ScanJob) -> ScanJob:
        with self._session() as db:
            db.add(ScanJobRecord(
                id=job.id,
                repo_url=job.repo_url,
                status=job.status.value,
                languages=list(job.languages),
                error=job.error,
                created_at=job.created_at,
                expires_at=job.expires_at,
            ))
        logger.debug(f"Created scan job {job.id} for {job.repo_url}")
        return job

    def get(self, job_id: str) -> ScanJob:
        with self._session() as db:
            record = db.get(ScanJobRecord, job_id)
            if record is None:
                raise JobNotFoundError(job_id)
            rows = db.execute(
                select(ScanFindingRecord)
                .where(ScanFindingRecord.scan_job_id == job_id)
                .order_by(SEVERITY_ORDER, ScanFindingRecord.position)
            ).scalars().all()
            return self._to_job(record, rows)

    def transition(self, job_id: str, target: ScanStatus) -> None:
        with self._session() as db:
            record = self._load_for_update(db, job_id, target)
            record.status = target.value

    def update_languages(self, job_id: str, languages: Sequence[str]) -> None:
        with self._session() as db:
            record = db.get(ScanJobRecord, job_id)
            if record is None:
                raise JobNotFoundError(job_id)
            record.languages = list(languages)

    def fail(self, job_id: str, error: str) -> None:
        with self._session() as db:
            record = self._load_for_update(db, job_id, ScanStatus.FAILED)
            record.status = ScanStatus.FAILED.value
            record.error = error
            record.completed_at = utcnow()
        logger.info(f"Scan job {job_id} failed: {error}")

    def complete(self, job_id: str, findings: List[Finding], review_stats: Optional[ReviewStats] = None) -> None:
        """Write findings and mark the job completed in one transaction."""
        with self._session() as db:
            record = self._load_for_update(db, job_id, ScanStatus.COMPLETED)
            for position, finding in enumerate(findings):
                db.add(ScanFindingRecord(
                    id=finding.id,
                    scan_job_id=job_id,
                    severity=finding.severity.value,
                    tool=finding.tool,
                    file_path=finding.file_path,
                    line_number=finding.line_number,
                    description=finding.description,
                    remediation=finding.remediation,
                    code_example=finding.code_example,
                    rule_id=finding.rule_id,
                    position=position,
                ))
            record.status = ScanStatus.COMPLETED.value
            record.review_stats = review_stats.to_dict() if review_stats else None
            record.completed_at = utcnow()
        logger.info(f"Scan job {job_id} completed with {len(findings)} finding(s)")

    @staticmethod
    def _load_for_update(db: Session, job_id: str, target: ScanStatus) -> ScanJobRecord:
        record = db.get(ScanJobRecord, job_id, with_for_update=True)
        if record is None:
            raise JobNotFoundError(job_id)
        current = ScanStatus(record.status)
        if not current.can_transition_to(target):
            raise InvalidTransitionError(job_id, current.value, target.value)
        return record

    @staticmethod
    def _to_job(record: ScanJobRecord, rows: Sequence[ScanFindingRecord]) -> ScanJob:
        findings = [
            Finding(
                id=row.id,
                severity=Severity(row.severity),
                tool=row.tool,
                file_path=row.file_path,
                line_number=row.line_number,
                description=row.description,
                remediation=row.remediation,
                code_example=row.code_example,
                rule_id=row.rule_id,
            )
            for row in rows
        ]
        stats = ReviewStats(**record.review_stats) if record.review_stats else None
        return ScanJob(
            id=record.id,
            repo_url=record.repo_url,
            status=ScanStatus(record.status),
            languages=list(record.languages or []),
            findings=findings,
            review_stats=stats,
            error=record.error,
            created_at=_aware(record.created_at),
            completed_at=_aware(record.completed_at),
            expires_at=_aware(record.expires_at),
        )
