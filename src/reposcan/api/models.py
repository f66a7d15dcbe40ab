from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class ScanJobRecord(Base):
    __tablename__ = "scan_jobs"

    id = Column(String(36), primary_key=True)
    repo_url = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    languages = Column(JSONType)  # Ordered list of detected language names
    error = Column(Text)
    review_stats = Column(JSONType)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at = Column(DateTime(timezone=True))
    expires_at = Column(DateTime(timezone=True), nullable=False)

    findings = relationship(
        "ScanFindingRecord",
        back_populates="scan_job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_scan_jobs_status", "status"),
        Index("idx_scan_jobs_expires_at", "expires_at"),
    )


class ScanFindingRecord(Base):
    __tablename__ = "scan_findings"

    id = Column(String(36), primary_key=True)
    scan_job_id = Column(String(36), ForeignKey("scan_jobs.id", ondelete="CASCADE"), nullable=False)
    severity = Column(String(20), nullable=False)
    tool = Column(String(50), nullable=False)
    file_path = Column(Text, nullable=False)
    line_number = Column(Integer)
    description = Column(Text, nullable=False)
    remediation = Column(Text)
    code_example = Column(Text)
    rule_id = Column(String(255))
    position = Column(Integer, nullable=False, default=0)  # Order within the ranked finding list
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    scan_job = relationship("ScanJobRecord", back_populates="findings")

    __table_args__ = (
        Index("idx_scan_findings_scan_job_id", "scan_job_id"),
        Index("idx_scan_findings_severity", "severity"),
    )
