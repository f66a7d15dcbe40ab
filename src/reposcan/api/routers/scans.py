from fastapi import APIRouter, HTTPException, Depends, Request
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
import logging

from ...errors import JobNotFoundError, ValidationError
from ...service import ScanService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/scan",
    tags=["scan"]
)


class ScanRequest(BaseModel):
    repo_url: str


class ScanCreatedResponse(BaseModel):
    id: str
    status: str
    repo_url: str
    created_at: datetime


class FindingResponse(BaseModel):
    id: str
    severity: str
    tool: str
    file_path: str
    line_number: Optional[int] = None
    description: str
    remediation: Optional[str] = None
    code_example: Optional[str] = None
    rule_id: Optional[str] = None


class ReviewStatsResponse(BaseModel):
    total_findings: int
    reviewable_findings: int
    reviewed_findings: int
    matched_findings: int
    files_reviewed: int
    skipped_reason: Optional[str] = None


class ScanJobResponse(BaseModel):
    id: str
    status: str
    repo_url: str
    languages: List[str] = []
    findings: List[FindingResponse] = []
    review_stats: Optional[ReviewStatsResponse] = None
    error: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class QueueStatsResponse(BaseModel):
    max_concurrent: int
    active: int
    waiting: int
    processed: int


class ScannerConfigResponse(BaseModel):
    private_repo_enabled: bool
    ai_review_enabled: bool
    max_files_to_review: int
    tool_timeout_seconds: float
    queue: Optional[QueueStatsResponse] = None


class CancelResponse(BaseModel):
    id: str
    cancelled: bool


def get_scan_service(request: Request) -> ScanService:
    service = getattr(request.app.state, "scan_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Scan service is not available")
    return service


@router.post("", response_model=ScanCreatedResponse, status_code=202)
def start_scan(request: ScanRequest, service: ScanService = Depends(get_scan_service)):
    """Validate the repository URL and queue a scan."""
    try:
        job = service.start_scan(request.repo_url)
    except ValidationError as e:
        logger.info(f"Rejected scan request: {e.code}")
        raise HTTPException(status_code=400, detail=e.to_dict())
    return ScanCreatedResponse(
        id=job.id,
        status=job.status.value,
        repo_url=job.repo_url,
        created_at=job.created_at,
    )


# Registered before /{job_id} so "config" is not taken for a job id
@router.get("/config", response_model=ScannerConfigResponse)
def get_scanner_config(service: ScanService = Depends(get_scan_service)):
    return service.get_config()


@router.get("/{job_id}", response_model=ScanJobResponse)
def get_scan(job_id: str, service: ScanService = Depends(get_scan_service)):
    """Return the job, including findings once the scan has completed."""
    try:
        job = service.get_job(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Scan job not found")
    return job.to_dict()


@router.post("/{job_id}/cancel", response_model=CancelResponse, status_code=202)
def cancel_scan(job_id: str, service: ScanService = Depends(get_scan_service)):
    try:
        cancelled = service.cancel_scan(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Scan job not found")
    return CancelResponse(id=job_id, cancelled=cancelled)
