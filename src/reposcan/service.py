"""
Scan orchestration: the job state machine and the background pipeline.

start_scan() validates and persists a pending job, then hands the pipeline to
a worker thread. The pipeline moves the job through cloning, scanning and
(optionally) reviewing to completed, or to failed. The cloned working
directory is removed on every exit path.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional

from .aggregator import aggregate_and_process
from .ai_agent import CodeReviewer, ReviewerConfig, build_provider
from .api.database import create_db_engine, create_session_factory, init_db
from .cancellation import CancelToken
from .cloner import CloneError, Cloner, ClonerConfig
from .errors import InvalidTransitionError, JobNotFoundError
from .jobs import DEFAULT_RETENTION_DAYS, ScanJob, ScanStatus
from .languages import LanguageDetector
from .queue import RequestQueue
from .scanners import ToolRunner, ToolRunnerConfig
from .storage import ScanJobStore
from .validator import normalize_github_url, validate_github_url

logger = logging.getLogger(__name__)

DEFAULT_SCAN_WORKERS = 4

__all__ = ['ScanService', 'ScanJob', 'ScanStatus', 'build_service']


class ScanCancelled(Exception):
    pass


class ScanService:
    """Runs repository scans in the background and tracks them as jobs."""

    def __init__(
        self,
        store: ScanJobStore,
        cloner: Cloner,
        detector: LanguageDetector,
        tool_runner: ToolRunner,
        reviewer: Optional[CodeReviewer] = None,
        max_workers: int = DEFAULT_SCAN_WORKERS,
        queue: Optional[RequestQueue] = None,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ):
        self.store = store
        self.cloner = cloner
        self.detector = detector
        self.tool_runner = tool_runner
        self.reviewer = reviewer
        self.queue = queue if queue is not None else tool_runner.queue
        self.retention_days = retention_days
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="scan")
        self._lock = threading.RLock()
        self._tokens: Dict[str, CancelToken] = {}
        self._futures: Dict[str, Future] = {}

    def start_scan(self, repo_url: str) -> ScanJob:
        """Create a job and start its pipeline without waiting for it.

        Raises:
            ValidationError: if ``repo_url`` is not an accepted GitHub URL.
        """
        validate_github_url(repo_url)
        job = ScanJob.new(normalize_github_url(repo_url), retention_days=self.retention_days)
        self.store.create(job)

        cancel = CancelToken()
        with self._lock:
            self._tokens[job.id] = cancel
            future = self._executor.submit(self._run_scan, job.id, cancel)
            self._futures[job.id] = future
            future.add_done_callback(lambda _, job_id=job.id: self._forget(job_id))
        logger.info(f"Queued scan job {job.id} for {job.repo_url}")
        return job

    def get_job(self, job_id: str) -> ScanJob:
        return self.store.get(job_id)

    def cancel_scan(self, job_id: str) -> bool:
        """Request cancellation of a running job.

        Returns False when the job exists but is not running in this process.
        """
        with self._lock:
            token = self._tokens.get(job_id)
        if token is None:
            self.store.get(job_id)
            return False
        logger.info(f"Cancelling scan job {job_id}")
        token.cancel()
        return True

    def wait(self, job_id: str, timeout: Optional[float] = None) -> ScanJob:
        """Block until the job's pipeline has finished, then return the job."""
        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.store.get(job_id)

    def get_config(self) -> Dict[str, Any]:
        config = {
            "private_repo_enabled": self.cloner.has_token,
            "ai_review_enabled": self.reviewer is not None and self.reviewer.enabled,
            "max_files_to_review": self.reviewer.config.max_files if self.reviewer else 0,
            "tool_timeout_seconds": self.tool_runner.config.timeout,
        }
        if self.queue is not None:
            config["queue"] = self.queue.stats().to_dict()
        return config

    def shutdown(self, wait: bool = True) -> None:
        if not wait:
            with self._lock:
                tokens = list(self._tokens.values())
            for token in tokens:
                token.cancel()
        self._executor.shutdown(wait=wait)

    def _run_scan(self, job_id: str, cancel: CancelToken) -> None:
        repo_path = None
        logger.info(f"Starting scan for job {job_id}")
        try:
            job = self.store.get(job_id)
            self._check_cancelled(cancel)

            self.store.transition(job_id, ScanStatus.CLONING)
            logger.info(f"Cloning repository: {job.repo_url}")
            try:
                clone = self.cloner.clone(job.repo_url, cancel)
            except CloneError as e:
                self._check_cancelled(cancel)
                self.store.fail(job_id, f"Clone failed: {e.message}")
                return
            repo_path = clone.path
            self._check_cancelled(cancel)

            self.store.transition(job_id, ScanStatus.SCANNING)
            try:
                languages = self.detector.detect_languages(repo_path)
            except OSError as e:
                self.store.fail(job_id, f"Language detection failed: {e.strerror or e}")
                return
            self.store.update_languages(job_id, [lang.value for lang in languages])
            logger.info(f"Detected languages: {', '.join(lang.value for lang in languages) or 'none'}")

            results = self.tool_runner.run_tools(repo_path, languages, cancel)
            self._check_cancelled(cancel)
            for result in results:
                logger.info(
                    f"Tool {result.tool} completed: {len(result.findings)} findings, "
                    f"timed_out={result.timed_out}, error={result.error}"
                )

            findings = aggregate_and_process(results)
            review_stats = None
            if findings and self.reviewer is not None and self.reviewer.enabled:
                self.store.transition(job_id, ScanStatus.REVIEWING)
                logger.info(f"Running AI review on {len(findings)} findings")
                findings, review_stats = self.reviewer.review(repo_path, findings, cancel)
                self._check_cancelled(cancel)

            self.store.complete(job_id, findings, review_stats)
        except ScanCancelled:
            self._fail(job_id, "Scan cancelled")
        except Exception:
            logger.exception(f"Scan job {job_id} failed unexpectedly")
            self._fail(job_id, "Scan failed due to an internal error")
        finally:
            if repo_path:
                try:
                    self.cloner.cleanup(repo_path)
                except CloneError as e:
                    logger.warning(f"Failed to clean up {repo_path}: {e.message}")
            with self._lock:
                self._tokens.pop(job_id, None)

    def _forget(self, job_id: str) -> None:
        with self._lock:
            self._futures.pop(job_id, None)

    def _fail(self, job_id: str, error: str) -> None:
        try:
            self.store.fail(job_id, error)
        except (InvalidTransitionError, JobNotFoundError) as e:
            logger.warning(f"Could not mark job {job_id} failed: {e.message}")

    @staticmethod
    def _check_cancelled(cancel: CancelToken) -> None:
        if cancel.cancelled:
            raise ScanCancelled()


def build_service(settings) -> ScanService:
    """Wire a ScanService from application settings."""
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    store = ScanJobStore(create_session_factory(engine))

    queue = RequestQueue(settings.MAX_CONCURRENT_REQUESTS)

    cloner_config = ClonerConfig(
        github_token=settings.GITHUB_TOKEN,
        max_size_mb=settings.MAX_REPO_SIZE_MB,
        clone_timeout=settings.CLONE_TIMEOUT_SECONDS,
    )
    if settings.clone_temp_dir:
        cloner_config.temp_dir = settings.clone_temp_dir

    tool_runner = ToolRunner(
        ToolRunnerConfig(
            timeout=settings.TOOL_TIMEOUT_SECONDS,
            container=settings.SCANNER_CONTAINER or None,
            max_parallel=settings.TOOL_MAX_PARALLEL,
        ),
        queue=queue,
    )

    reviewer = CodeReviewer(
        build_provider(settings),
        ReviewerConfig(
            max_files=settings.AI_REVIEW_MAX_FILES,
            max_findings=settings.AI_REVIEW_MAX_FINDINGS,
            request_timeout=settings.AI_REQUEST_TIMEOUT_SECONDS,
        ),
        queue=queue,
    )

    return ScanService(
        store=store,
        cloner=Cloner(cloner_config),
        detector=LanguageDetector(),
        tool_runner=tool_runner,
        reviewer=reviewer,
        max_workers=settings.SCAN_WORKERS,
        queue=queue,
        retention_days=settings.JOB_RETENTION_DAYS,
    )
