"""
Repository cloning into isolated, size- and time-limited working directories.

SECURITY: the GitHub token is only ever placed in the URL handed to git. It
must never appear in a log line, an exception message or a stored record;
every piece of git output is sanitized before it is used.
"""
import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from typing import Optional

from .cancellation import CancelToken
from .errors import ReposcanError, ValidationError
from .safe_subprocess import SubprocessCancelled, SubprocessTimeout, run_safe
from .sanitize import sanitize_output
from .validator import GITHUB_HOST, parse_github_url

logger = logging.getLogger(__name__)

DEFAULT_MAX_REPO_SIZE_MB = 500
DEFAULT_CLONE_TIMEOUT = 300  # seconds
DEFAULT_TEMP_DIR_PREFIX = "scan-repo-"


class CloneError(ReposcanError):
    """Base class for clone failures. ``message`` is always credential-free."""

    code = "CLONE_FAILED"
    default_message = "failed to clone repository"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class CloneFailedError(CloneError):
    pass


class RepoNotFoundError(CloneError):
    code = "REPO_NOT_FOUND"
    default_message = "repository not found"


class PrivateRepoError(CloneError):
    code = "PRIVATE_REPO"
    default_message = "private repository requires authentication"


class AuthFailedError(CloneError):
    code = "AUTH_FAILED"
    default_message = "authentication failed"


class CloneNetworkError(CloneError):
    code = "NETWORK_ERROR"
    default_message = "network error during clone"


class CloneTimeoutError(CloneError):
    code = "CLONE_TIMEOUT"
    default_message = "clone operation timed out"


class RepoTooLargeError(CloneError):
    code = "REPO_TOO_LARGE"
    default_message = "repository exceeds maximum size limit"


class InvalidRepoPathError(CloneError):
    code = "INVALID_REPO_PATH"
    default_message = "invalid repository path"


class CleanupError(CloneError):
    code = "CLEANUP_FAILED"
    default_message = "failed to cleanup repository"


@dataclass
class ClonerConfig:
    """Cloner settings.

    Attributes:
        github_token: Optional token for private repositories. Excluded from repr.
        max_size_mb: Clones larger than this on disk are rejected.
        clone_timeout: Seconds allowed for ``git clone``.
        temp_dir: Root under which working directories are created; also the
            only place ``cleanup`` will delete from.
        temp_prefix: Name prefix of each working directory.
    """
    github_token: str = field(default="", repr=False)
    max_size_mb: int = DEFAULT_MAX_REPO_SIZE_MB
    clone_timeout: float = DEFAULT_CLONE_TIMEOUT
    temp_dir: str = field(default_factory=tempfile.gettempdir)
    temp_prefix: str = DEFAULT_TEMP_DIR_PREFIX


@dataclass
class CloneResult:
    path: str
    owner: str
    repo: str
    clone_duration: float


class Cloner:
    """Clones GitHub repositories into throwaway working directories."""

    def __init__(self, config: Optional[ClonerConfig] = None):
        self.config = config or ClonerConfig()
        os.makedirs(self.config.temp_dir, exist_ok=True)

    @property
    def has_token(self) -> bool:
        return bool(self.config.github_token)

    def clone(self, repo_url: str, cancel: Optional[CancelToken] = None) -> CloneResult:
        """Shallow-clone ``repo_url``. The caller must ``cleanup`` the returned path.

        Raises:
            CloneError: a subclass naming the failure class.
        """
        try:
            owner, repo = parse_github_url(repo_url)
        except ValidationError as e:
            raise CloneFailedError(f"failed to clone repository: {e.message}") from None

        try:
            temp_dir = tempfile.mkdtemp(prefix=self.config.temp_prefix, dir=self.config.temp_dir)
        except OSError:
            raise CloneFailedError("failed to clone repository: failed to create temp directory") from None

        clone_url = self._build_clone_url(owner, repo)
        cmd = ["git", "clone", "--depth=1", "--single-branch", clone_url, temp_dir]
        # Never let git block on a credential prompt
        env = {"GIT_TERMINAL_PROMPT": "0"}

        logger.info(f"Cloning {owner}/{repo} into {temp_dir} (authenticated: {self.has_token})")
        start = time.monotonic()
        try:
            result = run_safe(cmd, timeout=self.config.clone_timeout, env=env, cancel=cancel)
        except SubprocessTimeout:
            self._remove(temp_dir)
            raise CloneTimeoutError() from None
        except SubprocessCancelled:
            self._remove(temp_dir)
            raise CloneFailedError("failed to clone repository: operation canceled") from None
        except OSError:
            self._remove(temp_dir)
            raise CloneFailedError("failed to clone repository: git is not available") from None

        if result.returncode != 0:
            self._remove(temp_dir)
            output = self.sanitize_output(result.output)
            logger.debug(f"git clone failed for {owner}/{repo}: {output}")
            raise self._classify_clone_error(output)

        clone_duration = time.monotonic() - start

        try:
            size = self._directory_size(temp_dir)
        except OSError:
            self._remove(temp_dir)
            raise CloneFailedError("failed to clone repository: failed to check repository size") from None

        max_size_bytes = self.config.max_size_mb * 1024 * 1024
        if size > max_size_bytes:
            self._remove(temp_dir)
            raise RepoTooLargeError(
                f"repository exceeds maximum size limit: repository is {size // (1024 * 1024)} MB, "
                f"maximum allowed is {self.config.max_size_mb} MB"
            )

        logger.info(f"Cloned {owner}/{repo} in {clone_duration:.1f}s ({size // 1024} KB)")
        return CloneResult(path=temp_dir, owner=owner, repo=repo, clone_duration=clone_duration)

    def cleanup(self, path: str) -> None:
        """Remove a working directory previously returned by ``clone``.

        Refuses to touch anything outside the configured temp root.
        """
        if not path:
            raise InvalidRepoPathError("invalid repository path: empty path")

        abs_path = os.path.realpath(path)
        abs_root = os.path.realpath(self.config.temp_dir)
        try:
            inside = os.path.commonpath([abs_path, abs_root]) == abs_root
        except ValueError:
            inside = False
        if not inside or abs_path == abs_root:
            raise InvalidRepoPathError("invalid repository path: path is not within temp directory")

        try:
            shutil.rmtree(abs_path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise CleanupError(f"failed to cleanup repository: {e.strerror}") from None

    def sanitize_output(self, output: str) -> str:
        return sanitize_output(output, self.config.github_token)

    def _build_clone_url(self, owner: str, repo: str) -> str:
        if self.config.github_token:
            return f"https://x-access-token:{self.config.github_token}@{GITHUB_HOST}/{owner}/{repo}.git"
        return f"https://{GITHUB_HOST}/{owner}/{repo}.git"

    def _classify_clone_error(self, output: str) -> CloneError:
        output_lower = output.lower()
        if "repository not found" in output_lower:
            return RepoNotFoundError()
        if "could not read from remote repository" in output_lower:
            return AuthFailedError() if self.has_token else PrivateRepoError()
        if "authentication failed" in output_lower:
            return AuthFailedError()
        if "could not resolve host" in output_lower or "unable to access" in output_lower:
            return CloneNetworkError()
        # Generic failure - raw git output is never exposed
        return CloneFailedError("failed to clone repository: git clone failed")

    @staticmethod
    def _directory_size(path: str) -> int:
        total = 0
        for root, _, files in os.walk(path):
            for name in files:
                total += os.lstat(os.path.join(root, name)).st_size
        return total

    @staticmethod
    def _remove(path: str) -> None:
        shutil.rmtree(path, ignore_errors=True)
