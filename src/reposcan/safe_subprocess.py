"""
Safe Subprocess Execution - subprocess handling with strict deadlines.

Every external process reposcan starts (git, security tools, docker exec)
goes through run_safe(), which:
- Never waits past its deadline
- Kills the whole process group on timeout or cancellation
- Closes stdin so tools cannot block on a prompt
- Keeps whatever output was produced before the kill
"""
import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from .cancellation import CancelToken

logger = logging.getLogger(__name__)

# How often a running process is checked for cancellation
POLL_INTERVAL = 0.25


class SubprocessTimeout(Exception):
    """Raised when a subprocess exceeds its deadline."""

    def __init__(self, message: str, program: str, timeout: float, partial_output: str = ""):
        super().__init__(message)
        self.program = program
        self.timeout = timeout
        self.partial_output = partial_output


class SubprocessCancelled(Exception):
    """Raised when the caller's cancel token fires while the process runs."""

    def __init__(self, message: str, program: str, partial_output: str = ""):
        super().__init__(message)
        self.program = program
        self.partial_output = partial_output


@dataclass
class SafeProcessResult:
    """Result from safe subprocess execution."""
    program: str
    returncode: int
    stdout: str
    stderr: str
    duration_seconds: float = 0.0

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr


def _kill_process_tree(pid: int) -> None:
    """Kill a process and all its children via its process group."""
    try:
        if os.name == 'nt':
            subprocess.run(
                ['taskkill', '/F', '/T', '/PID', str(pid)],
                capture_output=True,
                timeout=10
            )
            return
        try:
            os.killpg(os.getpgid(pid), signal.SIGKILL)
        except ProcessLookupError:
            pass  # Process already dead
        except PermissionError:
            try:
                os.kill(pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
    except OSError as e:
        logger.debug(f"Error killing process tree {pid}: {e}")


def _decode(data: Optional[bytes]) -> str:
    return data.decode('utf-8', errors='replace') if data else ""


def _terminate(process: subprocess.Popen) -> tuple:
    """Kill ``process`` and collect any output it left behind."""
    _kill_process_tree(process.pid)
    try:
        stdout_bytes, stderr_bytes = process.communicate(timeout=5)
    except subprocess.TimeoutExpired:
        process.kill()
        stdout_bytes, stderr_bytes = process.communicate()
    return _decode(stdout_bytes), _decode(stderr_bytes)


def run_safe(
    cmd: List[str],
    timeout: float = 300,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    cancel: Optional[CancelToken] = None,
) -> SafeProcessResult:
    """
    Run a subprocess with strict timeout and cancellation handling.

    Args:
        cmd: Command and arguments as list (never use shell=True)
        timeout: Maximum seconds to wait (default 5 minutes)
        cwd: Working directory
        env: Environment variables (merged with current)
        cancel: Optional token; firing it kills the process immediately

    Returns:
        SafeProcessResult with execution results. A non-zero exit code is not
        an error here; callers decide what it means.

    Raises:
        SubprocessTimeout: If the process exceeds ``timeout``
        SubprocessCancelled: If ``cancel`` fires before the process exits
        FileNotFoundError: If the program does not exist
    """
    program = cmd[0]
    if cancel is not None and cancel.cancelled:
        raise SubprocessCancelled(f"Cancelled before start: {program}", program=program)

    full_env = os.environ.copy()
    if env:
        full_env.update(env)

    popen_kwargs = {
        'stdout': subprocess.PIPE,
        'stderr': subprocess.PIPE,
        'stdin': subprocess.DEVNULL,
        'cwd': cwd,
        'env': full_env,
    }
    # On Unix, create a new process group for clean termination
    if os.name != 'nt':
        popen_kwargs['start_new_session'] = True

    start_time = time.monotonic()
    deadline = start_time + timeout
    process = subprocess.Popen(cmd, **popen_kwargs)

    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                stdout, _ = _terminate(process)
                logger.warning(f"Process timed out after {timeout}s: {program}")
                raise SubprocessTimeout(
                    f"Command timed out after {timeout}s: {program}",
                    program=program,
                    timeout=timeout,
                    partial_output=stdout[:1000]
                )
            if cancel is not None and cancel.cancelled:
                stdout, _ = _terminate(process)
                logger.info(f"Process cancelled: {program}")
                raise SubprocessCancelled(
                    f"Command cancelled: {program}",
                    program=program,
                    partial_output=stdout[:1000]
                )
            try:
                stdout_bytes, stderr_bytes = process.communicate(
                    timeout=min(remaining, POLL_INTERVAL)
                )
                break
            except subprocess.TimeoutExpired:
                continue
    except (SubprocessTimeout, SubprocessCancelled):
        raise
    except BaseException:
        # Ensure process is killed on any other error
        if process.poll() is None:
            _terminate(process)
        raise

    return SafeProcessResult(
        program=program,
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=_decode(stdout_bytes),
        stderr=_decode(stderr_bytes),
        duration_seconds=time.monotonic() - start_time,
    )
