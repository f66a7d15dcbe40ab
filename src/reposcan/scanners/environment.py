"""
Where tool binaries run: directly on this host, or inside a scanner container.
"""
import abc
import logging
import os
from typing import List, Optional

from ..cancellation import CancelToken
from ..safe_subprocess import SafeProcessResult, run_safe

logger = logging.getLogger(__name__)

# Upper bound for auxiliary commands such as reading a report file
AUX_COMMAND_TIMEOUT = 30


class ExecutionEnvironment(abc.ABC):

    @abc.abstractmethod
    def run(
        self,
        program: str,
        args: List[str],
        workdir: str,
        timeout: float,
        cancel: Optional[CancelToken] = None,
    ) -> SafeProcessResult:
        """Run ``program args`` in ``workdir`` under the given deadline."""

    @abc.abstractmethod
    def read_file(self, path: str) -> str:
        """Return the contents of ``path`` or an empty string if it cannot be read."""

    @abc.abstractmethod
    def remove_file(self, path: str) -> None:
        """Best-effort removal of ``path``."""


class LocalEnvironment(ExecutionEnvironment):
    """Runs tools as child processes of this service."""

    def run(self, program, args, workdir, timeout, cancel=None):
        return run_safe([program, *args], timeout=timeout, cwd=workdir, cancel=cancel)

    def read_file(self, path):
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as e:
            logger.debug(f"Could not read {path}: {e}")
            return ""

    def remove_file(self, path):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")

    def __repr__(self):
        return "LocalEnvironment()"


class DockerExecEnvironment(ExecutionEnvironment):
    """Runs tools inside a long-lived scanner container via ``docker exec``.

    The clone directory must be mounted at the same path inside the container.
    """

    def __init__(self, container: str):
        if not container:
            raise ValueError("container name is required")
        self.container = container

    def run(self, program, args, workdir, timeout, cancel=None):
        cmd = ["docker", "exec", "-w", workdir, self.container, program, *args]
        return run_safe(cmd, timeout=timeout, cancel=cancel)

    def read_file(self, path):
        try:
            result = run_safe(["docker", "exec", self.container, "cat", path], timeout=AUX_COMMAND_TIMEOUT)
        except Exception as e:
            logger.debug(f"Could not read {path} from {self.container}: {e}")
            return ""
        if result.returncode != 0:
            return ""
        return result.stdout

    def remove_file(self, path):
        try:
            run_safe(["docker", "exec", self.container, "rm", "-f", path], timeout=AUX_COMMAND_TIMEOUT)
        except Exception as e:
            logger.warning(f"Could not remove {path} from {self.container}: {e}")

    def __repr__(self):
        return f"DockerExecEnvironment(container={self.container!r})"
