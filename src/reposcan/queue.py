"""
Process-wide concurrency limiter for expensive external work.

Every tool invocation and every AI review call holds one slot while it runs,
so the number of simultaneously running heavy operations never exceeds
``max_concurrent`` regardless of how many scans are in flight. Waiters are
woken in no particular order (approximate fairness).
"""
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from .cancellation import CancelToken
from .errors import ReposcanError

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 5
DEFAULT_ACQUIRE_TIMEOUT = 30.0


class QueueError(ReposcanError):
    code = "QUEUE_ERROR"


class AcquireCancelledError(QueueError):
    code = "ACQUIRE_CANCELLED"

    def __init__(self):
        super().__init__("cancelled while waiting for a free slot")


class AcquireTimeoutError(QueueError):
    code = "ACQUIRE_TIMEOUT"

    def __init__(self, timeout: float):
        super().__init__(f"no free slot within {timeout}s")
        self.timeout = timeout


@dataclass
class QueueStats:
    max_concurrent: int
    active: int
    waiting: int
    processed: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class RequestQueue:
    """Counting semaphore with cancellation, timeouts and statistics."""

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT):
        if max_concurrent <= 0:
            max_concurrent = DEFAULT_MAX_CONCURRENT
        self.max_concurrent = max_concurrent
        self._cond = threading.Condition()
        self._active = 0
        self._waiting = 0
        self._processed = 0

    def acquire(self, cancel: Optional[CancelToken] = None, timeout: Optional[float] = None) -> None:
        """Block until a slot is free.

        Raises:
            AcquireCancelledError: if ``cancel`` is or becomes cancelled first.
            AcquireTimeoutError: if no slot frees up within ``timeout`` seconds.
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        unregister = cancel.on_cancel(self._wake_all) if cancel is not None else None
        try:
            with self._cond:
                self._waiting += 1
                try:
                    while True:
                        if cancel is not None and cancel.cancelled:
                            logger.debug("Slot acquisition cancelled")
                            raise AcquireCancelledError()
                        if self._active < self.max_concurrent:
                            self._active += 1
                            logger.debug(f"Slot acquired ({self.max_concurrent - self._active} available)")
                            return
                        if deadline is None:
                            self._cond.wait()
                            continue
                        remaining = deadline - time.monotonic()
                        if remaining <= 0:
                            logger.warning(f"Slot acquisition timed out after {timeout}s")
                            raise AcquireTimeoutError(timeout)
                        self._cond.wait(remaining)
                finally:
                    self._waiting -= 1
        finally:
            if unregister is not None:
                unregister()

    def acquire_with_timeout(self, timeout: float = DEFAULT_ACQUIRE_TIMEOUT) -> None:
        self.acquire(timeout=timeout)

    def try_acquire(self) -> bool:
        with self._cond:
            if self._active < self.max_concurrent:
                self._active += 1
                return True
            return False

    def release(self) -> None:
        """Return a slot. An unpaired release is logged and ignored."""
        with self._cond:
            if self._active == 0:
                logger.warning("release called without matching acquire")
                return
            self._active -= 1
            self._processed += 1
            self._cond.notify()

    @contextmanager
    def slot(self, cancel: Optional[CancelToken] = None, timeout: Optional[float] = None):
        self.acquire(cancel=cancel, timeout=timeout)
        try:
            yield
        finally:
            self.release()

    def stats(self) -> QueueStats:
        with self._cond:
            return QueueStats(
                max_concurrent=self.max_concurrent,
                active=self._active,
                waiting=self._waiting,
                processed=self._processed,
            )

    def available(self) -> int:
        with self._cond:
            return self.max_concurrent - self._active

    def is_full(self) -> bool:
        with self._cond:
            return self._active >= self.max_concurrent

    def _wake_all(self) -> None:
        with self._cond:
            self._cond.notify_all()
