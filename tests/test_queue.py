"""Tests for the concurrency limiter."""

import logging
import threading
import time

import pytest

from reposcan.cancellation import CancelToken
from reposcan.queue import AcquireCancelledError, AcquireTimeoutError, RequestQueue


class TestRequestQueue:

    def test_defaults_invalid_capacity(self):
        assert RequestQueue(0).max_concurrent == 5

    def test_try_acquire_and_release(self):
        queue = RequestQueue(2)
        assert queue.try_acquire()
        assert queue.try_acquire()
        assert not queue.try_acquire()
        assert queue.is_full()
        queue.release()
        assert queue.available() == 1
        stats = queue.stats()
        assert (stats.active, stats.processed, stats.max_concurrent) == (1, 1, 2)

    def test_unpaired_release_is_ignored(self, caplog):
        queue = RequestQueue(1)
        with caplog.at_level(logging.WARNING, logger="reposcan.queue"):
            queue.release()
        assert "without matching acquire" in caplog.text
        assert queue.available() == 1
        assert queue.stats().processed == 0

    def test_acquire_timeout(self):
        queue = RequestQueue(1)
        queue.acquire()
        start = time.monotonic()
        with pytest.raises(AcquireTimeoutError):
            queue.acquire(timeout=0.1)
        assert time.monotonic() - start < 5
        assert queue.stats().waiting == 0

    def test_already_cancelled_token(self):
        queue = RequestQueue(1)
        token = CancelToken()
        token.cancel()
        with pytest.raises(AcquireCancelledError):
            queue.acquire(cancel=token)
        assert queue.stats().active == 0

    def test_cancel_wakes_waiter(self):
        queue = RequestQueue(1)
        queue.acquire()
        token = CancelToken()
        errors = []

        def waiter():
            try:
                queue.acquire(cancel=token)
            except AcquireCancelledError as e:
                errors.append(e)

        thread = threading.Thread(target=waiter)
        thread.start()
        time.sleep(0.05)
        token.cancel()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert len(errors) == 1
        assert queue.stats().active == 1

    def test_release_wakes_waiter(self):
        queue = RequestQueue(1)
        queue.acquire()
        acquired = threading.Event()

        def waiter():
            queue.acquire()
            acquired.set()

        thread = threading.Thread(target=waiter)
        thread.start()
        time.sleep(0.05)
        assert not acquired.is_set()
        queue.release()
        assert acquired.wait(timeout=5)
        thread.join(timeout=5)

    def test_slot_releases_on_error(self):
        queue = RequestQueue(1)
        with pytest.raises(RuntimeError):
            with queue.slot():
                raise RuntimeError("boom")
        assert queue.available() == 1

    def test_capacity_never_exceeded(self):
        queue = RequestQueue(3)
        lock = threading.Lock()
        state = {"running": 0, "peak": 0}

        def work():
            with queue.slot():
                with lock:
                    state["running"] += 1
                    state["peak"] = max(state["peak"], state["running"])
                time.sleep(0.01)
                with lock:
                    state["running"] -= 1

        threads = [threading.Thread(target=work) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert state["peak"] <= 3
        stats = queue.stats()
        assert (stats.active, stats.waiting, stats.processed) == (0, 0, 20)
