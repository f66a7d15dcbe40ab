"""Tests for deadline- and cancellation-aware subprocess execution."""

import os
import sys
import threading
import time

import pytest

from reposcan.cancellation import CancelToken
from reposcan.safe_subprocess import SubprocessCancelled, SubprocessTimeout, run_safe

pytestmark = pytest.mark.skipif(os.name == "nt", reason="uses POSIX process groups")

PYTHON = sys.executable


def test_captures_output_and_exit_code(tmp_path):
    result = run_safe(
        [PYTHON, "-c", "import os, sys; print(os.getcwd()); print('oops', file=sys.stderr); sys.exit(3)"],
        cwd=str(tmp_path),
    )
    assert result.returncode == 3
    assert result.stdout.strip() == os.path.realpath(tmp_path)
    assert result.stderr.strip() == "oops"
    assert "oops" in result.output


def test_merges_environment():
    result = run_safe([PYTHON, "-c", "import os; print(os.environ['REPOSCAN_TEST'])"],
                      env={"REPOSCAN_TEST": "value"})
    assert result.stdout.strip() == "value"


def test_stdin_is_closed():
    result = run_safe([PYTHON, "-c", "import sys; print(repr(sys.stdin.read()))"], timeout=10)
    assert result.stdout.strip() == "''"


def test_timeout_kills_process():
    start = time.monotonic()
    with pytest.raises(SubprocessTimeout) as exc_info:
        run_safe([PYTHON, "-c", "import time; time.sleep(30)"], timeout=0.5)
    assert time.monotonic() - start < 10
    assert exc_info.value.timeout == 0.5


def test_cancel_kills_process():
    cancel = CancelToken()
    threading.Timer(0.3, cancel.cancel).start()
    start = time.monotonic()
    with pytest.raises(SubprocessCancelled):
        run_safe([PYTHON, "-c", "import time; time.sleep(30)"], timeout=30, cancel=cancel)
    assert time.monotonic() - start < 10


def test_cancelled_before_start():
    cancel = CancelToken()
    cancel.cancel()
    with pytest.raises(SubprocessCancelled):
        run_safe([PYTHON, "-c", "pass"], cancel=cancel)


def test_missing_program():
    with pytest.raises(FileNotFoundError):
        run_safe(["reposcan-definitely-not-a-program"])


class TestCancelToken:

    def test_callbacks_run_once(self):
        token = CancelToken()
        calls = []
        token.on_cancel(lambda: calls.append(1))
        token.cancel()
        token.cancel()
        assert calls == [1]
        assert token.cancelled

    def test_late_registration_runs_immediately(self):
        token = CancelToken()
        token.cancel()
        calls = []
        token.on_cancel(lambda: calls.append(1))
        assert calls == [1]

    def test_unregister(self):
        token = CancelToken()
        calls = []
        remove = token.on_cancel(lambda: calls.append(1))
        remove()
        token.cancel()
        assert calls == []

    def test_failing_callback_does_not_block_others(self):
        token = CancelToken()
        calls = []
        token.on_cancel(lambda: 1 / 0)
        token.on_cancel(lambda: calls.append(1))
        token.cancel()
        assert calls == [1]
