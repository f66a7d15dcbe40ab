"""Tests for tool selection and execution."""

import threading
import time

import pytest

from conftest import FakeTool, StaticEnvironment
from reposcan.languages import Language
from reposcan.queue import RequestQueue
from reposcan.safe_subprocess import SafeProcessResult, SubprocessTimeout
from reposcan.scanners import DockerExecEnvironment, LocalEnvironment, ToolRegistry, ToolRunner, ToolRunnerConfig
from reposcan.scanners.registry import default_registry


def make_registry(*names):
    registry = ToolRegistry()
    for name in names:
        registry.register(FakeTool(name))
    return registry


class TestToolSelection:

    def test_baseline_only_for_no_languages(self):
        runner = ToolRunner(environment=StaticEnvironment())
        assert runner.get_tools_for_languages([]) == ["trivy", "semgrep", "trufflehog", "gitleaks"]

    def test_language_specific_tools(self):
        runner = ToolRunner(environment=StaticEnvironment())
        tools = runner.get_tools_for_languages([Language.PYTHON, Language.TYPESCRIPT, Language.RUBY])
        assert tools == [
            "trivy", "semgrep", "trufflehog", "gitleaks",
            "bandit", "pip-audit", "safety", "npm-audit", "bundler-audit", "brakeman",
        ]

    def test_accepts_plain_strings(self):
        assert "govulncheck" in default_registry().tools_for_languages(["go"])
        assert "cargo-audit" in default_registry().tools_for_languages(["rust"])

    def test_environment_from_config(self):
        assert isinstance(ToolRunner().environment, LocalEnvironment)
        runner = ToolRunner(ToolRunnerConfig(container="scanner-1"))
        assert isinstance(runner.environment, DockerExecEnvironment)
        assert runner.environment.container == "scanner-1"


class TestRunTools:

    def test_results_in_tool_order(self):
        env = StaticEnvironment({"one": "a.py|1|high|first", "two": "b.py|2|low|second"})
        runner = ToolRunner(registry=make_registry("one", "two"), environment=env)

        results = runner.run_tools("/repo", [])

        assert [r.tool for r in results] == ["one", "two"]
        assert results[0].findings[0].description == "first"
        assert all(r.success for r in results)

    def test_timeout_does_not_block_other_tools(self, timeout_error):
        env = StaticEnvironment({"slow": timeout_error, "fast": "a.py|3|high|found"})
        runner = ToolRunner(registry=make_registry("slow", "fast"), environment=env)

        slow, fast = runner.run_tools("/repo", [])

        assert slow.timed_out and slow.findings == []
        assert fast.success and len(fast.findings) == 1

    def test_missing_binary_is_an_error_result(self):
        env = StaticEnvironment({"gone": FileNotFoundError(2, "No such file or directory")})
        runner = ToolRunner(registry=make_registry("gone"), environment=env)

        [result] = runner.run_tools("/repo", [])

        assert result.error and "gone" in result.error
        assert not result.timed_out

    def test_unknown_tool_name(self):
        runner = ToolRunner(registry=make_registry(), environment=StaticEnvironment())
        result = runner.run_tool("nope", "/repo")
        assert result.error == "unknown tool: nope"

    def test_absolute_paths_made_relative(self):
        env = StaticEnvironment({"one": "/repo/src/a.py|1|high|x\n/elsewhere/b.py|1|high|y"})
        runner = ToolRunner(registry=make_registry("one"), environment=env)
        [result] = runner.run_tools("/repo", [])
        assert [f.file_path for f in result.findings] == ["src/a.py", "/elsewhere/b.py"]

    def test_only_stdout_is_parsed(self):
        class NoisyEnvironment(StaticEnvironment):
            def run(self, program, args, workdir, timeout, cancel=None):
                return SafeProcessResult(program=program, returncode=1,
                                         stdout="a.py|1|high|from stdout\n",
                                         stderr="b.py|2|low|progress noise\n")

        runner = ToolRunner(registry=make_registry("one"), environment=NoisyEnvironment())
        [result] = runner.run_tools("/repo", [])
        assert [f.description for f in result.findings] == ["from stdout"]

    def test_parallel_run_keeps_order(self):
        env = StaticEnvironment({name: f"{name}.py|1|high|{name}" for name in ("a", "b", "c")})
        runner = ToolRunner(
            ToolRunnerConfig(max_parallel=3),
            registry=make_registry("a", "b", "c"),
            environment=env,
        )
        assert [r.tool for r in runner.run_tools("/repo", [])] == ["a", "b", "c"]


class CountingEnvironment(StaticEnvironment):
    """Tracks the peak number of concurrently running tools."""

    def __init__(self):
        super().__init__()
        self.lock = threading.Lock()
        self.running = 0
        self.peak = 0

    def run(self, program, args, workdir, timeout, cancel=None):
        with self.lock:
            self.running += 1
            self.peak = max(self.peak, self.running)
        time.sleep(0.05)
        with self.lock:
            self.running -= 1
        return SafeProcessResult(program=program, returncode=0, stdout="", stderr="")


def test_runner_respects_shared_limiter():
    queue = RequestQueue(max_concurrent=2)
    env = CountingEnvironment()
    runner = ToolRunner(
        ToolRunnerConfig(max_parallel=6),
        registry=make_registry(*[f"t{i}" for i in range(6)]),
        queue=queue,
        environment=env,
    )
    results = runner.run_tools("/repo", [])
    assert len(results) == 6
    assert env.peak <= 2
    assert queue.stats().active == 0
    assert queue.stats().processed == 6


def test_local_environment_reads_missing_file(tmp_path):
    assert LocalEnvironment().read_file(str(tmp_path / "nope.json")) == ""


def test_docker_environment_requires_container():
    with pytest.raises(ValueError):
        DockerExecEnvironment("")


def test_real_timeout_kills_process():
    import sys

    env = LocalEnvironment()
    start = time.monotonic()
    with pytest.raises(SubprocessTimeout):
        env.run(sys.executable, ["-c", "import time; time.sleep(30)"], workdir=".", timeout=0.5)
    assert time.monotonic() - start < 10
