"""Shared test fixtures."""

import os
import tempfile
import uuid
from typing import Dict, List, Optional

import pytest

from reposcan.ai_agent.providers.base import AIProvider
from reposcan.api.database import create_db_engine, create_session_factory, init_db
from reposcan.cloner import CloneResult, Cloner, ClonerConfig
from reposcan.languages import LanguageDetector
from reposcan.queue import RequestQueue
from reposcan.safe_subprocess import SafeProcessResult, SubprocessTimeout
from reposcan.scanners.base import BaseTool, Finding, RawFinding, Severity
from reposcan.scanners.environment import ExecutionEnvironment
from reposcan.scanners.registry import ToolRegistry
from reposcan.scanners.runner import ToolRunner
from reposcan.service import ScanService
from reposcan.storage import ScanJobStore

REPO_URL = "https://github.com/octocat/hello-world"

REPO_FILES = {
    "app.py": "import os\nos.system(input())\n",
    "lib/util.py": "import hashlib\nhashlib.md5(b'')\n",
}


def make_finding(
    severity: str = "high",
    file_path: str = "app.py",
    line_number: Optional[int] = 1,
    description: str = "issue",
    tool: str = "semgrep",
) -> Finding:
    return Finding(
        id=str(uuid.uuid4()),
        severity=Severity(severity),
        tool=tool,
        file_path=file_path,
        line_number=line_number,
        description=description,
    )


class StaticEnvironment(ExecutionEnvironment):
    """Returns canned output per program instead of running anything.

    A value that is an exception instance is raised instead.
    """

    def __init__(self, outputs: Optional[Dict[str, object]] = None, files: Optional[Dict[str, str]] = None):
        self.outputs = outputs or {}
        self.files = dict(files or {})
        self.calls: List[tuple] = []
        self.removed: List[str] = []

    def run(self, program, args, workdir, timeout, cancel=None):
        self.calls.append((program, list(args), workdir))
        output = self.outputs.get(program, "")
        if isinstance(output, BaseException):
            raise output
        return SafeProcessResult(program=program, returncode=1, stdout=output, stderr="")

    def read_file(self, path):
        return self.files.get(path, "")

    def remove_file(self, path):
        self.removed.append(path)
        self.files.pop(path, None)


class FakeTool(BaseTool):
    """Tool adapter whose output is one finding per line: path|line|severity|description."""

    command = "fake"

    def __init__(self, name: str = "fake"):
        self.name = name
        self.command = name
        super().__init__()

    def build_args(self, repo_path, languages):
        return [repo_path]

    def parse_output(self, output):
        findings = []
        for line in (output or "").splitlines():
            parts = line.split("|")
            if len(parts) != 4:
                continue
            path, lineno, severity, description = parts
            findings.append(RawFinding(
                file_path=path,
                line_number=int(lineno) if lineno else None,
                severity=severity,
                description=description,
            ))
        return findings


class FakeProvider(AIProvider):
    """AI provider returning a fixed response (or raising a fixed error)."""

    name = "fake"

    def __init__(self, response: str = '{"findings": []}', error: Optional[Exception] = None, delay: float = 0.0):
        super().__init__("test-key", "fake-model")
        self.response = response
        self.error = error
        self.delay = delay
        self.prompts: List[tuple] = []

    async def complete(self, system_prompt, user_prompt):
        import asyncio

        self.prompts.append((system_prompt, user_prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


class FakeCloner(Cloner):
    """Cloner that materializes a fixed file tree instead of running git."""

    def __init__(self, config: ClonerConfig, files: Optional[Dict[str, str]] = None, error: Optional[Exception] = None):
        super().__init__(config)
        self.files = files or {}
        self.error = error
        self.cloned_paths: List[str] = []

    def clone(self, repo_url, cancel=None):
        if self.error is not None:
            raise self.error
        path = tempfile.mkdtemp(prefix=self.config.temp_prefix, dir=self.config.temp_dir)
        for rel_path, content in self.files.items():
            full_path = os.path.join(path, rel_path)
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "w", encoding="utf-8") as f:
                f.write(content)
        self.cloned_paths.append(path)
        owner, repo = repo_url.rstrip("/").split("/")[-2:]
        return CloneResult(path=path, owner=owner, repo=repo, clone_duration=0.0)


@pytest.fixture
def store(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'reposcan.db'}")
    init_db(engine)
    yield ScanJobStore(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def clone_root(tmp_path):
    root = tmp_path / "clones"
    root.mkdir()
    return str(root)


@pytest.fixture
def timeout_error():
    return SubprocessTimeout("timed out", program="fake", timeout=1)


def make_service(store, clone_root, outputs=None, tools=("fake",), environment=None,
                 cloner=None, reviewer=None, detector=None):
    """A ScanService over fake tools, a fake cloner and the given store."""
    registry = ToolRegistry()
    for name in tools:
        registry.register(FakeTool(name))
    queue = RequestQueue(2)
    runner = ToolRunner(
        registry=registry,
        queue=queue,
        environment=environment or StaticEnvironment(outputs or {}),
    )
    return ScanService(
        store=store,
        cloner=cloner or FakeCloner(ClonerConfig(temp_dir=clone_root), files=REPO_FILES),
        detector=detector or LanguageDetector(),
        tool_runner=runner,
        reviewer=reviewer,
        max_workers=2,
        queue=queue,
    )
