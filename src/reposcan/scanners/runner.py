"""
Runs the applicable tools against a cloned repository.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..cancellation import CancelToken
from ..queue import AcquireCancelledError, RequestQueue
from .base import ToolResult
from .environment import DockerExecEnvironment, ExecutionEnvironment, LocalEnvironment
from .registry import ToolRegistry, default_registry

logger = logging.getLogger(__name__)

DEFAULT_TOOL_TIMEOUT = 300  # seconds


@dataclass
class ToolRunnerConfig:
    """
    Attributes:
        timeout: Per-tool deadline in seconds.
        container: Scanner container for ``docker exec``; None runs tools locally.
        max_parallel: Tools run concurrently for one scan (1 = sequential).
    """
    timeout: float = DEFAULT_TOOL_TIMEOUT
    container: Optional[str] = None
    max_parallel: int = 1


class ToolRunner:
    """Selects tools by language and runs each one under its own deadline.

    A failing, missing or timed-out tool yields a ``ToolResult`` describing
    the problem; it never aborts the other tools.
    """

    def __init__(
        self,
        config: Optional[ToolRunnerConfig] = None,
        registry: Optional[ToolRegistry] = None,
        queue: Optional[RequestQueue] = None,
        environment: Optional[ExecutionEnvironment] = None,
    ):
        self.config = config or ToolRunnerConfig()
        self.registry = registry or default_registry()
        self.queue = queue
        if environment is None:
            if self.config.container:
                environment = DockerExecEnvironment(self.config.container)
            else:
                environment = LocalEnvironment()
        self.environment = environment

    def get_tools_for_languages(self, languages: Sequence) -> List[str]:
        return self.registry.tools_for_languages(languages)

    def run_tool(
        self,
        name: str,
        repo_path: str,
        languages: Sequence = (),
        cancel: Optional[CancelToken] = None,
    ) -> ToolResult:
        tool = self.registry.get(name)
        if tool is None:
            logger.error(f"Unknown tool requested: {name}")
            return ToolResult(tool=name, error=f"unknown tool: {name}")

        language_names = [getattr(lang, "value", lang) for lang in languages]

        if self.queue is None:
            return self._run(tool, repo_path, language_names, cancel)

        try:
            self.queue.acquire(cancel=cancel)
        except AcquireCancelledError:
            return ToolResult(tool=name, error="cancelled")
        try:
            return self._run(tool, repo_path, language_names, cancel)
        finally:
            self.queue.release()

    def run_tools(
        self,
        repo_path: str,
        languages: Sequence = (),
        cancel: Optional[CancelToken] = None,
        tools: Optional[Sequence[str]] = None,
    ) -> List[ToolResult]:
        """Run ``tools`` (default: those selected for ``languages``).

        Results are returned in tool order once every tool has finished.
        """
        names = list(tools) if tools is not None else self.get_tools_for_languages(languages)
        logger.info(f"Running {len(names)} tool(s) against {repo_path}: {', '.join(names)}")

        if self.config.max_parallel <= 1 or len(names) <= 1:
            results = []
            for name in names:
                if cancel is not None and cancel.cancelled:
                    results.append(ToolResult(tool=name, error="cancelled"))
                    continue
                results.append(self.run_tool(name, repo_path, languages, cancel))
            return results

        with ThreadPoolExecutor(max_workers=self.config.max_parallel,
                                thread_name_prefix="tool") as executor:
            futures = [
                executor.submit(self.run_tool, name, repo_path, languages, cancel)
                for name in names
            ]
            return [future.result() for future in futures]

    def _run(self, tool, repo_path, languages, cancel) -> ToolResult:
        try:
            return tool.run(
                self.environment,
                repo_path,
                languages,
                timeout=self.config.timeout,
                cancel=cancel,
            )
        except Exception as e:
            # A broken adapter must not take the other tools down with it
            logger.exception(f"Tool {tool.name} failed unexpectedly")
            return ToolResult(tool=tool.name, error=f"unexpected error: {e}")
