"""
Maps tool names to adapters and languages to the tools that apply to them.
"""
from typing import Dict, Iterable, List, Optional

from ..languages import Language
from .base import BaseTool
from .go import GovulncheckTool
from .javascript import NpmAuditTool
from .python import BanditTool, PipAuditTool, SafetyTool
from .ruby import BrakemanTool, BundlerAuditTool
from .rust import CargoAuditTool
from .universal import GitleaksTool, SemgrepTool, TrivyTool, TruffleHogTool


class ToolRegistry:
    """Ordered registry of tool adapters.

    Tools registered without languages are baseline tools and run for every
    repository. Selection preserves registration order.
    """

    def __init__(self):
        self._tools: Dict[str, BaseTool] = {}
        self._languages: Dict[str, frozenset] = {}

    def register(self, tool: BaseTool, languages: Optional[Iterable] = None) -> None:
        if not tool.name:
            raise ValueError(f"{type(tool).__name__} has no name")
        self._tools[tool.name] = tool
        self._languages[tool.name] = frozenset(_language_value(lang) for lang in (languages or ()))

    def get(self, name: str) -> Optional[BaseTool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def baseline_tools(self) -> List[str]:
        return [name for name, langs in self._languages.items() if not langs]

    def tools_for_languages(self, languages: Iterable) -> List[str]:
        wanted = {_language_value(lang) for lang in languages or ()}
        return [
            name for name, langs in self._languages.items()
            if not langs or langs & wanted
        ]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def _language_value(language) -> str:
    return language.value if isinstance(language, Language) else str(language).lower()


def default_registry() -> ToolRegistry:
    registry = ToolRegistry()

    # Baseline
    registry.register(TrivyTool())
    registry.register(SemgrepTool())
    registry.register(TruffleHogTool())
    registry.register(GitleaksTool())

    registry.register(GovulncheckTool(), [Language.GO])
    registry.register(BanditTool(), [Language.PYTHON])
    registry.register(PipAuditTool(), [Language.PYTHON])
    registry.register(SafetyTool(), [Language.PYTHON])
    registry.register(NpmAuditTool(), [Language.JAVASCRIPT, Language.TYPESCRIPT])
    registry.register(CargoAuditTool(), [Language.RUST])
    registry.register(BundlerAuditTool(), [Language.RUBY])
    registry.register(BrakemanTool(), [Language.RUBY])
    return registry
