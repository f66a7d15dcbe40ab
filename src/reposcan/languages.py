"""
Language detection by file extension.
"""
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

logger = logging.getLogger(__name__)


class Language(str, Enum):
    GO = "go"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    JAVA = "java"
    RUBY = "ruby"
    PHP = "php"
    C = "c"
    CPP = "cpp"
    RUST = "rust"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


EXTENSION_MAP: Dict[str, Language] = {
    ".go": Language.GO,

    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
    ".mjs": Language.JAVASCRIPT,
    ".cjs": Language.JAVASCRIPT,

    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TYPESCRIPT,
    ".mts": Language.TYPESCRIPT,
    ".cts": Language.TYPESCRIPT,

    ".py": Language.PYTHON,
    ".pyw": Language.PYTHON,
    ".pyi": Language.PYTHON,

    ".java": Language.JAVA,

    ".rb": Language.RUBY,
    ".rake": Language.RUBY,
    ".gemspec": Language.RUBY,

    ".php": Language.PHP,
    ".phtml": Language.PHP,
    ".php3": Language.PHP,
    ".php4": Language.PHP,
    ".php5": Language.PHP,
    ".php7": Language.PHP,
    ".phps": Language.PHP,

    ".c": Language.C,
    ".h": Language.C,

    ".cpp": Language.CPP,
    ".cxx": Language.CPP,
    ".cc": Language.CPP,
    ".hpp": Language.CPP,
    ".hxx": Language.CPP,
    ".hh": Language.CPP,
    ".c++": Language.CPP,
    ".h++": Language.CPP,

    ".rs": Language.RUST,
}

# Dependency, VCS, IDE and build-output directories
SKIP_DIRS = frozenset({
    ".git",
    "node_modules",
    "vendor",
    ".venv",
    "venv",
    "__pycache__",
    ".cache",
    "dist",
    "build",
    "target",
    ".idea",
    ".vscode",
    ".kiro",
})


@dataclass
class LanguageResult:
    language: Language
    file_count: int
    percentage: float

    def to_dict(self) -> Dict:
        return {
            "language": self.language.value,
            "file_count": self.file_count,
            "percentage": self.percentage,
        }


class LanguageDetector:
    """Counts source files per language under a repository root."""

    def __init__(self, extension_map: Dict[str, Language] = None):
        self.extension_map = dict(extension_map or EXTENSION_MAP)

    def detect(self, repo_path: str) -> List[LanguageResult]:
        """Return per-language counts, most files first, ties broken by name.

        Raises:
            FileNotFoundError: if ``repo_path`` does not exist.
        """
        if not os.path.isdir(repo_path):
            raise FileNotFoundError(f"repository path not found: {repo_path}")

        counts: Dict[Language, int] = {}
        total_files = 0

        def _raise(error: OSError) -> None:
            raise error

        for root, dirs, files in os.walk(repo_path, onerror=_raise):
            dirs[:] = [d for d in dirs if not self.should_skip_dir(d)]
            for name in files:
                ext = os.path.splitext(name)[1].lower()
                if not ext:
                    continue
                language = self.extension_map.get(ext)
                if language is None:
                    continue
                counts[language] = counts.get(language, 0) + 1
                total_files += 1

        results = [
            LanguageResult(
                language=language,
                file_count=count,
                percentage=count / total_files * 100 if total_files else 0.0,
            )
            for language, count in counts.items()
        ]
        results.sort(key=lambda r: (-r.file_count, r.language.value))

        logger.debug(f"Detected languages in {repo_path}: "
                     f"{', '.join(f'{r.language.value}={r.file_count}' for r in results) or 'none'}")
        return results

    def detect_languages(self, repo_path: str) -> List[Language]:
        return [r.language for r in self.detect(repo_path)]

    def language_for_extension(self, ext: str) -> Language:
        ext = (ext or "").lower()
        if not ext.startswith("."):
            ext = "." + ext
        return self.extension_map.get(ext, Language.UNKNOWN)

    @staticmethod
    def should_skip_dir(name: str) -> bool:
        return name in SKIP_DIRS

    def supported_extensions(self) -> List[str]:
        return sorted(self.extension_map)

    @staticmethod
    def supported_languages() -> List[Language]:
        return [lang for lang in Language if lang is not Language.UNKNOWN]
