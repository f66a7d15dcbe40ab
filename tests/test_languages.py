"""Tests for language detection."""

import pytest

from reposcan.languages import Language, LanguageDetector


def write(root, rel_path, content=""):
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


class TestLanguageDetector:

    @pytest.fixture
    def detector(self):
        return LanguageDetector()

    def test_counts_and_orders_by_file_count(self, detector, tmp_path):
        write(tmp_path, "main.go")
        write(tmp_path, "pkg/util.go")
        write(tmp_path, "app.py")
        write(tmp_path, "web/index.ts")
        write(tmp_path, "README.md")

        results = detector.detect(str(tmp_path))

        assert [r.language for r in results] == [Language.GO, Language.PYTHON, Language.TYPESCRIPT]
        assert results[0].file_count == 2
        assert results[0].percentage == pytest.approx(50.0)
        assert sum(r.percentage for r in results) == pytest.approx(100.0)

    def test_ties_break_by_name(self, detector, tmp_path):
        write(tmp_path, "a.rs")
        write(tmp_path, "b.c")
        write(tmp_path, "c.java")
        assert detector.detect_languages(str(tmp_path)) == [Language.C, Language.JAVA, Language.RUST]

    def test_skips_vendor_and_build_directories(self, detector, tmp_path):
        write(tmp_path, "node_modules/lib/index.js")
        write(tmp_path, "vendor/x.go")
        write(tmp_path, ".venv/lib/site.py")
        write(tmp_path, "target/debug/build.rs")
        write(tmp_path, "src/app.rb")

        assert detector.detect_languages(str(tmp_path)) == [Language.RUBY]

    def test_empty_repository(self, detector, tmp_path):
        assert detector.detect(str(tmp_path)) == []

    def test_missing_path_raises(self, detector, tmp_path):
        with pytest.raises(FileNotFoundError):
            detector.detect(str(tmp_path / "missing"))

    @pytest.mark.parametrize("ext,language", [
        (".py", Language.PYTHON),
        ("py", Language.PYTHON),
        (".TSX", Language.TYPESCRIPT),
        (".c++", Language.CPP),
        (".h", Language.C),
        (".gemspec", Language.RUBY),
        (".php7", Language.PHP),
        (".txt", Language.UNKNOWN),
        ("", Language.UNKNOWN),
    ])
    def test_language_for_extension(self, detector, ext, language):
        assert detector.language_for_extension(ext) is language

    def test_supported_languages_excludes_unknown(self, detector):
        supported = detector.supported_languages()
        assert Language.UNKNOWN not in supported
        assert len(supported) == 10

    def test_supported_extensions_sorted(self, detector):
        extensions = detector.supported_extensions()
        assert extensions == sorted(extensions)
        assert ".rs" in extensions
