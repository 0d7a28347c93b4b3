"""Tests for inclusion rules and .claudekeep sections."""
from pathlib import Path

import pytest

from docuploader.services.inclusion import (
    InclusionConfig,
    InclusionPolicy,
    normalize_pattern,
)


def _touch(path: Path, content: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def keep_root(tmp_path):
    root = tmp_path / "repo"
    _touch(root / ".claudekeep", "docs:\n**/*.md\n\ncode:\n  **/*.rs\n")
    _touch(root / "README.md")
    _touch(root / "src" / "main.rs")
    _touch(root / "guide" / "intro.md")
    return root


class TestInclusionConfigParsing:
    def test_sections_in_file_order(self, keep_root):
        config = InclusionConfig.load(keep_root)
        assert config.sections == ["docs", "code"]
        assert config.patterns == {"docs": ["**/*.md"], "code": ["**/*.rs"]}

    def test_missing_file_means_no_config(self, tmp_path):
        assert InclusionConfig.load(tmp_path) is None

    def test_undecodable_file_means_no_config(self, tmp_path):
        (tmp_path / ".claudekeep").write_bytes(b"docs:\n**/*.md\n# caf\xe9\n")
        assert InclusionConfig.load(tmp_path) is None

    def test_lines_before_first_section_are_ignored(self, tmp_path):
        config = InclusionConfig.parse("orphan.txt\n\nweb:\n*.html\n", tmp_path)
        assert config.sections == ["web"]
        assert config.patterns["web"] == ["*.html"]

    def test_duplicate_section_starts_over_in_place(self, tmp_path):
        config = InclusionConfig.parse("a:\none\nb:\ntwo\na:\nthree\n", tmp_path)
        assert config.sections == ["a", "b"]
        assert config.patterns["a"] == ["three"]

    def test_normalize_pattern(self):
        assert normalize_pattern("README.md") == "**/README.md"
        assert normalize_pattern("**/README.md") == "**/README.md"
        assert normalize_pattern("*.md") == "*.md"
        assert normalize_pattern("src/?.rs") == "src/?.rs"


class TestSectionGate:
    def test_selecting_docs_only(self, keep_root):
        policy = InclusionPolicy(InclusionConfig.load(keep_root))
        assert policy.should_include(keep_root / "README.md", {"docs"}) is True
        assert policy.should_include(keep_root / "guide" / "intro.md", {"docs"}) is True
        assert policy.should_include(keep_root / "src" / "main.rs", {"docs"}) is False

    def test_selecting_both_sections(self, keep_root):
        policy = InclusionPolicy(InclusionConfig.load(keep_root))
        assert policy.should_include(keep_root / "README.md", {"docs", "code"}) is True
        assert policy.should_include(keep_root / "src" / "main.rs", {"docs", "code"}) is True

    def test_no_selection_passes_everything(self, keep_root):
        policy = InclusionPolicy(InclusionConfig.load(keep_root))
        assert policy.should_include(keep_root / "src" / "main.rs", set()) is True
        assert policy.should_include(keep_root / "README.md", ()) is True

    def test_selected_section_wins_over_unselected(self, keep_root):
        policy = InclusionPolicy(InclusionConfig.load(keep_root))
        # main.rs fails "docs" but matches "code"
        assert policy.should_include(keep_root / "src" / "main.rs", {"code"}) is True

    def test_bare_name_pattern_matches_at_any_depth(self, tmp_path):
        root = tmp_path / "repo"
        _touch(root / "pkg" / "Cargo.toml")
        config = InclusionConfig.parse("build:\nCargo.toml\n", root)
        policy = InclusionPolicy(config)
        assert policy.should_include(root / "pkg" / "Cargo.toml", {"build"}) is True

    def test_unknown_section_matches_nothing(self, keep_root):
        policy = InclusionPolicy(InclusionConfig.load(keep_root))
        assert policy.should_include(keep_root / "README.md", {"missing"}) is False

    def test_file_outside_root_is_rejected(self, keep_root, tmp_path):
        outside = _touch(tmp_path / "elsewhere" / "notes.md")
        policy = InclusionPolicy(InclusionConfig.load(keep_root))
        assert policy.should_include(outside, {"docs"}) is False


class TestFixedGates:
    def test_ignored_directory_token(self, tmp_path):
        policy = InclusionPolicy()
        path = _touch(tmp_path / "node_modules" / "lib" / "index.js")
        assert policy.should_include(path) is False

    def test_ignored_file_name(self, tmp_path):
        policy = InclusionPolicy()
        assert policy.should_include(_touch(tmp_path / "package-lock.json")) is False
        assert policy.should_include(_touch(tmp_path / "package.json")) is True

    def test_supported_extensions_case_insensitive(self, tmp_path):
        policy = InclusionPolicy()
        assert policy.should_include(_touch(tmp_path / "App.TSX")) is True
        assert policy.should_include(_touch(tmp_path / "types.d.ts")) is True
        assert policy.should_include(_touch(tmp_path / "photo.jpg")) is False

    def test_bare_file_name_allow_list(self, tmp_path):
        policy = InclusionPolicy()
        assert policy.should_include(_touch(tmp_path / "npmrc")) is True
        assert policy.should_include(_touch(tmp_path / "Makefile")) is False

    def test_section_gate_inactive_without_config(self, tmp_path):
        policy = InclusionPolicy()
        assert policy.should_include(_touch(tmp_path / "main.rs"), {"docs"}) is True

    def test_fixed_gates_apply_even_when_section_matches(self, tmp_path):
        root = tmp_path / "repo"
        path = _touch(root / "photo.jpg")
        policy = InclusionPolicy(InclusionConfig.parse("all:\n**/*\n", root))
        assert policy.should_include(path, {"all"}) is False
