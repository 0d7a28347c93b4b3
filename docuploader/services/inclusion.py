"""
File inclusion rules.

A file is uploaded only if it passes every gate:

1. its canonical path contains none of the ignored directory tokens
2. its name is not an ignored file name
3. when a ``.claudekeep`` config is loaded and sections are selected,
   its root-relative path matches a pattern of a selected section
4. its extension (or bare name) is a supported type
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Collection, Dict, List, Optional, Tuple

import pathspec

logger = logging.getLogger(__name__)

KEEP_FILE_NAME = ".claudekeep"

IGNORED_PATHS: Tuple[str, ...] = (
    "node_modules",
    ".nuxt",
    ".output",
    ".data",
    ".nitro",
    ".cache",
    "dist",
    "logs",
    ".wallet-db",
    ".fleet",
    ".idea",
)

IGNORED_FILES: Tuple[str, ...] = (
    "package-lock.json",
    ".DS_Store",
    ".env",
    ".env.local",
    ".env.development",
    ".env.production",
)

SUPPORTED_EXTENSIONS: Tuple[str, ...] = (
    "html",
    "css",
    "js",
    "jsx",
    "ts",
    "tsx",
    "vue",
    "svelte",
    "py",
    "pyw",
    "pyx",
    "pyi",
    "rs",
    "md",
    "txt",
    "json",
    "yaml",
    "yml",
    "toml",
    "xml",
    "d.ts",
    "gitignore",
    "prettierrc",
    "eslintrc",
    "eslintignore",
    "babelrc",
    "browserslistrc",
    "editorconfig",
    "npmrc",
)

_WILDCARDS = ("*", "?", "[")


def normalize_pattern(pattern: str) -> str:
    """Anchor a bare pattern anywhere in the tree by prefixing ``**/``."""
    if pattern.startswith("**/") or any(c in pattern for c in _WILDCARDS):
        return pattern
    return f"**/{pattern}"


@dataclass
class InclusionConfig:
    """Section rules parsed from a ``.claudekeep`` file."""
    root: Path
    sections: List[str] = field(default_factory=list)
    patterns: Dict[str, List[str]] = field(default_factory=dict)
    _specs: Dict[str, pathspec.PathSpec] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def parse(cls, content: str, root: Path) -> "InclusionConfig":
        """
        Parse config text.

        A line ending in ``:`` opens a section; following non-empty lines
        are its patterns. Lines before the first section are ignored. A
        repeated section name keeps its first position but starts its
        patterns over.
        """
        config = cls(root=Path(root).resolve())
        current: Optional[str] = None

        for raw_line in content.splitlines():
            line = raw_line.strip()
            if not line:
                continue

            if line.endswith(":"):
                current = line[:-1]
                if current not in config.sections:
                    config.sections.append(current)
                config.patterns[current] = []
            elif current:
                config.patterns[current].append(line)

        for section in config.sections:
            config._specs[section] = _compile(config.patterns[section], section)
        return config

    @classmethod
    def load(cls, root: Path, file_name: str = KEEP_FILE_NAME) -> Optional["InclusionConfig"]:
        """Load the config at ``root``, or return None when there is none."""
        keep_path = Path(root) / file_name
        if not keep_path.is_file():
            logger.debug("No %s in %s", file_name, root)
            return None

        try:
            content = keep_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {keep_path}, ignoring sections: {e}")
            return None
        config = cls.parse(content, root)
        logger.info("Loaded %s with sections: %s", keep_path, ", ".join(config.sections))
        return config

    def matches(self, path: Path, selected_sections: Collection[str]) -> bool:
        """True if the root-relative path matches any selected section."""
        try:
            relative = Path(path).resolve().relative_to(self.root)
        except (OSError, ValueError):
            return False

        rel_str = relative.as_posix()
        for section in selected_sections:
            spec = self._specs.get(section)
            if spec is not None and spec.match_file(rel_str):
                return True
        return False


def _compile(patterns: List[str], section: str) -> pathspec.PathSpec:
    valid = []
    for pattern in patterns:
        normalized = normalize_pattern(pattern)
        try:
            pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, [normalized])
        except ValueError as exc:
            logger.warning("Invalid pattern %r in section %r: %s", pattern, section, exc)
            continue
        valid.append(normalized)
    return pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, valid)


def _is_supported_type(path: Path) -> bool:
    suffix = path.suffix
    if suffix:
        return suffix[1:].lower() in SUPPORTED_EXTENSIONS
    return path.name.lower() in SUPPORTED_EXTENSIONS


class InclusionPolicy:
    """Decides which discovered files qualify for upload."""

    def __init__(self, config: Optional[InclusionConfig] = None):
        self._config = config

    @property
    def config(self) -> Optional[InclusionConfig]:
        return self._config

    def should_include(self, path: Path, selected_sections: Collection[str] = ()) -> bool:
        path = Path(path)

        try:
            canonical = str(path.resolve())
        except OSError:
            canonical = None
        if canonical is not None and any(token in canonical for token in IGNORED_PATHS):
            return False

        if path.name in IGNORED_FILES:
            return False

        if self._config is not None and selected_sections:
            if not self._config.matches(path, selected_sections):
                return False

        return _is_supported_type(path)
