"""File collection utilities for folder uploads."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, List, Tuple

import pathspec

logger = logging.getLogger(__name__)

IGNORE_FILE_NAMES = (".gitignore", ".ignore")


def _load_ignore_spec(directory: Path) -> pathspec.PathSpec | None:
    lines: List[str] = []
    for name in IGNORE_FILE_NAMES:
        ignore_path = directory / name
        if not ignore_path.is_file():
            continue
        try:
            content = ignore_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {ignore_path}: {e}")
            continue
        lines.extend(
            line for line in content.splitlines()
            if line.strip() and not line.lstrip().startswith("#")
        )

    if not lines:
        return None
    try:
        return pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, lines)
    except ValueError as e:
        logger.warning(f"Malformed ignore file in {directory}: {e}")
        return None


class FileCollector:
    """
    Walks a folder the way version control sees it.

    Hidden entries are skipped and ``.gitignore``/``.ignore`` rules are
    applied relative to the directory that declares them.
    """

    @staticmethod
    def iter_files(folder: Path) -> Iterator[Path]:
        root = Path(folder)
        # (base directory, spec) pairs active for the directory being walked
        stack: List[Tuple[Path, pathspec.PathSpec]] = []

        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            stack = [(base, spec) for base, spec in stack if base == current or base in current.parents]
            spec = _load_ignore_spec(current)
            if spec is not None:
                stack.append((current, spec))

            def ignored(path: Path, is_dir: bool) -> bool:
                for base, base_spec in stack:
                    rel = path.relative_to(base).as_posix()
                    if is_dir:
                        rel += "/"
                    if base_spec.match_file(rel):
                        return True
                return False

            dirnames[:] = sorted(
                d for d in dirnames
                if not d.startswith(".") and not ignored(current / d, is_dir=True)
            )

            for name in sorted(filenames):
                if name.startswith("."):
                    continue
                path = current / name
                if not ignored(path, is_dir=False):
                    yield path

    @staticmethod
    def collect_files(folder: Path) -> List[Path]:
        """
        Collect all visible, non-ignored files recursively.

        Args:
            folder: Root folder to scan

        Returns:
            List of file paths in walk order
        """
        return list(FileCollector.iter_files(folder))
