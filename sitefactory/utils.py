"""Utility functions for sitefactory.

Key functions:
    is_ignored_name: Check whether a path segment is excluded from copies.
    escapes_root: Check whether a relative path leaves its base directory.
    ignore_filter: shutil.copytree ignore callable built on is_ignored_name.
    ensure_clean_dir: Ensure a directory exists and is empty.
    directory_stats: Count files and bytes below a directory.
    parse_component_list: Split a --components value into a set of names.
    titleize: Convert a template name to a human-readable title.
"""

from __future__ import annotations

import os
import re
import shutil
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

# Version-control metadata directories.
VCS_DIRS = frozenset({".git", ".hg", ".svn", ".bzr"})
# Dependency and build caches.
CACHE_DIRS = frozenset({"node_modules", "__pycache__", ".cache", ".hugo_build.lock"})
# OS metadata files.
OS_METADATA_FILES = frozenset({".DS_Store", "Thumbs.db", "desktop.ini", "._.DS_Store"})

IGNORED_NAMES = VCS_DIRS | CACHE_DIRS | OS_METADATA_FILES


def is_ignored_name(name: str) -> bool:
    """Check whether a single path segment is excluded from materialization.

    Args:
        name: File or directory name (one path segment).

    Returns:
        True for version-control directories, dependency caches, and OS
        metadata files.
    """
    return name in IGNORED_NAMES


def is_ignored_path(path: Path) -> bool:
    """Check whether any segment of a path is excluded from materialization."""
    return any(is_ignored_name(part) for part in path.parts)


def escapes_root(relative: str) -> bool:
    """Check whether a relative path is absolute or climbs out with '..'.

    Examples:
        >>> escapes_root("js/quiz.js")
        False
        >>> escapes_root("../../secret.txt")
        True
    """
    path = PurePosixPath(relative.replace("\\", "/"))
    return path.is_absolute() or ".." in path.parts


def is_within(path: Path, root: Path) -> bool:
    """Check whether path, with symlinks resolved, lies under root."""
    return path.resolve().is_relative_to(root.resolve())


def ignore_filter(directory: str, names: list[str]) -> set[str]:
    """Ignore callable for shutil.copytree.

    Called once per visited source directory, so excluded directories are never
    descended into.
    """
    return {name for name in names if is_ignored_name(name)}


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.

    Raises:
        OSError: If the directory cannot be emptied or created.
    """
    if path.exists():
        if not path.is_dir():
            raise NotADirectoryError(f"Not a directory: {path}")
        for item in path.iterdir():
            if item.is_dir() and not item.is_symlink():
                shutil.rmtree(item)
            else:
                item.unlink()
    path.mkdir(parents=True, exist_ok=True)


def directory_stats(root: Path) -> tuple[int, int]:
    """Count regular files and their total size below a directory.

    Symlinks are not followed. Errors during the walk propagate as OSError so
    the caller can degrade gracefully.

    Args:
        root: Directory to walk.

    Returns:
        Tuple of (file count, total size in bytes).
    """
    if not root.is_dir():
        raise FileNotFoundError(f"Not a directory: {root}")

    def _raise(exc: OSError) -> None:
        raise exc

    count = 0
    size = 0
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
        for filename in filenames:
            file_path = os.path.join(dirpath, filename)
            if os.path.islink(file_path):
                continue
            size += os.stat(file_path).st_size
            count += 1
    return count, size


def parse_component_list(values: str | Iterable[str] | None) -> frozenset[str]:
    """Split comma or whitespace separated component names into a set.

    Examples:
        >>> sorted(parse_component_list("quiz-engine, analytics"))
        ['analytics', 'quiz-engine']

        >>> parse_component_list(None)
        frozenset()
    """
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    names: set[str] = set()
    for value in values:
        for name in re.split(r"[,\s]+", value):
            if name:
                names.add(name)
    return frozenset(names)


def titleize(name: str) -> str:
    """Convert a template name to a human-readable title.

    Examples:
        >>> titleize("my-docs_site")
        'My Docs Site'
    """
    words = re.split(r"[\s\-_]+", name)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def format_size(size: int) -> str:
    """Format a byte count for display (e.g. '1.5 KB')."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"  # pragma: no cover
