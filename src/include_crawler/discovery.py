# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Source file discovery under a project root.

Walks the root, prunes ignored directories, and keeps files whose extension
is in the configured set. Files are de-duplicated by real path so that
symlinked directories (when followed) cannot cause loops or double entries.
"""

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ("c", "h", "hh", "hpp", "hxx", "inc")

# Directories that are never crawled
ALWAYS_IGNORED = {
    ".git",
    ".svn",
    ".hg",
    ".bzr",
    "CVS",
    ".cache",
    ".idea",
    ".vscode",
    "node_modules",
    "build",
    "cmake-build-*",
}


def parse_extensions(value: Optional[str]) -> Set[str]:
    """Parse a comma-separated extension list ("c,.h, hpp") into a set.

    Leading dots and surrounding whitespace are dropped; an empty or missing
    value yields the default set.
    """
    if value is None:
        return set(DEFAULT_EXTENSIONS)
    extensions = {part.strip().lstrip(".") for part in value.split(",") if part.strip()}
    return extensions or set(DEFAULT_EXTENSIONS)


def _matches_pattern(path: Path, rel_path_str: str, pattern: str) -> bool:
    """Check a relative path against one fnmatch pattern.

    The pattern is tried against the whole relative path, the file name, and
    each path component.
    """
    if fnmatch.fnmatch(rel_path_str, pattern) or fnmatch.fnmatch(path.name, pattern):
        return True
    return any(fnmatch.fnmatch(part, pattern) for part in path.parts)


def should_ignore(
    rel_path: str, ignore_patterns: Iterable[str] = (), is_dir: bool = False
) -> bool:
    """Check if a root-relative path should be skipped.

    User patterns match either as fnmatch patterns or as a plain substring of
    the relative posix path, so ``vendor/`` skips the ``vendor`` directory.
    Directories are matched with a trailing ``/``.

    Args:
        rel_path: Path relative to the crawl root, ``/`` or OS separators.
        ignore_patterns: User patterns, on top of ALWAYS_IGNORED.
        is_dir: Whether ``rel_path`` names a directory.

    Returns:
        True if the path is ignored.
    """
    path = Path(rel_path)
    rel_path_str = path.as_posix()

    for pattern in ALWAYS_IGNORED:
        if _matches_pattern(path, rel_path_str, pattern):
            return True

    substring_target = rel_path_str + "/" if is_dir else rel_path_str
    for pattern in ignore_patterns:
        if not pattern:
            continue
        if pattern in substring_target or _matches_pattern(path, rel_path_str, pattern):
            return True

    return False


def discover_files(
    root: str,
    extensions: Optional[Iterable[str]] = None,
    ignore_patterns: Iterable[str] = (),
    follow_symlinks: bool = False,
) -> List[str]:
    """Find candidate source files under ``root``.

    Args:
        root: Directory to walk.
        extensions: Extensions to keep, without dots. Defaults to DEFAULT_EXTENSIONS.
        ignore_patterns: fnmatch or substring patterns for paths to skip.
        follow_symlinks: Descend into symlinked directories.

    Returns:
        Sorted list of normalized absolute file paths.
    """
    wanted = {e.lstrip(".") for e in (extensions or DEFAULT_EXTENSIONS)}
    patterns = list(ignore_patterns)
    root_path = os.path.abspath(root)

    found: Set[str] = set()
    visited_dirs: Set[str] = set()

    for dirpath, dirnames, filenames in os.walk(root_path, followlinks=follow_symlinks):
        real_dir = os.path.realpath(dirpath)
        if real_dir in visited_dirs:
            # Reached again through a symlink; its files are already listed
            dirnames[:] = []
            continue
        visited_dirs.add(real_dir)

        rel_dir = os.path.relpath(dirpath, root_path)
        if rel_dir == ".":
            rel_dir = ""

        kept_dirs = []
        for dirname in sorted(dirnames):
            if should_ignore(os.path.join(rel_dir, dirname), patterns, is_dir=True):
                logger.debug(f"Skipping ignored directory {os.path.join(rel_dir, dirname)}")
                continue
            kept_dirs.append(dirname)
        dirnames[:] = kept_dirs

        for filename in filenames:
            extension = os.path.splitext(filename)[1].lstrip(".")
            if extension not in wanted:
                continue
            rel_path = os.path.join(rel_dir, filename)
            if should_ignore(rel_path, patterns):
                continue

            full_path = os.path.join(dirpath, filename)
            if not os.path.isfile(full_path):
                # Dangling symlink
                continue
            found.add(os.path.realpath(full_path))

    logger.debug(f"Discovered {len(found)} files under {root_path}")
    return sorted(found)


def list_relevant_files(
    roots: Iterable[str],
    extensions: Optional[Iterable[str]] = None,
    ignore_patterns: Iterable[str] = (),
    follow_symlinks: bool = False,
) -> List[str]:
    """Discover files under several roots, merged and sorted.

    Roots that do not exist are skipped with a warning.

    Raises:
        ValueError: If no root is given.
    """
    roots = list(roots)
    if not roots:
        raise ValueError("provide at least one root directory")

    found: Set[str] = set()
    for root in roots:
        if not os.path.isdir(root):
            logger.warning(f"Skipping non-existent root {root}")
            continue
        found.update(discover_files(root, extensions, ignore_patterns, follow_symlinks))
    return sorted(found)
