"""Building the page hierarchy from a flat list of local paths.

Directories are processed before the files they contain: extract_directories
returns every directory level ordered by depth, and build_page_tree links
entries to their parents through a path index.
"""

import posixpath
import string
from typing import Dict, Iterable, List, Optional

from .models import PageSyncInfo


def depth(path: str) -> int:
    """Number of directories above a normalized path (0 at the sync root)."""
    return path.count('/')


def parent_directory(path: str) -> Optional[str]:
    """Containing directory of a normalized path, None at the sync root."""
    parent = posixpath.dirname(path)
    return parent or None


def directory_title(dir_path: str) -> str:
    """Display title for a directory page: 'getting-started' -> 'Getting Started'."""
    name = posixpath.basename(dir_path.rstrip('/'))
    return string.capwords(name.replace('-', ' '))


def extract_directories(files: Iterable[str]) -> List[str]:
    """Return every directory level that contains a file, shallowest first.

    Args:
        files: Normalized file paths relative to the sync root

    Example:
        >>> extract_directories(["a/b/c.md", "a/d.md", "e.md"])
        ['a', 'a/b']
    """
    directories = set()
    for path in files:
        parent = parent_directory(path)
        while parent:
            directories.add(parent)
            parent = parent_directory(parent)
    return sorted(directories, key=lambda d: (depth(d), d))


def processing_order(entries: Iterable[PageSyncInfo]) -> List[PageSyncInfo]:
    """Directories by ascending depth, then files, each in path order."""
    entries = list(entries)
    directories = sorted(
        (e for e in entries if e.is_directory),
        key=lambda e: (depth(e.path), e.path),
    )
    files = sorted((e for e in entries if not e.is_directory), key=lambda e: e.path)
    return directories + files


def assign_parents(entries: Iterable[PageSyncInfo]) -> None:
    """Set parent_path and level on each entry from its path."""
    for entry in entries:
        entry.parent_path = parent_directory(entry.path)
        entry.level = depth(entry.path)


def build_page_tree(entries: Iterable[PageSyncInfo]) -> List[PageSyncInfo]:
    """Assemble the entries into a forest.

    The input entries are not modified; the returned nodes are copies with
    children filled in. Roots are entries whose parent directory is not among
    the entries.
    """
    index: Dict[str, PageSyncInfo] = {}
    children: Dict[str, List[str]] = {}

    for entry in processing_order(entries):
        index[entry.path] = entry
        parent = parent_directory(entry.path)
        if parent is not None:
            children.setdefault(parent, []).append(entry.path)

    def build(path: str) -> PageSyncInfo:
        source = index[path]
        return PageSyncInfo(
            title=source.title,
            path=source.path,
            status=source.status,
            level=depth(source.path),
            parent_path=parent_directory(source.path),
            is_directory=source.is_directory,
            children=[build(child) for child in children.get(path, [])],
        )

    return [
        build(path)
        for path in index
        if parent_directory(path) not in index
    ]
