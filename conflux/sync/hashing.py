"""Content digests and file fingerprints."""

import hashlib
import os
from datetime import datetime, timezone
from typing import Iterable, NamedTuple

from conflux.content_converter.document import file_digest


class FileFingerprint(NamedTuple):
    """Digest, size and modification time of a file."""
    digest: str
    size: int
    mod_time: datetime


def fingerprint(path: str) -> FileFingerprint:
    """Return digest, size and mtime for a file.

    Raises:
        OSError: If the file cannot be read or stat'ed
    """
    stat = os.stat(path)
    return FileFingerprint(
        digest=file_digest(path),
        size=stat.st_size,
        mod_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )


def is_descendant(path: str, dir_path: str) -> bool:
    """True if a normalized relative path lies anywhere under dir_path."""
    if dir_path in ('', '.'):
        return True
    return path.startswith(dir_path.rstrip('/') + '/')


def directory_digest(dir_path: str, files: Iterable[str]) -> str:
    """Aggregate digest over a directory path and its descendant file paths.

    Adding, removing or renaming any descendant changes the digest. File
    contents are not included.

    Args:
        dir_path: Normalized directory path relative to the sync root
        files: Normalized file paths relative to the sync root
    """
    sha = hashlib.sha256()
    sha.update(dir_path.encode('utf-8'))
    for path in sorted(files):
        if is_descendant(path, dir_path):
            sha.update(b'\0')
            sha.update(path.encode('utf-8'))
    return sha.hexdigest()
