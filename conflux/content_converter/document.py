"""Reading local Markdown documents and discovering them on disk."""

import fnmatch
import hashlib
import logging
import os
from typing import List, Optional

from .models import Document

logger = logging.getLogger(__name__)

CACHE_DIR_NAME = '.conflux'
CHUNK_SIZE = 65536


def extract_title(content: str, file_path: str) -> str:
    """Return the first '# ' heading, falling back to the file name without extension."""
    for line in content.splitlines():
        line = line.strip()
        if line.startswith('# '):
            return line[2:].strip()
    return os.path.splitext(os.path.basename(file_path))[0]


def file_digest(path: str) -> str:
    """Return the SHA-256 hex digest of a file's bytes.

    Raises:
        OSError: If the file cannot be read
    """
    sha = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
            sha.update(chunk)
    return sha.hexdigest()


def parse_file(file_path: str) -> Document:
    """Read a Markdown file into a Document.

    Raises:
        OSError: If the file cannot be read
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        content = f.read()
    # Normalize line endings to \n
    content = '\n'.join(content.splitlines())
    return Document(
        title=extract_title(content, file_path),
        content=content,
        file_path=file_path,
    )


def find_markdown_files(root: str, exclude: Optional[List[str]] = None) -> List[str]:
    """Find .md files under root, sorted.

    Args:
        root: Directory to walk
        exclude: Glob patterns matched against each file's base name

    Returns:
        Paths (joined onto root) of every matching file
    """
    exclude = exclude or []
    files = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d != CACHE_DIR_NAME)
        for filename in filenames:
            if os.path.splitext(filename)[1].lower() != '.md':
                continue
            if any(fnmatch.fnmatch(filename, pattern) for pattern in exclude):
                logger.debug(f"Excluding {filename}")
                continue
            files.append(os.path.join(dirpath, filename))
    return sorted(files)
