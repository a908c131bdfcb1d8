"""Persistent sync cache.

SyncMetadata records the last synchronized state of every document and
directory page under a sync root. It is stored as JSON in
<sync root>/.conflux/sync-cache.json:

    {
      "files": {"docs/guide.md": {"hash": "...", "page_id": "123", ...}},
      "directories": {"docs": {"hash": "...", "page_id": "122", ...}},
      "last_sync": "2024-01-15T10:30:00+00:00",
      "space_key": "DOCS",
      "version": "1.0"
    }

All paths are normalized relative to the sync root with forward slashes.
"""

import json
import logging
import os
import posixpath
import tempfile
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from .errors import MetadataError
from .hashing import directory_digest, fingerprint
from .models import DirectoryRecord, FileRecord

logger = logging.getLogger(__name__)

CACHE_DIR_NAME = '.conflux'
CACHE_FILE_NAME = 'sync-cache.json'
SCHEMA_VERSION = '1.0'


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncMetadata:
    """In-memory sync cache for one sync root.

    Loaded once per run, mutated in memory, and written back with save().
    Writes go to a temporary file that is renamed over the cache file, so an
    interrupted save never leaves a partial cache behind.

    Example:
        >>> metadata = SyncMetadata("./docs", "DOCS")
        >>> metadata.load()
        >>> metadata.update_file("guide.md", "123456", "Guide")
        >>> metadata.save()
    """

    def __init__(self, root: str, space_key: str = ""):
        self.root = os.path.abspath(root)
        self.space_key = space_key
        self.files: Dict[str, FileRecord] = {}
        self.directories: Dict[str, DirectoryRecord] = {}
        self.last_sync: Optional[str] = None
        self.version = SCHEMA_VERSION

    @property
    def cache_dir(self) -> str:
        return os.path.join(self.root, CACHE_DIR_NAME)

    @property
    def cache_file(self) -> str:
        return os.path.join(self.cache_dir, CACHE_FILE_NAME)

    def normalize_path(self, path: str) -> str:
        """Return path relative to the sync root, with '/' separators.

        Absolute paths are made relative to the root. Relative paths are
        taken to be relative to the root already.
        """
        if os.path.isabs(path):
            path = os.path.relpath(path, self.root)
        normalized = posixpath.normpath(path.replace(os.sep, '/'))
        return '' if normalized == '.' else normalized

    def absolute_path(self, path: str) -> str:
        return os.path.join(self.root, *self.normalize_path(path).split('/'))

    def load(self) -> None:
        """Read the cache file; a missing file leaves the cache empty.

        Raises:
            MetadataError: If the file exists but is unreadable or malformed
        """
        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                raw = f.read()
        except FileNotFoundError:
            logger.debug(f"No sync cache at {self.cache_file}, starting fresh")
            return
        except OSError as e:
            raise MetadataError(self.cache_file, f"cannot read: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MetadataError(self.cache_file, f"invalid JSON: {e}") from e

        self._parse(data)
        logger.info(
            f"Loaded sync cache: {len(self.files)} files, "
            f"{len(self.directories)} directories"
        )

    def _parse(self, data) -> None:
        if not isinstance(data, dict):
            raise MetadataError(self.cache_file, "top level must be an object")

        version = str(data.get('version') or SCHEMA_VERSION)
        if version != SCHEMA_VERSION:
            raise MetadataError(self.cache_file, f"unsupported version '{version}'")

        files_raw = data.get('files') or {}
        dirs_raw = data.get('directories') or {}
        if not isinstance(files_raw, dict) or not isinstance(dirs_raw, dict):
            raise MetadataError(self.cache_file, "'files' and 'directories' must be objects")

        try:
            files = {
                self.normalize_path(path): FileRecord.from_dict(record)
                for path, record in files_raw.items()
            }
            directories = {
                self.normalize_path(path): DirectoryRecord.from_dict(record)
                for path, record in dirs_raw.items()
            }
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MetadataError(self.cache_file, f"malformed record: {e}") from e

        cached_space = str(data.get('space_key') or '')
        if self.space_key and cached_space and cached_space != self.space_key:
            logger.warning(
                f"Sync cache belongs to space {cached_space}, not {self.space_key}; "
                f"ignoring cached records"
            )
            return

        self.files = files
        self.directories = directories
        self.last_sync = data.get('last_sync')
        if not self.space_key:
            self.space_key = cached_space

    def to_dict(self) -> Dict:
        return {
            'files': {path: self.files[path].to_dict() for path in sorted(self.files)},
            'directories': {
                path: self.directories[path].to_dict() for path in sorted(self.directories)
            },
            'last_sync': self.last_sync,
            'space_key': self.space_key,
            'version': self.version,
        }

    def save(self) -> None:
        """Write the cache atomically.

        Raises:
            MetadataError: If the cache directory or file cannot be written
        """
        self.last_sync = utc_now()
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix='.sync-cache-', suffix='.tmp', dir=self.cache_dir
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.cache_file)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise MetadataError(self.cache_file, f"cannot write: {e}") from e
        logger.debug(f"Saved sync cache to {self.cache_file}")

    def clear(self) -> None:
        """Drop every record and persist the empty cache."""
        self.files = {}
        self.directories = {}
        self.save()
        logger.info(f"Cleared sync cache at {self.cache_file}")

    # Files

    def get_file(self, path: str) -> Optional[FileRecord]:
        return self.files.get(self.normalize_path(path))

    def page_id_for(self, path: str) -> Optional[str]:
        record = self.get_file(path)
        return record.page_id if record else None

    def update_file(
        self,
        path: str,
        page_id: str,
        title: str,
        attachments: Optional[Dict[str, str]] = None,
    ) -> FileRecord:
        """Record a successful sync of a document from its current state on disk.

        Attachment hashes are merged into those already recorded.

        Raises:
            OSError: If the file cannot be read
        """
        key = self.normalize_path(path)
        current = fingerprint(self.absolute_path(key))
        previous = self.files.get(key)
        merged = dict(previous.attachments) if previous and previous.page_id == page_id else {}
        merged.update(attachments or {})

        record = FileRecord(
            hash=current.digest,
            last_sync=utc_now(),
            page_id=page_id,
            title=title,
            mod_time=current.mod_time.isoformat(),
            size=current.size,
            attachments=merged,
        )
        self.files[key] = record
        return record

    def remove_file(self, path: str) -> None:
        self.files.pop(self.normalize_path(path), None)

    def file_attachments(self, path: str) -> Dict[str, str]:
        record = self.get_file(path)
        return dict(record.attachments) if record else {}

    # Directories

    def get_directory(self, dir_path: str) -> Optional[DirectoryRecord]:
        return self.directories.get(self.normalize_path(dir_path))

    def directory_page_id(self, dir_path: str) -> Optional[str]:
        record = self.get_directory(dir_path)
        return record.page_id if record else None

    def directory_hash(self, dir_path: str, files: Iterable[str]) -> str:
        return directory_digest(
            self.normalize_path(dir_path),
            (self.normalize_path(f) for f in files),
        )

    def update_directory(
        self,
        dir_path: str,
        page_id: str,
        title: str,
        files: Iterable[str],
    ) -> DirectoryRecord:
        key = self.normalize_path(dir_path)
        record = DirectoryRecord(
            hash=self.directory_hash(key, files),
            last_sync=utc_now(),
            page_id=page_id,
            title=title,
        )
        self.directories[key] = record
        return record

    def remove_directory(self, dir_path: str) -> None:
        self.directories.pop(self.normalize_path(dir_path), None)
