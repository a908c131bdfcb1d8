"""Classification of local entries as new, changed or up-to-date."""

import logging
from typing import Dict, Iterable, Optional

from conflux.confluence_client.errors import ConfluenceError, PageNotFoundError
from conflux.confluence_client.interface import ConfluenceClient

from .hashing import fingerprint, is_descendant
from .metadata import SyncMetadata
from .models import SyncStatus, parse_timestamp

logger = logging.getLogger(__name__)


class ChangeClassifier:
    """Compares files and directories on disk with the sync cache.

    A file is NEW without a cache record, CHANGED when its digest differs or
    it was modified after the recorded time, and UP_TO_DATE otherwise. An
    up-to-date file whose page can no longer be found by title is
    downgraded to NEW, unless its cached page still exists because it was
    renamed in Confluence.
    """

    def __init__(
        self,
        metadata: SyncMetadata,
        client: Optional[ConfluenceClient] = None,
        space_key: str = "",
    ):
        self.metadata = metadata
        self.client = client
        self.space_key = space_key

    def cached_status(self, path: str) -> SyncStatus:
        """Classify a file against the cache alone.

        Raises:
            OSError: If the file cannot be read or stat'ed
        """
        record = self.metadata.get_file(path)
        if record is None:
            return SyncStatus.NEW

        current = fingerprint(self.metadata.absolute_path(path))
        if record.hash != current.digest:
            return SyncStatus.CHANGED

        recorded_mtime = parse_timestamp(record.mod_time)
        if recorded_mtime is None or current.mod_time > recorded_mtime:
            return SyncStatus.CHANGED

        return SyncStatus.UP_TO_DATE

    def classify_file(self, path: str, title: Optional[str] = None) -> SyncStatus:
        """Classify a file, verifying up-to-date files against Confluence.

        Args:
            path: File path (absolute or relative to the sync root)
            title: Page title to look up; no live check without it

        Returns:
            The file's SyncStatus; CHANGED when the status cannot be computed
        """
        try:
            status = self.cached_status(path)
        except OSError as e:
            logger.debug(f"Could not determine status of {path}, assuming changed: {e}")
            return SyncStatus.CHANGED

        if status != SyncStatus.UP_TO_DATE or not title or self.client is None:
            return status

        try:
            page = self.client.find_page_by_title(self.space_key, title)
        except ConfluenceError as e:
            logger.debug(f"Cannot verify '{title}' with Confluence, trusting cache: {e}")
            return status

        if page is None:
            if self._renamed_in_confluence(path, title):
                return status
            logger.info(f"Page '{title}' no longer exists in Confluence, marking {path} as new")
            return SyncStatus.NEW
        return status

    def _renamed_in_confluence(self, path: str, title: str) -> bool:
        """True if the cached page still exists under a title given in Confluence."""
        record = self.metadata.get_file(path)
        if record is None or not record.page_id or record.title != title:
            return False
        try:
            page = self.client.get_page(record.page_id)
        except PageNotFoundError:
            return False
        except ConfluenceError as e:
            logger.debug(f"Cannot fetch page {record.page_id}, trusting cache: {e}")
            return True
        logger.info(
            f"Page '{title}' was renamed to '{page.title}' in Confluence, "
            f"keeping {path} up-to-date"
        )
        return True

    def classify_directory(
        self,
        dir_path: str,
        files: Iterable[str],
        file_statuses: Optional[Dict[str, SyncStatus]] = None,
    ) -> SyncStatus:
        """Classify a directory from its aggregate digest and its descendants.

        Args:
            dir_path: Directory path relative to the sync root
            files: Every file path in this run
            file_statuses: Statuses already computed for files this run

        Returns:
            NEW without a record, CHANGED when the digest differs or a
            descendant file is new or changed, else UP_TO_DATE
        """
        files = list(files)
        record = self.metadata.get_directory(dir_path)
        if record is None:
            return SyncStatus.NEW

        if record.hash != self.metadata.directory_hash(dir_path, files):
            return SyncStatus.CHANGED

        key = self.metadata.normalize_path(dir_path)
        for path, status in (file_statuses or {}).items():
            if status != SyncStatus.UP_TO_DATE and is_descendant(path, key):
                return SyncStatus.CHANGED

        return SyncStatus.UP_TO_DATE
