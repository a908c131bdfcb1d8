"""Detecting renames and deletions that diverge from the sync cache.

For each entry with a cached page id the live page title is compared with
the local title and the cached title:

    remote == local                     -> nothing to report
    cached == local, remote differs     -> renamed in Confluence
    cached == remote, local differs     -> renamed locally
    all three differ                    -> conflict

Cached paths that no longer exist locally are reported as orphaned. Detection
only reads; it never changes the cache or Confluence.
"""

import logging
from typing import Collection, Iterable, List, Optional

from conflux.confluence_client.errors import ConfluenceError
from conflux.confluence_client.interface import ConfluenceClient

from .metadata import SyncMetadata
from .models import PageSyncInfo, RenameDetection
from .recovery import is_replacement_title

logger = logging.getLogger(__name__)

REMOTE_RENAME = "remote_rename"
LOCAL_RENAME = "local_rename"
CONFLICT = "conflict"
ORPHANED = "orphaned"

WARNING = "warning"
CRITICAL = "critical"


def sort_detections(detections: Iterable[RenameDetection]) -> List[RenameDetection]:
    """Critical issues first, then by local path."""
    return sorted(detections, key=lambda d: (not d.is_critical, d.local_path))


class DivergenceDetector:
    """Compares cached titles with live Confluence pages."""

    def __init__(self, client: ConfluenceClient, metadata: SyncMetadata):
        self.client = client
        self.metadata = metadata

    def detect(
        self,
        entries: Iterable[PageSyncInfo],
        check_orphans: bool = True,
        unreadable: Collection[str] = (),
    ) -> List[RenameDetection]:
        """Return divergences for the given entries, critical first.

        Args:
            entries: Classified entries of this run
            check_orphans: Report cached paths missing from entries
            unreadable: Local files that exist but could not be analyzed
        """
        entries = list(entries)
        logger.debug("Running rename detection analysis...")

        detections = []
        for entry in entries:
            detection = self._check_entry(entry)
            if detection is not None:
                detections.append(detection)

        if check_orphans:
            detections.extend(self._check_orphans(entries, unreadable))

        logger.debug(f"Rename detection found {len(detections)} potential issues")
        return sort_detections(detections)

    def _check_entry(self, entry: PageSyncInfo) -> Optional[RenameDetection]:
        if entry.is_directory:
            record = self.metadata.get_directory(entry.path)
        else:
            record = self.metadata.get_file(entry.path)
        if record is None or not record.page_id:
            return None

        try:
            page = self.client.get_page(record.page_id)
        except ConfluenceError as e:
            logger.debug(f"Could not retrieve page {record.page_id} for rename check: {e}")
            return None

        local, remote, cached = entry.title, page.title, record.title
        if remote == local or is_replacement_title(remote, local):
            return None

        entity = "directory" if entry.is_directory else "page"
        if cached == local:
            kind = REMOTE_RENAME
            recommendation = (
                f"{entity.capitalize()} renamed in Confluence from '{local}' to '{remote}'. "
                f"The Confluence title is kept."
            )
        elif cached == remote:
            kind = LOCAL_RENAME
            recommendation = (
                f"{entity.capitalize()} renamed locally from '{remote}' to '{local}'. "
                f"The Confluence page title will be updated."
            )
        else:
            kind = CONFLICT
            recommendation = (
                f"Title conflict. Local: '{local}', Confluence: '{remote}', "
                f"Cached: '{cached}'. Manual resolution may be needed."
            )

        severity = WARNING
        if entry.is_directory and self._has_children(record.page_id):
            severity = CRITICAL
            recommendation += (
                " Child pages may lose their expected parent;"
                " consider moving them manually or clearing the cache."
            )

        return RenameDetection(
            entity_type=entity,
            kind=kind,
            local_path=entry.path,
            expected_title=local,
            actual_title=remote,
            cached_title=cached,
            page_id=record.page_id,
            severity=severity,
            recommendation=recommendation,
        )

    def _check_orphans(
        self,
        entries: List[PageSyncInfo],
        unreadable: Collection[str] = (),
    ) -> List[RenameDetection]:
        local_files = {e.path for e in entries if not e.is_directory}
        local_files.update(unreadable)
        local_dirs = {e.path for e in entries if e.is_directory}
        detections = []

        for path, record in self.metadata.files.items():
            if path in local_files:
                continue
            detections.append(RenameDetection(
                entity_type="page",
                kind=ORPHANED,
                local_path=path,
                expected_title="",
                actual_title=record.title,
                cached_title=record.title,
                page_id=record.page_id or "",
                severity=WARNING,
                recommendation=(
                    f"Local file deleted but Confluence page '{record.title}' still exists. "
                    f"Consider manual cleanup."
                ),
            ))

        for path, record in self.metadata.directories.items():
            if path in local_dirs:
                continue
            has_children = bool(record.page_id) and self._has_children(record.page_id)
            detections.append(RenameDetection(
                entity_type="directory",
                kind=ORPHANED,
                local_path=path,
                expected_title="",
                actual_title=record.title,
                cached_title=record.title,
                page_id=record.page_id or "",
                severity=CRITICAL if has_children else WARNING,
                recommendation=(
                    f"Local directory deleted but Confluence directory page '{record.title}' "
                    f"still exists"
                    + (" with child pages. Manual cleanup recommended." if has_children else ".")
                ),
            ))

        return detections

    def _has_children(self, page_id: str) -> bool:
        try:
            return len(self.client.get_child_pages(page_id)) > 0
        except ConfluenceError as e:
            logger.debug(f"Could not list children of page {page_id}: {e}")
            return False
