"""Data models for the sync engine.

FileRecord and DirectoryRecord are persisted in the sync cache. PageSyncInfo,
RenameDetection, SyncSummary and UserChoice live for a single run only.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set


class SyncStatus(str, Enum):
    """Classification of a local entry against the sync cache."""
    NEW = "new"
    CHANGED = "changed"
    UP_TO_DATE = "up-to-date"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp from the cache, returning None if unusable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def parse_page_id(value: Any) -> Optional[str]:
    """Return a cached page id as a string, None when absent.

    Raises:
        ValueError: If the id is not numeric
    """
    if not value:
        return None
    page_id = str(value)
    if not page_id.isdigit():
        raise ValueError(f"invalid page_id '{page_id}', must be numeric")
    return page_id


@dataclass
class FileRecord:
    """Last synchronized state of one Markdown document.

    Attributes:
        hash: SHA-256 hex digest of the file content at last sync
        last_sync: ISO 8601 timestamp of the last successful sync
        page_id: Confluence page ID (None until the page exists)
        title: Page title used at last sync
        mod_time: ISO 8601 modification timestamp of the file at last sync
        size: File size in bytes at last sync
        attachments: Diagram attachment filename -> SHA-256 of the uploaded image
    """
    hash: str
    last_sync: str = ""
    page_id: Optional[str] = None
    title: str = ""
    mod_time: str = ""
    size: int = 0
    attachments: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'hash': self.hash,
            'last_sync': self.last_sync,
            'title': self.title,
            'mod_time': self.mod_time,
            'size': self.size,
        }
        if self.page_id:
            data['page_id'] = self.page_id
        if self.attachments:
            data['attachments'] = dict(self.attachments)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        return cls(
            hash=str(data['hash']),
            last_sync=str(data.get('last_sync') or ''),
            page_id=parse_page_id(data.get('page_id')),
            title=str(data.get('title') or ''),
            mod_time=str(data.get('mod_time') or ''),
            size=int(data.get('size') or 0),
            attachments={str(k): str(v) for k, v in (data.get('attachments') or {}).items()},
        )


@dataclass
class DirectoryRecord:
    """Last synchronized state of one directory stub page.

    Attributes:
        hash: Aggregate digest over the directory path and its descendant files
        last_sync: ISO 8601 timestamp of the last successful sync
        page_id: Confluence page ID of the directory page
        title: Directory page title
    """
    hash: str
    last_sync: str = ""
    page_id: Optional[str] = None
    title: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'hash': self.hash,
            'last_sync': self.last_sync,
            'title': self.title,
        }
        if self.page_id:
            data['page_id'] = self.page_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DirectoryRecord":
        return cls(
            hash=str(data['hash']),
            last_sync=str(data.get('last_sync') or ''),
            page_id=parse_page_id(data.get('page_id')),
            title=str(data.get('title') or ''),
        )


@dataclass
class PageSyncInfo:
    """One entry of the page hierarchy built for a run.

    Attributes:
        title: Page title (document heading or directory display title)
        path: Normalized path relative to the sync root
        status: Classification for this run
        level: Nesting depth (0 for entries directly under the root)
        parent_path: Path of the parent directory entry, None at the root
        is_directory: True for directory stub pages
        children: Child entries, populated only by build_page_tree
    """
    title: str
    path: str
    status: SyncStatus
    level: int = 0
    parent_path: Optional[str] = None
    is_directory: bool = False
    children: List["PageSyncInfo"] = field(default_factory=list)

    @property
    def needs_sync(self) -> bool:
        return self.status != SyncStatus.UP_TO_DATE


@dataclass
class RenameDetection:
    """A divergence between local, cached and remote page titles.

    Attributes:
        entity_type: 'page' or 'directory'
        kind: 'remote_rename', 'local_rename', 'conflict' or 'orphaned'
        local_path: Local path of the entry (cached path for orphans)
        expected_title: Title derived from the local tree (empty for orphans)
        actual_title: Title of the live remote page
        cached_title: Title stored in the sync cache
        page_id: Confluence page ID
        severity: 'warning' or 'critical'
        recommendation: Human-readable next step
    """
    entity_type: str
    kind: str
    local_path: str
    expected_title: str
    actual_title: str
    cached_title: str
    page_id: str
    severity: str = "warning"
    recommendation: str = ""

    @property
    def is_critical(self) -> bool:
        return self.severity == "critical"


@dataclass
class SyncSummary:
    """Outcome of a sync run.

    Attributes:
        new_count: Entries classified as new
        changed_count: Entries classified as changed
        up_to_date_count: Entries classified as up-to-date
        synced_count: Entries written to Confluence
        skipped_count: Entries left untouched (up-to-date or not selected)
        error_count: Entries that failed
        errors: Path -> error message for each failed entry
        detections: Divergences reported before syncing
        dry_run: True if no writes were attempted by design
        cancelled: True if the user declined the sync
    """
    new_count: int = 0
    changed_count: int = 0
    up_to_date_count: int = 0
    synced_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    errors: Dict[str, str] = field(default_factory=dict)
    detections: List[RenameDetection] = field(default_factory=list)
    dry_run: bool = False
    cancelled: bool = False

    @property
    def pending_count(self) -> int:
        return self.new_count + self.changed_count

    @property
    def total_count(self) -> int:
        return self.new_count + self.changed_count + self.up_to_date_count

    def record_error(self, path: str, error: Exception) -> None:
        self.error_count += 1
        self.errors[path] = str(error)


@dataclass
class UserChoice:
    """Answer to the sync confirmation prompt.

    Attributes:
        action: 'continue', 'cancel' or 'select'
        selected_paths: Paths chosen when action is 'select'
    """
    action: str
    selected_paths: Set[str] = field(default_factory=set)

    @property
    def cancelled(self) -> bool:
        return self.action == "cancel"
