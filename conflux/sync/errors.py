"""Typed exceptions raised by the sync engine."""

from typing import Optional

from conflux.confluence_client.errors import SyncError


class SyncEngineError(SyncError):
    """Base exception for sync engine failures."""
    pass


class MetadataError(SyncEngineError):
    """Raised when the sync cache cannot be read, parsed or written.

    A corrupt cache is fatal for the whole run.
    """

    def __init__(self, cache_file: str, reason: str):
        super().__init__(f"Sync cache error ({cache_file}): {reason}")
        self.cache_file = cache_file
        self.reason = reason


class HierarchyOrderError(SyncEngineError):
    """Raised when a file is synced before its containing directory page exists."""

    def __init__(self, file_path: str, directory: str):
        super().__init__(
            f"Directory page for '{directory}' was not processed before '{file_path}'"
        )
        self.file_path = file_path
        self.directory = directory


class RecoveryFailedError(SyncEngineError):
    """Raised when a replacement page could not be created for a forbidden page."""

    def __init__(self, title: str, page_id: str, reason: Optional[str] = None):
        message = f"Could not replace unmodifiable page {page_id} ('{title}')"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.title = title
        self.page_id = page_id
        self.reason = reason


class DiagramDependencyError(SyncEngineError):
    """Raised before any remote write when diagram rendering tools are missing."""

    def __init__(self, reason: str):
        super().__init__(f"Mermaid dependencies not available: {reason}")
        self.reason = reason
