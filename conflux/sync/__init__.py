"""Sync engine: classify local Markdown and replay it into Confluence.

The Syncer drives a run. The components below it can be used on their own:
SyncMetadata persists the cache, ChangeClassifier and the hierarchy helpers
plan the run, DirectorySynchronizer and FileSynchronizer write pages,
RecoveryController replaces unmodifiable pages and DivergenceDetector
reports renames.
"""

from .classifier import ChangeClassifier
from .directory_sync import DirectorySynchronizer
from .errors import (
    DiagramDependencyError,
    HierarchyOrderError,
    MetadataError,
    RecoveryFailedError,
    SyncEngineError,
)
from .file_sync import FileSynchronizer
from .metadata import SyncMetadata
from .models import (
    DirectoryRecord,
    FileRecord,
    PageSyncInfo,
    RenameDetection,
    SyncStatus,
    SyncSummary,
    UserChoice,
)
from .recovery import RecoveryController
from .rename_detection import DivergenceDetector
from .syncer import SyncPresenter, Syncer

__all__ = [
    'ChangeClassifier',
    'DirectorySynchronizer',
    'DiagramDependencyError',
    'HierarchyOrderError',
    'MetadataError',
    'RecoveryFailedError',
    'SyncEngineError',
    'FileSynchronizer',
    'SyncMetadata',
    'DirectoryRecord',
    'FileRecord',
    'PageSyncInfo',
    'RenameDetection',
    'SyncStatus',
    'SyncSummary',
    'UserChoice',
    'RecoveryController',
    'DivergenceDetector',
    'SyncPresenter',
    'Syncer',
]
