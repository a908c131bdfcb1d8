"""Sync orchestration.

A run loads the sync cache, classifies every local entry, shows a preview,
asks for confirmation, then syncs directory pages (shallowest first) followed
by documents, and finally persists the cache. Every entry is attempted; a
failing entry is counted and reported without stopping the run.
"""

import logging
import os
from typing import Dict, List, Optional, Protocol, Set

from conflux.config.models import ConfluxConfig
from conflux.confluence_client.api_wrapper import APIWrapper
from conflux.confluence_client.auth import Authenticator
from conflux.confluence_client.errors import ConversionError, SyncError
from conflux.confluence_client.interface import ConfluenceClient
from conflux.content_converter.document import find_markdown_files, parse_file
from conflux.content_converter.markdown_converter import MarkdownConverter
from conflux.content_converter.mermaid_processor import MermaidProcessor

from .classifier import ChangeClassifier
from .directory_sync import DirectorySynchronizer
from .errors import DiagramDependencyError, SyncEngineError
from .file_sync import FileSynchronizer
from .hierarchy import (
    assign_parents,
    build_page_tree,
    directory_title,
    extract_directories,
    parent_directory,
    processing_order,
)
from .metadata import SyncMetadata
from .models import PageSyncInfo, RenameDetection, SyncStatus, SyncSummary, UserChoice
from .recovery import RecoveryController
from .rename_detection import DivergenceDetector

logger = logging.getLogger(__name__)


class SyncPresenter(Protocol):
    """User-facing side of a sync run (preview, prompts, results)."""

    def show_preview(
        self,
        space_key: str,
        tree: List[PageSyncInfo],
        summary: SyncSummary,
        dry_run: bool,
    ) -> None: ...

    def show_rename_detections(self, detections: List[RenameDetection]) -> None: ...

    def confirm_sync(self, entries: List[PageSyncInfo], summary: SyncSummary) -> UserChoice: ...

    def show_result(self, summary: SyncSummary) -> None: ...

    def print(self, message: str) -> None: ...


class _SilentPresenter:
    """Presenter used when no UI is attached; declines unforced syncs."""

    def show_preview(self, space_key, tree, summary, dry_run) -> None:
        pass

    def show_rename_detections(self, detections) -> None:
        pass

    def confirm_sync(self, entries, summary) -> UserChoice:
        logger.warning("No prompt available to confirm the sync; run with force to proceed")
        return UserChoice(action="cancel")

    def show_result(self, summary) -> None:
        pass

    def print(self, message: str) -> None:
        logger.info(message)


def client_from_config(config: ConfluxConfig) -> APIWrapper:
    """Build an API client for the Confluence instance named in config.

    Raises:
        InvalidCredentialsError: If credentials are missing from both the
            config and the environment
    """
    authenticator = Authenticator(
        url=config.confluence.base_url or None,
        user=config.confluence.username or None,
        api_token=config.confluence.api_token or None,
    )
    authenticator.get_credentials()
    return APIWrapper(authenticator)


class Syncer:
    """Synchronizes a local Markdown tree into a Confluence space.

    Example:
        >>> syncer = Syncer.from_config(config, presenter=OutputHandler())
        >>> summary = syncer.sync(dry_run=True)
    """

    def __init__(
        self,
        client: ConfluenceClient,
        config: ConfluxConfig,
        converter: Optional[MarkdownConverter] = None,
        presenter: Optional[SyncPresenter] = None,
        metadata: Optional[SyncMetadata] = None,
        processor: Optional[MermaidProcessor] = None,
        recovery: Optional[RecoveryController] = None,
    ):
        self.client = client
        self.config = config
        self.space_key = config.confluence.space_key
        self.root = os.path.abspath(config.local.markdown_dir)
        self.presenter = presenter or _SilentPresenter()
        self.metadata = metadata or SyncMetadata(self.root, self.space_key)
        self.processor = processor or MermaidProcessor(config.mermaid)
        self.converter = converter or MarkdownConverter(
            config.mermaid, uploader=client.upload_attachment, processor=self.processor
        )
        self.recovery = recovery or RecoveryController(client, self.metadata, self.space_key)
        self.classifier = ChangeClassifier(self.metadata, client, self.space_key)
        self.detector = DivergenceDetector(client, self.metadata)
        self.analysis_errors: Dict[str, Exception] = {}

    @classmethod
    def from_config(cls, config: ConfluxConfig, presenter: Optional[SyncPresenter] = None) -> "Syncer":
        """Build a Syncer talking to the Confluence instance named in config.

        Raises:
            InvalidCredentialsError: If credentials are missing from both the
                config and the environment
        """
        return cls(client_from_config(config), config, presenter=presenter)

    def sync(
        self,
        dry_run: bool = False,
        force: bool = False,
        single_file: Optional[str] = None,
        use_cache: bool = True,
    ) -> SyncSummary:
        """Run a sync.

        Args:
            dry_run: Classify and preview only; no remote writes
            force: Skip the confirmation prompt
            single_file: Sync only this Markdown file (path as given by the user)
            use_cache: Load the existing sync cache before classifying

        Returns:
            SyncSummary with classification and outcome counts

        Raises:
            MetadataError: If the sync cache is corrupt or cannot be saved
            DiagramDependencyError: If diagram rendering is enabled but mmdc is missing
            SyncEngineError: If single_file is not a Markdown file inside the sync root
        """
        logger.info(f"Starting sync of {self.root} to space {self.space_key}")

        if use_cache:
            self.metadata.load()
        else:
            logger.info("Ignoring existing sync cache")

        if not dry_run:
            self.check_dependencies()

        files = self._collect_files(single_file)
        tree_files = files
        if single_file is not None:
            found = find_markdown_files(self.root, self.config.local.exclude)
            tree_files = sorted(set(found + files))
        entries = self.analyze(files, tree_files)
        summary = self._count(entries)
        summary.dry_run = dry_run
        for path, error in self.analysis_errors.items():
            summary.record_error(path, error)
        summary.detections = self.detect_renames(entries, check_orphans=single_file is None)

        self.presenter.show_preview(self.space_key, build_page_tree(entries), summary, dry_run)
        self.presenter.show_rename_detections(summary.detections)

        if dry_run:
            return summary

        if summary.pending_count == 0:
            self.presenter.print("All pages are up-to-date. Nothing to sync.")
            return summary

        selected: Optional[Set[str]] = None
        if not force:
            choice = self.presenter.confirm_sync(entries, summary)
            if choice.cancelled:
                summary.cancelled = True
                self.presenter.print("Sync canceled by user")
                return summary
            if choice.action == "select":
                selected = set(choice.selected_paths)

        self._perform_sync(entries, summary, selected, tree_files)
        self.metadata.save()
        self.presenter.show_result(summary)
        return summary

    def check_dependencies(self) -> None:
        """Fail before any write if diagrams must be rendered and mmdc is missing.

        Raises:
            DiagramDependencyError: If the mermaid CLI cannot be found
        """
        if not self.config.mermaid.converts_to_image:
            return
        try:
            self.processor.check_dependencies()
        except ConversionError as e:
            logger.error(f"Mermaid CLI dependencies not met: {e}")
            raise DiagramDependencyError(str(e)) from e
        logger.info("Mermaid CLI dependencies verified")

    def _collect_files(self, single_file: Optional[str]) -> List[str]:
        if single_file is None:
            files = find_markdown_files(self.root, self.config.local.exclude)
            logger.info(f"Found {len(files)} markdown files to analyze")
            return files

        path = os.path.abspath(single_file)
        if not os.path.isfile(path) or os.path.splitext(path)[1].lower() != '.md':
            raise SyncEngineError(f"Not a markdown file: {single_file}")
        if os.path.commonpath([path, self.root]) != self.root:
            raise SyncEngineError(f"{single_file} is outside the sync root {self.root}")
        logger.info(f"Single file mode: processing {single_file}")
        return [path]

    def analyze(
        self,
        files: List[str],
        tree_files: Optional[List[str]] = None,
    ) -> List[PageSyncInfo]:
        """Classify files and their directories, in processing order.

        Files that cannot be read are left out of the entries and kept in
        analysis_errors.

        Args:
            files: Files to classify
            tree_files: Every file under the sync root, used for directory
                digests; defaults to files
        """
        paths = [self.metadata.normalize_path(f) for f in files]
        tree_paths = paths
        if tree_files is not None:
            tree_paths = sorted({self.metadata.normalize_path(f) for f in tree_files})
        entries: List[PageSyncInfo] = []
        self.analysis_errors = {}

        for path in paths:
            logger.debug(f"Analyzing file: {path}")
            try:
                document = parse_file(self.metadata.absolute_path(path))
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Failed to analyze file {path}: {e}")
                self.analysis_errors[path] = e
                continue
            entries.append(PageSyncInfo(
                title=document.title,
                path=path,
                status=self.classifier.classify_file(path, document.title),
            ))

        statuses = {entry.path: entry.status for entry in entries}
        for dir_path in extract_directories(paths):
            entries.append(PageSyncInfo(
                title=directory_title(dir_path),
                path=dir_path,
                status=self.classifier.classify_directory(dir_path, tree_paths, statuses),
                is_directory=True,
            ))

        assign_parents(entries)
        return processing_order(entries)

    def detect_renames(
        self,
        entries: List[PageSyncInfo],
        check_orphans: bool = True,
    ) -> List[RenameDetection]:
        return self.detector.detect(
            entries, check_orphans=check_orphans, unreadable=self.analysis_errors
        )

    @staticmethod
    def _count(entries: List[PageSyncInfo]) -> SyncSummary:
        summary = SyncSummary()
        for entry in entries:
            if entry.status == SyncStatus.NEW:
                summary.new_count += 1
            elif entry.status == SyncStatus.CHANGED:
                summary.changed_count += 1
            else:
                summary.up_to_date_count += 1
        return summary

    def _perform_sync(
        self,
        entries: List[PageSyncInfo],
        summary: SyncSummary,
        selected: Optional[Set[str]],
        tree_files: Optional[List[str]] = None,
    ) -> None:
        logger.info("Starting sync of directory and file pages")
        if tree_files is None:
            all_files = [e.path for e in entries if not e.is_directory]
        else:
            all_files = [self.metadata.normalize_path(f) for f in tree_files]
        directories = DirectorySynchronizer(
            self.client, self.metadata, self.space_key, self.recovery
        )
        files = FileSynchronizer(
            self.client,
            self.metadata,
            self.converter,
            self.space_key,
            self.config.mermaid,
            self.recovery,
        )
        failed_dirs: Set[str] = set()

        for entry in entries:
            if not entry.is_directory:
                continue
            parent = entry.parent_path
            if parent in failed_dirs:
                failed_dirs.add(entry.path)
                summary.record_error(entry.path, SyncEngineError(f"parent directory {parent} failed"))
                continue
            parent_id = directories.pages[parent].id if parent in directories.pages else None
            try:
                directories.ensure_directory_page(entry.path, parent_id, entry.status, all_files)
            except SyncError as e:
                logger.error(f"Failed to sync directory page for {entry.path}: {e}")
                failed_dirs.add(entry.path)
                summary.record_error(entry.path, e)
                continue
            if entry.path in directories.written:
                summary.synced_count += 1
            else:
                summary.skipped_count += 1

        for entry in entries:
            if entry.is_directory:
                continue
            if not entry.needs_sync:
                logger.debug(f"Skipping up-to-date file: {entry.path}")
                summary.skipped_count += 1
                continue
            if selected is not None and entry.path not in selected:
                logger.debug(f"Skipping unselected file: {entry.path}")
                summary.skipped_count += 1
                continue
            directory = parent_directory(entry.path)
            if directory in failed_dirs:
                summary.record_error(
                    entry.path, SyncEngineError(f"directory page for {directory} failed")
                )
                continue
            try:
                files.sync_file(entry.path, directories.pages)
            except (SyncError, OSError, UnicodeDecodeError) as e:
                logger.error(f"Failed to sync file {entry.path}: {e}")
                summary.record_error(entry.path, e)
                continue
            summary.synced_count += 1

        logger.info(
            f"Sync finished: {summary.synced_count} synced, "
            f"{summary.skipped_count} skipped, {summary.error_count} errors"
        )
