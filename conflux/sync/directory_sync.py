"""Stub pages for local directories.

Every directory that contains Markdown files gets a page whose body lists its
children with the Confluence children macro. Parents are processed before
their subdirectories, so a directory's parent page id is always known.
"""

import html
import logging
import posixpath
from typing import Dict, Iterable, Optional, Set

from conflux.confluence_client.errors import ConfluenceError, PageUpdateForbiddenError
from conflux.confluence_client.interface import ConfluenceClient
from conflux.confluence_client.models import Page

from .hierarchy import directory_title
from .metadata import SyncMetadata
from .models import SyncStatus
from .recovery import RecoveryController

logger = logging.getLogger(__name__)


def directory_stub(title: str, dir_name: str) -> str:
    """Storage format body of a directory page."""
    title = html.escape(title)
    dir_name = html.escape(dir_name)
    return (
        f"<h1>{title}</h1>\n"
        f"<p>This section contains documentation for {dir_name}. The pages below are "
        f"listed automatically and stay current as child pages are added or modified.</p>\n"
        f"\n"
        f"<h2>Contents</h2>\n"
        f'<ac:structured-macro ac:name="children" ac:schema-version="1">\n'
        f'<ac:parameter ac:name="all">true</ac:parameter>\n'
        f'<ac:parameter ac:name="sort">title</ac:parameter>\n'
        f"</ac:structured-macro>\n"
        f"\n"
        f"<p><em>This page was created automatically by conflux to organize the "
        f"documentation hierarchy.</em></p>"
    )


class DirectorySynchronizer:
    """Creates or refreshes one stub page per directory.

    Attributes:
        pages: Directory path -> page resolved this run
        written: Directory paths whose page was created or updated this run
    """

    def __init__(
        self,
        client: ConfluenceClient,
        metadata: SyncMetadata,
        space_key: str,
        recovery: Optional[RecoveryController] = None,
    ):
        self.client = client
        self.metadata = metadata
        self.space_key = space_key
        self.recovery = recovery or RecoveryController(client, metadata, space_key)
        self.pages: Dict[str, Page] = {}
        self.written: Set[str] = set()

    def ensure_directory_page(
        self,
        dir_path: str,
        parent_id: Optional[str],
        status: SyncStatus,
        descendant_files: Iterable[str],
    ) -> Page:
        """Return the page for dir_path, creating or updating it if needed.

        Up-to-date directories are resolved by cached id, then by title, with
        no writes. Otherwise the stub body is regenerated and the page found
        by title is updated, or a new page is created under parent_id.

        Raises:
            ConfluenceError: If the page cannot be created or updated
            RecoveryFailedError: If a forbidden page could not be replaced
        """
        key = self.metadata.normalize_path(dir_path)
        if key in self.pages:
            return self.pages[key]

        files = list(descendant_files)
        title = directory_title(key)

        if status == SyncStatus.UP_TO_DATE:
            page = self._resolve_existing(key, title)
            if page is not None:
                logger.debug(f"Directory page is up-to-date, skipping: {key}")
                return self._remember(key, page, files)

        content = directory_stub(title, posixpath.basename(key))

        try:
            existing = self.client.find_page_by_title(self.space_key, title)
        except ConfluenceError as e:
            logger.info(f"Could not check for existing directory page '{title}': {e}")
            existing = None

        if existing is not None:
            logger.info(f"Updating directory page: {title} (status: {status.value})")
            try:
                page = self.client.update_page(existing.id, title, content)
            except PageUpdateForbiddenError as e:
                page = self.recovery.replace_page(
                    key, title, content, parent_id, e.page_id, is_directory=True
                )
        else:
            logger.info(f"Creating directory page: {title} (status: {status.value})")
            if parent_id:
                page = self.client.create_page_with_parent(self.space_key, title, content, parent_id)
            else:
                page = self.client.create_page(self.space_key, title, content)

        self.written.add(key)
        return self._remember(key, page, files)

    def _resolve_existing(self, key: str, title: str) -> Optional[Page]:
        page_id = self.metadata.directory_page_id(key)
        if page_id:
            try:
                return self.client.get_page(page_id)
            except ConfluenceError as e:
                logger.debug(f"Cached directory page {page_id} unavailable: {e}")

        try:
            return self.client.find_page_by_title(self.space_key, title)
        except ConfluenceError as e:
            logger.debug(f"Could not look up directory page '{title}': {e}")
            return None

    def _remember(self, key: str, page: Page, files) -> Page:
        self.pages[key] = page
        self.metadata.update_directory(key, page.id, page.title, files)
        return page
