"""Synchronizing one Markdown document to one Confluence page."""

import logging
from typing import Dict, Optional, Tuple

from conflux.config.models import MermaidConfig
from conflux.confluence_client.errors import ConfluenceError, PageUpdateForbiddenError
from conflux.confluence_client.interface import ConfluenceClient
from conflux.confluence_client.models import Page
from conflux.content_converter.document import parse_file
from conflux.content_converter.markdown_converter import MarkdownConverter, has_mermaid

from .errors import HierarchyOrderError
from .hierarchy import parent_directory
from .metadata import SyncMetadata
from .models import FileRecord
from .recovery import RecoveryController, is_replacement_title

logger = logging.getLogger(__name__)


class FileSynchronizer:
    """Creates or updates the page for a document.

    The page is looked up by title and updated when found. A page that is
    no longer found by title but still exists under its cached id is
    updated in place. A local title change is carried to Confluence; when
    only the Confluence title changed, that title is kept. Anything else
    creates a new page under the containing directory's page.
    """

    def __init__(
        self,
        client: ConfluenceClient,
        metadata: SyncMetadata,
        converter: MarkdownConverter,
        space_key: str,
        mermaid_config: Optional[MermaidConfig] = None,
        recovery: Optional[RecoveryController] = None,
    ):
        self.client = client
        self.metadata = metadata
        self.converter = converter
        self.space_key = space_key
        self.mermaid_config = mermaid_config or MermaidConfig()
        self.recovery = recovery or RecoveryController(client, metadata, space_key)

    def sync_file(self, path: str, directory_pages: Dict[str, Page]) -> Page:
        """Push one document to Confluence and record the result.

        Args:
            path: File path (absolute or relative to the sync root)
            directory_pages: Directory path -> page, from the directory pass

        Returns:
            The created or updated page

        Raises:
            OSError: If the file cannot be read
            HierarchyOrderError: If the containing directory has no page yet
            ConversionError: If the content cannot be converted
            ConfluenceError: If the page cannot be created or updated
            RecoveryFailedError: If a forbidden page could not be replaced
        """
        key = self.metadata.normalize_path(path)
        logger.info(f"Syncing file: {key}")

        document = parse_file(self.metadata.absolute_path(key))
        record = self.metadata.get_file(key)
        cached_id = record.page_id if record else None

        directory = parent_directory(key)
        parent_id = None
        if directory is not None:
            if directory not in directory_pages:
                raise HierarchyOrderError(key, directory)
            parent_id = directory_pages[directory].id

        conversion = self.converter.convert_document(document.content, cached_id)
        content = conversion.xhtml
        attachments = dict(conversion.attachments)

        target = self._find_target(document.title, record)
        if target is not None:
            target_id, target_title = target
            logger.info(f"Updating existing page: {target_title} (id={target_id})")
            try:
                page = self.client.update_page(target_id, target_title, content)
            except PageUpdateForbiddenError as e:
                page = self.recovery.replace_page(
                    key, document.title, content, parent_id, e.page_id
                )
        else:
            logger.info(f"Creating new page: {document.title}")
            if parent_id:
                page = self.client.create_page_with_parent(
                    self.space_key, document.title, content, parent_id
                )
            else:
                page = self.client.create_page(self.space_key, document.title, content)

        if (
            self.mermaid_config.converts_to_image
            and has_mermaid(document.content)
            and page.id != cached_id
        ):
            page, rendered = self._post_process_diagrams(page, document.content)
            attachments.update(rendered)

        # A title kept from Confluence is cached as the local title it stands for
        recorded_title = page.title
        if (
            target is not None
            and page.id == target[0]
            and not is_replacement_title(page.title, document.title)
        ):
            recorded_title = document.title

        self.metadata.update_file(key, page.id, recorded_title, attachments)
        logger.info(f"Successfully synced: {page.title} (id={page.id})")
        return page

    def _find_target(self, title: str, record: Optional[FileRecord]) -> Optional[Tuple[str, str]]:
        """Return (page_id, title) of the page to update, or None to create one."""
        try:
            found = self.client.find_page_by_title(self.space_key, title)
        except ConfluenceError as e:
            logger.debug(f"Could not check for existing page '{title}': {e}")
            found = None

        cached_id = record.page_id if record else None

        # The cached page is a suffixed replacement; the title belongs to the old page
        if (
            found is not None
            and cached_id
            and found.id != cached_id
            and is_replacement_title(record.title, title)
        ):
            cached = self._get_cached(cached_id)
            if cached is not None:
                return cached.id, cached.title

        if found is not None:
            return found.id, title

        if cached_id:
            cached = self._get_cached(cached_id)
            if cached is not None:
                if record.title == title:
                    logger.info(
                        f"Page '{title}' was renamed to '{cached.title}' in Confluence; "
                        f"keeping the Confluence title"
                    )
                    return cached.id, cached.title
                logger.info(
                    f"Page '{cached.title}' (id={cached.id}) will be renamed to '{title}'"
                )
                return cached.id, title
        return None

    def _get_cached(self, page_id: str) -> Optional[Page]:
        try:
            return self.client.get_page(page_id)
        except ConfluenceError as e:
            logger.debug(f"Cached page {page_id} unavailable: {e}")
            return None

    def _post_process_diagrams(self, page: Page, content: str):
        """Re-convert with the page id so diagrams become attachments, then update."""
        logger.info(f"Post-processing Mermaid diagrams for page: {page.title}")
        try:
            conversion = self.converter.convert_document(content, page.id)
            updated = self.client.update_page(page.id, page.title, conversion.xhtml)
        except ConfluenceError as e:
            logger.error(f"Failed to post-process Mermaid diagrams for {page.title}: {e}")
            return page, {}
        return updated, conversion.attachments
