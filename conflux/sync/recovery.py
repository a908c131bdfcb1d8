"""Replacing pages that Confluence refuses to update.

When an update fails with PageUpdateForbiddenError (the page is archived or
restricted), the cached page id is discarded and a new page is created in its
place. If the unmodifiable page still owns the title, one more attempt is
made with a timestamp suffix; a second collision is a failure.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from conflux.confluence_client.errors import ConfluenceError, PageAlreadyExistsError
from conflux.confluence_client.interface import ConfluenceClient
from conflux.confluence_client.models import Page

from .errors import RecoveryFailedError
from .metadata import SyncMetadata

logger = logging.getLogger(__name__)

REPLACED_MARKER = " (replaced "
REPLACED_FORMAT = "%Y-%m-%d %H:%M"


def replacement_title(title: str, when: datetime) -> str:
    """'Guide' -> 'Guide (replaced 2024-01-15 10:30)'."""
    return f"{title}{REPLACED_MARKER}{when.strftime(REPLACED_FORMAT)})"


def is_replacement_title(candidate: str, title: str) -> bool:
    """True if candidate is a suffixed replacement title for title."""
    return candidate.startswith(title + REPLACED_MARKER) and candidate.endswith(")")


class RecoveryController:
    """Creates replacement pages for pages that can no longer be modified."""

    def __init__(
        self,
        client: ConfluenceClient,
        metadata: SyncMetadata,
        space_key: str,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self.metadata = metadata
        self.space_key = space_key
        self.clock = clock

    def replace_page(
        self,
        path: str,
        title: str,
        content: str,
        parent_id: Optional[str],
        forbidden_page_id: str,
        is_directory: bool = False,
    ) -> Page:
        """Create a replacement for forbidden_page_id.

        The cached record for path is cleared before anything is created, so
        later runs never retry the unmodifiable page.

        Args:
            path: Local path whose record points at the forbidden page
            title: Title the replacement should carry
            content: Storage format body
            parent_id: Parent page ID, or None for the space root
            forbidden_page_id: ID of the page that refused the update
            is_directory: True if path is a directory stub page

        Returns:
            The newly created page

        Raises:
            RecoveryFailedError: If neither the original nor the suffixed title can be used
        """
        logger.info(
            f"Page {forbidden_page_id} ('{title}') is archived or restricted, "
            f"creating a replacement"
        )
        if is_directory:
            self.metadata.remove_directory(path)
        else:
            self.metadata.remove_file(path)

        try:
            page = self._create(title, content, parent_id)
            logger.info(f"Created replacement page '{title}' (id={page.id})")
            return page
        except PageAlreadyExistsError:
            logger.info(f"Title '{title}' is still taken, retrying with a timestamp suffix")
        except ConfluenceError as e:
            raise RecoveryFailedError(title, forbidden_page_id, str(e)) from e

        suffixed = replacement_title(title, self.clock())
        try:
            page = self._create(suffixed, content, parent_id)
        except ConfluenceError as e:
            logger.error(f"Failed to create replacement page even with suffix: {e}")
            raise RecoveryFailedError(title, forbidden_page_id, str(e)) from e

        logger.info(f"Created replacement page '{suffixed}' (id={page.id})")
        return page

    def _create(self, title: str, content: str, parent_id: Optional[str]) -> Page:
        if parent_id:
            return self.client.create_page_with_parent(self.space_key, title, content, parent_id)
        return self.client.create_page(self.space_key, title, content)
