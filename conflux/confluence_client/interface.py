"""Narrow capability interface the sync engine uses to talk to Confluence.

The engine depends on this Protocol, never on APIWrapper directly, so an
in-memory implementation can stand in for the whole test suite.
"""

from typing import List, Optional, Protocol, runtime_checkable

from .models import Attachment, Page, PageInfo


@runtime_checkable
class ConfluenceClient(Protocol):
    """Operations the sync engine needs from a Confluence space."""

    def create_page(self, space_key: str, title: str, content: str) -> Page:
        ...

    def create_page_with_parent(
        self, space_key: str, title: str, content: str, parent_id: str
    ) -> Page:
        ...

    def update_page(self, page_id: str, title: str, content: str) -> Page:
        """Update a page; raises PageUpdateForbiddenError when it cannot be modified."""
        ...

    def find_page_by_title(self, space_key: str, title: str) -> Optional[Page]:
        """Return the page with this title, or None when there is none."""
        ...

    def get_page(self, page_id: str) -> Page:
        ...

    def get_child_pages(self, page_id: str) -> List[PageInfo]:
        ...

    def get_space_pages(self, space_key: str) -> List[Page]:
        """Every page of the space, with parent ids; bodies may be empty."""
        ...

    def upload_attachment(self, page_id: str, file_path: str) -> Attachment:
        ...
