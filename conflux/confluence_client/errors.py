"""Typed exception hierarchy for Confluence-related errors.

This module defines all custom exceptions raised by the Confluence client.
All exceptions inherit from ConfluenceError so callers can catch the whole
family at once, and each carries the context (page id, title, endpoint)
needed to act on it without parsing the message text.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for all conflux errors.

    Use this to catch any application-level error from the sync tool.
    """
    pass


class ConfluenceError(SyncError):
    """Base exception for all Confluence-related errors."""
    pass


class InvalidCredentialsError(ConfluenceError):
    """Raised when API credentials are missing, invalid, or rejected."""

    def __init__(self, user: str, endpoint: str):
        super().__init__(
            f"API credentials are invalid (user: {user}, endpoint: {endpoint})"
        )
        self.user = user
        self.endpoint = endpoint


class PageNotFoundError(ConfluenceError):
    """Raised when a requested page does not exist."""

    def __init__(self, page_id: str):
        super().__init__(f"Page {page_id} not found")
        self.page_id = page_id


class PageAlreadyExistsError(ConfluenceError):
    """Raised when attempting to create a page whose title is already taken."""

    def __init__(self, title: str, parent_id: Optional[str] = None):
        if parent_id:
            message = f"Page with title '{title}' already exists under parent {parent_id}"
        else:
            message = f"Page with title '{title}' already exists"
        super().__init__(message)
        self.title = title
        self.parent_id = parent_id


class PageUpdateForbiddenError(ConfluenceError):
    """Raised when a page exists but cannot be modified (archived or restricted).

    The sync engine treats this as recoverable: the page is replaced by a
    newly created one instead of failing the file.
    """

    def __init__(self, page_id: str, title: str = "", reason: Optional[str] = None):
        message = f"Page {page_id} cannot be modified"
        if title:
            message += f" ('{title}')"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.page_id = page_id
        self.title = title
        self.reason = reason


class APIUnreachableError(ConfluenceError):
    """Raised when the Confluence API is not available or unreachable."""

    def __init__(self, endpoint: str):
        super().__init__(f"API is not available at {endpoint}")
        self.endpoint = endpoint


class APIAccessError(ConfluenceError):
    """Raised when API access fails after retries or for an unclassified reason."""

    def __init__(self, message: str = "Confluence API failure (after 3 retries)"):
        super().__init__(message)


class ConversionError(ConfluenceError):
    """Raised when Markdown to storage-format conversion fails."""

    def __init__(self, message: str):
        super().__init__(message)
