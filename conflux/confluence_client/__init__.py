"""Confluence client for the sync engine.

This package exposes the ConfluenceClient protocol the sync engine depends on,
an implementation over the Confluence Cloud REST API, and the typed errors
both raise.
"""

from .errors import (
    SyncError,
    ConfluenceError,
    InvalidCredentialsError,
    PageNotFoundError,
    PageAlreadyExistsError,
    PageUpdateForbiddenError,
    APIUnreachableError,
    APIAccessError,
    ConversionError,
)
from .interface import ConfluenceClient
from .models import Attachment, Page, PageInfo

__all__ = [
    "SyncError",
    "ConfluenceError",
    "InvalidCredentialsError",
    "PageNotFoundError",
    "PageAlreadyExistsError",
    "PageUpdateForbiddenError",
    "APIUnreachableError",
    "APIAccessError",
    "ConversionError",
    "ConfluenceClient",
    "Attachment",
    "Page",
    "PageInfo",
]
