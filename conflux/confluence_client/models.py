"""Data models for Confluence pages and attachments.

The client returns these dataclasses rather than raw API dictionaries so the
sync engine never depends on the REST payload layout.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Page:
    """A Confluence page as seen by the sync engine.

    Attributes:
        id: Page ID assigned by Confluence
        title: Page title (unique within a space)
        space_key: Space key where the page resides
        body: Page content in storage format (XHTML)
        version: Current version number
        parent_id: Direct parent page ID (None at space root or when unknown)
    """
    id: str
    title: str
    space_key: str = ""
    body: str = ""
    version: int = 1
    parent_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Page":
        """Build a Page from a REST API content payload."""
        ancestors = data.get("ancestors") or []
        parent_id = str(ancestors[-1].get("id")) if ancestors else None
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title", ""),
            space_key=(data.get("space") or {}).get("key", ""),
            body=((data.get("body") or {}).get("storage") or {}).get("value", ""),
            version=(data.get("version") or {}).get("number", 1),
            parent_id=parent_id,
        )


@dataclass
class PageInfo:
    """Lightweight page reference used for hierarchy listings."""
    id: str
    title: str
    children: List["PageInfo"] = field(default_factory=list)


@dataclass
class Attachment:
    """An attachment uploaded to a page."""
    id: str
    title: str
    filename: str = ""
    size: int = 0
    media_type: str = ""
