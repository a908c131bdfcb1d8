"""Data models for content conversion."""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class Document:
    """A parsed local Markdown document.

    Attributes:
        title: First level-one heading, or the file stem when there is none
        content: Raw Markdown content
        file_path: Path the document was read from
    """
    title: str
    content: str
    file_path: str


@dataclass
class ConversionResult:
    """Result of Markdown to storage-format conversion.

    Attributes:
        xhtml: Confluence storage format body
        attachments: Uploaded diagram attachments (filename -> SHA-256 of the image)
        warnings: Diagrams that fell back to code blocks, with the reason
    """
    xhtml: str
    attachments: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


@dataclass
class DiagramResult:
    """A Mermaid diagram rendered to an image file."""
    image_path: str
    image_format: str
    filename: str
