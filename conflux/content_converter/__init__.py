"""Content conversion from local Markdown to Confluence storage format.

This package parses Markdown documents, converts them with Pandoc and
renders Mermaid diagrams through the mermaid CLI.
"""

from .document import extract_title, find_markdown_files, parse_file
from .markdown_converter import MarkdownConverter, code_macro, has_mermaid
from .mermaid_processor import MermaidProcessor, validate_content
from .models import ConversionResult, DiagramResult, Document

__all__ = [
    'ConversionResult',
    'DiagramResult',
    'Document',
    'MarkdownConverter',
    'MermaidProcessor',
    'code_macro',
    'extract_title',
    'find_markdown_files',
    'has_mermaid',
    'parse_file',
    'validate_content',
]
