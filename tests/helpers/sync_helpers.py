"""Helpers for building local Markdown trees and converting without Pandoc."""

import os

from conflux.content_converter.models import ConversionResult


class FakeConverter:
    """Converter that wraps Markdown in a <pre> block without calling Pandoc."""

    def __init__(self):
        self.calls = []

    def convert(self, content, page_id=None):
        return self.convert_document(content, page_id).xhtml

    def convert_document(self, content, page_id=None):
        self.calls.append((content, page_id))
        return ConversionResult(xhtml=f"<pre>{content}</pre>")


def write_file(root, relative_path, content):
    """Write content to root/relative_path, creating directories."""
    path = os.path.join(str(root), *relative_path.split('/'))
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)
    return path
