"""Test helpers shared by the unit tests."""

from .mock_confluence import InMemoryConfluenceClient
from .sync_helpers import FakeConverter, write_file

__all__ = ['InMemoryConfluenceClient', 'FakeConverter', 'write_file']
