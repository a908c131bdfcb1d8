"""Root pytest configuration for all tests."""

import logging

import pytest

from conflux.config.models import ConfluenceSettings, ConfluxConfig, LocalSettings, MermaidConfig
from tests.helpers import FakeConverter, InMemoryConfluenceClient

# atlassian-python-api logs expected 404 lookups at ERROR level
logging.getLogger("atlassian").setLevel(logging.WARNING)


@pytest.fixture
def client():
    return InMemoryConfluenceClient(space_key="DOCS")


@pytest.fixture
def converter():
    return FakeConverter()


@pytest.fixture
def docs_root(tmp_path):
    root = tmp_path / "docs"
    root.mkdir()
    return root


@pytest.fixture
def sync_config(docs_root):
    """Config for the DOCS space rooted at docs_root, diagrams kept as code."""
    return ConfluxConfig(
        confluence=ConfluenceSettings(
            base_url="https://example.atlassian.net/wiki",
            username="me@example.com",
            api_token="token",
            space_key="DOCS",
        ),
        local=LocalSettings(markdown_dir=str(docs_root)),
        mermaid=MermaidConfig(mode="preserve"),
    )
