"""Unit tests for sync.rename_detection module."""

import pytest

from conflux.sync.metadata import SyncMetadata
from conflux.sync.models import PageSyncInfo, RenameDetection, SyncStatus
from conflux.sync.rename_detection import (
    CONFLICT,
    CRITICAL,
    LOCAL_RENAME,
    ORPHANED,
    REMOTE_RENAME,
    WARNING,
    DivergenceDetector,
    sort_detections,
)
from tests.helpers import write_file


@pytest.fixture
def metadata(docs_root):
    write_file(docs_root, "guide.md", "# Guide\n")
    return SyncMetadata(str(docs_root), "DOCS")


def _entry(path, title, is_directory=False):
    return PageSyncInfo(
        title=title, path=path, status=SyncStatus.UP_TO_DATE, is_directory=is_directory
    )


class TestDetect:
    """Test cases for DivergenceDetector.detect."""

    def test_matching_titles_report_nothing(self, client, metadata):
        page = client.add_page("Guide")
        metadata.update_file("guide.md", page.id, "Guide")

        detections = DivergenceDetector(client, metadata).detect([_entry("guide.md", "Guide")])

        assert detections == []

    def test_remote_rename(self, client, metadata):
        """Cached title equals local title, Confluence title differs."""
        page = client.add_page("Guide v2")
        metadata.update_file("guide.md", page.id, "Guide")

        detections = DivergenceDetector(client, metadata).detect([_entry("guide.md", "Guide")])

        assert len(detections) == 1
        assert detections[0].kind == REMOTE_RENAME
        assert detections[0].actual_title == "Guide v2"
        assert detections[0].severity == WARNING

    def test_local_rename(self, client, metadata):
        """Cached title equals Confluence title, local title differs."""
        page = client.add_page("Guide")
        metadata.update_file("guide.md", page.id, "Guide")

        detections = DivergenceDetector(client, metadata).detect(
            [_entry("guide.md", "User Guide")]
        )

        assert detections[0].kind == LOCAL_RENAME
        assert detections[0].expected_title == "User Guide"

    def test_three_way_conflict(self, client, metadata):
        page = client.add_page("Remote")
        metadata.update_file("guide.md", page.id, "Cached")

        detections = DivergenceDetector(client, metadata).detect([_entry("guide.md", "Local")])

        assert detections[0].kind == CONFLICT

    def test_replacement_title_is_not_a_rename(self, client, metadata):
        page = client.add_page("Guide (replaced 2024-01-15 10:30)")
        metadata.update_file("guide.md", page.id, "Guide (replaced 2024-01-15 10:30)")

        detections = DivergenceDetector(client, metadata).detect([_entry("guide.md", "Guide")])

        assert detections == []

    def test_renamed_directory_with_children_is_critical(self, client, metadata):
        directory = client.add_page("Docs Renamed")
        client.add_page("Child", parent_id=directory.id)
        metadata.update_directory("docs", directory.id, "Docs", [])

        detections = DivergenceDetector(client, metadata).detect(
            [_entry("docs", "Docs", is_directory=True)]
        )

        assert detections[0].entity_type == "directory"
        assert detections[0].severity == CRITICAL

    def test_missing_remote_page_is_skipped(self, client, metadata):
        metadata.update_file("guide.md", "999", "Guide")

        detections = DivergenceDetector(client, metadata).detect([_entry("guide.md", "Guide")])

        assert detections == []

    def test_orphaned_file_reported(self, client, metadata):
        """A cached file missing from the local tree is reported as a warning."""
        page = client.add_page("Guide")
        metadata.update_file("guide.md", page.id, "Guide")

        detections = DivergenceDetector(client, metadata).detect([])

        assert detections[0].kind == ORPHANED
        assert detections[0].local_path == "guide.md"
        assert detections[0].severity == WARNING

    def test_orphaned_directory_with_children_is_critical(self, client, metadata):
        directory = client.add_page("Docs")
        client.add_page("Child", parent_id=directory.id)
        metadata.update_directory("docs", directory.id, "Docs", [])

        detections = DivergenceDetector(client, metadata).detect([])

        assert detections[0].kind == ORPHANED
        assert detections[0].severity == CRITICAL

    def test_orphan_check_can_be_disabled(self, client, metadata):
        page = client.add_page("Guide")
        metadata.update_file("guide.md", page.id, "Guide")

        detections = DivergenceDetector(client, metadata).detect([], check_orphans=False)

        assert detections == []

    def test_unreadable_file_is_not_orphaned(self, client, metadata):
        """A file that exists but could not be analyzed still exists locally."""
        page = client.add_page("Guide")
        metadata.update_file("guide.md", page.id, "Guide")

        detections = DivergenceDetector(client, metadata).detect([], unreadable={"guide.md"})

        assert detections == []

    def test_detection_never_writes(self, client, metadata):
        page = client.add_page("Guide v2")
        metadata.update_file("guide.md", page.id, "Guide")

        DivergenceDetector(client, metadata).detect([_entry("guide.md", "Guide")])

        assert client.write_count == 0
        assert metadata.get_file("guide.md").title == "Guide"


class TestSortDetections:
    """Test cases for sort_detections."""

    def test_critical_first_then_by_path(self):
        def detection(path, severity):
            return RenameDetection(
                entity_type="page", kind=ORPHANED, local_path=path, expected_title="",
                actual_title="", cached_title="", page_id="1", severity=severity,
            )

        ordered = sort_detections([
            detection("b.md", WARNING),
            detection("z", CRITICAL),
            detection("a.md", WARNING),
        ])

        assert [d.local_path for d in ordered] == ["z", "a.md", "b.md"]
