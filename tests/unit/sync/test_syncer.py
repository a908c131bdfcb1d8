"""Unit tests for sync.syncer module.

These tests drive whole runs against the in-memory Confluence client with a
converter that does not need Pandoc.
"""

import os
from unittest.mock import Mock, patch

import pytest

from conflux.config.models import MermaidConfig
from conflux.confluence_client.api_wrapper import APIWrapper
from conflux.confluence_client.errors import ConversionError, InvalidCredentialsError
from conflux.sync.errors import DiagramDependencyError, MetadataError, SyncEngineError
from conflux.sync.metadata import SyncMetadata
from conflux.sync.models import SyncStatus, UserChoice
from conflux.sync.syncer import Syncer
from tests.helpers import write_file


@pytest.fixture
def project(docs_root):
    """README.md at the root and docs/guide.md one level down."""
    write_file(docs_root, "README.md", "# Project\n\nWelcome.\n")
    write_file(docs_root, "docs/guide.md", "# Guide\n\nSteps.\n")
    return docs_root


def _presenter(action="continue", selected=None):
    presenter = Mock()
    presenter.confirm_sync.return_value = UserChoice(
        action=action, selected_paths=set(selected or [])
    )
    return presenter


def _syncer(client, config, converter, presenter=None):
    return Syncer(client, config, converter=converter, presenter=presenter or _presenter())


class TestEndToEnd:
    """Test cases for complete sync runs."""

    def test_first_sync_creates_hierarchy(self, client, sync_config, converter, project):
        """Directory page first, README at the root, guide under the directory page."""
        summary = _syncer(client, sync_config, converter).sync(force=True)

        docs = client.page_titled("Docs")
        readme = client.page_titled("Project")
        guide = client.page_titled("Guide")
        assert docs.parent_id is None
        assert readme.parent_id is None
        assert guide.parent_id == docs.id
        assert summary.new_count == 3
        assert summary.synced_count == 3
        assert summary.error_count == 0

    def test_directory_created_before_its_files(self, client, sync_config, converter, project):
        _syncer(client, sync_config, converter).sync(force=True)

        created = [
            args[1] for name, args in client.calls
            if name in ('create_page', 'create_page_with_parent')
        ]
        assert created.index("Docs") < created.index("Guide")

    def test_cache_written_with_page_ids(self, client, sync_config, converter, project):
        _syncer(client, sync_config, converter).sync(force=True)

        metadata = SyncMetadata(str(project), "DOCS")
        metadata.load()
        assert metadata.page_id_for("README.md") == client.page_titled("Project").id
        assert metadata.page_id_for("docs/guide.md") == client.page_titled("Guide").id
        assert metadata.directory_page_id("docs") == client.page_titled("Docs").id

    def test_second_forced_run_issues_no_writes(self, client, sync_config, converter, project):
        """An unchanged tree synced again must not touch Confluence pages."""
        _syncer(client, sync_config, converter).sync(force=True)
        client.reset_calls()

        summary = _syncer(client, sync_config, converter).sync(force=True)

        assert client.write_count == 0
        assert summary.up_to_date_count == 3
        assert summary.pending_count == 0

    def test_dry_run_after_sync_reports_nothing_pending(
        self, client, sync_config, converter, project
    ):
        _syncer(client, sync_config, converter).sync(force=True)

        summary = _syncer(client, sync_config, converter).sync(dry_run=True)

        assert summary.new_count == 0
        assert summary.changed_count == 0
        assert summary.up_to_date_count == 3

    def test_edited_file_updates_its_page_and_directory(
        self, client, sync_config, converter, project
    ):
        """An edited file is updated in place and its directory page refreshed."""
        _syncer(client, sync_config, converter).sync(force=True)
        client.reset_calls()
        write_file(project, "docs/guide.md", "# Guide\n\nNew steps.\n")

        summary = _syncer(client, sync_config, converter).sync(force=True)

        guide = client.page_titled("Guide")
        docs = client.page_titled("Docs")
        assert client.calls_to('update_page') == [(docs.id, "Docs"), (guide.id, "Guide")]
        assert client.calls_to('create_page') == []
        assert client.calls_to('create_page_with_parent') == []
        assert client.page_titled("Project").version == 1
        assert summary.changed_count == 2
        assert summary.synced_count == 2
        assert summary.skipped_count == 1

    def test_new_file_changes_directory(self, client, sync_config, converter, project):
        """Adding a file marks its directory as changed and creates the page under it."""
        _syncer(client, sync_config, converter).sync(force=True)
        write_file(project, "docs/faq.md", "# FAQ\n")

        summary = _syncer(client, sync_config, converter).sync(force=True)

        assert summary.new_count == 1
        assert summary.changed_count == 1
        assert client.page_titled("FAQ").parent_id == client.page_titled("Docs").id

    def test_title_changed_in_confluence_is_kept(self, client, sync_config, converter, project):
        """A page renamed in Confluence is neither recreated nor renamed back."""
        _syncer(client, sync_config, converter).sync(force=True)
        guide = client.page_titled("Guide")
        client.pages[guide.id].title = "Guide v2"
        client.reset_calls()

        summary = _syncer(client, sync_config, converter).sync(force=True)

        assert client.pages[guide.id].title == "Guide v2"
        assert client.write_count == 0
        assert summary.pending_count == 0
        assert [d.kind for d in summary.detections] == ["remote_rename"]

    def test_edit_after_confluence_rename_keeps_title(
        self, client, sync_config, converter, project
    ):
        _syncer(client, sync_config, converter).sync(force=True)
        guide = client.page_titled("Guide")
        client.pages[guide.id].title = "Guide v2"
        write_file(project, "docs/guide.md", "# Guide\n\nNew steps.\n")

        _syncer(client, sync_config, converter).sync(force=True)

        assert client.pages[guide.id].title == "Guide v2"
        assert (guide.id, "Guide") not in client.calls_to('update_page')
        assert client.page_titled("Guide") is None

        client.reset_calls()
        summary = _syncer(client, sync_config, converter).sync(force=True)

        assert client.write_count == 0
        assert summary.pending_count == 0

    def test_forbidden_page_replaced_once(self, client, sync_config, converter, project):
        _syncer(client, sync_config, converter).sync(force=True)
        guide = client.page_titled("Guide")
        client.forbidden.add(guide.id)
        write_file(project, "docs/guide.md", "# Guide\n\nEdited.\n")

        summary = _syncer(client, sync_config, converter).sync(force=True)

        metadata = SyncMetadata(str(project), "DOCS")
        metadata.load()
        replacement_id = metadata.page_id_for("docs/guide.md")
        assert replacement_id != guide.id
        assert client.pages[replacement_id].title.startswith("Guide (replaced ")
        assert summary.error_count == 0

        client.reset_calls()
        summary = _syncer(client, sync_config, converter).sync(force=True)

        assert client.write_count == 0
        assert summary.pending_count == 0


class TestDryRun:
    """Test cases for dry runs."""

    def test_dry_run_writes_nothing(self, client, sync_config, converter, project):
        presenter = _presenter()

        summary = _syncer(client, sync_config, converter, presenter).sync(dry_run=True)

        assert summary.dry_run is True
        assert summary.new_count == 3
        assert client.write_count == 0
        assert not os.path.exists(SyncMetadata(str(project), "DOCS").cache_file)
        presenter.confirm_sync.assert_not_called()

    def test_dry_run_shows_preview_tree(self, client, sync_config, converter, project):
        presenter = _presenter()

        _syncer(client, sync_config, converter, presenter).sync(dry_run=True)

        space_key, tree, summary, dry_run = presenter.show_preview.call_args[0]
        assert space_key == "DOCS"
        assert dry_run is True
        roots = {node.path: node for node in tree}
        assert [child.path for child in roots["docs"].children] == ["docs/guide.md"]

    def test_dry_run_skips_dependency_check(self, client, sync_config, converter, project):
        sync_config.mermaid = MermaidConfig(mode="convert-to-image")
        processor = Mock()
        processor.check_dependencies.side_effect = ConversionError("mmdc missing")
        syncer = Syncer(client, sync_config, converter=converter, processor=processor)

        syncer.sync(dry_run=True)

        processor.check_dependencies.assert_not_called()


class TestConfirmation:
    """Test cases for the confirmation prompt."""

    def test_cancel_writes_nothing(self, client, sync_config, converter, project):
        presenter = _presenter(action="cancel")

        summary = _syncer(client, sync_config, converter, presenter).sync()

        assert summary.cancelled is True
        assert client.write_count == 0

    def test_selected_files_only(self, client, sync_config, converter, project):
        """Unselected files are skipped; directory pages are still processed."""
        presenter = _presenter(action="select", selected=["README.md"])

        summary = _syncer(client, sync_config, converter, presenter).sync()

        assert client.page_titled("Project") is not None
        assert client.page_titled("Docs") is not None
        assert client.page_titled("Guide") is None
        assert summary.synced_count == 2
        assert summary.skipped_count == 1

    def test_nothing_pending_skips_prompt(self, client, sync_config, converter, project):
        _syncer(client, sync_config, converter).sync(force=True)
        presenter = _presenter()

        _syncer(client, sync_config, converter, presenter).sync()

        presenter.confirm_sync.assert_not_called()
        presenter.print.assert_called_with("All pages are up-to-date. Nothing to sync.")

    def test_without_presenter_unforced_sync_is_declined(
        self, client, sync_config, converter, project
    ):
        syncer = Syncer(client, sync_config, converter=converter)

        summary = syncer.sync()

        assert summary.cancelled is True
        assert client.write_count == 0


class TestFailures:
    """Test cases for fatal and per-entry failures."""

    def test_missing_mermaid_cli_fails_before_writes(
        self, client, sync_config, converter, project
    ):
        sync_config.mermaid = MermaidConfig(mode="convert-to-image")
        processor = Mock()
        processor.check_dependencies.side_effect = ConversionError("mmdc missing")
        syncer = Syncer(client, sync_config, converter=converter, processor=processor)

        with pytest.raises(DiagramDependencyError):
            syncer.sync(force=True)

        assert client.calls == []

    def test_corrupt_cache_is_fatal(self, client, sync_config, converter, project):
        metadata = SyncMetadata(str(project), "DOCS")
        os.makedirs(metadata.cache_dir)
        with open(metadata.cache_file, 'w', encoding='utf-8') as f:
            f.write("garbage")

        with pytest.raises(MetadataError):
            _syncer(client, sync_config, converter).sync(force=True)

        assert client.write_count == 0

    def test_no_cache_ignores_corrupt_cache(self, client, sync_config, converter, project):
        metadata = SyncMetadata(str(project), "DOCS")
        os.makedirs(metadata.cache_dir)
        with open(metadata.cache_file, 'w', encoding='utf-8') as f:
            f.write("garbage")

        summary = _syncer(client, sync_config, converter).sync(force=True, use_cache=False)

        assert summary.synced_count == 3

    def test_failed_directory_fails_its_files(self, client, sync_config, converter, project):
        """Other entries are still attempted when a directory page fails."""
        client.reserved_titles.add("Docs")

        summary = _syncer(client, sync_config, converter).sync(force=True)

        assert summary.error_count == 2
        assert set(summary.errors) == {"docs", "docs/guide.md"}
        assert client.page_titled("Project") is not None

    def test_failed_file_counted_and_run_continues(
        self, client, sync_config, converter, project
    ):
        original = client.create_page_with_parent

        def failing(space_key, title, content, parent_id):
            if title == "Guide":
                raise ConversionError("bad content")
            return original(space_key, title, content, parent_id)

        client.create_page_with_parent = failing

        summary = _syncer(client, sync_config, converter).sync(force=True)

        assert summary.errors.keys() == {"docs/guide.md"}
        assert summary.synced_count == 2

    def test_undecodable_file_reported_as_error(self, client, sync_config, converter, docs_root):
        """A file that cannot be decoded is an error of the run, not a silent skip."""
        write_file(docs_root, "README.md", "# Project\n")
        (docs_root / "bad.md").write_bytes(b"\xff\xfe")

        summary = _syncer(client, sync_config, converter).sync(force=True)

        assert summary.error_count == 1
        assert list(summary.errors) == ["bad.md"]
        assert summary.synced_count == 1
        assert client.page_titled("Project") is not None

    def test_unreadable_synced_file_not_reported_orphaned(
        self, client, sync_config, converter, project
    ):
        _syncer(client, sync_config, converter).sync(force=True)
        (project / "README.md").write_bytes(b"\xff\xfe")

        summary = _syncer(client, sync_config, converter).sync(dry_run=True)

        assert "README.md" in summary.errors
        assert [d for d in summary.detections if d.kind == "orphaned"] == []


class TestSingleFile:
    """Test cases for single-file mode."""

    def test_single_file_synced_with_its_directories(
        self, client, sync_config, converter, project
    ):
        path = os.path.join(str(project), "docs", "guide.md")

        summary = _syncer(client, sync_config, converter).sync(force=True, single_file=path)

        assert client.page_titled("Guide") is not None
        assert client.page_titled("Docs") is not None
        assert client.page_titled("Project") is None
        assert summary.total_count == 2

    def test_unchanged_single_file_writes_nothing(
        self, client, sync_config, converter, project
    ):
        write_file(project, "docs/faq.md", "# FAQ\n")
        _syncer(client, sync_config, converter).sync(force=True)
        client.reset_calls()
        path = os.path.join(str(project), "docs", "faq.md")

        summary = _syncer(client, sync_config, converter).sync(force=True, single_file=path)

        assert client.write_count == 0
        assert summary.pending_count == 0

    def test_single_file_keeps_directory_cache_for_whole_tree(
        self, client, sync_config, converter, project
    ):
        """A single-file run must not leave its directory looking changed to a full run."""
        write_file(project, "docs/faq.md", "# FAQ\n")
        _syncer(client, sync_config, converter).sync(force=True)
        write_file(project, "docs/faq.md", "# FAQ\n\nAnswers.\n")
        path = os.path.join(str(project), "docs", "faq.md")
        _syncer(client, sync_config, converter).sync(force=True, single_file=path)
        client.reset_calls()

        summary = _syncer(client, sync_config, converter).sync(force=True)

        assert client.write_count == 0
        assert summary.pending_count == 0

    def test_single_file_outside_root_rejected(
        self, client, sync_config, converter, project, tmp_path
    ):
        outside = write_file(tmp_path, "elsewhere/other.md", "# Other\n")

        with pytest.raises(SyncEngineError):
            _syncer(client, sync_config, converter).sync(force=True, single_file=outside)

    def test_single_file_must_be_markdown(self, client, sync_config, converter, project):
        path = write_file(project, "notes.txt", "text")

        with pytest.raises(SyncEngineError):
            _syncer(client, sync_config, converter).sync(force=True, single_file=path)


class TestAnalyze:
    """Test cases for Syncer.analyze."""

    def test_entries_in_processing_order(self, client, sync_config, converter, project):
        syncer = _syncer(client, sync_config, converter)
        files = [
            os.path.join(str(project), "README.md"),
            os.path.join(str(project), "docs", "guide.md"),
        ]

        entries = syncer.analyze(files)

        assert [e.path for e in entries] == ["docs", "README.md", "docs/guide.md"]
        assert all(e.status == SyncStatus.NEW for e in entries)
        assert entries[2].parent_path == "docs"


class TestFromConfig:
    """Test cases for Syncer.from_config."""

    def test_builds_api_wrapper(self, sync_config):
        syncer = Syncer.from_config(sync_config)

        assert isinstance(syncer.client, APIWrapper)
        assert syncer.space_key == "DOCS"

    @patch('conflux.confluence_client.auth.load_dotenv')
    def test_missing_credentials_fail_fast(self, mock_load_dotenv, sync_config, monkeypatch):
        for name in ('CONFLUENCE_URL', 'CONFLUENCE_USER', 'CONFLUENCE_API_TOKEN'):
            monkeypatch.delenv(name, raising=False)
        sync_config.confluence.api_token = ""

        with pytest.raises(InvalidCredentialsError):
            Syncer.from_config(sync_config)
