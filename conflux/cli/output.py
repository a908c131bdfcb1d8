"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output.
It also acts as the presenter for sync runs: it renders the preview tree,
rename detections and results, and asks the user to confirm a sync.
"""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.tree import Tree

from conflux.confluence_client.models import Page, PageInfo
from conflux.sync.models import (
    PageSyncInfo,
    RenameDetection,
    SyncStatus,
    SyncSummary,
    UserChoice,
)

STATUS_ICONS = {
    SyncStatus.NEW: "🆕",
    SyncStatus.CHANGED: "📝",
    SyncStatus.UP_TO_DATE: "✅",
}

STATUS_STYLES = {
    SyncStatus.NEW: "green",
    SyncStatus.CHANGED: "yellow",
    SyncStatus.UP_TO_DATE: "dim",
}


class OutputHandler:
    """Handles all terminal output using Rich library.

    Provides methods for displaying messages, sync previews and
    summaries with color coding and verbosity level control.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Operation completed")
    """

    def __init__(
        self,
        verbosity: int = 0,
        no_color: bool = False,
        console: Optional[Console] = None,
    ):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
            console: Console to write to (a new one is created when omitted)
        """
        self.verbosity = verbosity
        self.console = console or Console(no_color=no_color, highlight=False)

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message)

    def print(self, message: str) -> None:
        self.console.print(message)

    def show_preview(
        self,
        space_key: str,
        tree: List[PageSyncInfo],
        summary: SyncSummary,
        dry_run: bool,
    ) -> None:
        """Display the page tree of a run with per-entry status and counts.

        Args:
            space_key: Target Confluence space
            tree: Root entries as built by build_page_tree
            summary: Classification counts for the run
            dry_run: True when no writes will follow
        """
        if dry_run:
            heading = f"🔍 Dry Run - Space '{escape(space_key)}':"
        else:
            heading = f"🏢 Space '{escape(space_key)}' - Sync Preview:"

        root = Tree(f"[bold]{heading}[/bold]", guide_style="dim")
        for node in tree:
            self._add_node(root, node)
        self.console.print(root)

        self.console.print("\n[bold]📊 Summary:[/bold]")
        self.console.print(f"   🆕 New pages: {summary.new_count}")
        self.console.print(f"   📝 Changed pages: {summary.changed_count}")
        self.console.print(f"   ✅ Up-to-date pages: {summary.up_to_date_count}")
        self.console.print(f"   📄 Total pages: {summary.total_count}")

        if dry_run:
            self.console.print("\n💡 This is a dry run. No changes will be made.")
            self.console.print("   Run without --dry-run to perform the actual sync.")

    def _add_node(self, parent: Tree, node: PageSyncInfo) -> None:
        style = STATUS_STYLES.get(node.status, "")
        status = f"[{style}]({node.status.value})[/{style}]" if style else f"({node.status.value})"
        if node.is_directory:
            label = f"📁 {escape(node.title)} {status}"
        else:
            label = (
                f"{STATUS_ICONS.get(node.status, '📄')} {escape(node.title)} {status}"
                f"\n[dim]{escape(node.path)}[/dim]"
            )
        branch = parent.add(label)
        for child in node.children:
            self._add_node(branch, child)

    def show_page_tree(
        self,
        space_key: str,
        roots: List[PageInfo],
        parent_title: Optional[str] = None,
    ) -> None:
        """Display a Confluence page hierarchy.

        Pages with children get a folder icon, leaf pages a page icon.
        """
        heading = f"🏢 Space '{escape(space_key)}'"
        if parent_title:
            heading += f" → 📁 '{escape(parent_title)}'"
        root = Tree(f"[bold]{heading}:[/bold]", guide_style="dim")
        for page in roots:
            self._add_page(root, page)
        self.console.print(root)
        if not roots:
            self.console.print("No pages found.")

    def _add_page(self, parent: Tree, page: PageInfo) -> None:
        icon = "📁" if page.children else "📄"
        branch = parent.add(f"{icon} {escape(page.title)} [dim](ID: {page.id})[/dim]")
        for child in page.children:
            self._add_page(branch, child)

    def show_page(self, page: Page) -> None:
        """Print a page heading followed by its storage-format body."""
        self.console.print(f"[bold]# {escape(page.title)} (ID: {page.id})[/bold]\n")
        self.console.print(page.body, markup=False)

    def show_rename_detections(self, detections: List[RenameDetection]) -> None:
        """Display divergences between local titles, cached titles and Confluence.

        Args:
            detections: Detections sorted with critical entries first
        """
        if not detections:
            return

        self.console.print("\n[bold]🔍 Rename Detection Analysis:[/bold]")
        self.console.print("=" * 50)

        critical_count = 0
        warning_count = 0
        for detection in detections:
            kind = detection.kind.replace('_', ' ').title()
            if detection.is_critical:
                critical_count += 1
                self.console.print(
                    f"[red]🚨 CRITICAL #{critical_count}: "
                    f"{detection.entity_type.title()} {kind}[/red]"
                )
            else:
                warning_count += 1
                self.console.print(
                    f"[yellow]⚠ WARNING #{warning_count}: "
                    f"{detection.entity_type.title()} {kind}[/yellow]"
                )
            self.console.print(f"   📁 Local Path: {escape(detection.local_path)}")
            if detection.expected_title:
                self.console.print(f"   📝 Expected Title: {escape(detection.expected_title)}")
            self.console.print(f"   🌐 Confluence Title: {escape(detection.actual_title)}")
            if detection.cached_title:
                self.console.print(f"   💾 Cached Title: {escape(detection.cached_title)}")
            self.console.print(f"   🔗 Page ID: {detection.page_id}")
            if detection.recommendation:
                self.console.print(f"   💡 {escape(detection.recommendation)}")
            self.console.print()

        self.console.print(
            f"📊 {critical_count} critical issue(s), {warning_count} warning(s) detected"
        )
        if critical_count:
            self.console.print("\n[bold]🎯 Recommended Actions:[/bold]")
            self.console.print(
                "1. Review critical issues above, they may break parent-child relationships"
            )
            self.console.print("2. Consider fixing the page relationships in Confluence")
            self.console.print("3. Or run 'conflux clear-cache' and re-sync")

    def confirm_sync(self, entries: List[PageSyncInfo], summary: SyncSummary) -> UserChoice:
        """Ask whether to continue, cancel or pick specific files.

        Args:
            entries: All entries of the run in processing order
            summary: Classification counts for the run

        Returns:
            UserChoice with action 'continue', 'cancel' or 'select'
        """
        self.console.print(
            f"\n📊 {summary.changed_count} changed, {summary.new_count} new, "
            f"{summary.up_to_date_count} up-to-date"
        )
        answer = Prompt.ask(
            "Proceed with sync? (y = yes, n = cancel, s = select files)",
            choices=["y", "n", "s"],
            default="y",
            console=self.console,
        )
        if answer == "y":
            return UserChoice(action="continue")
        if answer == "s":
            return self._select_files(entries)
        return UserChoice(action="cancel")

    def _select_files(self, entries: List[PageSyncInfo]) -> UserChoice:
        pending = [e for e in entries if not e.is_directory and e.needs_sync]
        if not pending:
            self.warning("No files are waiting to be synced")
            return UserChoice(action="cancel")

        self.console.print("\n[bold]🎯 File Selection Mode[/bold]")
        self.console.print("─" * 80)
        for number, entry in enumerate(pending, start=1):
            icon = STATUS_ICONS.get(entry.status, "📄")
            self.console.print(f"{number:3d}. {icon} {escape(entry.title)}")
            self.console.print(f"     📂 {escape(entry.path)}")
        self.console.print("─" * 80)

        answer = Prompt.ask(
            "Enter the numbers of files to sync (comma-separated), 'a' for all, 'c' to cancel",
            console=self.console,
        ).strip().lower()
        if answer == "a":
            return UserChoice(action="continue")
        if answer in ("", "c"):
            return UserChoice(action="cancel")

        selected = set()
        for part in answer.split(','):
            part = part.strip()
            if part.isdigit() and 1 <= int(part) <= len(pending):
                selected.add(pending[int(part) - 1].path)
            elif part:
                self.warning(f"Ignoring invalid selection: {part}")

        if not selected:
            self.warning("No valid files selected")
            return UserChoice(action="cancel")
        return UserChoice(action="select", selected_paths=selected)

    def show_result(self, summary: SyncSummary) -> None:
        """Display the outcome of a completed sync.

        Args:
            summary: Summary with synced, skipped and error counts
        """
        self.console.print("\n[bold]✨ Sync completed![/bold]")
        self.console.print(f"  [green]✓[/green] Synced: {summary.synced_count} page(s)")
        self.console.print(f"  [dim]─[/dim] Skipped: {summary.skipped_count} page(s)")
        if summary.error_count:
            self.console.print(f"  [red]✗[/red] Errors: {summary.error_count} page(s)")
            for path, message in sorted(summary.errors.items()):
                self.console.print(f"      {escape(path)}: {escape(message)}", style="red")
