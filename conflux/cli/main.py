"""Main CLI entry point for the conflux command.

This module provides the Typer application that serves as the entry point
for the conflux command-line tool: sync, clear-cache, projects, list-pages,
get-page and version.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from conflux import __version__
from conflux.cli.models import ExitCode
from conflux.cli.output import OutputHandler
from conflux.cli.page_command import PageCommand
from conflux.cli.sync_command import SyncCommand
from conflux.config.config_loader import ConfigLoader
from conflux.config.errors import ConfigError

app = typer.Typer(
    name="conflux",
    help="""Sync a local Markdown tree into a Confluence space.

QUICK START:
  conflux sync --space DOCS --docs ./docs      # Preview, confirm and sync
  conflux sync --dry-run                        # Preview only
  conflux sync --force                          # Sync without prompting
  conflux projects                              # List configured projects
  conflux list-pages --space DOCS               # Show the pages of a space""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

APP_LOGGER = "conflux"


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'conflux' namespace logger to avoid affecting
    third-party libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(level)
    # Repeated invocations in one process must not stack handlers
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)

    log_format = "%(asctime)s [%(levelname)8s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"conflux_{timestamp}.log"

        file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_formatter = logging.Formatter(file_format, datefmt=date_format)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


@app.command()
def sync(
    docs: Optional[str] = typer.Option(
        None,
        "--docs",
        "-d",
        help="Path to the local Markdown directory (overrides config)",
    ),
    space: Optional[str] = typer.Option(
        None,
        "--space",
        "-s",
        help="Confluence space key (overrides config)",
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: config.yaml, then ~/.config/conflux/config.yaml)",
    ),
    project: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project from the configuration file to sync",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Preview changes without applying them",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Sync without asking for confirmation",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Ignore the existing sync cache and classify everything from scratch",
    ),
    file: Optional[str] = typer.Option(
        None,
        "--file",
        help="Sync only this Markdown file",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
) -> None:
    """Sync local Markdown files to Confluence pages.

    \b
    EXAMPLES:
      conflux sync                               # Sync using config.yaml
      conflux sync -d ./documentation            # Sync a specific directory
      conflux sync -d ./docs --dry-run           # Preview only
      conflux sync -s DOCS -v 1                  # Override the space, log progress
      conflux sync -p handbook --force           # Sync a configured project
      conflux sync --file docs/guide.md          # Sync a single file
    """
    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    sync_cmd = SyncCommand(config_path=config, output_handler=output)
    exit_code = sync_cmd.run(
        dry_run=dry_run,
        force=force,
        single_file=file,
        use_cache=not no_cache,
        project=project,
        space=space,
        docs=docs,
    )
    raise typer.Exit(exit_code)


@app.command("clear-cache")
def clear_cache(
    docs: Optional[str] = typer.Option(
        None, "--docs", "-d", help="Path to the local Markdown directory"
    ),
    space: Optional[str] = typer.Option(
        None, "--space", "-s", help="Confluence space key"
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file"
    ),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Project from the configuration file"
    ),
    verbosity: int = typer.Option(
        0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug"
    ),
) -> None:
    """Forget all recorded sync state for the Markdown directory."""
    _configure_logging(verbosity)
    output = OutputHandler(verbosity=verbosity)
    sync_cmd = SyncCommand(config_path=config, output_handler=output)
    raise typer.Exit(sync_cmd.clear_cache(project=project, space=space, docs=docs))


@app.command()
def projects(
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file"
    ),
    show_exclude: bool = typer.Option(
        False, "--show-exclude", help="Show exclude patterns for each project"
    ),
) -> None:
    """List projects defined in the configuration file.

    The first project is the default when --project is not given.
    """
    output = OutputHandler()
    try:
        loaded = ConfigLoader.load(config)
    except ConfigError as e:
        output.error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not loaded.projects:
        output.print("No projects defined (using single-project configuration).")
        raise typer.Exit(ExitCode.SUCCESS)

    default_name = loaded.projects[0].name
    output.print("Configured Projects:\n")
    for item in sorted(loaded.projects, key=lambda p: p.name):
        marker = " (default)" if item.name == default_name else ""
        output.print(f"- {item.name}{marker}")
        output.print(f"  space: {item.space_key}")
        output.print(f"  docs:  {item.local.markdown_dir}")
        if show_exclude and item.local.exclude:
            output.print(f"  exclude: {', '.join(item.local.exclude)}")


@app.command("list-pages")
def list_pages(
    space: Optional[str] = typer.Option(
        None, "--space", "-s", help="Confluence space key (can be inferred from --project)"
    ),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Project from the configuration file"
    ),
    parent: Optional[str] = typer.Option(
        None, "--parent", help="Title of the page to start from (optional)"
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file"
    ),
    verbosity: int = typer.Option(
        0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug"
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable colored output"
    ),
) -> None:
    """List the page hierarchy of a Confluence space.

    \b
    EXAMPLES:
      conflux list-pages -s DOCS                  # Whole space
      conflux list-pages -s DOCS --parent "API"   # Pages below a page
    """
    _configure_logging(verbosity)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)
    page_cmd = PageCommand(config_path=config, output_handler=output)
    raise typer.Exit(page_cmd.list_pages(space=space, project=project, parent=parent))


@app.command("get-page")
def get_page(
    page: str = typer.Option(
        ..., "--page", help="Numeric page ID or page title"
    ),
    space: Optional[str] = typer.Option(
        None, "--space", "-s", help="Confluence space key (can be inferred from --project)"
    ),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Project from the configuration file"
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file"
    ),
    verbosity: int = typer.Option(
        0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug"
    ),
) -> None:
    """Print the storage-format content of a Confluence page.

    \b
    EXAMPLES:
      conflux get-page -s DOCS --page 123456789
      conflux get-page -s DOCS --page "My Page Title"
    """
    _configure_logging(verbosity)
    output = OutputHandler(verbosity=verbosity)
    page_cmd = PageCommand(config_path=config, output_handler=output)
    raise typer.Exit(page_cmd.get_page(page, space=space, project=project))


@app.command()
def version() -> None:
    """Show the conflux version."""
    typer.echo(f"conflux version {__version__}")


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


if __name__ == "__main__":
    main()
