"""Sync command orchestration for CLI.

SyncCommand resolves the configuration for a run (config file, project
selection and command-line overrides), builds a Syncer and translates the
outcome into an exit code.
"""

import logging
from typing import Callable, Optional

from conflux.cli.models import ExitCode
from conflux.cli.output import OutputHandler
from conflux.config.config_loader import ConfigLoader
from conflux.config.errors import ConfigError, ConfigNotFoundError
from conflux.config.models import ConfluxConfig
from conflux.confluence_client.errors import (
    APIAccessError,
    APIUnreachableError,
    InvalidCredentialsError,
    SyncError,
)
from conflux.sync.errors import DiagramDependencyError, MetadataError
from conflux.sync.metadata import SyncMetadata
from conflux.sync.syncer import Syncer

logger = logging.getLogger(__name__)


def resolve_config(
    config_path: Optional[str] = None,
    project: Optional[str] = None,
    space: Optional[str] = None,
    docs: Optional[str] = None,
) -> ConfluxConfig:
    """Load the configuration and apply project selection and overrides.

    A missing default config file is tolerated so that credentials and
    the space key can come from the environment and the command line.
    An explicitly named config file must exist.

    Raises:
        ConfigNotFoundError: If an explicit config path does not exist
        ConfigError: If the config is invalid or names an unknown project
    """
    try:
        config = ConfigLoader.load(config_path)
    except ConfigNotFoundError:
        if config_path:
            raise
        logger.info("No configuration file found, using defaults and environment")
        config = ConfluxConfig()

    if project:
        config.select_project(project)
    elif not config.confluence.space_key and config.apply_default_project():
        logger.info(f"Using default project '{config.active_project}'")

    if space:
        config.confluence.space_key = space
    if docs:
        config.local.markdown_dir = docs

    if not config.confluence.space_key:
        raise ConfigError(
            "space key is required: provide it in the config file, "
            "select a project or use --space",
            'confluence.space_key'
        )
    return config


class SyncCommand:
    """Runs a sync from the command line.

    Example:
        >>> output = OutputHandler(verbosity=1)
        >>> sync_cmd = SyncCommand(output_handler=output)
        >>> exit_code = sync_cmd.run(dry_run=True)
        >>> sys.exit(exit_code)
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        output_handler: Optional[OutputHandler] = None,
        syncer_factory: Optional[Callable[..., Syncer]] = None,
    ):
        """Initialize sync command with dependencies.

        Args:
            config_path: Path to the configuration file (config.yaml when omitted)
            output_handler: OutputHandler for terminal output (optional)
            syncer_factory: Callable(config, presenter) returning a Syncer,
                Syncer.from_config by default
        """
        self.config_path = config_path
        self.output_handler = output_handler or OutputHandler()
        self.syncer_factory = syncer_factory or Syncer.from_config

    def load_config(
        self,
        project: Optional[str] = None,
        space: Optional[str] = None,
        docs: Optional[str] = None,
    ) -> ConfluxConfig:
        """Resolve the configuration for this command's config file."""
        return resolve_config(self.config_path, project, space, docs)

    def run(
        self,
        dry_run: bool = False,
        force: bool = False,
        single_file: Optional[str] = None,
        use_cache: bool = True,
        project: Optional[str] = None,
        space: Optional[str] = None,
        docs: Optional[str] = None,
    ) -> ExitCode:
        """Execute the sync workflow.

        Args:
            dry_run: Preview only, no remote writes
            force: Sync without asking for confirmation
            single_file: Sync only this Markdown file
            use_cache: Load the existing sync cache
            project: Project name to select from the config
            space: Space key overriding the config
            docs: Markdown directory overriding the config

        Returns:
            ExitCode describing the outcome
        """
        output = self.output_handler
        try:
            config = self.load_config(project, space, docs)
            syncer = self.syncer_factory(config, presenter=output)
            summary = syncer.sync(
                dry_run=dry_run,
                force=force,
                single_file=single_file,
                use_cache=use_cache,
            )

            if summary.error_count:
                output.warning(
                    f"Sync finished with {summary.error_count} failed page(s)"
                )
                return ExitCode.PARTIAL_FAILURE
            return ExitCode.SUCCESS

        except InvalidCredentialsError as e:
            output.error(f"Authentication failed: {e}")
            output.info(
                "Set base_url, username and api_token in the config file or "
                "CONFLUENCE_URL, CONFLUENCE_USER and CONFLUENCE_API_TOKEN"
            )
            return ExitCode.AUTH_ERROR

        except (APIUnreachableError, APIAccessError) as e:
            output.error(f"Network error: {e}")
            return ExitCode.NETWORK_ERROR

        except ConfigError as e:
            output.error(str(e))
            return ExitCode.GENERAL_ERROR

        except MetadataError as e:
            output.error(str(e))
            output.info("Run 'conflux clear-cache' to rebuild the sync cache")
            return ExitCode.GENERAL_ERROR

        except DiagramDependencyError as e:
            output.error(str(e))
            output.info("Install it with: npm install -g @mermaid-js/mermaid-cli")
            return ExitCode.GENERAL_ERROR

        except SyncError as e:
            output.error(f"Sync failed: {e}")
            return ExitCode.GENERAL_ERROR

        except Exception as e:
            logger.exception("Unexpected error during sync")
            output.error(f"Unexpected error: {e}")
            return ExitCode.GENERAL_ERROR

    def clear_cache(
        self,
        project: Optional[str] = None,
        space: Optional[str] = None,
        docs: Optional[str] = None,
    ) -> ExitCode:
        """Empty the sync cache of the configured sync root."""
        output = self.output_handler
        try:
            config = self.load_config(project, space, docs)
            metadata = SyncMetadata(config.local.markdown_dir, config.confluence.space_key)
            metadata.clear()
        except SyncError as e:
            output.error(str(e))
            return ExitCode.GENERAL_ERROR

        output.success(f"Cleared sync cache in {metadata.cache_file}")
        return ExitCode.SUCCESS
