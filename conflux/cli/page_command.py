"""Read-only page commands for CLI: list-pages and get-page.

Both commands resolve the space the same way sync does (config file,
project selection, --space override) and never write to Confluence.
"""

import logging
from typing import Callable, Dict, List, Optional

from conflux.cli.models import ExitCode
from conflux.cli.output import OutputHandler
from conflux.cli.sync_command import resolve_config
from conflux.config.errors import ConfigError
from conflux.config.models import ConfluxConfig
from conflux.confluence_client.errors import (
    APIAccessError,
    APIUnreachableError,
    InvalidCredentialsError,
    PageNotFoundError,
    SyncError,
)
from conflux.confluence_client.interface import ConfluenceClient
from conflux.confluence_client.models import Page, PageInfo
from conflux.sync.syncer import client_from_config

logger = logging.getLogger(__name__)


def page_hierarchy(pages: List[Page], parent_id: Optional[str] = None) -> List[PageInfo]:
    """Nest a flat page listing into trees, siblings sorted by title.

    Pages whose parent is not in the listing are treated as roots.

    Args:
        pages: Every page of a space, with parent ids
        parent_id: Return only the subtree below this page
    """
    known = {page.id for page in pages}
    children: Dict[Optional[str], List[Page]] = {}
    for page in pages:
        parent = page.parent_id if page.parent_id in known else None
        children.setdefault(parent, []).append(page)

    def build(key: Optional[str]) -> List[PageInfo]:
        return [
            PageInfo(id=page.id, title=page.title, children=build(page.id))
            for page in sorted(children.get(key, []), key=lambda p: p.title.lower())
        ]

    return build(parent_id)


class PageCommand:
    """Browses pages of a Confluence space from the command line.

    Example:
        >>> page_cmd = PageCommand(output_handler=OutputHandler())
        >>> exit_code = page_cmd.list_pages(space="DOCS")
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        output_handler: Optional[OutputHandler] = None,
        client_factory: Optional[Callable[[ConfluxConfig], ConfluenceClient]] = None,
    ):
        self.config_path = config_path
        self.output_handler = output_handler or OutputHandler()
        self.client_factory = client_factory or client_from_config

    def list_pages(
        self,
        space: Optional[str] = None,
        project: Optional[str] = None,
        parent: Optional[str] = None,
    ) -> ExitCode:
        """Show the page hierarchy of a space, or below the page titled parent."""

        def _list() -> ExitCode:
            config = resolve_config(self.config_path, project, space)
            space_key = config.confluence.space_key
            client = self.client_factory(config)

            parent_id = None
            if parent:
                parent_page = client.find_page_by_title(space_key, parent)
                if parent_page is None:
                    self.output_handler.error(
                        f"Parent page '{parent}' not found in space '{space_key}'"
                    )
                    return ExitCode.GENERAL_ERROR
                parent_id = parent_page.id

            roots = page_hierarchy(client.get_space_pages(space_key), parent_id)
            self.output_handler.show_page_tree(space_key, roots, parent)
            return ExitCode.SUCCESS

        return self._execute(_list)

    def get_page(
        self,
        page: str,
        space: Optional[str] = None,
        project: Optional[str] = None,
    ) -> ExitCode:
        """Print a page's storage-format content, looked up by id or title.

        A numeric value is tried as a page id first, then as a title.
        """

        def _get() -> ExitCode:
            config = resolve_config(self.config_path, project, space)
            space_key = config.confluence.space_key
            client = self.client_factory(config)

            found = None
            if page.isdigit():
                try:
                    found = client.get_page(page)
                except PageNotFoundError:
                    logger.debug(f"No page with id {page}, trying it as a title")
            if found is None:
                by_title = client.find_page_by_title(space_key, page)
                if by_title is not None:
                    found = client.get_page(by_title.id)

            if found is None:
                self.output_handler.error(f"Page '{page}' not found in space '{space_key}'")
                return ExitCode.GENERAL_ERROR

            self.output_handler.show_page(found)
            return ExitCode.SUCCESS

        return self._execute(_get)

    def _execute(self, action: Callable[[], ExitCode]) -> ExitCode:
        output = self.output_handler
        try:
            return action()

        except InvalidCredentialsError as e:
            output.error(f"Authentication failed: {e}")
            return ExitCode.AUTH_ERROR

        except (APIUnreachableError, APIAccessError) as e:
            output.error(f"Network error: {e}")
            return ExitCode.NETWORK_ERROR

        except ConfigError as e:
            output.error(str(e))
            return ExitCode.GENERAL_ERROR

        except SyncError as e:
            output.error(str(e))
            return ExitCode.GENERAL_ERROR
