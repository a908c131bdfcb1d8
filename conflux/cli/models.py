"""Data models for CLI operations."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for the conflux command.

    - SUCCESS (0): Operation completed successfully (including dry runs and cancels)
    - GENERAL_ERROR (1): Configuration, cache or validation failure
    - AUTH_ERROR (3): Missing or rejected Confluence credentials
    - NETWORK_ERROR (4): Confluence unreachable or API failure
    - PARTIAL_FAILURE (5): The sync ran but some entries failed

    Example:
        >>> raise typer.Exit(ExitCode.SUCCESS)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 3
    NETWORK_ERROR = 4
    PARTIAL_FAILURE = 5
