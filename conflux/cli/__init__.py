"""Command-line interface for conflux.

This package provides the `conflux` CLI tool: configuration resolution,
interactive previews and prompts, and exit code mapping around the sync engine.
"""

from .models import ExitCode
from .output import OutputHandler
from .sync_command import SyncCommand

__all__ = [
    'ExitCode',
    'OutputHandler',
    'SyncCommand',
]
