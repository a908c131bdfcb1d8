"""Typed exceptions for configuration loading and validation."""

from typing import Optional

from conflux.confluence_client.errors import SyncError


class ConfigError(SyncError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, config_field: Optional[str] = None):
        if config_field:
            full_message = f"Configuration error in field '{config_field}': {message}"
        else:
            full_message = f"Configuration error: {message}"
        super().__init__(full_message)
        self.config_field = config_field
        self.original_message = message


class ConfigNotFoundError(ConfigError):
    """Raised when no configuration file exists at any searched location."""

    def __init__(self, config_path: str, searched: Optional[list] = None):
        self.searched = searched or [config_path]
        super().__init__(
            f"Configuration file not found (searched: {', '.join(self.searched)})"
        )
        self.config_path = config_path
