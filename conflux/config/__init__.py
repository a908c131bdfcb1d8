"""Configuration loading for conflux."""

from .config_loader import ConfigLoader
from .errors import ConfigError, ConfigNotFoundError
from .models import (
    ConfluenceSettings,
    ConfluxConfig,
    LocalSettings,
    MermaidConfig,
    ProjectConfig,
)

__all__ = [
    "ConfigLoader",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfluenceSettings",
    "ConfluxConfig",
    "LocalSettings",
    "MermaidConfig",
    "ProjectConfig",
]
