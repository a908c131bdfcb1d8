"""YAML configuration loading and validation.

The configuration file names the Confluence instance, the local Markdown tree,
optional named projects and Mermaid diagram settings. A relative path that
does not exist falls back to ~/.config/conflux/config.yaml.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError, ConfigNotFoundError
from .models import (
    MERMAID_FORMATS,
    MERMAID_MODES,
    ConfluenceSettings,
    ConfluxConfig,
    LocalSettings,
    MermaidConfig,
    ProjectConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = 'config.yaml'


class ConfigLoader:
    """Loads and validates conflux configuration files.

    Configuration file structure:
        confluence:
          base_url: "https://example.atlassian.net/wiki"
          username: "me@example.com"
          api_token: "..."
          space_key: "DOCS"
        local:
          markdown_dir: "./docs"
          exclude: ["DRAFT-*.md"]
        projects:
          - name: "docs"
            space_key: "DOCS"
            local:
              markdown_dir: "./docs"
        mermaid:
          mode: "convert-to-image"
          format: "svg"
    """

    MERMAID_DEFAULTS = {
        'mode': 'convert-to-image',
        'format': 'svg',
        'cli_path': 'mmdc',
        'theme': 'default',
        'width': 1200,
        'height': 800,
        'scale': 2.0,
    }

    @classmethod
    def fallback_path(cls) -> str:
        return os.path.join(os.path.expanduser('~'), '.config', 'conflux', DEFAULT_CONFIG_FILE)

    @classmethod
    def resolve_path(cls, config_path: Optional[str] = None) -> str:
        """Return the config path to read.

        The given path wins when it exists. Otherwise, for relative paths
        only, the per-user fallback is used if present. When neither exists
        the original path is returned and load() reports it.
        """
        path = config_path or DEFAULT_CONFIG_FILE
        if os.path.isfile(path):
            return path
        if not os.path.isabs(path):
            fallback = cls.fallback_path()
            if os.path.isfile(fallback):
                logger.debug(f"Config {path} not found, using {fallback}")
                return fallback
        return path

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> ConfluxConfig:
        """Load and validate configuration.

        Args:
            config_path: Path to the YAML file (defaults to config.yaml)

        Returns:
            ConfluxConfig with defaults applied

        Raises:
            ConfigNotFoundError: If no configuration file can be found
            ConfigError: If the file is unreadable, malformed or invalid
        """
        resolved = cls.resolve_path(config_path)
        if not os.path.isfile(resolved):
            searched = [resolved]
            if not os.path.isabs(resolved):
                searched.append(cls.fallback_path())
            raise ConfigNotFoundError(resolved, searched)

        try:
            with open(resolved, 'r', encoding='utf-8') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"Cannot read {resolved}: {e}")

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {str(e)}")

        if config_dict is None:
            config_dict = {}

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        logger.info(f"Loaded configuration from {resolved}")
        return cls.from_dict(config_dict)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> ConfluxConfig:
        """Parse and validate a raw configuration dictionary.

        Raises:
            ConfigError: If any section is invalid
        """
        confluence_raw = cls._section(config_dict, 'confluence')
        confluence = ConfluenceSettings(
            base_url=str(confluence_raw.get('base_url') or ''),
            username=str(confluence_raw.get('username') or ''),
            api_token=str(confluence_raw.get('api_token') or ''),
            space_key=str(confluence_raw.get('space_key') or ''),
        )

        local = cls._parse_local(cls._section(config_dict, 'local'), 'local')
        projects = cls._parse_projects(config_dict.get('projects'))
        mermaid = cls._parse_mermaid(cls._section(config_dict, 'mermaid'))

        return ConfluxConfig(
            confluence=confluence,
            local=local,
            mermaid=mermaid,
            projects=projects,
        )

    @staticmethod
    def _section(config_dict: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = config_dict.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ConfigError(f"Section '{name}' must be a dictionary", name)
        return section

    @classmethod
    def _parse_local(cls, local_raw: Dict[str, Any], field_name: str) -> LocalSettings:
        exclude_raw = local_raw.get('exclude') or []
        if not isinstance(exclude_raw, list):
            raise ConfigError("Field 'exclude' must be a list", f'{field_name}.exclude')
        return LocalSettings(
            markdown_dir=str(local_raw.get('markdown_dir') or '.'),
            exclude=[str(pattern) for pattern in exclude_raw],
        )

    @classmethod
    def _parse_projects(cls, projects_raw: Any) -> List[ProjectConfig]:
        if projects_raw is None:
            return []
        if not isinstance(projects_raw, list):
            raise ConfigError("Field 'projects' must be a list", 'projects')

        projects = []
        seen = set()
        for i, project_raw in enumerate(projects_raw):
            if not isinstance(project_raw, dict):
                raise ConfigError(
                    f"Project at index {i} must be a dictionary",
                    f'projects[{i}]'
                )
            name = str(project_raw.get('name') or '')
            if not name:
                raise ConfigError("Project name is required", f'projects[{i}].name')
            if name in seen:
                raise ConfigError(f"Duplicate project name '{name}'", f'projects[{i}].name')
            seen.add(name)

            space_key = str(project_raw.get('space_key') or '')
            if not space_key:
                raise ConfigError("Project space_key is required", f'projects[{i}].space_key')

            local_raw = project_raw.get('local')
            if not isinstance(local_raw, dict) or not local_raw.get('markdown_dir'):
                raise ConfigError(
                    "Project local.markdown_dir is required",
                    f'projects[{i}].local.markdown_dir'
                )

            projects.append(ProjectConfig(
                name=name,
                space_key=space_key,
                local=cls._parse_local(local_raw, f'projects[{i}].local'),
            ))
        return projects

    @classmethod
    def _parse_mermaid(cls, mermaid_raw: Dict[str, Any]) -> MermaidConfig:
        values = dict(cls.MERMAID_DEFAULTS)
        values.update({k: v for k, v in mermaid_raw.items() if v not in (None, '', 0)})

        if values['mode'] not in MERMAID_MODES:
            raise ConfigError(
                f"Invalid mode '{values['mode']}' (expected one of: {', '.join(MERMAID_MODES)})",
                'mermaid.mode'
            )
        if values['format'] not in MERMAID_FORMATS:
            raise ConfigError(
                f"Invalid format '{values['format']}' (expected one of: {', '.join(MERMAID_FORMATS)})",
                'mermaid.format'
            )

        try:
            return MermaidConfig(
                mode=str(values['mode']),
                format=str(values['format']),
                cli_path=str(values['cli_path']),
                theme=str(values['theme']),
                width=int(values['width']),
                height=int(values['height']),
                scale=float(values['scale']),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric value: {e}", 'mermaid')
