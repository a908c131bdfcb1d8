"""Data models for conflux configuration.

All models use dataclasses. Defaults here are the values applied when the
YAML file omits a field.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .errors import ConfigError

MERMAID_MODES = ('convert-to-image', 'preserve')
MERMAID_FORMATS = ('svg', 'png', 'pdf')


@dataclass
class ConfluenceSettings:
    """Connection settings for the Confluence instance.

    Attributes:
        base_url: Confluence base URL (e.g., https://example.atlassian.net/wiki)
        username: Account email used for API authentication
        api_token: API token for the account
        space_key: Target space key (may come from a project instead)
    """
    base_url: str = ""
    username: str = ""
    api_token: str = ""
    space_key: str = ""


@dataclass
class LocalSettings:
    """Where Markdown files live and which ones to skip.

    Attributes:
        markdown_dir: Root directory of the Markdown tree (the sync root)
        exclude: Glob patterns matched against file base names
    """
    markdown_dir: str = "."
    exclude: List[str] = field(default_factory=list)


@dataclass
class ProjectConfig:
    """A named space/directory pair selectable with --project."""
    name: str
    space_key: str
    local: LocalSettings = field(default_factory=LocalSettings)


@dataclass
class MermaidConfig:
    """Settings for Mermaid diagram handling.

    Attributes:
        mode: 'convert-to-image' renders diagrams via mmdc, 'preserve' keeps code blocks
        format: Output image format (svg, png or pdf)
        cli_path: Path or name of the mermaid CLI executable
        theme: Mermaid theme name
        width: Rendered width in pixels
        height: Rendered height in pixels
        scale: Puppeteer scale factor
    """
    mode: str = "convert-to-image"
    format: str = "svg"
    cli_path: str = "mmdc"
    theme: str = "default"
    width: int = 1200
    height: int = 800
    scale: float = 2.0

    @property
    def converts_to_image(self) -> bool:
        return self.mode == 'convert-to-image'


@dataclass
class ConfluxConfig:
    """Complete conflux configuration.

    Attributes:
        confluence: Connection settings
        local: Local Markdown tree settings
        mermaid: Diagram handling settings
        projects: Named projects overriding space_key and local settings
        active_project: Name of the project applied to this config, if any
    """
    confluence: ConfluenceSettings = field(default_factory=ConfluenceSettings)
    local: LocalSettings = field(default_factory=LocalSettings)
    mermaid: MermaidConfig = field(default_factory=MermaidConfig)
    projects: List[ProjectConfig] = field(default_factory=list)
    active_project: Optional[str] = None

    def get_project(self, name: str) -> Optional[ProjectConfig]:
        for project in self.projects:
            if project.name == name:
                return project
        return None

    def select_project(self, name: str) -> None:
        """Apply a project's space key and local settings to this config.

        Raises:
            ConfigError: If no project has the given name
        """
        if not name:
            raise ConfigError("Project name cannot be empty", 'projects')
        project = self.get_project(name)
        if project is None:
            available = ', '.join(p.name for p in self.projects) or 'none'
            raise ConfigError(
                f"Project '{name}' not found (available: {available})",
                'projects'
            )
        self.confluence.space_key = project.space_key
        self.local = LocalSettings(
            markdown_dir=project.local.markdown_dir,
            exclude=list(project.local.exclude),
        )
        self.active_project = project.name

    def apply_default_project(self) -> bool:
        """Select the first project when none is active.

        Returns:
            True if a project was applied, False if there are no projects
        """
        if self.active_project or not self.projects:
            return False
        self.select_project(self.projects[0].name)
        return True
