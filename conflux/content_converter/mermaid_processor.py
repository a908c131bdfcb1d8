"""Rendering Mermaid diagrams to images with the mermaid CLI (mmdc)."""

import hashlib
import json
import logging
import os
import shutil
import subprocess
import tempfile
from typing import List, Optional

from ..config.models import MermaidConfig
from ..confluence_client.errors import ConversionError
from .models import DiagramResult

logger = logging.getLogger(__name__)

TEMP_DIR_NAME = 'conflux-mermaid'

PUPPETEER_CONFIG = {"args": ["--no-sandbox", "--disable-setuid-sandbox"]}

VALID_DIAGRAM_STARTERS = (
    'graph',
    'flowchart',
    'sequenceDiagram',
    'classDiagram',
    'stateDiagram',
    'erDiagram',
    'journey',
    'gantt',
    'pie',
    'gitgraph',
    'mindmap',
    'timeline',
    'sankey-beta',
    'xychart-beta',
    'requirementDiagram',
    'C4Context',
    'C4Container',
    'C4Component',
    'C4Dynamic',
    'C4Deployment',
)


def validate_content(content: str) -> None:
    """Check that content looks like a Mermaid diagram.

    Raises:
        ConversionError: If the content is empty or has no recognised diagram type
    """
    stripped = content.strip()
    if not stripped:
        raise ConversionError("Mermaid diagram content cannot be empty")

    lowered = stripped.lower()
    if any(lowered.startswith(starter.lower()) for starter in VALID_DIAGRAM_STARTERS):
        return
    # Directives and comments may precede the diagram type
    if stripped.startswith('%%') or 'graph' in stripped or 'flowchart' in stripped:
        return
    raise ConversionError("Content does not appear to be a valid mermaid diagram")


class MermaidProcessor:
    """Renders Mermaid source to image files.

    Temporary files are named after the SHA-256 of the diagram source, so the
    same diagram always maps to the same attachment filename.
    """

    def __init__(self, config: Optional[MermaidConfig] = None, temp_root: Optional[str] = None):
        self.config = config or MermaidConfig()
        self._temp_dir = os.path.join(temp_root or tempfile.gettempdir(), TEMP_DIR_NAME)

    def check_dependencies(self) -> None:
        """Verify the mermaid CLI is available when diagrams are rendered.

        Raises:
            ConversionError: If the CLI is not on PATH
        """
        if not self.config.converts_to_image:
            return
        if shutil.which(self.config.cli_path) is None:
            raise ConversionError(
                f"Mermaid CLI '{self.config.cli_path}' not found in PATH. "
                f"Install with: npm install -g @mermaid-js/mermaid-cli"
            )

    def process_diagram(self, content: str) -> DiagramResult:
        """Render one diagram to an image file in the temp directory.

        Raises:
            ConversionError: If the CLI is missing, fails, or produces no output
        """
        self.check_dependencies()

        digest = hashlib.sha256(content.encode('utf-8')).hexdigest()
        try:
            os.makedirs(self._temp_dir, exist_ok=True)
        except OSError as e:
            raise ConversionError(f"Failed to create temp directory: {e}") from e

        input_file = os.path.join(self._temp_dir, f"diagram-{digest}.mmd")
        output_file = os.path.join(self._temp_dir, f"diagram-{digest}.{self.config.format}")

        try:
            with open(input_file, 'w', encoding='utf-8') as f:
                f.write(content)
            self._run_cli(input_file, output_file)
        finally:
            if os.path.exists(input_file):
                os.remove(input_file)

        if not os.path.exists(output_file):
            raise ConversionError(f"Output file was not created: {output_file}")

        logger.debug(f"Rendered mermaid diagram to {output_file}")
        return DiagramResult(
            image_path=output_file,
            image_format=self.config.format,
            filename=os.path.basename(output_file),
        )

    def build_args(self, input_file: str, output_file: str, puppeteer_config: str) -> List[str]:
        args = [
            self.config.cli_path,
            '-i', input_file,
            '-o', output_file,
            '-p', puppeteer_config,
        ]
        if self.config.theme and self.config.theme != 'default':
            args.extend(['-t', self.config.theme])
        if self.config.width > 0:
            args.extend(['-w', str(self.config.width)])
        if self.config.height > 0:
            args.extend(['-H', str(self.config.height)])
        if self.config.scale > 0:
            args.extend(['-s', f"{self.config.scale:.1f}"])
        return args

    def _run_cli(self, input_file: str, output_file: str) -> None:
        fd, puppeteer_config = tempfile.mkstemp(prefix='conflux-puppeteer-', suffix='.json')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(PUPPETEER_CONFIG, f)

            args = self.build_args(input_file, output_file, puppeteer_config)
            logger.debug(f"Executing mermaid CLI: {' '.join(args)}")
            subprocess.run(
                args,
                text=True,
                capture_output=True,
                check=True,
                timeout=60,
            )
        except subprocess.CalledProcessError as e:
            raise ConversionError(
                f"Mermaid CLI failed: {e.stderr or e.stdout or e}"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ConversionError("Mermaid CLI timed out (>60s)") from e
        except OSError as e:
            raise ConversionError(f"Failed to execute mermaid CLI: {e}") from e
        finally:
            if os.path.exists(puppeteer_config):
                os.remove(puppeteer_config)

    def cleanup(self, result: Optional[DiagramResult]) -> None:
        """Remove a rendered image file; a missing file is not an error."""
        if result is None or not result.image_path:
            return
        try:
            os.remove(result.image_path)
            logger.debug(f"Cleaned up temp file: {result.image_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to clean up temp file {result.image_path}: {e}")
