"""Markdown to Confluence storage format conversion.

Pandoc renders the Markdown to HTML. Fenced code blocks are lifted out before
Pandoc runs and re-inserted afterwards as Confluence code macros, so their
content reaches Confluence verbatim. Mermaid blocks are either kept as code
macros or rendered to images and embedded as page attachments.
"""

import logging
import re
import subprocess
from typing import Callable, List, Optional, Tuple

from ..config.models import MermaidConfig
from ..confluence_client.errors import ConfluenceError, ConversionError
from ..confluence_client.models import Attachment
from .document import file_digest
from .mermaid_processor import MermaidProcessor, validate_content
from .models import ConversionResult

logger = logging.getLogger(__name__)

AttachmentUploader = Callable[[str, str], Attachment]

_PLACEHOLDER = 'CONFLUXBLOCK{index}X'
_PLACEHOLDER_RE = re.compile(r'(?:<p>)?CONFLUXBLOCK(\d+)X(?:</p>)?')

_FENCE_RE = re.compile(r'^\s*(`{3,}|~{3,})\s*([^\s`]*)')


def code_macro(body: str, language: str = "") -> str:
    """Wrap text in a Confluence code macro."""
    # ']]>' cannot appear inside CDATA; split it across two sections
    body = body.replace(']]>', ']]]]><![CDATA[>')
    parameter = ""
    if language:
        parameter = f'<ac:parameter ac:name="language">{language}</ac:parameter>'
    return (
        f'<ac:structured-macro ac:name="code" ac:schema-version="1">{parameter}'
        f'<ac:plain-text-body><![CDATA[{body}]]></ac:plain-text-body></ac:structured-macro>'
    )


def image_macro(filename: str) -> str:
    return f'<ac:image><ri:attachment ri:filename="{filename}"/></ac:image>'


def has_mermaid(content: str) -> bool:
    """Return True if the Markdown contains a fenced mermaid block."""
    return any(lang == 'mermaid' for lang, _ in _split_code_blocks(content)[1])


def _split_code_blocks(markdown: str) -> Tuple[str, List[Tuple[str, str]]]:
    """Replace fenced code blocks with placeholders.

    Returns:
        The Markdown with placeholders, and (language, body) for each block
    """
    lines = markdown.split('\n')
    output: List[str] = []
    blocks: List[Tuple[str, str]] = []
    fence: Optional[str] = None
    language = ""
    body: List[str] = []

    for line in lines:
        if fence is None:
            match = _FENCE_RE.match(line)
            if match:
                fence = match.group(1)
                language = match.group(2).lower()
                body = []
                continue
            output.append(line)
            continue

        if line.strip().startswith(fence) and line.strip().strip(fence[0]) == "":
            output.extend(["", _PLACEHOLDER.format(index=len(blocks)), ""])
            blocks.append((language, '\n'.join(body)))
            fence = None
            continue
        body.append(line)

    if fence is not None:
        # Unterminated fence runs to end of document
        output.extend(["", _PLACEHOLDER.format(index=len(blocks)), ""])
        blocks.append((language, '\n'.join(body)))

    return '\n'.join(output), blocks


class MarkdownConverter:
    """Converts Markdown documents to Confluence storage format.

    Args:
        mermaid_config: Diagram settings (defaults to convert-to-image)
        uploader: Callable(page_id, file_path) -> Attachment used to attach
            rendered diagrams; without it diagrams stay code blocks
        processor: MermaidProcessor to render diagrams with
    """

    def __init__(
        self,
        mermaid_config: Optional[MermaidConfig] = None,
        uploader: Optional[AttachmentUploader] = None,
        processor: Optional[MermaidProcessor] = None,
    ):
        self.mermaid_config = mermaid_config or MermaidConfig()
        self.uploader = uploader
        self.processor = processor or MermaidProcessor(self.mermaid_config)

    def convert(self, content: str, page_id: Optional[str] = None) -> str:
        """Convert Markdown to storage format XHTML.

        Raises:
            ConversionError: If Pandoc fails or is not installed
        """
        return self.convert_document(content, page_id).xhtml

    def convert_document(self, content: str, page_id: Optional[str] = None) -> ConversionResult:
        """Convert Markdown, rendering diagrams when a page id is known.

        Raises:
            ConversionError: If Pandoc fails or is not installed
        """
        result = ConversionResult(xhtml="")
        if not content or not content.strip():
            return result

        markdown, blocks = _split_code_blocks(content)
        html = self._pandoc(markdown) if markdown.strip() else ""

        rendered = [
            self._render_block(language, body, page_id, result)
            for language, body in blocks
        ]

        def _substitute(match):
            index = int(match.group(1))
            if index < len(rendered):
                return rendered[index]
            return match.group(0)

        result.xhtml = _PLACEHOLDER_RE.sub(_substitute, html).strip()
        return result

    def _render_block(
        self,
        language: str,
        body: str,
        page_id: Optional[str],
        result: ConversionResult,
    ) -> str:
        if language != 'mermaid':
            return code_macro(body, language)

        if not self.mermaid_config.converts_to_image or not page_id or self.uploader is None:
            return code_macro(body, 'mermaid')

        try:
            validate_content(body)
            diagram = self.processor.process_diagram(body)
        except ConversionError as e:
            logger.warning(f"Mermaid diagram kept as code block: {e}")
            result.warnings.append(str(e))
            return code_macro(body, 'mermaid')

        try:
            digest = file_digest(diagram.image_path)
            attachment = self.uploader(page_id, diagram.image_path)
        except (ConfluenceError, OSError) as e:
            logger.warning(f"Failed to upload diagram {diagram.filename} to page {page_id}: {e}")
            result.warnings.append(str(e))
            return code_macro(body, 'mermaid')
        finally:
            self.processor.cleanup(diagram)

        filename = attachment.filename or diagram.filename
        result.attachments[filename] = digest
        return image_macro(filename)

    def _pandoc(self, markdown: str) -> str:
        try:
            completed = subprocess.run(
                ["pandoc", "-f", "markdown", "-t", "html"],
                input=markdown,
                text=True,
                capture_output=True,
                check=True,
                timeout=30,
            )
        except FileNotFoundError:
            raise ConversionError(
                "Pandoc not found. Install: brew install pandoc (macOS) or "
                "apt-get install pandoc (Linux) or download from "
                "https://pandoc.org/installing.html"
            )
        except subprocess.CalledProcessError as e:
            raise ConversionError(f"Pandoc conversion failed: {e.stderr}")
        except subprocess.TimeoutExpired:
            raise ConversionError("Pandoc conversion timed out (>30s)")
        return completed.stdout
