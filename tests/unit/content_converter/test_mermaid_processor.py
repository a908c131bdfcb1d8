"""Unit tests for content_converter.mermaid_processor module."""

import os
import subprocess
from unittest.mock import patch

import pytest

from conflux.config.models import MermaidConfig
from conflux.confluence_client.errors import ConversionError
from conflux.content_converter.mermaid_processor import MermaidProcessor, validate_content
from conflux.content_converter.models import DiagramResult

DIAGRAM = "graph TD\n  A --> B"


def fake_mmdc(args, **kwargs):
    """Write an output file where mmdc would."""
    output_file = args[args.index('-o') + 1]
    with open(output_file, 'w') as f:
        f.write("<svg/>")
    return subprocess.CompletedProcess(args, 0, stdout="", stderr="")


@pytest.fixture
def processor(tmp_path):
    return MermaidProcessor(MermaidConfig(), temp_root=str(tmp_path))


class TestValidateContent:
    """Test cases for validate_content."""

    @pytest.mark.parametrize("content", [
        DIAGRAM,
        "sequenceDiagram\n  A->>B: hi",
        "  pie title Pets\n",
        "%%{init: {'theme': 'dark'}}%%\nflowchart LR\n  A --> B",
    ])
    def test_valid_diagrams(self, content):
        validate_content(content)

    def test_empty_content_rejected(self):
        with pytest.raises(ConversionError, match="empty"):
            validate_content("  \n")

    def test_unknown_diagram_rejected(self):
        with pytest.raises(ConversionError):
            validate_content("hello world")


class TestBuildArgs:
    """Test cases for MermaidProcessor.build_args."""

    def test_default_config(self):
        args = MermaidProcessor(MermaidConfig()).build_args("in.mmd", "out.svg", "p.json")

        assert args == [
            'mmdc', '-i', 'in.mmd', '-o', 'out.svg', '-p', 'p.json',
            '-w', '1200', '-H', '800', '-s', '2.0',
        ]

    def test_theme_and_zero_sizes(self):
        """Non-default themes are passed; zero dimensions are omitted."""
        config = MermaidConfig(theme="dark", width=0, height=0, scale=0, cli_path="/opt/mmdc")

        args = MermaidProcessor(config).build_args("in.mmd", "out.png", "p.json")

        assert args == [
            '/opt/mmdc', '-i', 'in.mmd', '-o', 'out.png', '-p', 'p.json', '-t', 'dark',
        ]


class TestCheckDependencies:
    """Test cases for MermaidProcessor.check_dependencies."""

    @patch('conflux.content_converter.mermaid_processor.shutil.which', return_value=None)
    def test_missing_cli_raises(self, mock_which, processor):
        with pytest.raises(ConversionError, match="npm install"):
            processor.check_dependencies()

    @patch('conflux.content_converter.mermaid_processor.shutil.which', return_value=None)
    def test_preserve_mode_needs_no_cli(self, mock_which):
        MermaidProcessor(MermaidConfig(mode="preserve")).check_dependencies()
        mock_which.assert_not_called()


@patch('conflux.content_converter.mermaid_processor.shutil.which', return_value='/usr/bin/mmdc')
class TestProcessDiagram:
    """Test cases for MermaidProcessor.process_diagram."""

    def test_renders_to_content_addressed_file(self, mock_which, processor, tmp_path):
        with patch('conflux.content_converter.mermaid_processor.subprocess.run',
                   side_effect=fake_mmdc):
            first = processor.process_diagram(DIAGRAM)
            second = processor.process_diagram(DIAGRAM)

        assert first.filename == second.filename
        assert first.filename.startswith("diagram-")
        assert first.filename.endswith(".svg")
        assert os.path.dirname(first.image_path) == str(tmp_path / "conflux-mermaid")
        assert os.path.exists(first.image_path)

    def test_input_file_removed(self, mock_which, processor, tmp_path):
        with patch('conflux.content_converter.mermaid_processor.subprocess.run',
                   side_effect=fake_mmdc):
            result = processor.process_diagram(DIAGRAM)

        remaining = os.listdir(tmp_path / "conflux-mermaid")
        assert remaining == [result.filename]

    def test_cli_failure_raises(self, mock_which, processor):
        error = subprocess.CalledProcessError(1, "mmdc", stderr="Parse error on line 2")
        with patch('conflux.content_converter.mermaid_processor.subprocess.run',
                   side_effect=error):
            with pytest.raises(ConversionError, match="Parse error"):
                processor.process_diagram(DIAGRAM)

    def test_cli_timeout_raises(self, mock_which, processor):
        with patch('conflux.content_converter.mermaid_processor.subprocess.run',
                   side_effect=subprocess.TimeoutExpired("mmdc", 60)):
            with pytest.raises(ConversionError, match="timed out"):
                processor.process_diagram(DIAGRAM)

    def test_missing_output_raises(self, mock_which, processor):
        with patch('conflux.content_converter.mermaid_processor.subprocess.run'):
            with pytest.raises(ConversionError, match="not created"):
                processor.process_diagram(DIAGRAM)


class TestCleanup:
    """Test cases for MermaidProcessor.cleanup."""

    def test_removes_image(self, processor, tmp_path):
        image = tmp_path / "diagram.svg"
        image.write_text("<svg/>")

        processor.cleanup(DiagramResult(str(image), "svg", "diagram.svg"))

        assert not image.exists()

    def test_missing_file_and_none_are_ignored(self, processor, tmp_path):
        processor.cleanup(None)
        processor.cleanup(DiagramResult(str(tmp_path / "gone.svg"), "svg", "gone.svg"))
