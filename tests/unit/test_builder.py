"""Unit tests for external tool invocation."""

import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from archdocs.config import SiteConfig, ToolsConfig
from archdocs.site import (
    MarkdownGenerator,
    SiteBuilder,
    ToolExecutionError,
    ToolNotAvailableError,
    count_files,
    resolve_templates_dir,
    run_tool,
)


class TestRunTool:
    """Tests for subprocess execution."""

    def test_not_found(self) -> None:
        """Test that a missing executable raises ToolNotAvailableError."""
        with patch("shutil.which", return_value=None):
            with pytest.raises(ToolNotAvailableError) as exc_info:
                run_tool("graph2md", [])

        assert exc_info.value.tool_name == "graph2md"

    def test_success(self) -> None:
        """Test that output is forwarded to the console."""
        with (
            patch("shutil.which", return_value="/usr/bin/pssg"),
            patch("subprocess.run", return_value=MagicMock(returncode=0)) as run,
        ):
            run_tool("pssg", ["build"], timeout=30)

        assert run.call_args.args[0] == ["pssg", "build"]
        assert run.call_args.kwargs["stdout"] is sys.stdout
        assert run.call_args.kwargs["timeout"] == 30

    def test_nonzero_exit(self) -> None:
        """Test that a failing tool raises with its exit code."""
        with (
            patch("shutil.which", return_value="/usr/bin/pssg"),
            patch("subprocess.run", return_value=MagicMock(returncode=3)),
        ):
            with pytest.raises(ToolExecutionError) as exc_info:
                run_tool("pssg", ["build"])

        assert exc_info.value.exit_code == 3
        assert "(exit code: 3)" in str(exc_info.value)

    def test_timeout(self) -> None:
        """Test that a timeout raises ToolExecutionError."""
        with (
            patch("shutil.which", return_value="/usr/bin/pssg"),
            patch("subprocess.run", side_effect=subprocess.TimeoutExpired("pssg", 5)),
        ):
            with pytest.raises(ToolExecutionError, match="timed out after 5s"):
                run_tool("pssg", ["build"], timeout=5)


class TestHelpers:
    """Tests for file counting and template resolution."""

    def test_count_files(self, tmp_path: Path) -> None:
        """Test recursive counting by suffix."""
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "x.md").write_text("x")
        (tmp_path / "y.md").write_text("y")
        (tmp_path / "z.html").write_text("z")

        assert count_files(tmp_path, ".md") == 2
        assert count_files(tmp_path, ".html") == 1
        assert count_files(tmp_path / "missing", ".md") == 0

    def test_explicit_templates_relative_to_workspace(self, tmp_path: Path) -> None:
        """Test that a relative templates dir is joined to the workspace."""
        assert resolve_templates_dir("docs/tpl", tmp_path) == tmp_path / "docs" / "tpl"
        assert resolve_templates_dir("/srv/tpl", tmp_path) == Path("/srv/tpl")

    def test_bundled_templates(self, tmp_path: Path) -> None:
        """Test fallback to the bundled templates directory."""
        bundled = tmp_path / "bundled"
        bundled.mkdir()

        with patch("archdocs.site.builder.BUNDLED_TEMPLATES_DIR", bundled):
            assert resolve_templates_dir(None, tmp_path) == bundled


class TestMarkdownGenerator:
    """Tests for graph2md invocation."""

    def test_arguments_and_count(self, tmp_path: Path) -> None:
        """Test the command line and the returned file count."""
        content = tmp_path / "content"

        def fake_run(command: str, args: list[str], timeout: int | None = None) -> None:
            (content / "a.md").write_text("---\n---\n")
            (content / "b.md").write_text("---\n---\n")

        generator = MarkdownGenerator(ToolsConfig(graph2md="g2m", timeout=60))
        with patch("archdocs.site.builder.run_tool", side_effect=fake_run) as run:
            count = generator.generate(
                tmp_path / "graph.json", content, "widgets", "https://github.com/acme/widgets"
            )

        assert count == 2
        command, args = run.call_args.args
        assert command == "g2m"
        assert args == [
            "-input", str(tmp_path / "graph.json"),
            "-output", str(content),
            "-repo", "widgets",
            "-repo-url", "https://github.com/acme/widgets",
        ]
        assert run.call_args.kwargs["timeout"] == 60

    def test_optional_repo_arguments(self, tmp_path: Path) -> None:
        """Test that empty repo values are not passed."""
        with patch("archdocs.site.builder.run_tool") as run:
            MarkdownGenerator().generate(tmp_path / "graph.json", tmp_path / "content")

        assert "-repo" not in run.call_args.args[1]


class TestSiteBuilder:
    """Tests for pssg invocation."""

    def test_write_config_and_build(self, tmp_path: Path) -> None:
        """Test config rendering and the build command."""
        output = tmp_path / "site"
        site = SiteConfig(
            name="Widgets Docs",
            base_url="https://acme.github.io/widgets",
            repo_url="https://github.com/acme/widgets",
            repo_name="widgets",
        )
        builder = SiteBuilder(ToolsConfig(pssg="pssg"))

        config_path = builder.write_config(
            tmp_path / "pssg.yaml",
            site,
            content_dir=tmp_path / "content",
            templates_dir=tmp_path / "templates",
            output_dir=output,
            source_dir=tmp_path,
        )

        def fake_run(command: str, args: list[str], timeout: int | None = None) -> None:
            output.mkdir()
            (output / "index.html").write_text("<html></html>")

        with patch("archdocs.site.builder.run_tool", side_effect=fake_run) as run:
            pages = builder.build(config_path, output)

        assert pages == 1
        assert run.call_args.args == ("pssg", ["build", "--config", str(config_path)])
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        assert data["site"]["name"] == "Widgets Docs"
        assert data["paths"]["output"] == str(output)
