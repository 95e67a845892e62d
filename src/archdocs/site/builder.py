"""External generator and site builder invocation.

- graph2md turns the dependency graph JSON into one markdown file per entity
- pssg builds the static site from the (enriched) markdown tree

Both run as subprocesses with their output forwarded to the console.
"""

import logging
import shutil
import subprocess
import sys
from pathlib import Path

from archdocs.config import SiteConfig, ToolsConfig
from archdocs.templates import SiteConfigRenderer

logger = logging.getLogger(__name__)

BUNDLED_TEMPLATES_DIR = Path("/app/templates")


class ToolNotAvailableError(Exception):
    """Raised when a required tool is not installed or accessible."""

    def __init__(self, tool_name: str, message: str | None = None) -> None:
        self.tool_name = tool_name
        self.message = message or f"Tool not available: {tool_name}"
        super().__init__(self.message)


class ToolExecutionError(Exception):
    """Raised when a tool execution fails."""

    def __init__(
        self,
        tool_name: str,
        message: str,
        exit_code: int | None = None,
    ) -> None:
        self.tool_name = tool_name
        self.exit_code = exit_code
        full_message = f"Tool execution failed: {tool_name} - {message}"
        if exit_code is not None:
            full_message += f" (exit code: {exit_code})"
        super().__init__(full_message)


def run_tool(command: str, args: list[str], timeout: int | None = None) -> None:
    """Run an external tool, forwarding its stdout/stderr.

    Args:
        command: Executable name or path
        args: Arguments
        timeout: Timeout in seconds

    Raises:
        ToolNotAvailableError: If the executable is not found
        ToolExecutionError: If the tool exits non-zero or times out
    """
    if shutil.which(command) is None:
        raise ToolNotAvailableError(command)

    cmd = [command, *args]
    logger.info("Running: %s", " ".join(cmd))

    try:
        result = subprocess.run(
            cmd,
            stdout=sys.stdout,
            stderr=sys.stderr,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise ToolExecutionError(command, f"timed out after {timeout}s") from e
    except OSError as e:
        raise ToolExecutionError(command, str(e)) from e

    if result.returncode != 0:
        raise ToolExecutionError(command, "command failed", exit_code=result.returncode)


def count_files(directory: Path, suffix: str) -> int:
    """Count files with ``suffix`` below ``directory``."""
    if not directory.exists():
        return 0
    return sum(1 for p in directory.rglob(f"*{suffix}") if p.is_file())


def resolve_templates_dir(templates_dir: str | None, workspace: Path) -> Path:
    """Locate the site templates.

    An explicit directory is resolved against the workspace. Otherwise the
    bundled templates at /app/templates are used, then ./templates next to
    the running interpreter, then ./templates in the current directory.
    """
    if templates_dir:
        path = Path(templates_dir)
        return path if path.is_absolute() else workspace / path

    if BUNDLED_TEMPLATES_DIR.exists():
        return BUNDLED_TEMPLATES_DIR

    beside_executable = Path(sys.executable).resolve().parent / "templates"
    if beside_executable.exists():
        return beside_executable

    return Path("templates")


class MarkdownGenerator:
    """Runs graph2md to produce the entity document tree."""

    def __init__(self, tools: ToolsConfig | None = None) -> None:
        self.tools = tools or ToolsConfig()

    def generate(
        self,
        graph_path: Path,
        content_dir: Path,
        repo_name: str = "",
        repo_url: str = "",
    ) -> int:
        """Generate markdown from the dependency graph.

        Returns:
            Number of markdown files generated
        """
        content_dir.mkdir(parents=True, exist_ok=True)
        args = ["-input", str(graph_path), "-output", str(content_dir)]
        if repo_name:
            args.extend(["-repo", repo_name])
        if repo_url:
            args.extend(["-repo-url", repo_url])

        run_tool(self.tools.graph2md, args, timeout=self.tools.timeout)

        count = count_files(content_dir, ".md")
        logger.info("Generated %d markdown files", count)
        return count


class SiteBuilder:
    """Renders pssg.yaml and runs the static site builder."""

    def __init__(
        self,
        tools: ToolsConfig | None = None,
        renderer: SiteConfigRenderer | None = None,
    ) -> None:
        self.tools = tools or ToolsConfig()
        self.renderer = renderer or SiteConfigRenderer()

    def write_config(
        self,
        config_path: Path,
        site: SiteConfig,
        content_dir: Path,
        templates_dir: Path,
        output_dir: Path,
        source_dir: Path,
    ) -> Path:
        return self.renderer.render_to_file(
            config_path,
            site_name=site.name,
            base_url=site.base_url,
            repo_url=site.repo_url,
            repo_name=site.repo_name,
            content_dir=content_dir,
            templates_dir=templates_dir,
            output_dir=output_dir,
            source_dir=source_dir,
        )

    def build(self, config_path: Path, output_dir: Path) -> int:
        """Run ``pssg build``.

        Returns:
            Number of HTML pages built
        """
        run_tool(self.tools.pssg, ["build", "--config", str(config_path)],
                 timeout=self.tools.timeout)
        count = count_files(output_dir, ".html")
        logger.info("Built %d HTML pages", count)
        return count
