"""Preflight validation.

External tools are validated before the workspace is uploaded, not after
several minutes of remote analysis. A missing required tool fails the run
immediately with a clear message.
"""

import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Any

from archdocs.config import ArchDocsConfig


@dataclass
class ToolCheck:
    """Result of checking a single tool.

    Attributes:
        name: Tool name
        available: Whether tool is available
        version: Tool version if available
        required: Whether tool is required for this run
        path: Path to executable if available
        message: Status message (human-readable context)
    """

    name: str
    available: bool
    version: str | None = None
    required: bool = True
    path: str | None = None
    message: str = ""


@dataclass
class PreflightResult:
    """Result of preflight validation.

    Attributes:
        success: Whether all required tools are available
        checks: Individual tool check results
        errors: Error messages for missing required tools
        warnings: Warning messages for missing optional tools
    """

    success: bool = True
    checks: list[ToolCheck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_check(self, check: ToolCheck) -> None:
        """Add a tool check result."""
        self.checks.append(check)

        if not check.available:
            if check.required:
                self.success = False
                self.errors.append(f"Required tool not found: {check.name}")
            else:
                self.warnings.append(f"Optional tool not found: {check.name}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "checks": [
                {
                    "name": c.name,
                    "available": c.available,
                    "version": c.version,
                    "required": c.required,
                    "path": c.path,
                    "message": c.message,
                }
                for c in self.checks
            ],
            "errors": self.errors,
            "warnings": self.warnings,
        }


class PreflightChecker:
    """Validates external tool availability before a run.

    Usage:
        checker = PreflightChecker()
        result = checker.check_all(config)
        if not result.success:
            raise typer.Exit(1)
    """

    def __init__(self, timeout: int = 10) -> None:
        """Initialize preflight checker.

        Args:
            timeout: Timeout in seconds for version checks
        """
        self.timeout = timeout

    def check_command_available(self, command: str) -> tuple[bool, str | None]:
        """Check if a command is available in PATH.

        Returns:
            Tuple of (available, path)
        """
        path = shutil.which(command)
        return path is not None, path

    def get_command_version(
        self,
        command: str,
        version_args: list[str] | None = None,
    ) -> str | None:
        """Get version string for a command.

        Args:
            command: Command to get version for
            version_args: Arguments to get version (default: ["--version"])

        Returns:
            First line of the version output, None if unavailable
        """
        if version_args is None:
            version_args = ["--version"]

        try:
            result = subprocess.run(
                [command, *version_args],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, OSError):
            return None

        if result.returncode != 0:
            return None
        output = result.stdout.strip() or result.stderr.strip()
        return output.split("\n")[0] if output else None

    def check_tool(
        self,
        name: str,
        command: str,
        purpose: str,
        required: bool = True,
        version_args: list[str] | None = None,
    ) -> ToolCheck:
        """Check one executable.

        Args:
            name: Display name
            command: Executable name or path
            purpose: Short description shown when available
            required: Whether the tool is required for this run
            version_args: Arguments that print the version

        Returns:
            ToolCheck result
        """
        available, path = self.check_command_available(command)
        if not available:
            return ToolCheck(
                name=name,
                available=False,
                required=required,
                message=f"'{command}' not found in PATH",
            )

        return ToolCheck(
            name=name,
            available=True,
            version=self.get_command_version(command, version_args),
            required=required,
            path=path,
            message=purpose,
        )

    def check_graph2md(self, command: str = "graph2md", required: bool = True) -> ToolCheck:
        return self.check_tool(
            "graph2md", command, "Graph to markdown generator", required, ["-version"]
        )

    def check_pssg(self, command: str = "pssg", required: bool = True) -> ToolCheck:
        return self.check_tool("pssg", command, "Static site builder", required, ["version"])

    def check_api_key(self, api_key: str | None) -> ToolCheck:
        """Check that an API key is configured (no request is made)."""
        if api_key:
            return ToolCheck(
                name="supermodel-api-key",
                available=True,
                message="API key configured",
            )
        return ToolCheck(
            name="supermodel-api-key",
            available=False,
            message="Set the supermodel-api-key input or SUPERMODEL_API_KEY",
        )

    def check_all(self, config: ArchDocsConfig, require_api_key: bool = True) -> PreflightResult:
        """Run every check needed for a full generate run.

        Args:
            config: Loaded configuration
            require_api_key: Whether a missing API key fails the check

        Returns:
            PreflightResult with all checks
        """
        result = PreflightResult()
        result.add_check(self.check_graph2md(config.tools.graph2md))
        result.add_check(self.check_pssg(config.tools.pssg))

        key_check = self.check_api_key(config.api.api_key)
        key_check.required = require_api_key
        result.add_check(key_check)
        return result
