"""Unit tests for preflight checks."""

import subprocess
from unittest.mock import MagicMock, patch

from archdocs.config import ArchDocsConfig
from archdocs.utils.preflight import PreflightChecker, PreflightResult, ToolCheck


def completed(stdout: str = "", returncode: int = 0) -> MagicMock:
    return MagicMock(returncode=returncode, stdout=stdout, stderr="")


class TestToolChecks:
    """Tests for executable checks."""

    def test_graph2md_available(self) -> None:
        """Test a found tool reports its path and version."""
        checker = PreflightChecker()

        with (
            patch("shutil.which", return_value="/usr/local/bin/graph2md"),
            patch("subprocess.run", return_value=completed("graph2md v1.4.0\nbuilt today")) as run,
        ):
            result = checker.check_graph2md()

        assert result.available is True
        assert result.name == "graph2md"
        assert result.path == "/usr/local/bin/graph2md"
        assert result.version == "graph2md v1.4.0"
        assert run.call_args.args[0] == ["graph2md", "-version"]

    def test_pssg_version_command(self) -> None:
        """Test that pssg is asked for its version with a subcommand."""
        checker = PreflightChecker()

        with (
            patch("shutil.which", return_value="/usr/local/bin/pssg"),
            patch("subprocess.run", return_value=completed("pssg 0.9")) as run,
        ):
            result = checker.check_pssg("pssg")

        assert result.version == "pssg 0.9"
        assert run.call_args.args[0] == ["pssg", "version"]

    def test_tool_missing(self) -> None:
        """Test a missing tool."""
        checker = PreflightChecker()

        with patch("shutil.which", return_value=None):
            result = checker.check_pssg("/opt/pssg")

        assert result.available is False
        assert result.required is True
        assert "'/opt/pssg' not found in PATH" in result.message

    def test_version_timeout(self) -> None:
        """Test that a hanging version command leaves the version unset."""
        checker = PreflightChecker(timeout=1)

        with (
            patch("shutil.which", return_value="/usr/bin/graph2md"),
            patch("subprocess.run", side_effect=subprocess.TimeoutExpired("graph2md", 1)),
        ):
            result = checker.check_graph2md()

        assert result.available is True
        assert result.version is None

    def test_version_nonzero_exit(self) -> None:
        """Test that a failing version command leaves the version unset."""
        checker = PreflightChecker()

        with patch("subprocess.run", return_value=completed("oops", returncode=2)):
            assert checker.get_command_version("graph2md") is None


class TestApiKeyCheck:
    """Tests for the API key check."""

    def test_configured(self) -> None:
        """Test that a configured key passes."""
        result = PreflightChecker().check_api_key("secret")

        assert result.available is True
        assert result.name == "supermodel-api-key"

    def test_missing(self) -> None:
        """Test that a missing key explains how to set it."""
        result = PreflightChecker().check_api_key(None)

        assert result.available is False
        assert "SUPERMODEL_API_KEY" in result.message


class TestCheckAll:
    """Tests for the combined check."""

    def test_all_available(self) -> None:
        """Test success when tools and key are present."""
        config = ArchDocsConfig()
        config.api.api_key = "secret"

        with (
            patch("shutil.which", side_effect=lambda cmd: f"/usr/bin/{cmd}"),
            patch("subprocess.run", return_value=completed("v1")),
        ):
            result = PreflightChecker().check_all(config)

        assert result.success
        assert [c.name for c in result.checks] == ["graph2md", "pssg", "supermodel-api-key"]
        assert result.errors == []

    def test_missing_key_optional(self) -> None:
        """Test that the key check can be downgraded to a warning."""
        with (
            patch("shutil.which", side_effect=lambda cmd: f"/usr/bin/{cmd}"),
            patch("subprocess.run", return_value=completed("v1")),
        ):
            result = PreflightChecker().check_all(ArchDocsConfig(), require_api_key=False)

        assert result.success
        assert result.warnings == ["Optional tool not found: supermodel-api-key"]

    def test_missing_tool_fails(self) -> None:
        """Test that a missing required tool fails the result."""
        config = ArchDocsConfig()
        config.api.api_key = "secret"

        with patch("shutil.which", return_value=None):
            result = PreflightChecker().check_all(config)

        assert not result.success
        assert result.errors == [
            "Required tool not found: graph2md",
            "Required tool not found: pssg",
        ]


class TestPreflightResult:
    """Tests for result aggregation."""

    def test_to_dict(self) -> None:
        """Test JSON-ready output."""
        result = PreflightResult()
        result.add_check(ToolCheck(name="pssg", available=True, version="1.0", path="/bin/pssg"))

        data = result.to_dict()

        assert data["success"] is True
        assert data["checks"][0] == {
            "name": "pssg",
            "available": True,
            "version": "1.0",
            "required": True,
            "path": "/bin/pssg",
            "message": "",
        }
