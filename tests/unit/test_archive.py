"""Unit tests for workspace archival."""

import zipfile
from pathlib import Path

import pytest

from archdocs.config import ArchiveConfig
from archdocs.site import create_workspace_archive


def archive_names(path: Path) -> list[str]:
    with zipfile.ZipFile(path) as zf:
        return sorted(zf.namelist())


class TestCreateWorkspaceArchive:
    """Tests for zipping the workspace."""

    def test_includes_source_files(self, workspace: Path, tmp_path: Path) -> None:
        """Test that source files are archived relative to the workspace."""
        output = tmp_path / "repo.zip"

        archive = create_workspace_archive(workspace, output_path=output)

        assert archive.path == output
        assert archive.file_count == 3
        assert archive.size == output.stat().st_size
        assert archive_names(output) == ["README.md", "src/api/handler.py", "src/util.py"]

    def test_skips_hidden_vendored_and_binary(self, workspace: Path, tmp_path: Path) -> None:
        """Test that VCS, dependency, hidden and binary files are excluded."""
        output = tmp_path / "repo.zip"

        create_workspace_archive(workspace, output_path=output)

        names = archive_names(output)
        assert not any(name.startswith(".git/") for name in names)
        assert not any(name.startswith("node_modules/") for name in names)
        assert ".env" not in names
        assert "logo.png" not in names

    def test_skips_oversized_files(self, workspace: Path, tmp_path: Path) -> None:
        """Test the maximum file size filter."""
        (workspace / "big.txt").write_text("x" * 100)
        output = tmp_path / "repo.zip"

        create_workspace_archive(
            workspace, ArchiveConfig(max_file_size=50), output_path=output
        )

        assert "big.txt" not in archive_names(output)

    def test_archive_inside_workspace_excluded(self, workspace: Path) -> None:
        """Test that the archive never contains itself."""
        output = workspace / "repo.zip"

        archive = create_workspace_archive(
            workspace, ArchiveConfig(binary_extensions=[]), output_path=output
        )

        assert "repo.zip" not in archive_names(output)
        assert "logo.png" in archive_names(output)
        assert archive.file_count == 4

    def test_temp_file_when_no_output(self, workspace: Path) -> None:
        """Test that a temporary archive is created and removable."""
        archive = create_workspace_archive(workspace)

        try:
            assert archive.path.exists()
            assert archive.path.suffix == ".zip"
        finally:
            archive.remove()

        assert not archive.path.exists()

    def test_rejects_missing_workspace(self, tmp_path: Path) -> None:
        """Test that a non-directory workspace is rejected."""
        with pytest.raises(ValueError, match="not a directory"):
            create_workspace_archive(tmp_path / "missing")
