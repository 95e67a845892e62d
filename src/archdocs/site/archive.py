"""Workspace archival.

Packs the workspace into a zip for upload to the analysis endpoints,
skipping VCS metadata, dependency/build directories, hidden files,
binary assets and oversized files.
"""

import logging
import os
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path

from archdocs.config import ArchiveConfig

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceArchive:
    """A zip archive of the workspace.

    Attributes:
        path: Archive file path
        file_count: Number of files included
        size: Archive size in bytes
    """

    path: Path
    file_count: int
    size: int

    @property
    def size_mb(self) -> float:
        return self.size / (1024 * 1024)

    def remove(self) -> None:
        self.path.unlink(missing_ok=True)


def _include_file(path: Path, config: ArchiveConfig, binary_exts: set[str]) -> bool:
    if path.name.startswith("."):
        return False
    if path.suffix.lower() in binary_exts:
        return False
    try:
        return path.stat().st_size <= config.max_file_size
    except OSError as e:
        logger.debug("Skipping %s: %s", path, e)
        return False


def create_workspace_archive(
    workspace: Path,
    config: ArchiveConfig | None = None,
    output_path: Path | None = None,
) -> WorkspaceArchive:
    """Zip the workspace.

    Args:
        workspace: Directory to archive
        config: Filtering rules (defaults to ArchiveConfig())
        output_path: Archive location (a temp file is created if None)

    Returns:
        WorkspaceArchive describing the written zip

    Raises:
        ValueError: If the workspace is not a directory
    """
    config = config or ArchiveConfig()
    workspace = workspace.resolve()
    if not workspace.is_dir():
        raise ValueError(f"Workspace is not a directory: {workspace}")

    if output_path is None:
        fd, name = tempfile.mkstemp(prefix="repo-", suffix=".zip")
        os.close(fd)
        output_path = Path(name)

    skip_dirs = set(config.skip_dirs)
    binary_exts = {ext.lower() for ext in config.binary_extensions}
    file_count = 0

    with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for root, dirs, files in os.walk(workspace):
            # Prune in place so os.walk never descends into skipped dirs
            dirs[:] = sorted(
                d for d in dirs if d not in skip_dirs and not d.startswith(".")
            )
            root_path = Path(root)
            for filename in sorted(files):
                file_path = root_path / filename
                if file_path.resolve() == output_path.resolve():
                    continue
                if not _include_file(file_path, config, binary_exts):
                    continue
                arcname = file_path.relative_to(workspace).as_posix()
                try:
                    zf.write(file_path, arcname)
                except OSError as e:
                    logger.debug("Skipping %s: %s", file_path, e)
                    continue
                file_count += 1

    archive = WorkspaceArchive(
        path=output_path,
        file_count=file_count,
        size=output_path.stat().st_size,
    )
    logger.info(
        "Archived %d files to %s (%.2f MB)",
        archive.file_count,
        archive.path,
        archive.size_mb,
    )
    return archive
