"""Boundary collaborators: workspace archive, external tools, path rewriting."""

from archdocs.site.archive import WorkspaceArchive, create_workspace_archive
from archdocs.site.builder import (
    MarkdownGenerator,
    SiteBuilder,
    ToolExecutionError,
    ToolNotAvailableError,
    count_files,
    resolve_templates_dir,
    run_tool,
)
from archdocs.site.paths import extract_path_prefix, rewrite_content, rewrite_path_prefix

__all__ = [
    "MarkdownGenerator",
    "SiteBuilder",
    "ToolExecutionError",
    "ToolNotAvailableError",
    "WorkspaceArchive",
    "count_files",
    "create_workspace_archive",
    "extract_path_prefix",
    "resolve_templates_dir",
    "rewrite_content",
    "rewrite_path_prefix",
    "run_tool",
]
