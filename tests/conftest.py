"""Shared pytest fixtures for archdocs tests.

This module provides common fixtures used across unit and integration
tests. Fixtures are organized by category:
- Path fixtures: Recorded analyses and the sample markdown tree
- Workspace fixtures: Small repositories to archive
- Configuration fixtures: Test configs for various scenarios
- HTTP fixtures: Scripted analysis API responses
"""

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from tests.fixtures import ANALYSES_DIR, copy_content, load_analysis
from tests.fixtures.http import FakeClock, ScriptedTransport

# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_archdocs_logging() -> Iterator[None]:
    """Drop handlers the CLI attaches so later tests log to a live stream."""
    yield
    logger = logging.getLogger("archdocs")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def analyses_dir() -> Path:
    """Return the path to recorded analysis payloads."""
    return ANALYSES_DIR


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    """Return a writable copy of the sample markdown tree."""
    return copy_content(tmp_path / "content")


# =============================================================================
# Analysis Payload Fixtures
# =============================================================================


@pytest.fixture
def impact_payload() -> dict[str, Any]:
    return load_analysis("impact")


@pytest.fixture
def coverage_payload() -> dict[str, Any]:
    return load_analysis("test-coverage")


@pytest.fixture
def circular_payload() -> dict[str, Any]:
    return load_analysis("circular-deps")


@pytest.fixture
def graph_payload() -> dict[str, Any]:
    """Return a minimal dependency graph result."""
    return {
        "nodes": [
            {"id": "file:src/api/handler.py", "labels": ["File"]},
            {"id": "fn:src/api/handler.py:handle", "labels": ["Function"]},
        ],
        "relationships": [
            {
                "type": "DEFINES",
                "startNode": "file:src/api/handler.py",
                "endNode": "fn:src/api/handler.py:handle",
            }
        ],
    }


# =============================================================================
# Workspace Fixtures
# =============================================================================


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a small repository with files the archive must skip."""
    root = tmp_path / "workspace"
    (root / "src" / "api").mkdir(parents=True)
    (root / "src" / "api" / "handler.py").write_text("def handle():\n    return 1\n")
    (root / "src" / "util.py").write_text("X = 1\n")
    (root / "README.md").write_text("# sample\n")

    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "node_modules" / "lib" / "index.js").write_text("module.exports = 1\n")
    (root / ".env").write_text("SECRET=1\n")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n")
    return root


@pytest.fixture
def payload_file(tmp_path: Path) -> Path:
    """Create a stand-in workspace archive."""
    path = tmp_path / "repo.zip"
    path.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return path


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def minimal_config() -> dict[str, Any]:
    """Return a minimal valid archdocs configuration."""
    return {
        "api": {
            "api_key": "test-key",
        }
    }


@pytest.fixture
def full_config() -> dict[str, Any]:
    """Return a complete archdocs configuration with all options."""
    return {
        "api": {
            "api_key": "test-key",
            "base_url": "https://api.example.com",
            "poll_timeout": 60,
            "default_poll_interval": 5,
            "max_poll_interval": 30,
            "request_timeout": 20,
            "endpoints": [
                {"name": "supermodel", "required": True},
                {"name": "impact"},
                {"name": "custom", "url": "https://other.example.com/v1/custom"},
            ],
        },
        "site": {
            "name": "Demo Docs",
            "base_url": "https://acme.github.io/demo",
            "repo_url": "https://github.com/acme/demo",
            "repo_name": "demo",
            "output_dir": "site",
            "templates_dir": "templates",
        },
        "tools": {
            "graph2md": "/usr/local/bin/graph2md",
            "pssg": "/usr/local/bin/pssg",
            "timeout": 600,
        },
        "archive": {
            "skip_dirs": [".git", "target"],
            "max_file_size": 1024,
        },
        "ci": {
            "fail_on_warning": True,
            "json_output": False,
        },
    }


# =============================================================================
# HTTP Fixtures
# =============================================================================


@pytest.fixture
def scripted() -> Callable[[list[Any]], ScriptedTransport]:
    """Return a factory for scripted transports."""
    return ScriptedTransport


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
