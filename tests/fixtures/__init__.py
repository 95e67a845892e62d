"""Test fixtures for archdocs.

This package provides recorded analysis payloads and a small generated
markdown tree for enrichment and end-to-end tests.

Analyses (analyses/):
- impact.json: Two targets, one High risk with entry points
- test-coverage.json: Two files under src/api (50% and 75%)
- circular-deps.json: One cycle between handler.py and routes.py

Content (content/):
- Entity documents as graph2md writes them, plus one file without frontmatter
"""

import json
import shutil
from pathlib import Path
from typing import Any

FIXTURES_DIR = Path(__file__).parent

ANALYSES_DIR = FIXTURES_DIR / "analyses"
CONTENT_DIR = FIXTURES_DIR / "content"

IMPACT_PATH = ANALYSES_DIR / "impact.json"
COVERAGE_PATH = ANALYSES_DIR / "test-coverage.json"
CIRCULAR_PATH = ANALYSES_DIR / "circular-deps.json"


def load_analysis(name: str) -> Any:
    """Load a recorded analysis payload by file stem.

    Raises:
        ValueError: If the payload doesn't exist
    """
    path = ANALYSES_DIR / f"{name}.json"
    if not path.exists():
        raise ValueError(f"Analysis fixture not found: {name}")
    return json.loads(path.read_text(encoding="utf-8"))


def copy_content(destination: Path) -> Path:
    """Copy the sample markdown tree so tests can modify it."""
    shutil.copytree(CONTENT_DIR, destination)
    return destination
