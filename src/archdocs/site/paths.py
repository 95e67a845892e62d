"""Path rewriting for subdirectory deployments.

Sites built for the domain root link to "/page.html". When the base URL has
a path component (GitHub Pages project sites: https://owner.github.io/repo)
every root-relative reference must gain that prefix.
"""

import logging
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

REWRITE_EXTENSIONS = frozenset({".html", ".js"})


def extract_path_prefix(base_url: str) -> str:
    """Return the path component of ``base_url`` without a trailing slash.

    Example: "https://owner.github.io/repo/" -> "/repo"; no path -> "".
    """
    try:
        path = urlparse(base_url).path
    except ValueError:
        return ""
    path = path.rstrip("/")
    if not path:
        return ""
    return path


def rewrite_content(content: str, prefix: str) -> str:
    """Prefix root-relative href/src/fetch/location references."""
    content = content.replace('href="/', f'href="{prefix}/')
    content = content.replace('src="/', f'src="{prefix}/')
    content = content.replace('fetch("/', f'fetch("{prefix}/')
    content = content.replace(
        'window.location.href = "/"', f'window.location.href = "{prefix}/"'
    )
    return content


def rewrite_path_prefix(site_dir: Path, prefix: str) -> int:
    """Rewrite every HTML and JS file below ``site_dir``.

    Args:
        site_dir: Built site directory
        prefix: Path prefix such as "/repo"

    Returns:
        Number of files changed
    """
    changed = 0
    for path in sorted(site_dir.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in REWRITE_EXTENSIONS:
            continue
        original = path.read_text(encoding="utf-8", errors="surrogateescape")
        content = rewrite_content(original, prefix)
        if content != original:
            path.write_text(content, encoding="utf-8", errors="surrogateescape")
            changed += 1

    logger.info("Rewrote %d files for path prefix %s", changed, prefix)
    return changed
