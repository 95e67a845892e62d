"""Site builder configuration renderer.

Renders the pssg.yaml consumed by the static site builder from the
package's Jinja2 templates. Output is deterministic: the same inputs always
produce the same file.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined

logger = logging.getLogger(__name__)

# Body sections the site builder renders as lists, in page order
BODY_SECTIONS: list[str] = [
    "Functions",
    "Classes",
    "Types",
    "Dependencies",
    "Imported By",
    "Calls",
    "Called By",
    "Source Files",
    "Subdirectories",
    "Files",
    "Source",
    "Extends",
    "Defined In",
    "Subdomains",
    "Domain",
    "Impact Analysis",
    "Test Coverage",
    "Circular Dependencies",
]


@dataclass(frozen=True)
class Taxonomy:
    """A frontmatter field the site indexes entities by."""

    name: str
    label: str
    singular: str
    description: str
    multi_value: bool = False


TAXONOMIES: list[Taxonomy] = [
    Taxonomy("node_type", "Node Types", "Node Type", "Browse by entity type"),
    Taxonomy("language", "Languages", "Language", "Browse by programming language"),
    Taxonomy("domain", "Domains", "Domain", "Browse by architectural domain"),
    Taxonomy("subdomain", "Subdomains", "Subdomain", "Browse by architectural subdomain"),
    Taxonomy("top_directory", "Top Directories", "Directory", "Browse by top-level directory"),
    Taxonomy("extension", "File Extensions", "Extension", "Browse by file extension"),
    Taxonomy("tags", "Tags", "Tag", "Browse by tag", multi_value=True),
    Taxonomy("test_coverage", "Test Coverage", "Coverage", "Browse by test coverage status"),
    Taxonomy("impact_level", "Impact Level", "Impact Level", "Browse by change impact level"),
    Taxonomy(
        "dependency_health",
        "Dependency Health",
        "Dependency Health",
        "Browse by dependency health status",
    ),
]


def yaml_str(value: Any) -> str:
    """Quote a value as a YAML double-quoted scalar."""
    return json.dumps("" if value is None else str(value), ensure_ascii=False)


class SiteConfigRenderer:
    """Renders site builder configuration files.

    Usage:
        renderer = SiteConfigRenderer()
        renderer.render_to_file(config_path, site_name=..., ...)
    """

    def __init__(self) -> None:
        self._env = Environment(
            loader=PackageLoader("archdocs", "templates"),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self._env.filters["yaml_str"] = yaml_str

    def render(
        self,
        *,
        site_name: str,
        base_url: str,
        repo_url: str,
        repo_name: str,
        content_dir: Path,
        templates_dir: Path,
        output_dir: Path,
        source_dir: Path,
        template_name: str = "pssg.yaml.j2",
    ) -> str:
        """Render the site builder configuration.

        Returns:
            Rendered YAML string
        """
        template = self._env.get_template(template_name)
        return template.render(
            site_name=site_name,
            base_url=base_url,
            repo_url=repo_url,
            repo_name=repo_name,
            content_dir=str(content_dir),
            templates_dir=str(templates_dir),
            output_dir=str(output_dir),
            source_dir=str(source_dir),
            body_sections=BODY_SECTIONS,
            taxonomies=TAXONOMIES,
        )

    def render_to_file(self, config_path: Path, **context: Any) -> Path:
        """Render the configuration and write it to ``config_path``."""
        content = self.render(**context)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(content, encoding="utf-8")
        logger.info("Wrote site config to %s", config_path)
        return config_path
