"""Template rendering for site builder configuration."""

from archdocs.templates.renderer import SiteConfigRenderer

__all__ = ["SiteConfigRenderer"]
