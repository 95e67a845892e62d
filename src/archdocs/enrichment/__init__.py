"""Enrichment of generated entity documents with analysis data."""

from archdocs.enrichment.engine import EnrichmentEngine, EnrichmentStats

__all__ = ["EnrichmentEngine", "EnrichmentStats"]
