"""Enrichment engine.

Walks the generated entity documents and merges the optional analyses into
them. Each rule may append frontmatter keys and a level-2 body section:

- Impact: blast radius and risk level for the document's file
- Function coverage: tested/untested status for functions and methods
- File coverage: coverage bar and per-symbol status for files
- Aggregate coverage: per-file coverage bars for directories and packages
- Cycle membership / cleanliness: dependency health for files

Rules fire in that order and their sections keep that order ahead of the
document's existing body. Documents are independent of one another.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from archdocs.enrichment.formatting import (
    bullet_list,
    coverage_bar,
    quoted,
    tested_symbol,
    untested_symbol,
)
from archdocs.models.analysis import (
    AnalysisParseError,
    CircularDependencyAnalysis,
    CoverageAnalysis,
    ImpactAnalysis,
    classify_coverage,
    coverage_percentage,
)
from archdocs.models.bundle import AnalysisBundle
from archdocs.models.document import DocumentFormatError, EntityDocument, iter_document_paths

logger = logging.getLogger(__name__)

FUNCTION_TYPES = frozenset({"Function", "Method"})
FILE_TYPE = "File"
CONTAINER_TYPES = frozenset({"Directory", "Module", "Package", "Namespace"})

MAX_ENTRY_POINTS = 10

IN_CYCLE = "In Cycle"
CLEAN = "Clean"


@dataclass
class EnrichmentStats:
    """Counts collected during one enrichment pass.

    Attributes:
        scanned: Markdown files visited
        skipped: Files without a usable frontmatter block
        enriched: Documents that received at least one addition
    """

    scanned: int = 0
    skipped: int = 0
    enriched: int = 0


class EnrichmentEngine:
    """Merges parsed analyses into entity documents.

    Any analysis may be None; its rules then never fire.

    Usage:
        engine = EnrichmentEngine.from_bundle(bundle)
        count = engine.enrich(content_dir)
    """

    def __init__(
        self,
        impact: ImpactAnalysis | None = None,
        coverage: CoverageAnalysis | None = None,
        circular: CircularDependencyAnalysis | None = None,
    ) -> None:
        self.impact = impact
        self.coverage = coverage
        self.circular = circular
        self.stats = EnrichmentStats()

    @classmethod
    def from_bundle(cls, bundle: AnalysisBundle) -> "EnrichmentEngine":
        """Parse the optional analyses in a bundle.

        A malformed analysis is treated as absent and logged as a warning;
        nothing from it is merged.
        """
        return cls(
            impact=_parse_optional(ImpactAnalysis, bundle.impact, "impact"),
            coverage=_parse_optional(CoverageAnalysis, bundle.coverage, "test-coverage"),
            circular=_parse_optional(
                CircularDependencyAnalysis, bundle.circular, "circular-deps"
            ),
        )

    @property
    def has_analyses(self) -> bool:
        return any(a is not None for a in (self.impact, self.coverage, self.circular))

    # -------------------------------------------------------------------------
    # Tree and document entry points
    # -------------------------------------------------------------------------

    def enrich(self, content_dir: Path) -> int:
        """Enrich every markdown document below ``content_dir`` in place.

        Args:
            content_dir: Root of the generated document tree

        Returns:
            Number of documents modified
        """
        self.stats = EnrichmentStats()

        if not self.has_analyses:
            logger.info("No analysis data available; skipping enrichment")
            return 0

        for path in iter_document_paths(content_dir):
            self.stats.scanned += 1
            try:
                document = EntityDocument.load(path)
            except DocumentFormatError as e:
                self.stats.skipped += 1
                logger.debug("Skipping %s: %s", path, e)
                continue
            except (OSError, UnicodeDecodeError) as e:
                self.stats.skipped += 1
                logger.warning("Could not read %s: %s", path, e)
                continue

            if self.enrich_document(document):
                document.save()
                self.stats.enriched += 1

        logger.info(
            "Enriched %d of %d documents (%d skipped)",
            self.stats.enriched,
            self.stats.scanned,
            self.stats.skipped,
        )
        return self.stats.enriched

    def enrich_document(self, document: EntityDocument) -> bool:
        """Apply every matching rule to one document.

        Returns:
            True if any rule added content
        """
        file_path = document.file_path
        node_type = document.node_type

        if file_path:
            self._apply_impact(document, file_path)
            self._apply_function_coverage(document, file_path, node_type)
            self._apply_file_coverage(document, file_path, node_type)
            self._apply_aggregate_coverage(document, file_path, node_type)
            self._apply_cycles(document, file_path, node_type)

        return document.modified

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def _apply_impact(self, document: EntityDocument, file_path: str) -> None:
        if self.impact is None:
            return
        entry = self.impact.for_file(file_path)
        if entry is None:
            return

        radius = entry.blast_radius
        level = radius.risk_level.value

        document.add_metadata("impact_level", quoted(level))
        document.add_metadata("impact_risk_score", f"{radius.risk_score:.1f}")
        document.add_metadata("impact_direct_dependents", str(radius.direct_dependents))
        document.add_metadata(
            "impact_transitive_dependents", str(radius.transitive_dependents)
        )
        document.add_metadata("impact_affected_files", str(radius.affected_files))

        lines = [
            f"- Risk Score: {radius.risk_score:.1f} ({level})",
            f"- Direct Dependents: {radius.direct_dependents}",
            f"- Transitive Dependents: {radius.transitive_dependents}",
            f"- Affected Files: {radius.affected_files}",
        ]
        if entry.entry_points_affected:
            lines.append(f"- Entry Points Affected: {len(entry.entry_points_affected)}")
            for entry_point in entry.entry_points_affected[:MAX_ENTRY_POINTS]:
                lines.append(f"  - {entry_point.name} ({entry_point.file})")

        document.add_section("Impact Analysis", "\n".join(lines))

    def _apply_function_coverage(
        self, document: EntityDocument, file_path: str, node_type: str
    ) -> None:
        if self.coverage is None or node_type not in FUNCTION_TYPES:
            return
        function_name = document.function_name
        if not function_name:
            return

        test_files = self.coverage.test_files_for(file_path, function_name)
        if test_files is not None:
            document.add_metadata("test_coverage", quoted("Tested"))
            lines = [f"- Status: Tested by {len(test_files)} test file(s)"]
            lines.extend(f"  - {test_file}" for test_file in test_files)
            document.add_section("Test Coverage", "\n".join(lines))
            return

        reason = self.coverage.untested_reason(file_path, function_name)
        if reason is not None:
            document.add_metadata("test_coverage", quoted("Untested"))
            document.add_section("Test Coverage", f"- Status: Untested\n- Reason: {reason}")

    def _apply_file_coverage(
        self, document: EntityDocument, file_path: str, node_type: str
    ) -> None:
        if self.coverage is None or node_type != FILE_TYPE:
            return
        file_coverage = self.coverage.file_coverage(file_path)
        if file_coverage is None:
            return

        document.add_metadata("test_coverage", quoted(file_coverage.status.value))
        document.add_metadata("test_coverage_pct", f"{file_coverage.percentage:.1f}")

        items = [
            coverage_bar(
                file_path,
                file_coverage.percentage,
                file_coverage.tested,
                file_coverage.total,
            )
        ]
        items.extend(tested_symbol(name) for name in self.coverage.tested_names(file_path))
        items.extend(
            untested_symbol(name) for name in self.coverage.untested_names(file_path)
        )
        document.add_section("Test Coverage", bullet_list(items))

    def _apply_aggregate_coverage(
        self, document: EntityDocument, file_path: str, node_type: str
    ) -> None:
        if self.coverage is None or node_type not in CONTAINER_TYPES:
            return
        children = self.coverage.files_under(file_path)
        if not children:
            return

        items = [
            coverage_bar(child.file, child.percentage, child.tested, child.total)
            for child in children
        ]
        document.add_section("Test Coverage", bullet_list(items))

        total_tested = sum(child.tested for child in children)
        total_symbols = sum(child.total for child in children)
        percentage = coverage_percentage(total_tested, total_symbols)
        if percentage is None:
            # No symbols below this path: coverage is unknown rather than 0%
            logger.debug("No symbols under %s; leaving test_coverage unset", file_path)
            return

        document.add_metadata("test_coverage", quoted(classify_coverage(percentage).value))
        document.add_metadata("test_coverage_pct", f"{percentage:.1f}")

    def _apply_cycles(self, document: EntityDocument, file_path: str, node_type: str) -> None:
        if self.circular is None:
            return

        cycles = self.circular.cycles_for(file_path)
        if cycles:
            document.add_metadata("dependency_health", quoted(IN_CYCLE))
            lines: list[str] = []
            for cycle in cycles:
                lines.append(f"- {cycle.id} (severity: {cycle.severity})")
                if cycle.breaking_suggestion:
                    lines.append(f"  - Suggestion: {cycle.breaking_suggestion}")
            document.add_section("Circular Dependencies", "\n".join(lines))
        elif node_type == FILE_TYPE:
            document.add_metadata("dependency_health", quoted(CLEAN))


def _parse_optional(model, payload, name: str):
    """Parse an optional analysis, returning None if absent or malformed."""
    if payload is None:
        return None
    try:
        return model.from_json(payload)
    except AnalysisParseError as e:
        logger.warning("Ignoring %s analysis: %s", name, e)
        return None
