"""Analysis bundle gathered by the orchestrator.

The bundle holds the raw JSON results returned by each analysis endpoint,
keyed by endpoint name. Only the dependency graph is required; the other
analyses are enrichments and may be missing if their job failed.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

GRAPH = "supermodel"
IMPACT = "impact"
TEST_COVERAGE = "test-coverage"
CIRCULAR_DEPS = "circular-deps"

# File name each payload is saved under
RESULT_FILENAMES: dict[str, str] = {
    GRAPH: "graph.json",
    IMPACT: "impact.json",
    TEST_COVERAGE: "test-coverage.json",
    CIRCULAR_DEPS: "circular-deps.json",
}


@dataclass
class EndpointResult:
    """Outcome of one endpoint's job.

    Attributes:
        name: Endpoint name
        required: Whether the endpoint is load-bearing
        data: Raw result JSON (None on failure)
        error: Failure that ended the job (None on success)
        elapsed: Wall-clock seconds the job took
        raw: Result JSON text exactly as the service sent it
    """

    name: str
    required: bool
    data: Any = None
    error: Exception | None = None
    elapsed: float = 0.0
    raw: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class AnalysisBundle:
    """Raw analysis payloads for one run, keyed by endpoint name.

    Attributes:
        payloads: Decoded result JSON per endpoint
        raw_payloads: Result JSON text as received, where it is known
    """

    payloads: dict[str, Any] = field(default_factory=dict)
    raw_payloads: dict[str, str] = field(default_factory=dict, repr=False)

    def add(self, name: str, data: Any, raw: str | None = None) -> None:
        self.payloads[name] = data
        if raw is not None:
            self.raw_payloads[name] = raw
        else:
            self.raw_payloads.pop(name, None)

    def get(self, name: str) -> Any:
        return self.payloads.get(name)

    def has(self, name: str) -> bool:
        return self.payloads.get(name) is not None

    @property
    def graph(self) -> Any:
        return self.get(GRAPH)

    @property
    def impact(self) -> Any:
        return self.get(IMPACT)

    @property
    def coverage(self) -> Any:
        return self.get(TEST_COVERAGE)

    @property
    def circular(self) -> Any:
        return self.get(CIRCULAR_DEPS)

    @property
    def has_enrichments(self) -> bool:
        """Return True if any optional analysis is present."""
        return any(self.has(name) for name in (IMPACT, TEST_COVERAGE, CIRCULAR_DEPS))

    def save(self, directory: Path) -> dict[str, Path]:
        """Write every present payload to ``directory`` as JSON.

        Payloads received over the wire are written verbatim, exactly as the
        service sent them, so the graph reaches the markdown generator as-is.
        Payloads without raw text are serialized with json.dumps.

        Args:
            directory: Destination directory (created if missing)

        Returns:
            Mapping of endpoint name to written file path
        """
        directory.mkdir(parents=True, exist_ok=True)
        written: dict[str, Path] = {}

        for name, data in self.payloads.items():
            if data is None:
                continue
            filename = RESULT_FILENAMES.get(name, f"{name}.json")
            path = directory / filename
            text = self.raw_payloads.get(name)
            if text is None:
                text = json.dumps(data)
            path.write_text(text, encoding="utf-8")
            written[name] = path
            logger.info("Saved %s result to %s", name, path)

        return written
