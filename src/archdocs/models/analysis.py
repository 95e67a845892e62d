"""Typed views over the optional analysis results.

This module contains the result models used by the enrichment engine:
- ImpactAnalysis: Per-target blast radius records
- CoverageAnalysis: Tested/untested functions and per-file coverage
- CircularDependencyAnalysis: Detected import cycles

All parsers tolerate unknown and missing fields. A payload that cannot be
decoded, or a present field of the wrong JSON type, raises AnalysisParseError,
and the caller treats the whole analysis as absent.
"""

import json
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AnalysisParseError(ValueError):
    """Raised when an analysis payload is not usable JSON or has mistyped fields."""

    def __init__(self, analysis: str, message: str) -> None:
        self.analysis = analysis
        super().__init__(f"Malformed {analysis} analysis: {message}")


class RiskLevel(Enum):
    """Categorical risk derived from a blast-radius risk score."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class CoverageStatus(Enum):
    """Binary coverage status derived from a coverage percentage."""

    TESTED = "Tested"
    UNTESTED = "Untested"


def classify_risk(score: float) -> RiskLevel:
    """Classify a risk score.

    Args:
        score: Continuous risk score

    Returns:
        Critical above 100, High from 30, Medium from 10, otherwise Low
    """
    if score > 100:
        return RiskLevel.CRITICAL
    if score >= 30:
        return RiskLevel.HIGH
    if score >= 10:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def classify_coverage(percentage: float) -> CoverageStatus:
    """Return Untested for exactly 0%, Tested otherwise."""
    if percentage == 0:
        return CoverageStatus.UNTESTED
    return CoverageStatus.TESTED


def coverage_percentage(tested: int, total: int) -> float | None:
    """Compute tested/total as a percentage.

    Returns:
        Percentage in [0, 100], or None when there are no symbols at all
    """
    if total <= 0:
        return None
    return tested / total * 100


# =============================================================================
# Field helpers
# =============================================================================


def _decode(analysis: str, payload: Any) -> dict[str, Any]:
    """Decode bytes/str payloads and require a top-level object."""
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise AnalysisParseError(analysis, str(e)) from e
    if not isinstance(payload, dict):
        raise AnalysisParseError(
            analysis, f"expected a JSON object, got {type(payload).__name__}"
        )
    return payload


class _FieldTypeError(ValueError):
    """A present field holds the wrong JSON type."""

    def __init__(self, key: str, expected: str, value: Any) -> None:
        super().__init__(f"field {key!r} should be {expected}, got {type(value).__name__}")


def _field(data: dict[str, Any], key: str, types: tuple[type, ...], expected: str) -> Any:
    """Return ``data[key]``, or None when the key is missing or null."""
    value = data.get(key)
    if value is None:
        return None
    if (isinstance(value, bool) and bool not in types) or not isinstance(value, types):
        raise _FieldTypeError(key, expected, value)
    return value


def _obj(data: dict[str, Any], key: str) -> dict[str, Any]:
    return _field(data, key, (dict,), "an object") or {}


def _list(data: dict[str, Any], key: str) -> list[Any]:
    return _field(data, key, (list,), "a list") or []


def _str(data: dict[str, Any], key: str) -> str:
    return _field(data, key, (str,), "a string") or ""


def _int(data: dict[str, Any], key: str) -> int:
    value = _field(data, key, (int, float), "an integer")
    if value is None:
        return 0
    if isinstance(value, float) and not value.is_integer():
        raise _FieldTypeError(key, "an integer", value)
    return int(value)


def _float(data: dict[str, Any], key: str) -> float:
    value = _field(data, key, (int, float), "a number")
    return 0.0 if value is None else float(value)


def _records(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    items = _list(data, key)
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise _FieldTypeError(f"{key}[{i}]", "an object", item)
    return items


def _strings(data: dict[str, Any], key: str) -> list[str]:
    items = _list(data, key)
    for i, item in enumerate(items):
        if not isinstance(item, str):
            raise _FieldTypeError(f"{key}[{i}]", "a string", item)
    return items


# =============================================================================
# Impact analysis
# =============================================================================


@dataclass
class BlastRadius:
    """How far a change to a target propagates."""

    direct_dependents: int = 0
    transitive_dependents: int = 0
    affected_files: int = 0
    risk_score: float = 0.0

    @property
    def risk_level(self) -> RiskLevel:
        return classify_risk(self.risk_score)


@dataclass
class AffectedFunction:
    file: str
    name: str
    distance: int = 0
    relationship: str = ""


@dataclass
class EntryPoint:
    file: str
    name: str


@dataclass
class ImpactEntry:
    """Blast radius record for one change target.

    Attributes:
        target_file: File the target lives in
        target_name: Target symbol name
        target_type: Target kind (file, function, ...)
        blast_radius: Dependent and risk counts
        affected_functions: Functions reached from the target
        entry_points_affected: Entry points reached from the target
    """

    target_file: str
    target_name: str = ""
    target_type: str = ""
    blast_radius: BlastRadius = field(default_factory=BlastRadius)
    affected_functions: list[AffectedFunction] = field(default_factory=list)
    entry_points_affected: list[EntryPoint] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImpactEntry":
        target = _obj(data, "target")
        radius = _obj(data, "blastRadius")
        return cls(
            target_file=_str(target, "file"),
            target_name=_str(target, "name"),
            target_type=_str(target, "type"),
            blast_radius=BlastRadius(
                direct_dependents=_int(radius, "directDependents"),
                transitive_dependents=_int(radius, "transitiveDependents"),
                affected_files=_int(radius, "affectedFiles"),
                risk_score=_float(radius, "riskScore"),
            ),
            affected_functions=[
                AffectedFunction(
                    file=_str(item, "file"),
                    name=_str(item, "name"),
                    distance=_int(item, "distance"),
                    relationship=_str(item, "relationship"),
                )
                for item in _records(data, "affectedFunctions")
            ],
            entry_points_affected=[
                EntryPoint(file=_str(item, "file"), name=_str(item, "name"))
                for item in _records(data, "entryPointsAffected")
            ],
        )


@dataclass
class ImpactAnalysis:
    """Impact analysis result indexed by target file."""

    impacts: list[ImpactEntry] = field(default_factory=list)
    by_file: dict[str, ImpactEntry] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        for entry in self.impacts:
            # Later entries for the same file replace earlier ones
            self.by_file[entry.target_file] = entry

    @classmethod
    def from_json(cls, payload: Any) -> "ImpactAnalysis":
        """Parse an impact analysis payload.

        Args:
            payload: Raw JSON (bytes/str) or decoded object

        Raises:
            AnalysisParseError: If the payload is not a JSON object or a field
                has the wrong type
        """
        data = _decode("impact", payload)
        try:
            impacts = [ImpactEntry.from_dict(item) for item in _records(data, "impacts")]
        except _FieldTypeError as e:
            raise AnalysisParseError("impact", str(e)) from e
        return cls(impacts=impacts)

    def for_file(self, file_path: str) -> ImpactEntry | None:
        return self.by_file.get(file_path)


# =============================================================================
# Test coverage analysis
# =============================================================================


@dataclass
class TestedFunction:
    file: str
    name: str
    line: int = 0
    test_files: list[str] = field(default_factory=list)


@dataclass
class UntestedFunction:
    file: str
    name: str
    line: int = 0
    type: str = ""
    confidence: str = ""
    reason: str = ""


@dataclass
class FileCoverage:
    """Coverage for a single file.

    Attributes:
        file: File path
        percentage: Coverage percentage reported by the service
        tested: Number of tested symbols in the file
        total: Number of tested plus untested symbols in the file
    """

    file: str
    percentage: float
    tested: int = 0
    total: int = 0

    @property
    def status(self) -> CoverageStatus:
        return classify_coverage(self.percentage)


@dataclass
class CoverageAnalysis:
    """Test coverage result with per-file and per-function indexes."""

    coverage_percentage: float = 0.0
    tested_count: int = 0
    untested_count: int = 0
    tested_functions: list[TestedFunction] = field(default_factory=list)
    untested_functions: list[UntestedFunction] = field(default_factory=list)
    coverage_by_file: dict[str, float] = field(default_factory=dict)

    _tested_by_key: dict[tuple[str, str], list[str]] = field(
        default_factory=dict, init=False, repr=False
    )
    _untested_by_key: dict[tuple[str, str], str] = field(default_factory=dict, init=False, repr=False)
    _tested_names: dict[str, list[str]] = field(default_factory=dict, init=False, repr=False)
    _untested_names: dict[str, list[str]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self._build_indexes()

    def _build_indexes(self) -> None:
        tested_names: dict[str, list[str]] = defaultdict(list)
        untested_names: dict[str, list[str]] = defaultdict(list)

        for func in self.tested_functions:
            self._tested_by_key[(func.file, func.name)] = func.test_files
            tested_names[func.file].append(func.name)

        for func in self.untested_functions:
            self._untested_by_key[(func.file, func.name)] = func.reason
            untested_names[func.file].append(func.name)

        self._tested_names = dict(tested_names)
        self._untested_names = dict(untested_names)

    @classmethod
    def from_json(cls, payload: Any) -> "CoverageAnalysis":
        """Parse a test coverage payload.

        Args:
            payload: Raw JSON (bytes/str) or decoded object

        Raises:
            AnalysisParseError: If the payload is not a JSON object or a field
                has the wrong type
        """
        data = _decode("test coverage", payload)
        try:
            return cls._from_dict(data)
        except _FieldTypeError as e:
            raise AnalysisParseError("test coverage", str(e)) from e

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "CoverageAnalysis":
        metadata = _obj(data, "metadata")

        coverage_by_file: dict[str, float] = {}
        for item in _records(data, "coverageByFile"):
            coverage_by_file[_str(item, "file")] = _float(item, "coveragePercentage")

        return cls(
            coverage_percentage=_float(metadata, "coveragePercentage"),
            tested_count=_int(metadata, "testedFunctions"),
            untested_count=_int(metadata, "untestedFunctions"),
            tested_functions=[
                TestedFunction(
                    file=_str(item, "file"),
                    name=_str(item, "name"),
                    line=_int(item, "line"),
                    test_files=_strings(item, "testFiles"),
                )
                for item in _records(data, "testedFunctions")
            ],
            untested_functions=[
                UntestedFunction(
                    file=_str(item, "file"),
                    name=_str(item, "name"),
                    line=_int(item, "line"),
                    type=_str(item, "type"),
                    confidence=_str(item, "confidence"),
                    reason=_str(item, "reason"),
                )
                for item in _records(data, "untestedFunctions")
            ],
            coverage_by_file=coverage_by_file,
        )

    def test_files_for(self, file_path: str, name: str) -> list[str] | None:
        """Return covering test files, or None if the function is not tested."""
        return self._tested_by_key.get((file_path, name))

    def untested_reason(self, file_path: str, name: str) -> str | None:
        """Return the untested reason code, or None if not listed as untested."""
        return self._untested_by_key.get((file_path, name))

    def tested_names(self, file_path: str) -> list[str]:
        return self._tested_names.get(file_path, [])

    def untested_names(self, file_path: str) -> list[str]:
        return self._untested_names.get(file_path, [])

    def file_coverage(self, file_path: str) -> FileCoverage | None:
        """Return coverage for a file listed in coverageByFile."""
        if file_path not in self.coverage_by_file:
            return None
        tested = len(self.tested_names(file_path))
        return FileCoverage(
            file=file_path,
            percentage=self.coverage_by_file[file_path],
            tested=tested,
            total=tested + len(self.untested_names(file_path)),
        )

    def files_under(self, directory: str) -> list[FileCoverage]:
        """Return coverage for every file below ``directory``.

        Results are sorted ascending by percentage, worst covered first,
        with the file path as tie breaker.
        """
        prefix = directory if directory.endswith("/") else directory + "/"
        children = [
            self.file_coverage(path)
            for path in self.coverage_by_file
            if path.startswith(prefix)
        ]
        files = [child for child in children if child is not None]
        files.sort(key=lambda fc: (fc.percentage, fc.file))
        return files


# =============================================================================
# Circular dependency analysis
# =============================================================================


@dataclass
class CycleEdge:
    source: str
    target: str
    imported_symbols: list[str] = field(default_factory=list)


@dataclass
class Cycle:
    """A circular import relationship among a set of files."""

    id: str
    files: list[str] = field(default_factory=list)
    edges: list[CycleEdge] = field(default_factory=list)
    severity: str = ""
    breaking_suggestion: str = ""


@dataclass
class CircularDependencyAnalysis:
    """Circular dependency result indexed by member file."""

    cycles: list[Cycle] = field(default_factory=list)
    total_cycles: int = 0
    high_severity_count: int = 0
    _cycles_by_file: dict[str, list[Cycle]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        by_file: dict[str, list[Cycle]] = defaultdict(list)
        for cycle in self.cycles:
            for path in cycle.files:
                by_file[path].append(cycle)
        self._cycles_by_file = dict(by_file)

    @classmethod
    def from_json(cls, payload: Any) -> "CircularDependencyAnalysis":
        """Parse a circular dependency payload.

        Args:
            payload: Raw JSON (bytes/str) or decoded object

        Raises:
            AnalysisParseError: If the payload is not a JSON object or a field
                has the wrong type
        """
        data = _decode("circular dependency", payload)
        try:
            return cls._from_dict(data)
        except _FieldTypeError as e:
            raise AnalysisParseError("circular dependency", str(e)) from e

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "CircularDependencyAnalysis":
        summary = _obj(data, "summary")

        cycles = [
            Cycle(
                id=_str(item, "id"),
                files=_strings(item, "files"),
                edges=[
                    CycleEdge(
                        source=_str(edge, "source"),
                        target=_str(edge, "target"),
                        imported_symbols=_strings(edge, "importedSymbols"),
                    )
                    for edge in _records(item, "edges")
                ],
                severity=_str(item, "severity"),
                breaking_suggestion=_str(item, "breakingSuggestion"),
            )
            for item in _records(data, "cycles")
        ]

        return cls(
            cycles=cycles,
            total_cycles=_int(summary, "totalCycles"),
            high_severity_count=_int(summary, "highSeverityCount"),
        )

    def cycles_for(self, file_path: str) -> list[Cycle]:
        """Return the cycles a file participates in, in detection order."""
        return self._cycles_by_file.get(file_path, [])

    def in_cycle(self, file_path: str) -> bool:
        return file_path in self._cycles_by_file
