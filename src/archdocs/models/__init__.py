"""archdocs data models.

This module exports the core entities used throughout the application:
- Job / JobStatus / APIResponse: One submit-and-poll lifecycle
- AnalysisBundle / EndpointResult: Results gathered from all endpoints
- ImpactAnalysis / CoverageAnalysis / CircularDependencyAnalysis: Typed analyses
- EntityDocument: Generated markdown document with frontmatter
"""

from archdocs.models.analysis import (
    AnalysisParseError,
    CircularDependencyAnalysis,
    CoverageAnalysis,
    CoverageStatus,
    ImpactAnalysis,
    RiskLevel,
    classify_coverage,
    classify_risk,
    coverage_percentage,
)
from archdocs.models.bundle import AnalysisBundle, EndpointResult
from archdocs.models.document import DocumentFormatError, EntityDocument
from archdocs.models.job import APIResponse, Job, JobStatus

__all__ = [
    "APIResponse",
    "AnalysisBundle",
    "AnalysisParseError",
    "CircularDependencyAnalysis",
    "CoverageAnalysis",
    "CoverageStatus",
    "DocumentFormatError",
    "EndpointResult",
    "EntityDocument",
    "ImpactAnalysis",
    "Job",
    "JobStatus",
    "RiskLevel",
    "classify_coverage",
    "classify_risk",
    "coverage_percentage",
]
