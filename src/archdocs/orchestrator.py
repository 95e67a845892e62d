"""Concurrent fan-out over the configured analysis endpoints.

One job per endpoint runs on its own worker thread. Results are only read
after every job has finished. The dependency graph endpoint is load-bearing:
if it fails the run fails. The other analyses are enrichments: a failure
leaves their slot empty and is reported as a warning.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path

from archdocs.client import JobClient, JobError
from archdocs.config import EndpointConfig
from archdocs.models.bundle import AnalysisBundle, EndpointResult

logger = logging.getLogger(__name__)


class RequiredEndpointError(Exception):
    """Raised when the required endpoint fails; no output can be produced."""

    def __init__(self, endpoint: str, cause: Exception) -> None:
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"Required endpoint {endpoint} failed: {cause}")


@dataclass
class OrchestratorResult:
    """Aggregated outcome of all endpoint jobs.

    Attributes:
        bundle: Payloads from every endpoint that succeeded
        warnings: One message per failed optional endpoint
        results: Per-endpoint outcome records, in configuration order
    """

    bundle: AnalysisBundle
    warnings: list[str] = field(default_factory=list)
    results: list[EndpointResult] = field(default_factory=list)


class Orchestrator:
    """Runs one job per endpoint concurrently and aggregates the results.

    Usage:
        orchestrator = Orchestrator(config.api.endpoints, JobClient(api_key))
        result = orchestrator.run(archive_path)
    """

    def __init__(self, endpoints: list[EndpointConfig], job_client: JobClient) -> None:
        """Initialize the orchestrator.

        Args:
            endpoints: Analysis sources; exactly one must be required
            job_client: Client used to run each endpoint's job

        Raises:
            ValueError: If the endpoint set is empty, has duplicate names, or
                does not contain exactly one required endpoint
        """
        if not endpoints:
            raise ValueError("At least one endpoint must be configured")

        names = [e.name for e in endpoints]
        if len(names) != len(set(names)):
            raise ValueError(f"Endpoint names must be unique: {names}")

        required = [e for e in endpoints if e.required]
        if len(required) != 1:
            raise ValueError(
                f"Exactly one required endpoint must be configured (got {len(required)})"
            )

        self.endpoints = list(endpoints)
        self.required_endpoint = required[0]
        self._job_client = job_client

    def run(self, payload_path: Path) -> OrchestratorResult:
        """Submit the payload to every endpoint and wait for all of them.

        Args:
            payload_path: Workspace archive uploaded to each endpoint

        Returns:
            OrchestratorResult with the bundle and optional-endpoint warnings

        Raises:
            RequiredEndpointError: If the required endpoint failed
        """
        with ThreadPoolExecutor(
            max_workers=len(self.endpoints),
            thread_name_prefix="archdocs-job",
        ) as executor:
            futures: dict[str, Future[EndpointResult]] = {
                endpoint.name: executor.submit(self._run_one, endpoint, payload_path)
                for endpoint in self.endpoints
            }
            wait(futures.values())

        results = [futures[endpoint.name].result() for endpoint in self.endpoints]
        return self._aggregate(results)

    def _run_one(self, endpoint: EndpointConfig, payload_path: Path) -> EndpointResult:
        """Run a single endpoint's job, capturing its failure instead of raising."""
        started = time.monotonic()
        logger.info("Calling %s endpoint...", endpoint.name)
        try:
            job_result = self._job_client.run(endpoint, payload_path)
        except JobError as e:
            error: Exception = e
        except Exception as e:
            # Still confined to this endpoint; the policy in _aggregate decides
            logger.exception("%s: unexpected error", endpoint.name)
            error = e
        else:
            return EndpointResult(
                name=endpoint.name,
                required=endpoint.required,
                data=job_result.data,
                elapsed=time.monotonic() - started,
                raw=job_result.raw,
            )
        return EndpointResult(
            name=endpoint.name,
            required=endpoint.required,
            error=error,
            elapsed=time.monotonic() - started,
        )

    def _aggregate(self, results: list[EndpointResult]) -> OrchestratorResult:
        bundle = AnalysisBundle()
        warnings: list[str] = []

        for result in results:
            if result.error is not None:
                if result.required:
                    raise RequiredEndpointError(result.name, result.error)
                message = f"{result.name} endpoint failed: {result.error}"
                logger.warning(message)
                warnings.append(message)
                continue

            bundle.add(result.name, result.data, raw=result.raw)
            logger.info("%s: received result after %.1fs", result.name, result.elapsed)

        return OrchestratorResult(bundle=bundle, warnings=warnings, results=results)
