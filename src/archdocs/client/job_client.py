"""Job client for asynchronous analysis endpoints.

Drives one submit-then-poll cycle against a single endpoint:

1. POST the workspace archive with X-Api-Key and Idempotency-Key headers
2. "completed" returns the result, "failed" raises JobFailedError
3. Any other status sleeps for Retry-After (clamped) and re-sends the
   identical request until the job finishes or the deadline elapses

The idempotency key is generated once per job and reused on every request,
so the service deduplicates re-submissions into a single logical job.
Polling is driven by a tenacity Retrying whose wait honours Retry-After and
whose stop is the job deadline.
"""

import logging
import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from tenacity import RetryCallState, Retrying, retry_if_exception_type, retry_if_result
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from archdocs.client.errors import (
    JobFailedError,
    JobTimeoutError,
    ResponseParseError,
    TransportError,
)
from archdocs.config import EndpointConfig
from archdocs.models.job import APIResponse, Job, JobStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0
MAX_POLL_INTERVAL = 120.0

_SECONDS = re.compile(r"[+-]?[0-9]+")


def parse_retry_after(
    value: str | None,
    default: float = DEFAULT_POLL_INTERVAL,
    maximum: float = MAX_POLL_INTERVAL,
) -> float:
    """Convert a Retry-After header into a poll interval.

    Args:
        value: Raw header value (integer seconds)
        default: Interval used when the header is absent, invalid or < 1
        maximum: Upper bound for the interval

    Returns:
        Poll interval in seconds
    """
    if value is None:
        return default
    value = value.strip()
    if not _SECONDS.fullmatch(value):
        return default
    seconds = int(value)
    if seconds < 1:
        return default
    return float(min(seconds, maximum))


@dataclass
class JobResult:
    """Successful outcome of a job.

    Attributes:
        endpoint: Endpoint name
        data: Opaque result JSON from the envelope
        job: Final job state (idempotency key, attempts, remote id)
        elapsed: Seconds from job creation to completion
        raw: Undecoded JSON text of the result, as the service sent it
    """

    endpoint: str
    data: Any
    job: Job
    elapsed: float
    raw: str | None = None


@dataclass
class Poll:
    """One exchange with an endpoint: the envelope and its headers.

    Attributes:
        response: Parsed envelope
        headers: HTTP response headers (Retry-After lives here)
        result: Set once the envelope reports completion
    """

    response: APIResponse
    headers: Mapping[str, str]
    result: JobResult | None = None

    @property
    def pending(self) -> bool:
        return self.result is None


# =============================================================================
# Retry strategy
# =============================================================================


@dataclass(frozen=True)
class WaitRetryAfter(wait_base):
    """Wait for the interval the service asked for, clipped to the deadline.

    A pending envelope's Retry-After header sets the interval. A failed
    poll request has no usable header, so the default interval applies.

    Attributes:
        job: Job whose deadline bounds the wait
        clock: Monotonic clock the deadline is measured against
        default: Interval when Retry-After is absent or invalid
        maximum: Upper bound for Retry-After
    """

    job: Job
    clock: Callable[[], float]
    default: float
    maximum: float

    def __call__(self, retry_state: RetryCallState) -> float:
        header = None
        outcome = retry_state.outcome
        if outcome is not None and not outcome.failed:
            header = outcome.result().headers.get("Retry-After")
        interval = parse_retry_after(header, self.default, self.maximum)
        self.job.poll_interval = interval
        return min(interval, self.job.remaining(self.clock()))


@dataclass(frozen=True)
class StopAtDeadline(stop_base):
    """Stop retrying once the job deadline has elapsed."""

    job: Job
    clock: Callable[[], float]

    def __call__(self, retry_state: RetryCallState) -> bool:
        return self.job.expired(self.clock())


def _is_pending(poll: Poll) -> bool:
    return poll.pending


class JobClient:
    """Submits workspace archives to analysis endpoints and polls for results.

    A single JobClient may run jobs for several endpoints concurrently; each
    call to run() owns its own Job, response and retry state.

    Usage:
        with JobClient(api_key) as client:
            result = client.run(endpoint, archive_path)
    """

    def __init__(
        self,
        api_key: str,
        *,
        http_client: httpx.Client | None = None,
        request_timeout: float = 300.0,
        poll_timeout: float = 900.0,
        default_interval: float = DEFAULT_POLL_INTERVAL,
        max_interval: float = MAX_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the job client.

        Args:
            api_key: Credential sent as X-Api-Key
            http_client: Preconfigured httpx client (created if None)
            request_timeout: Upper bound for a single request, in seconds
            poll_timeout: Seconds a job may run before timing out
            default_interval: Poll interval when Retry-After is unusable
            max_interval: Upper bound applied to Retry-After
            clock: Monotonic clock used for deadlines
            sleep: Sleep function used between polls
        """
        if not api_key:
            raise ValueError("API key is required")

        self._api_key = api_key
        self._client = http_client or httpx.Client(timeout=request_timeout)
        self._owns_client = http_client is None
        self.request_timeout = request_timeout
        self.poll_timeout = poll_timeout
        self.default_interval = default_interval
        self.max_interval = max_interval
        self._clock = clock
        self._sleep = sleep

    def __enter__(self) -> "JobClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def new_job(self, endpoint: EndpointConfig) -> Job:
        """Create a job for ``endpoint`` with a fresh idempotency key."""
        now = self._clock()
        return Job(
            endpoint_name=endpoint.name,
            endpoint_url=endpoint.url,
            deadline=now + self.poll_timeout,
            started_at=now,
        )

    def run(
        self,
        endpoint: EndpointConfig,
        payload_path: Path,
        job: Job | None = None,
    ) -> JobResult:
        """Submit the payload and wait for the job to finish.

        Args:
            endpoint: Endpoint to submit to
            payload_path: Workspace archive to upload
            job: Existing job to continue (a new one is created if None)

        Returns:
            JobResult with the opaque result JSON

        Raises:
            TransportError: If the initial submission fails
            JobFailedError: If the service reports the job as failed
            ResponseParseError: If a response body is not a valid envelope
            JobTimeoutError: If the deadline elapses first
        """
        job = job or self.new_job(endpoint)

        logger.info(
            "Calling %s endpoint (idempotency key %s)",
            job.endpoint_name,
            job.idempotency_key,
        )
        # Outside the retry loop: a submission that cannot be delivered is final
        poll = self._poll(job, payload_path)

        for attempt in self._retrying(job):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    now = self._clock()
                    if job.expired(now):
                        raise self._timeout(job, now)
                    poll = self._poll(job, payload_path)
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(poll)

        return poll.result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _retrying(self, job: Job) -> Retrying:
        """Build the poll strategy for one job.

        Pending envelopes and failed poll requests are retried; a failed
        envelope, an unparseable body or the deadline ends the job.
        """

        def on_deadline(retry_state: RetryCallState) -> None:
            raise self._timeout(job, self._clock())

        return Retrying(
            retry=retry_if_exception_type(TransportError) | retry_if_result(_is_pending),
            stop=StopAtDeadline(job, self._clock),
            wait=WaitRetryAfter(job, self._clock, self.default_interval, self.max_interval),
            sleep=self._sleep,
            before_sleep=lambda retry_state: self._log_wait(job, retry_state),
            retry_error_callback=on_deadline,
        )

    def _log_wait(self, job: Job, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is None:
            return
        if outcome.failed:
            logger.warning(
                "%s: poll request failed: %s, retrying...",
                job.endpoint_name,
                outcome.exception().message,
            )
            return
        response = outcome.result().response
        logger.info(
            "%s: status %s (job: %s), polling in %.0fs...",
            job.endpoint_name,
            response.status or "unknown",
            response.job_id or "-",
            job.poll_interval,
        )

    def _poll(self, job: Job, payload_path: Path) -> Poll:
        """Send one request and apply the envelope to the job."""
        response, headers = self._send(job, payload_path)
        return Poll(response=response, headers=headers, result=self._handle(job, response))

    def _handle(self, job: Job, response: APIResponse) -> JobResult | None:
        """Apply a parsed envelope to the job.

        Returns:
            JobResult when completed, None when the job is still running

        Raises:
            JobFailedError: If the envelope reports failure
        """
        if response.job_id:
            job.remote_job_id = response.job_id

        if response.is_completed:
            job.transition(JobStatus.COMPLETED)
            elapsed = self._clock() - job.started_at
            logger.info("%s: completed after %.1fs", job.endpoint_name, elapsed)
            return JobResult(
                endpoint=job.endpoint_name,
                data=response.result,
                job=job,
                elapsed=elapsed,
                raw=response.raw_result,
            )

        if response.is_failed:
            job.transition(JobStatus.FAILED)
            raise JobFailedError(job.endpoint_name, response.error_text(), response.job_id)

        if job.status == JobStatus.SUBMITTED:
            job.transition(JobStatus.RUNNING)
        return None

    def _timeout(self, job: Job, now: float) -> JobTimeoutError:
        job.transition(JobStatus.FAILED)
        return JobTimeoutError(job.endpoint_name, now - job.started_at, self.poll_timeout)

    def _send(
        self,
        job: Job,
        payload_path: Path,
    ) -> tuple[APIResponse, Mapping[str, str]]:
        """Send one multipart request and parse the envelope.

        The request may not outlive the job deadline, so its timeout is the
        smaller of ``request_timeout`` and the time left.

        Raises:
            TransportError: On network failure, an unusable URL or HTTP
                status >= 400
            ResponseParseError: If the body is not a JSON object
        """
        job.attempts += 1
        headers = {
            "X-Api-Key": self._api_key,
            "Idempotency-Key": job.idempotency_key,
        }

        try:
            content = payload_path.read_bytes()
        except OSError as e:
            raise TransportError(job.endpoint_name, f"reading payload: {e}") from e

        files = {"file": (payload_path.name, content, "application/zip")}
        timeout = min(self.request_timeout, job.remaining(self._clock()))

        try:
            http_response = self._client.post(
                job.endpoint_url, headers=headers, files=files, timeout=timeout
            )
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise TransportError(job.endpoint_name, str(e) or type(e).__name__) from e

        if http_response.status_code >= 400:
            raise TransportError(
                job.endpoint_name,
                http_response.text[:500],
                status_code=http_response.status_code,
            )

        try:
            envelope = APIResponse.from_json(http_response.text)
        except ValueError as e:
            raise ResponseParseError(job.endpoint_name, str(e), http_response.text) from e

        return envelope, http_response.headers
