"""Analysis API client.

Submits workspace archives to asynchronous analysis endpoints and polls
until each job completes, fails, or times out.
"""

from archdocs.client.errors import (
    JobError,
    JobFailedError,
    JobTimeoutError,
    ResponseParseError,
    TransportError,
)
from archdocs.client.job_client import JobClient, JobResult, parse_retry_after

__all__ = [
    "JobClient",
    "JobError",
    "JobFailedError",
    "JobResult",
    "JobTimeoutError",
    "ResponseParseError",
    "TransportError",
    "parse_retry_after",
]
