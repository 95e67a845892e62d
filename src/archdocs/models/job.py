"""Job lifecycle entities.

This module contains the entities used by the Job Client:
- JobStatus: Lifecycle state of a single submission
- Job: One submit-then-poll lifecycle against one endpoint
- APIResponse: Parsed response envelope returned by analysis endpoints
"""

import json
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class JobStatus(Enum):
    """Status of an analysis job."""

    SUBMITTED = "submitted"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return True if no further transitions are allowed."""
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def generate_idempotency_key() -> str:
    """Generate a random UUID4 idempotency key."""
    return str(uuid.uuid4())


@dataclass
class Job:
    """One submission lifecycle against one analysis endpoint.

    The idempotency key is generated once and reused on every request so the
    remote service can recognise retries as the same logical job.

    Attributes:
        endpoint_name: Endpoint identifier (e.g., "supermodel", "impact")
        endpoint_url: URL requests are sent to
        deadline: Monotonic clock value after which the job times out
        started_at: Monotonic clock value when the job was created
        idempotency_key: Stable UUID for the job's entire lifetime
        status: Current lifecycle status
        poll_interval: Last poll interval hint in seconds
        attempts: Number of requests issued so far
        remote_job_id: Job id reported by the service, if any
    """

    endpoint_name: str
    endpoint_url: str
    deadline: float
    started_at: float = 0.0
    idempotency_key: str = field(default_factory=generate_idempotency_key)
    status: JobStatus = JobStatus.SUBMITTED
    poll_interval: float | None = None
    attempts: int = 0
    remote_job_id: str | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "idempotency_key" and "idempotency_key" in self.__dict__:
            raise AttributeError("idempotency_key cannot be changed once assigned")
        super().__setattr__(name, value)

    def transition(self, status: JobStatus) -> None:
        """Move the job to a new status.

        Args:
            status: Target status

        Raises:
            ValueError: If the job already reached a terminal status, or the
                target would move it backwards to SUBMITTED
        """
        if self.status.is_terminal:
            raise ValueError(
                f"Job {self.endpoint_name} is already {self.status.value}; "
                f"cannot move to {status.value}"
            )
        if status == JobStatus.SUBMITTED and self.status != JobStatus.SUBMITTED:
            raise ValueError(f"Job {self.endpoint_name} cannot return to submitted")
        self.status = status

    def remaining(self, now: float) -> float:
        """Return seconds left before the deadline (never negative)."""
        return max(0.0, self.deadline - now)

    def expired(self, now: float) -> bool:
        """Return True if the deadline has elapsed."""
        return now >= self.deadline


@dataclass
class APIResponse:
    """Response envelope returned by an analysis endpoint.

    Attributes:
        status: Raw status string ("completed", "failed", "queued", ...)
        job_id: Remote job identifier
        error: Opaque error payload
        result: Opaque result payload
        raw_result: Undecoded JSON text of the result member, if present
    """

    status: str
    job_id: str = ""
    error: Any = None
    result: Any = None
    raw_result: str | None = field(default=None, repr=False)

    @property
    def is_completed(self) -> bool:
        return self.status == JobStatus.COMPLETED.value

    @property
    def is_failed(self) -> bool:
        return self.status == JobStatus.FAILED.value

    def error_text(self) -> str:
        """Render the opaque error payload for messages."""
        if self.error is None:
            return "null"
        if isinstance(self.error, str):
            return self.error
        return json.dumps(self.error, sort_keys=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "APIResponse":
        """Build an envelope from decoded JSON.

        Raises:
            ValueError: If data is not a JSON object
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        status = data.get("status")
        job_id = data.get("jobId")
        return cls(
            status=str(status) if status is not None else "",
            job_id=str(job_id) if job_id is not None else "",
            error=data.get("error"),
            result=data.get("result"),
        )

    @classmethod
    def from_json(cls, text: str) -> "APIResponse":
        """Build an envelope from a response body, keeping the raw result text.

        Raises:
            ValueError: If text is not JSON or not a JSON object
        """
        response = cls.from_dict(json.loads(text))
        if response.result is not None:
            response.raw_result = raw_member(text, "result")
        return response


_decoder = json.JSONDecoder()
_WHITESPACE = re.compile(r"[ \t\n\r]*")


def raw_member(text: str, key: str) -> str | None:
    """Return the undecoded text of a top-level member of a JSON object.

    ``text`` must already be known to be valid JSON. When a key repeats,
    the last occurrence wins, as with json.loads.
    """
    pos = _WHITESPACE.match(text).end()
    if text[pos:pos + 1] != "{":
        return None
    pos = _WHITESPACE.match(text, pos + 1).end()
    found = None
    while text[pos:pos + 1] == '"':
        name, pos = _decoder.raw_decode(text, pos)
        # Step over the colon separating name and value
        pos = _WHITESPACE.match(text, pos).end() + 1
        pos = _WHITESPACE.match(text, pos).end()
        start = pos
        _, pos = _decoder.raw_decode(text, pos)
        if name == key:
            found = text[start:pos]
        pos = _WHITESPACE.match(text, pos).end()
        if text[pos:pos + 1] != ",":
            break
        pos = _WHITESPACE.match(text, pos + 1).end()
    return found
