"""Job error taxonomy.

- TransportError: A single request failed at the network/HTTP level (retried while polling)
- JobFailedError: The service reported status "failed" (terminal)
- ResponseParseError: The response body was not a usable envelope (terminal)
- JobTimeoutError: The deadline elapsed while the job was still running (terminal)
"""


class JobError(Exception):
    """Base class for errors ending or interrupting an analysis job."""

    def __init__(self, endpoint: str, message: str) -> None:
        self.endpoint = endpoint
        self.message = message
        super().__init__(f"{endpoint}: {message}")


class TransportError(JobError):
    """Raised when a request fails before a usable response arrives.

    Covers connection failures, timeouts and HTTP status >= 400.
    """

    def __init__(
        self,
        endpoint: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        if status_code is not None:
            message = f"HTTP {status_code}: {message}"
        super().__init__(endpoint, message)


class JobFailedError(JobError):
    """Raised when the service reports the job as failed."""

    def __init__(self, endpoint: str, error: str, job_id: str = "") -> None:
        self.error = error
        self.job_id = job_id
        super().__init__(endpoint, f"API returned failure: {error}")


class ResponseParseError(JobError):
    """Raised when a response body cannot be parsed as an envelope."""

    def __init__(self, endpoint: str, message: str, body: str = "") -> None:
        self.body = body
        if body:
            message = f"{message} (body: {body[:500]})"
        super().__init__(endpoint, f"parsing response: {message}")


class JobTimeoutError(JobError):
    """Raised when a job is still running when its deadline elapses."""

    def __init__(self, endpoint: str, elapsed: float, timeout: float) -> None:
        self.elapsed = elapsed
        self.timeout = timeout
        super().__init__(
            endpoint,
            f"timeout waiting for API response after {elapsed:.1f}s "
            f"(limit {timeout:.0f}s)",
        )
