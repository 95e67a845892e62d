"""Scripted HTTP and clock doubles for job client tests."""

import json
from typing import Any

import httpx


def api_response(
    status: str,
    *,
    result: Any = None,
    error: Any = None,
    job_id: str = "job-1",
    retry_after: str | None = None,
    status_code: int = 200,
) -> httpx.Response:
    """Build an analysis API envelope response."""
    headers = {"Retry-After": retry_after} if retry_after is not None else {}
    body: dict[str, Any] = {"status": status, "jobId": job_id}
    if result is not None:
        body["result"] = result
    if error is not None:
        body["error"] = error
    return httpx.Response(status_code, headers=headers, content=json.dumps(body))


class ScriptedTransport:
    """httpx transport handler that replays responses in order.

    Each item is an httpx.Response, an exception instance to raise, or a
    callable taking the request. Every request is recorded.
    """

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item) and not isinstance(item, httpx.Response):
            return item(request)
        return item

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


class FakeClock:
    """Deterministic monotonic clock whose sleep advances time."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
