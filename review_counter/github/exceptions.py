"""Exception hierarchy for metrics-source fetches."""

from __future__ import annotations


class FetchError(Exception):
    """Base exception for a failed metric fetch."""

    def __init__(self, query_id: str, detail: str, status: int | None = None) -> None:
        self.query_id = query_id
        self.detail = detail
        self.status = status
        prefix = f"{query_id}: HTTP {status}" if status is not None else query_id
        super().__init__(f"{prefix}: {detail}")


class FetchStatusError(FetchError):
    """The API answered with a non-success status code."""


class FetchTransportError(FetchError):
    """The request never produced a response (connect, timeout, ...)."""


class FetchParseError(FetchError):
    """The response body did not have the expected count shape."""
