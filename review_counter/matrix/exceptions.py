"""Exception hierarchy for pushes to the Matrix homeserver."""

from __future__ import annotations


class PushError(Exception):
    """Base exception for a failed state upsert or message send."""

    def __init__(self, target: str, detail: str, status: int | None = None) -> None:
        self.target = target
        self.detail = detail
        self.status = status
        prefix = f"{target}: HTTP {status}" if status is not None else target
        super().__init__(f"{prefix}: {detail}")


class PushStatusError(PushError):
    """The homeserver answered with a non-success status code."""


class PushTransportError(PushError):
    """The request never produced a response."""
