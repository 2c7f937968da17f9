"""Domain types for counters, state updates and digest messages."""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class MetricKind(StrEnum):
    """Response shape of a metrics-source query."""

    SEARCH = "search"  # {"total_count": N}
    COLLECTION = "collection"  # [..] with N entries


class Severity(StrEnum):
    """Severity attached to a pushed counter."""

    NORMAL = "normal"
    WARNING = "warning"
    ALERT = "alert"


class MetricResult(BaseModel):
    """Outcome of fetching one metric in one cycle."""

    query_id: str
    count: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.count is not None


class StateUpdate(BaseModel):
    """A counter value ready to be upserted under ``key``."""

    key: str
    title: str
    value: int
    severity: Severity
    link: str = ""

    def payload(self) -> dict[str, Any]:
        """JSON body of the state event."""
        return {
            "title": self.title,
            "value": self.value,
            "severity": self.severity.value,
            "link": self.link,
        }


class DigestMessage(BaseModel):
    """Human-readable daily summary."""

    plain_body: str
    formatted_body: str


class CycleReport(BaseModel):
    """Summary of a completed check cycle."""

    counts: dict[str, int] = Field(default_factory=dict)
    pushed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    digest_sent: bool = False
    digest_error: str | None = None
    started_at: float = Field(default_factory=time.time)
    duration_secs: float = 0.0
