"""Cycle-level exceptions."""

from __future__ import annotations


class CycleError(Exception):
    """A check cycle stopped before completing.

    ``stage`` is ``"fetch"`` or ``"push"``; ``cause`` is the first
    FetchError / PushError seen.  In resilient mode ``failures`` lists every
    failed metric.
    """

    def __init__(
        self,
        stage: str,
        cause: Exception,
        failures: list[Exception] | None = None,
    ) -> None:
        self.stage = stage
        self.cause = cause
        self.failures = failures or [cause]
        if len(self.failures) > 1:
            detail = "; ".join(str(f) for f in self.failures)
        else:
            detail = str(cause)
        super().__init__(f"{stage} failed: {detail}")
