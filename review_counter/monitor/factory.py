"""Convenience factory for wiring the check stack."""

from __future__ import annotations

from review_counter.core.config import Settings
from review_counter.github.client import GitHubClient
from review_counter.matrix.client import MatrixClient
from review_counter.monitor.cycle import CheckCycle
from review_counter.monitor.gate import DailyDigestGate
from review_counter.monitor.scheduler import CheckScheduler


def create_check_stack(
    settings: Settings,
) -> tuple[GitHubClient, MatrixClient, CheckCycle, CheckScheduler]:
    """Build clients, the shared cycle and its timer from settings.

    The GitHub client still needs ``connect()`` before the first cycle.

    Returns:
        (github, matrix, cycle, scheduler)
    """
    github = GitHubClient(settings.github)
    matrix = MatrixClient(settings.matrix)

    gate: DailyDigestGate | None = None
    if settings.digest.enabled:
        gate = DailyDigestGate(
            trigger_time=settings.digest.trigger_time,
            tz=settings.digest.tzinfo,
        )

    cycle = CheckCycle(
        source=github,
        sink=matrix,
        metrics=settings.metrics,
        states=settings.states,
        gate=gate,
        digest_config=settings.digest,
        fail_fast=settings.scheduler.fail_fast,
    )
    scheduler = CheckScheduler(cycle, interval_secs=settings.scheduler.interval_secs)
    return github, matrix, cycle, scheduler
