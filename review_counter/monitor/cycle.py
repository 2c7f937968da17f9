"""One check cycle — fetch counts, maybe send the digest, push state."""

from __future__ import annotations

import asyncio
import datetime
import time
from collections.abc import Callable, Sequence
from typing import Protocol

import structlog

from review_counter.core.config import DigestConfig, MetricQueryConfig, StateConfig
from review_counter.core.types import CycleReport, DigestMessage, MetricResult, StateUpdate
from review_counter.github.exceptions import FetchError
from review_counter.matrix.exceptions import PushError
from review_counter.monitor.digest import build_digest, build_state_update
from review_counter.monitor.exceptions import CycleError
from review_counter.monitor.gate import DailyDigestGate

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime.datetime]


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class MetricSource(Protocol):
    """Read side: anything that can count a configured query."""

    async def fetch_count(self, query: MetricQueryConfig) -> int:
        ...


class StateSink(Protocol):
    """Write side: idempotent state upserts plus digest delivery."""

    async def push_update(self, update: StateUpdate) -> None:
        ...

    async def send_digest(self, digest: DigestMessage) -> None:
        ...


class CheckCycle:
    """Stateless orchestrator shared by the timer loop and the webhook.

    Each :meth:`run_cycle` call:

    1. fetches every metric concurrently; with ``fail_fast`` (the default)
       the first failure cancels the rest and aborts before anything is
       pushed;
    2. asks the gate whether the digest is due and, if so, sends it; a
       failed send is logged and does not affect step 3;
    3. pushes every state update in order, aborting on the first failure.

    Overlapping calls are safe: the gate is the only shared mutable state.
    """

    def __init__(
        self,
        source: MetricSource,
        sink: StateSink,
        metrics: Sequence[MetricQueryConfig],
        states: Sequence[StateConfig],
        gate: DailyDigestGate | None = None,
        digest_config: DigestConfig | None = None,
        fail_fast: bool = True,
        clock: Clock = _utc_now,
    ) -> None:
        self._source = source
        self._sink = sink
        self._metrics = tuple(metrics)
        self._states = tuple(states)
        self._gate = gate
        self._digest_config = digest_config or DigestConfig()
        self._fail_fast = fail_fast
        self._clock = clock

    @property
    def fail_fast(self) -> bool:
        return self._fail_fast

    async def run_cycle(self, trigger: str = "manual") -> CycleReport:
        """Run one full cycle.

        Raises:
            CycleError: a fetch or push failed; ``cause`` holds the first error.
        """
        started = time.monotonic()
        report = CycleReport()
        log = logger.bind(trigger=trigger)

        results, errors = await self._fetch_all()
        failures = [r for r in results if not r.ok]
        if failures:
            for r in failures:
                log.warning("metric_fetch_failed", query_id=r.query_id, error=r.error)
            if self._fail_fast:
                raise CycleError("fetch", errors[0]) from errors[0]

        counts = {r.query_id: r.count for r in results if r.count is not None}
        report.counts = dict(counts)
        log.info("counts_fetched", counts=counts)

        updates: list[StateUpdate] = []
        for state in self._states:
            if all(m in counts for m in state.metrics):
                updates.append(build_state_update(state, counts))
            else:
                report.skipped.append(state.key)

        await self._maybe_send_digest(counts, updates, report, log)

        for update in updates:
            try:
                await self._sink.push_update(update)
            except PushError as exc:
                log.warning("state_push_failed", key=update.key, error=str(exc))
                raise CycleError("push", exc) from exc
            report.pushed.append(update.key)

        report.duration_secs = time.monotonic() - started

        if failures:
            raise CycleError("fetch", errors[0], failures=list(errors)) from errors[0]

        log.info(
            "cycle_completed",
            pushed=len(report.pushed),
            digest_sent=report.digest_sent,
            duration_secs=round(report.duration_secs, 3),
        )
        return report

    async def _fetch_all(self) -> tuple[list[MetricResult], list[FetchError]]:
        """Fetch all metrics concurrently; results are in configured order.

        Failed fetches come back as results with ``error`` set, alongside the
        matching exceptions. Fetches cancelled after a fail-fast abort are
        omitted.
        """
        errors: list[FetchError] = []
        if not self._metrics:
            return [], errors

        tasks = [
            asyncio.create_task(self._source.fetch_count(q), name=f"fetch:{q.id}")
            for q in self._metrics
        ]
        when = asyncio.FIRST_EXCEPTION if self._fail_fast else asyncio.ALL_COMPLETED
        try:
            await asyncio.wait(tasks, return_when=when)
        finally:
            pending = [t for t in tasks if not t.done()]
            for t in pending:
                t.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        # Retrieve every task's exception before raising anything.
        outcomes = [
            (query, task, task.exception())
            for query, task in zip(self._metrics, tasks)
            if not task.cancelled()
        ]
        for _, _, exc in outcomes:
            if exc is not None and not isinstance(exc, FetchError):
                raise exc

        results: list[MetricResult] = []
        for query, task, exc in outcomes:
            if exc is None:
                results.append(MetricResult(query_id=query.id, count=task.result()))
            else:
                errors.append(exc)  # type: ignore[arg-type]
                results.append(MetricResult(query_id=query.id, error=str(exc)))
        return results, errors

    async def _maybe_send_digest(
        self,
        counts: dict[str, int],
        updates: list[StateUpdate],
        report: CycleReport,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        if self._gate is None or not self._digest_config.enabled:
            return

        review_metric = self._digest_config.review_metric
        if review_metric not in counts:
            # Don't consume today's slot without the data to fill it.
            log.warning("digest_skipped_missing_metric", metric=review_metric)
            return

        if not self._gate.should_send_and_mark(self._clock()):
            return

        blocking_keys = {s.key for s in self._states if s.blocking}
        blockers = [u for u in updates if u.key in blocking_keys]
        digest = build_digest(counts[review_metric], blockers, self._digest_config)

        try:
            await self._sink.send_digest(digest)
        except Exception as exc:
            report.digest_error = str(exc)
            log.exception("digest_send_failed")
            return

        report.digest_sent = True
        log.info("digest_sent", review_count=counts[review_metric], blockers=len(blockers))
