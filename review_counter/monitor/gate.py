"""Once-per-day gate for the digest message."""

from __future__ import annotations

import datetime
import threading
from zoneinfo import ZoneInfo

import structlog

logger = structlog.get_logger(__name__)


class DailyDigestGate:
    """Decides whether today's digest is due, at most once per trigger instant.

    The gate owns ``last_posted_at``.  The only way to read or change it is
    :meth:`should_send_and_mark`, which does the comparison and the update
    inside one critical section, so a timer tick racing a webhook trigger
    can never both see ``True``.

    ``last_posted_at`` starts at construction time: after a restart the
    digest is treated as already sent today.
    """

    def __init__(
        self,
        trigger_time: datetime.time,
        tz: ZoneInfo,
        now: datetime.datetime | None = None,
    ) -> None:
        self._trigger_time = trigger_time
        self._tz = tz
        start = now or datetime.datetime.now(datetime.UTC)
        if start.tzinfo is None:
            raise ValueError("gate start time must be timezone-aware")
        self._last_posted_at = start
        # threading.Lock so the section stays atomic even if cycles run off-loop.
        self._lock = threading.Lock()

    def trigger_instant(self, now: datetime.datetime) -> datetime.datetime:
        """Today's trigger time in the configured zone, relative to *now*."""
        local_today = now.astimezone(self._tz).date()
        return datetime.datetime.combine(local_today, self._trigger_time, tzinfo=self._tz)

    def should_send_and_mark(self, now: datetime.datetime | None = None) -> bool:
        """Return True exactly once per trigger instant and record the send.

        True iff ``last_posted_at < trigger_instant <= now``; on True,
        ``last_posted_at`` becomes *now*.  The mark happens before the caller
        attempts delivery, so a failed send is not retried until tomorrow.
        """
        now = now or datetime.datetime.now(datetime.UTC)
        if now.tzinfo is None:
            raise ValueError("now must be timezone-aware")

        trigger = self.trigger_instant(now)
        with self._lock:
            if self._last_posted_at < trigger <= now:
                self._last_posted_at = now
                fire = True
            else:
                fire = False

        if fire:
            logger.info("digest_gate_opened", trigger=trigger.isoformat(), now=now.isoformat())
        return fire
