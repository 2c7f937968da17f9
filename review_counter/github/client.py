"""GitHub metrics source — turns configured queries into integer counts."""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx
import structlog

from review_counter.core.config import GitHubConfig, MetricQueryConfig, get_settings
from review_counter.core.types import MetricKind
from review_counter.github.exceptions import (
    FetchParseError,
    FetchStatusError,
    FetchTransportError,
)

logger = structlog.get_logger(__name__)


def _parse_count(kind: MetricKind, body: Any) -> int | None:
    """Extract a count from a decoded JSON body, or None if the shape is wrong.

    ``SEARCH`` bodies look like ``{"total_count": 3, "items": [...]}``;
    ``COLLECTION`` bodies are a bare JSON array whose length is the count.
    """
    if kind == MetricKind.SEARCH:
        if not isinstance(body, dict):
            return None
        total = body.get("total_count")
        # bool is an int subclass; reject it explicitly.
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            return None
        return total

    if isinstance(body, list):
        return len(body)
    return None


class GitHubClient:
    """Async client for counting issues, PRs and project cards.

    A single instance is shared by every concurrent cycle; the underlying
    ``httpx.AsyncClient`` only holds the connection pool.

    Usage::

        async with GitHubClient(config) as gh:
            count = await gh.fetch_count(query)
    """

    def __init__(self, config: GitHubConfig | None = None) -> None:
        self._config = config or get_settings().github
        self._http: httpx.AsyncClient | None = None

    @property
    def connected(self) -> bool:
        """Whether the HTTP client is active."""
        return self._http is not None and not self._http.is_closed

    async def connect(self) -> None:
        """Create the httpx async client."""
        if self.connected:
            return
        cfg = self._config
        auth: httpx.BasicAuth | None = None
        if cfg.username:
            auth = httpx.BasicAuth(cfg.username, cfg.token.get_secret_value().strip())
        self._http = httpx.AsyncClient(
            base_url=cfg.base_url,
            auth=auth,
            headers={"Accept": cfg.accept, "User-Agent": cfg.user_agent},
            timeout=httpx.Timeout(cfg.timeout_secs),
        )

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def fetch_count(self, query: MetricQueryConfig) -> int:
        """Fetch the current count for *query*.

        Raises:
            FetchTransportError: not connected, or the request failed.
            FetchStatusError: non-2xx response.
            FetchParseError: body is not JSON or not of the expected shape.
        """
        if self._http is None:
            raise FetchTransportError(query.id, "HTTP client not connected")

        try:
            response = await self._http.get(query.path, params=query.params)
        except httpx.HTTPError as exc:
            raise FetchTransportError(query.id, f"request failed: {exc!r}") from exc

        if not response.is_success:
            raise FetchStatusError(query.id, response.text[:200], status=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise FetchParseError(
                query.id, "invalid JSON", status=response.status_code
            ) from exc

        count = _parse_count(query.kind, body)
        if count is None:
            raise FetchParseError(
                query.id,
                f"unexpected {query.kind.value} body: {str(body)[:200]}",
                status=response.status_code,
            )

        logger.debug("metric_fetched", query_id=query.id, count=count)
        return count

    async def __aenter__(self) -> GitHubClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

