"""Matrix state sink — room state upserts and notice messages."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any
from urllib.parse import quote

import aiohttp
import structlog

from review_counter.core.config import MatrixConfig, get_settings
from review_counter.core.types import DigestMessage, StateUpdate
from review_counter.matrix.exceptions import PushStatusError, PushTransportError

logger = structlog.get_logger(__name__)

_HTML_FORMAT = "org.matrix.custom.html"


class MatrixClient:
    """Pushes counters into a room as custom state events.

    State events are keyed by ``(state_event_type, key)`` so repeated pushes
    of the same value overwrite rather than accumulate.
    """

    def __init__(self, config: MatrixConfig | None = None) -> None:
        self._config = config or get_settings().matrix
        self._token = self._config.access_token.get_secret_value().strip()
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout_secs),
            )
        return self._session

    def _room_url(self) -> str:
        base = self._config.base_url.rstrip("/")
        room = quote(self._config.room_id, safe="")
        return f"{base}/_matrix/client/r0/rooms/{room}"

    def state_url(self, key: str) -> str:
        event_type = quote(self._config.state_event_type, safe="")
        return f"{self._room_url()}/state/{event_type}/{quote(key, safe='')}"

    def message_url(self, txn_id: str) -> str:
        return f"{self._room_url()}/send/m.room.message/{quote(txn_id, safe='')}"

    async def _put(self, target: str, url: str, payload: dict[str, Any]) -> None:
        headers = {"Authorization": f"Bearer {self._token}"}
        try:
            session = self._get_session()
            async with session.put(url, json=payload, headers=headers) as resp:
                if 200 <= resp.status < 300:
                    return
                body = await resp.text(errors="replace")
                raise PushStatusError(target, body[:200], status=resp.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise PushTransportError(target, f"request failed: {exc!r}") from exc

    async def put_state(self, key: str, payload: dict[str, Any]) -> None:
        """Upsert the state event stored under *key*.

        Raises:
            PushStatusError: non-2xx response.
            PushTransportError: the request failed before a response arrived.
        """
        await self._put(key, self.state_url(key), payload)
        logger.debug("state_pushed", key=key, value=payload.get("value"))

    async def push_update(self, update: StateUpdate) -> None:
        await self.put_state(update.key, update.payload())

    async def send_message(self, body: dict[str, Any]) -> None:
        """Post a room message; each call uses a fresh transaction id."""
        await self._put("m.room.message", self.message_url(uuid.uuid4().hex), body)
        logger.debug("message_sent", msgtype=body.get("msgtype"))

    async def send_digest(self, digest: DigestMessage) -> None:
        await self.send_message({
            "msgtype": self._config.msgtype,
            "body": digest.plain_body,
            "format": _HTML_FORMAT,
            "formatted_body": digest.formatted_body,
        })

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
