"""Tests for the trigger surface — /health, /webhook, signatures, concurrency."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

from aiohttp import test_utils

from review_counter.core.types import CycleReport
from review_counter.matrix.exceptions import PushStatusError
from review_counter.monitor.exceptions import CycleError
from review_counter.monitor.web import _valid_signature, create_web_app

# ── Helpers ─────────────────────────────────────────────────────


def _cycle(side_effect: object = None) -> MagicMock:
    cycle = MagicMock()
    cycle.run_cycle = AsyncMock(return_value=CycleReport(), side_effect=side_effect)
    return cycle


@asynccontextmanager
async def _client(cycle: MagicMock, **kw: object) -> AsyncIterator[test_utils.TestClient]:
    app = create_web_app(cycle, **kw)  # type: ignore[arg-type]
    client = test_utils.TestClient(test_utils.TestServer(app))
    await client.start_server()
    try:
        yield client
    finally:
        await client.close()


def _sign(secret: str, body: bytes) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


# ── /health ─────────────────────────────────────────────────────


class TestHealth:
    async def test_health_ok(self) -> None:
        cycle = _cycle()
        async with _client(cycle) as client:
            resp = await client.get("/health")
            assert resp.status == 200
            assert await resp.text() == "OK"
        cycle.run_cycle.assert_not_awaited()

    async def test_health_ok_even_when_cycles_fail(self) -> None:
        cycle = _cycle(side_effect=RuntimeError("down"))
        async with _client(cycle) as client:
            resp = await client.get("/health")
            assert resp.status == 200


# ── /webhook ────────────────────────────────────────────────────


class TestWebhook:
    async def test_get_runs_cycle(self) -> None:
        cycle = _cycle()
        async with _client(cycle) as client:
            resp = await client.get("/webhook")
            assert resp.status == 200
            assert await resp.text() == "OK"
        cycle.run_cycle.assert_awaited_once_with(trigger="webhook")

    async def test_post_runs_cycle(self) -> None:
        cycle = _cycle()
        async with _client(cycle) as client:
            resp = await client.post("/webhook", json={"action": "opened"})
            assert resp.status == 200
        cycle.run_cycle.assert_awaited_once()

    async def test_cycle_error_returns_500(self) -> None:
        err = CycleError("push", PushStatusError("gh_reviews", "forbidden", status=403))
        async with _client(_cycle(side_effect=err)) as client:
            resp = await client.post("/webhook")
            assert resp.status == 500
            text = await resp.text()
            assert "push failed" in text
            assert "403" in text

    async def test_unexpected_error_returns_500(self) -> None:
        async with _client(_cycle(side_effect=RuntimeError("bug"))) as client:
            resp = await client.get("/webhook")
            assert resp.status == 500
            assert "bug" in await resp.text()

    async def test_delay_before_cycle(self) -> None:
        cycle = _cycle()
        async with _client(cycle, webhook_delay_secs=0.1) as client:
            loop = asyncio.get_running_loop()
            started = loop.time()
            resp = await client.get("/webhook")
            assert resp.status == 200
            assert loop.time() - started >= 0.09

    async def test_health_responsive_during_slow_cycle(self) -> None:
        release = asyncio.Event()

        async def _slow(trigger: str) -> CycleReport:
            await release.wait()
            return CycleReport()

        cycle = MagicMock()
        cycle.run_cycle = _slow
        async with _client(cycle) as client:
            async def _get(path: str) -> object:
                return await client.get(path)

            hook = asyncio.create_task(_get("/webhook"))
            await asyncio.sleep(0.05)
            health = await asyncio.wait_for(_get("/health"), timeout=1.0)
            assert health.status == 200
            assert not hook.done()
            release.set()
            resp = await hook
            assert resp.status == 200


# ── Signatures ──────────────────────────────────────────────────


class TestSignature:
    def test_valid_signature(self) -> None:
        assert _valid_signature("s3cret", b"{}", _sign("s3cret", b"{}")) is True

    def test_wrong_secret(self) -> None:
        assert _valid_signature("s3cret", b"{}", _sign("other", b"{}")) is False

    def test_missing_prefix(self) -> None:
        digest = hmac.new(b"s3cret", b"{}", hashlib.sha256).hexdigest()
        assert _valid_signature("s3cret", b"{}", digest) is False

    async def test_unsigned_request_rejected(self) -> None:
        cycle = _cycle()
        async with _client(cycle, webhook_secret="s3cret") as client:
            resp = await client.post("/webhook", data=b'{"zen": "hi"}')
            assert resp.status == 401
        cycle.run_cycle.assert_not_awaited()

    async def test_signed_request_accepted(self) -> None:
        cycle = _cycle()
        body = b'{"zen": "hi"}'
        async with _client(cycle, webhook_secret="s3cret") as client:
            resp = await client.post(
                "/webhook",
                data=body,
                headers={"X-Hub-Signature-256": _sign("s3cret", body)},
            )
            assert resp.status == 200
        cycle.run_cycle.assert_awaited_once()

    async def test_no_secret_no_check(self) -> None:
        cycle = _cycle()
        async with _client(cycle, webhook_secret="") as client:
            resp = await client.post("/webhook", data=b"anything")
            assert resp.status == 200
