"""Inbound trigger surface — health check and on-demand cycle webhook.

Runs as an ``aiohttp`` web server alongside the timer loop.
Exposes:
- ``GET /health``          → always ``200 OK``
- ``GET|POST /webhook``    → runs one cycle; ``200 OK`` or ``500`` with the error
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac

import structlog
from aiohttp import web

from review_counter.monitor.cycle import CheckCycle

logger = structlog.get_logger(__name__)

_SIGNATURE_HEADER = "X-Hub-Signature-256"


def _valid_signature(secret: str, body: bytes, header: str) -> bool:
    """Check a GitHub-style ``sha256=<hex>`` HMAC of the request body."""
    if not header.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(header[len("sha256="):], expected)


async def _handle_health(request: web.Request) -> web.Response:
    return web.Response(text="OK")


async def _handle_webhook(request: web.Request) -> web.Response:
    secret = request.app["webhook_secret"]
    if secret:
        body = await request.read()
        if not _valid_signature(secret, body, request.headers.get(_SIGNATURE_HEADER, "")):
            logger.warning("webhook_bad_signature", remote=request.remote)
            return web.Response(status=401, text="Unauthorized")

    # Give GitHub a moment to index whatever change fired the hook.
    delay = request.app["webhook_delay_secs"]
    if delay > 0:
        await asyncio.sleep(delay)

    cycle: CheckCycle = request.app["cycle"]
    try:
        await cycle.run_cycle(trigger="webhook")
    except Exception as exc:
        logger.exception("webhook_cycle_failed")
        return web.Response(status=500, text=f"Error: {exc}")
    return web.Response(text="OK")


def create_web_app(
    cycle: CheckCycle,
    webhook_delay_secs: float = 0.0,
    webhook_secret: str = "",
) -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application()
    app["cycle"] = cycle
    app["webhook_delay_secs"] = webhook_delay_secs
    app["webhook_secret"] = webhook_secret
    app.router.add_get("/health", _handle_health)
    app.router.add_get("/webhook", _handle_webhook)
    app.router.add_post("/webhook", _handle_webhook)
    return app


async def start_web_server(
    cycle: CheckCycle,
    host: str = "127.0.0.1",
    port: int = 8080,
    webhook_delay_secs: float = 0.0,
    webhook_secret: str = "",
) -> web.AppRunner:
    """Start the trigger server. Returns the runner for cleanup."""
    app = create_web_app(cycle, webhook_delay_secs, webhook_secret)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("web_server_started", host=host, port=port)
    return runner
