#!/usr/bin/env python3
"""Main entrypoint — wires the clients, timer and webhook server.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG

    # Run a single cycle and exit
    python scripts/run.py --once
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from review_counter.core.config import load_settings
from review_counter.core.logging import setup_logging
from review_counter.monitor.exceptions import CycleError
from review_counter.monitor.factory import create_check_stack
from review_counter.monitor.web import start_web_server

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start all components and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    if not settings.metrics or not settings.states:
        logger.error("no_metrics_configured")
        print(
            "No metrics/states configured. Define at least one entry under "
            "'metrics' and 'states' in config/settings.yaml "
            "(see config/settings.example.yaml).",
            file=sys.stderr,
        )
        return 1

    logger.info(
        "relay_starting",
        metrics=[m.id for m in settings.metrics],
        states=[s.key for s in settings.states],
        digest=settings.digest.enabled,
        fail_fast=settings.scheduler.fail_fast,
    )

    github, matrix, cycle, scheduler = create_check_stack(settings)
    runner = None
    try:
        await github.connect()

        if args.once:
            try:
                await cycle.run_cycle(trigger="cli")
            except CycleError as exc:
                logger.error("cycle_failed", error=str(exc))
                return 1
            return 0

        # ── Start everything ─────────────────────────────────────
        runner = await start_web_server(
            cycle,
            host=settings.server.host,
            port=settings.server.port,
            webhook_delay_secs=settings.server.webhook_delay_secs,
            webhook_secret=settings.server.webhook_secret.get_secret_value(),
        )
        await scheduler.start()

        logger.info(
            "relay_running",
            interval_secs=settings.scheduler.interval_secs,
            host=settings.server.host,
            port=settings.server.port,
        )

        # ── Wait for shutdown signal ─────────────────────────────
        stop_event = asyncio.Event()

        def _signal_handler() -> None:
            logger.info("shutdown_signal_received")
            stop_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, _signal_handler)
            except NotImplementedError:
                # Windows: signal handlers not supported on ProactorEventLoop
                pass

        try:
            await stop_event.wait()
        except KeyboardInterrupt:
            logger.info("keyboard_interrupt")

        logger.info("relay_shutting_down")
    finally:
        # ── Graceful shutdown ────────────────────────────────────
        await scheduler.stop()
        if runner is not None:
            await runner.cleanup()
        await matrix.close()
        await github.close()

    logger.info(
        "relay_stopped",
        runs=scheduler.run_count,
        errors=scheduler.error_count,
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Relay GitHub review counters into Matrix room state.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single check cycle and exit",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
