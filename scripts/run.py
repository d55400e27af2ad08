#!/usr/bin/env python3
"""Bridge entrypoint — wires all components and serves push traffic.

Usage::

    # Run with a config file
    python scripts/run.py --config config/settings.yaml

    # Override log level and format
    python scripts/run.py --config config/settings.yaml --log-level debug --log-format json
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog
from aiohttp import web

from src.alerts.transformer import AlertTransformer
from src.core.config import Settings, load_settings
from src.core.exceptions import ConfigError
from src.core.logging import setup_logging
from src.forwarder.counter import ForwardingIdCounter
from src.forwarder.orchestrator import Forwarder
from src.ingest.auth import AppRegistry
from src.server.app import create_web_app, start_server
from src.server.metrics import ServiceMetrics
from src.upstream.client import AlertmanagerClient

logger = structlog.get_logger(__name__)

VERSION = "0.1.0"


def build_app(settings: Settings, client: AlertmanagerClient) -> web.Application:
    """Wire registry, transformer, forwarder and metrics into the web app."""
    registry = AppRegistry.from_settings(settings)
    metrics = ServiceMetrics()
    forwarder = Forwarder(
        transformer=AlertTransformer(settings.defaults),
        client=client,
        counter=ForwardingIdCounter(),
        metrics=metrics,
        timeout_secs=settings.upstream.timeout_secs,
    )
    return create_web_app(
        registry,
        forwarder=forwarder,
        ready_fn=client.ready,
        metrics=metrics,
        max_body_bytes=settings.server.max_body_bytes,
        request_timeout_secs=settings.server.request_timeout_secs,
    )


async def _serve(settings: Settings, app: web.Application) -> None:
    """Start the listener and hold until cancelled."""
    runner = await start_server(
        app,
        host=settings.server.host,
        port=settings.server.port,
        shutdown_timeout=settings.server.shutdown_timeout_secs,
    )
    try:
        await asyncio.Event().wait()
    finally:
        logger.info("server_draining", grace_secs=settings.server.shutdown_timeout_secs)
        await runner.cleanup()


async def _wait_for_signal() -> None:
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
            installed.append(sig)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


async def run(args: argparse.Namespace) -> int:
    """Start the bridge and run until interrupted."""
    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        setup_logging(level=args.log_level, fmt=args.log_format)
        logger.error("config_invalid", error=str(exc))
        return 1

    setup_logging(settings.logging, level=args.log_level, fmt=args.log_format)

    logger.info(
        "bridge_starting",
        version=VERSION,
        upstream=settings.upstream.url,
        apps=len(settings.apps),
        listen=f"{settings.server.host}:{settings.server.port}",
    )

    client = AlertmanagerClient(settings.upstream)
    app = build_app(settings, client)

    serve_task = asyncio.create_task(_serve(settings, app), name="listener")
    signal_task = asyncio.create_task(_wait_for_signal(), name="signal-wait")

    code = 0
    try:
        done, _ = await asyncio.wait(
            {serve_task, signal_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
        if serve_task in done and serve_task.exception() is not None:
            logger.error("server_failed", error=str(serve_task.exception()))
            code = 1
    finally:
        logger.info("bridge_shutting_down")
        for task in (serve_task, signal_task):
            task.cancel()
        await asyncio.gather(serve_task, signal_task, return_exceptions=True)
        await client.close()

    logger.info("bridge_stopped")
    return code


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Forward push notifications to Alertmanager as alerts.",
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to settings YAML",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: debug, info, warn, error",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["plain", "text", "json", "console"],
        help="Log format override",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
