"""HTTP surface — push-compatible ingestion plus health and metrics.

Runs as an ``aiohttp`` web server.
Exposes:
- ``POST /message``  → authenticate, parse, forward; JSON ack
- ``GET /healthz``   → liveness, always ``ok``
- ``GET /readyz``    → upstream readiness, ``ok`` or the failure reason
- ``GET /metrics``   → Prometheus exposition
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from aiohttp import web

from src.forwarder.exceptions import ForwardingError
from src.forwarder.orchestrator import Forwarder
from src.ingest.auth import AppRegistry
from src.ingest.exceptions import IngestError, Unauthenticated
from src.ingest.parser import parse_message
from src.server.metrics import ServiceMetrics

logger = structlog.stdlib.get_logger()

ReadyFn = Callable[[], Awaitable[tuple[bool, str]]]

REGISTRY_KEY = web.AppKey("registry", AppRegistry)
FORWARDER_KEY = web.AppKey("forwarder", Forwarder)
READY_KEY = web.AppKey("ready_fn", object)
METRICS_KEY = web.AppKey("metrics", ServiceMetrics)
REQUEST_TIMEOUT_KEY = web.AppKey("request_timeout_secs", float)

DEFAULT_MAX_BODY_BYTES = 1 << 20
_UNMATCHED_PATH = "unmatched"


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _plain(status: int, text: str) -> web.Response:
    return web.Response(status=status, text=text + "\n", content_type="text/plain")


def _route_path(request: web.Request) -> str:
    """Route template for metric labels, so unknown paths share one series."""
    resource = request.match_info.route.resource
    if resource is None:
        return _UNMATCHED_PATH
    return resource.canonical


@web.middleware
async def _observe_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Log and count every request, including router-level 404/405."""
    start = time.perf_counter()
    status = 500
    try:
        response = await handler(request)
        status = response.status
        return response
    except web.HTTPException as exc:
        status = exc.status
        raise
    finally:
        duration = time.perf_counter() - start
        path = _route_path(request)
        metrics: ServiceMetrics | None = request.app.get(METRICS_KEY)
        if metrics is not None:
            metrics.observe_request(request.method, path, status, duration)
        logger.info(
            "http_request",
            method=request.method,
            path=request.path,
            status=status,
            duration_ms=round(duration * 1000, 3),
            remote=request.remote,
        )


async def _handle_message(request: web.Request) -> web.Response:
    arrival = asyncio.get_running_loop().time()
    timeout = request.app[REQUEST_TIMEOUT_KEY]
    deadline = arrival + timeout if timeout > 0 else None

    registry = request.app[REGISTRY_KEY]
    try:
        app = registry.authenticate(request.headers, request.query)
    except Unauthenticated as exc:
        return _error(403, str(exc))

    try:
        body = await request.read()
    except web.HTTPRequestEntityTooLarge:
        logger.warning("request_body_too_large", app=app.name)
        return _error(400, "request body too large")

    try:
        message = parse_message(request.headers.get("Content-Type"), body, request.query)
    except IngestError as exc:
        logger.info("message_rejected", app=app.name, reason=str(exc))
        return _error(400, str(exc))

    forwarder = request.app.get(FORWARDER_KEY)
    if forwarder is None:
        logger.error("forwarder_not_configured")
        return _error(500, "forwarder not configured")

    try:
        ack = await forwarder.forward(app, message, deadline=deadline)
    except ForwardingError as exc:
        return _error(502, str(exc))

    return web.json_response(ack.to_wire())


async def _handle_healthz(request: web.Request) -> web.Response:
    return _plain(200, "ok")


async def _handle_readyz(request: web.Request) -> web.Response:
    ready_fn: ReadyFn | None = request.app.get(READY_KEY)
    if ready_fn is None:
        return _plain(200, "ok")
    ok, reason = await ready_fn()
    if not ok:
        logger.warning("readiness_check_failed", reason=reason)
        return _plain(503, reason.strip() or "unhealthy")
    return _plain(200, "ok")


async def _handle_metrics(request: web.Request) -> web.Response:
    metrics: ServiceMetrics | None = request.app.get(METRICS_KEY)
    if metrics is None:
        return _plain(404, "metrics disabled")
    body, content_type = metrics.render()
    # The exposition content type carries parameters, so it goes in as a raw header.
    return web.Response(body=body, headers={"Content-Type": content_type})


def create_web_app(
    registry: AppRegistry,
    forwarder: Forwarder | None = None,
    ready_fn: ReadyFn | None = None,
    metrics: ServiceMetrics | None = None,
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    request_timeout_secs: float = 0.0,
) -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application(
        middlewares=[_observe_middleware],
        client_max_size=max_body_bytes,
    )
    app[REGISTRY_KEY] = registry
    if forwarder is not None:
        app[FORWARDER_KEY] = forwarder
    if ready_fn is not None:
        app[READY_KEY] = ready_fn
    if metrics is not None:
        app[METRICS_KEY] = metrics
    app[REQUEST_TIMEOUT_KEY] = request_timeout_secs
    app.router.add_post("/message", _handle_message)
    app.router.add_get("/healthz", _handle_healthz)
    app.router.add_get("/readyz", _handle_readyz)
    app.router.add_get("/metrics", _handle_metrics)
    return app


async def start_server(
    app: web.Application,
    host: str = "0.0.0.0",
    port: int = 8080,
    shutdown_timeout: float = 10.0,
) -> web.AppRunner:
    """Start serving ``app``. Returns the runner for cleanup.

    ``runner.cleanup()`` waits up to ``shutdown_timeout`` seconds for
    in-flight requests before closing connections.
    """
    runner = web.AppRunner(app, shutdown_timeout=shutdown_timeout)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    try:
        await site.start()
    except OSError:
        await runner.cleanup()
        raise
    logger.info("server_listening", host=host, port=port)
    return runner
