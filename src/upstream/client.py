"""Async Alertmanager client with bounded, classified retries."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from types import TracebackType
from typing import Any

import httpx
import structlog

from src.core.config import RetryConfig, UpstreamConfig
from src.core.types import OutboundAlert
from src.upstream.errors import Failure, FailureKind, classify
from src.upstream.exceptions import DeliveryCancelled, DeliveryError, UpstreamStatusError

logger = structlog.stdlib.get_logger()

ALERTS_PATH = "/api/v2/alerts"
READY_PATH = "/-/ready"

DEFAULT_TIMEOUT_SECS = 5.0
MAX_ERROR_BODY_BYTES = 64 * 1024
_MAX_REASON_CHARS = 200


def compute_backoff(attempt: int, initial: float = 0.2, maximum: float = 1.0) -> float:
    """Delay before the attempt following ``attempt``.

    Attempt 1 waits ``initial``; every later attempt doubles the previous
    delay, capped at ``maximum``.
    """
    if attempt <= 1:
        return initial
    return min(initial * 2 ** (attempt - 1), maximum)


async def _read_limited(response: httpx.Response, limit: int = MAX_ERROR_BODY_BYTES) -> str:
    """Read at most ``limit`` bytes of a streamed response body."""
    chunks: list[bytes] = []
    size = 0
    async for chunk in response.aiter_bytes():
        chunk = chunk[: limit - size]
        chunks.append(chunk)
        size += len(chunk)
        if size >= limit:
            break
    return b"".join(chunks).decode("utf-8", errors="replace").strip()


def _short(text: str) -> str:
    if len(text) <= _MAX_REASON_CHARS:
        return text
    return text[:_MAX_REASON_CHARS] + "…"


class AlertmanagerClient:
    """Delivers alert batches to ``POST /api/v2/alerts``.

    Usage::

        async with AlertmanagerClient(settings.upstream) as client:
            await client.post_alerts([alert], deadline=loop.time() + 5)
            ok, reason = await client.ready()

    Outgoing auth uses the bearer token when configured, otherwise basic
    credentials when either field is set, otherwise nothing.
    """

    def __init__(
        self,
        config: UpstreamConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = config.url.strip()
        self._timeout = config.timeout_secs or DEFAULT_TIMEOUT_SECS
        self._ready_timeout = config.ready_timeout_secs
        self._verify = not config.insecure_skip_verify
        self._retry: RetryConfig = config.retry
        self._transport = transport

        self._headers: dict[str, str] = {}
        self._auth: httpx.Auth | None = None
        bearer = config.bearer_token.get_secret_value().strip()
        if bearer:
            self._headers["Authorization"] = f"Bearer {bearer}"
        elif config.basic_auth is not None:
            username = config.basic_auth.username.strip()
            password = config.basic_auth.password.get_secret_value().strip()
            if username or password:
                self._auth = httpx.BasicAuth(username, password)

        self._http: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def retry(self) -> RetryConfig:
        return self._retry

    @property
    def connected(self) -> bool:
        return self._http is not None and not self._http.is_closed

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                verify=self._verify,
                headers=self._headers,
                auth=self._auth,
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> AlertmanagerClient:
        self._get_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ── Delivery ────────────────────────────────────────────────

    async def post_alerts(
        self,
        alerts: Sequence[OutboundAlert],
        deadline: float | None = None,
    ) -> int:
        """Deliver one batch, retrying retryable failures with backoff.

        Args:
            alerts: Alerts to post as a single JSON array.
            deadline: Absolute event-loop time (``loop.time()``) after which
                the caller no longer wants the result. None means no bound
                beyond the per-attempt timeout.

        Returns:
            Number of attempts it took.

        Raises:
            DeliveryCancelled: The deadline passed, mid-request or mid-backoff.
            DeliveryError: Permanent failure, or the final attempt failed.
        """
        payload = [alert.to_wire() for alert in alerts]
        max_attempts = max(self._retry.max_attempts, 1)
        attempt = 0

        try:
            async with asyncio.timeout_at(deadline):
                while True:
                    attempt += 1
                    try:
                        await self._post_once(payload)
                    except asyncio.CancelledError:
                        logger.info("upstream_delivery_cancelled", attempt=attempt)
                        raise
                    except Exception as exc:
                        last_exc = exc
                        failure = classify(exc)
                    else:
                        logger.debug("upstream_delivery_ok", attempt=attempt, alerts=len(payload))
                        return attempt

                    if not failure.retryable or attempt >= max_attempts:
                        raise DeliveryError(failure, attempts=attempt) from last_exc

                    backoff = compute_backoff(
                        attempt,
                        self._retry.initial_backoff_secs,
                        self._retry.max_backoff_secs,
                    )
                    logger.warning(
                        "upstream_delivery_retry",
                        attempt=attempt,
                        max_attempts=max_attempts,
                        kind=str(failure.kind),
                        status=failure.status_code,
                        backoff_secs=backoff,
                    )
                    await asyncio.sleep(backoff)
        except TimeoutError as exc:
            failure = Failure(FailureKind.CANCELLED, detail="deadline exceeded")
            raise DeliveryCancelled(failure, attempts=attempt) from exc

    async def _post_once(self, payload: list[dict[str, Any]]) -> None:
        http = self._get_client()
        async with http.stream(
            "POST",
            ALERTS_PATH,
            json=payload,
            headers={"Content-Type": "application/json; charset=utf-8"},
        ) as response:
            if response.is_success:
                return
            body = await _read_limited(response)
            if not body:
                body = f"{response.status_code} {response.reason_phrase}".strip()
            raise UpstreamStatusError(response.status_code, body)

    # ── Readiness ───────────────────────────────────────────────

    async def ready(self) -> tuple[bool, str]:
        """Single, non-retried readiness check against ``GET /-/ready``.

        Returns:
            ``(True, "")`` on HTTP 200 exactly, else ``(False, reason)``.
        """
        http = self._get_client()
        try:
            response = await http.get(READY_PATH, timeout=self._ready_timeout)
        except httpx.HTTPError as exc:
            return False, _short(f"alertmanager ready request failed: {str(exc) or type(exc).__name__}")

        if response.status_code != 200:
            return False, f"alertmanager not ready: status={response.status_code}"
        return True, ""
