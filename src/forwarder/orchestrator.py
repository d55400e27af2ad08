"""Forwarder — one push message in, one Alertmanager alert out."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from src.alerts.transformer import LABEL_SEVERITY, AlertTransformer, utc_now
from src.core.types import AppIdentity, InboundMessage, MessageAck
from src.forwarder.counter import ForwardingIdCounter
from src.forwarder.exceptions import ForwardingCancelled, ForwardingFailed
from src.upstream.client import AlertmanagerClient
from src.upstream.exceptions import DeliveryCancelled, DeliveryError

if TYPE_CHECKING:
    from src.server.metrics import ServiceMetrics

logger = structlog.stdlib.get_logger()


def bounded_deadline(now: float, timeout_secs: float, deadline: float | None) -> float | None:
    """Tighten ``deadline`` to ``now + timeout_secs``, never widening it.

    A non-positive ``timeout_secs`` adds no bound of its own.
    """
    if timeout_secs <= 0:
        return deadline
    own = now + timeout_secs
    if deadline is not None and deadline <= own:
        return deadline
    return own


class Forwarder:
    """Allocates an id, builds the alert, delivers it, acknowledges.

    Usage::

        forwarder = Forwarder(transformer, client, ForwardingIdCounter())
        ack = await forwarder.forward(app, message, deadline=loop.time() + 10)
    """

    def __init__(
        self,
        transformer: AlertTransformer,
        client: AlertmanagerClient,
        counter: ForwardingIdCounter,
        metrics: ServiceMetrics | None = None,
        timeout_secs: float = 0.0,
    ) -> None:
        self._transformer = transformer
        self._client = client
        self._counter = counter
        self._metrics = metrics
        self._timeout_secs = timeout_secs

    async def forward(
        self,
        app: AppIdentity,
        message: InboundMessage,
        deadline: float | None = None,
    ) -> MessageAck:
        """Forward one message and return its acknowledgment.

        Raises:
            ForwardingCancelled: The deadline passed before delivery finished.
            ForwardingFailed: Delivery failed permanently or exhausted retries.
        """
        forwarding_id = self._counter.next()
        alert = self._transformer.build(app, message, forwarding_id)

        loop = asyncio.get_running_loop()
        bound = bounded_deadline(loop.time(), self._timeout_secs, deadline)

        try:
            attempts = await self._client.post_alerts([alert], deadline=bound)
        except DeliveryError as exc:
            if self._metrics is not None:
                self._metrics.inc_upstream_failure(app.name)
            logger.error(
                "alert_forward_failed",
                app=app.name,
                forwarding_id=forwarding_id,
                kind=str(exc.failure.kind),
                attempts=exc.attempts,
                detail=exc.failure.detail or None,
                upstream_status=exc.status_code,
                upstream_body=exc.body or None,
            )
            if isinstance(exc, DeliveryCancelled):
                raise ForwardingCancelled() from exc
            raise ForwardingFailed() from exc

        if self._metrics is not None:
            self._metrics.inc_forwarded(app.name)
        logger.info(
            "alert_forwarded",
            app=app.name,
            forwarding_id=forwarding_id,
            severity=alert.labels.get(LABEL_SEVERITY),
            attempts=attempts,
        )

        return MessageAck(
            id=forwarding_id,
            appid=app.app_id,
            message=message.message,
            title=message.title,
            priority=message.priority,
            date=utc_now(),
            extras=message.extras,
        )
