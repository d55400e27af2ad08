"""Exception hierarchy for the Alertmanager delivery client."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.upstream.errors import Failure


class UpstreamError(Exception):
    """Base exception for all upstream errors."""


class UpstreamStatusError(UpstreamError):
    """Alertmanager answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"alertmanager returned non-2xx status: {status_code}")
        self.status_code = status_code
        self.body = body


class DeliveryError(UpstreamError):
    """Delivery failed for good: permanent error or retry budget exhausted.

    Carries the classified failure plus the upstream status and body
    excerpt (when there was a response) for the operational log.
    """

    def __init__(self, failure: Failure, attempts: int) -> None:
        super().__init__(f"deliver alerts: {failure.describe()} (attempts={attempts})")
        self.failure = failure
        self.attempts = attempts

    @property
    def status_code(self) -> int | None:
        return self.failure.status_code

    @property
    def body(self) -> str:
        return self.failure.body


class DeliveryCancelled(DeliveryError):
    """The caller's deadline expired before delivery finished."""
