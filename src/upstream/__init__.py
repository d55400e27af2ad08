"""Upstream module — Alertmanager delivery client and failure classification."""

from src.upstream.client import AlertmanagerClient, compute_backoff
from src.upstream.errors import Failure, FailureKind, classify, is_retryable
from src.upstream.exceptions import (
    DeliveryCancelled,
    DeliveryError,
    UpstreamError,
    UpstreamStatusError,
)

__all__ = [
    "AlertmanagerClient",
    "DeliveryCancelled",
    "DeliveryError",
    "Failure",
    "FailureKind",
    "UpstreamError",
    "UpstreamStatusError",
    "classify",
    "compute_backoff",
    "is_retryable",
]
