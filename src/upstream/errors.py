"""Failure classification for upstream delivery attempts.

Every exception raised by a single delivery attempt is mapped onto one
member of a closed set of failure kinds; the retry loop only ever looks at
the resulting :class:`Failure`.
"""

from __future__ import annotations

import asyncio
import ssl
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import assert_never

import httpx

from src.upstream.exceptions import UpstreamStatusError

# OpenSSL reasons seen when one side is not speaking TLS at all.
_PROTOCOL_MISMATCH_REASONS = frozenset({
    "WRONG_VERSION_NUMBER",
    "HTTP_REQUEST",
    "HTTPS_PROXY_REQUEST",
    "UNKNOWN_PROTOCOL",
    "UNSUPPORTED_PROTOCOL",
    "RECORD_LAYER_FAILURE",
    "PACKET_LENGTH_TOO_LONG",
    "WRONG_SSL_VERSION",
})


class FailureKind(StrEnum):
    TIMEOUT = "timeout"
    CONNECTION_FAILURE = "connection_failure"
    TLS_PERMANENT = "tls_permanent"
    PROTOCOL_MISMATCH = "protocol_mismatch"
    UPSTREAM_STATUS = "upstream_status"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Failure:
    """A classified delivery failure."""

    kind: FailureKind
    status_code: int | None = None
    body: str = ""
    detail: str = ""

    @property
    def retryable(self) -> bool:
        return is_retryable(self)

    def describe(self) -> str:
        if self.kind is FailureKind.UPSTREAM_STATUS:
            return f"{self.kind}: status={self.status_code}"
        if self.detail:
            return f"{self.kind}: {self.detail}"
        return str(self.kind)


def is_retryable(failure: Failure) -> bool:
    """Whether another attempt has a reasonable chance of succeeding."""
    match failure.kind:
        case FailureKind.UPSTREAM_STATUS:
            code = failure.status_code or 0
            return code == 429 or code >= 500
        case FailureKind.TIMEOUT | FailureKind.CONNECTION_FAILURE:
            return True
        case (
            FailureKind.TLS_PERMANENT
            | FailureKind.PROTOCOL_MISMATCH
            | FailureKind.CANCELLED
            | FailureKind.UNKNOWN
        ):
            return False
        case _:
            assert_never(failure.kind)


def _chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` and its causes/contexts, most recent first."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _is_cert_failure(exc: BaseException) -> bool:
    return any(isinstance(e, ssl.SSLCertVerificationError) for e in _chain(exc))


def _is_tls_protocol_mismatch(exc: BaseException) -> bool:
    for e in _chain(exc):
        if isinstance(e, ssl.SSLError) and getattr(e, "reason", None) in _PROTOCOL_MISMATCH_REASONS:
            return True
    return False


def classify(exc: BaseException) -> Failure:
    """Map an exception from a delivery attempt to a :class:`Failure`.

    Unrecognised exceptions classify as ``UNKNOWN`` and are not retried.
    """
    if isinstance(exc, asyncio.CancelledError):
        return Failure(FailureKind.CANCELLED, detail="cancelled")

    if isinstance(exc, UpstreamStatusError):
        return Failure(
            FailureKind.UPSTREAM_STATUS,
            status_code=exc.status_code,
            body=exc.body,
        )

    detail = str(exc) or type(exc).__name__

    if _is_cert_failure(exc):
        return Failure(FailureKind.TLS_PERMANENT, detail=detail)

    if _is_tls_protocol_mismatch(exc):
        return Failure(FailureKind.PROTOCOL_MISMATCH, detail=detail)

    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return Failure(FailureKind.TIMEOUT, detail=detail)

    if isinstance(exc, (httpx.RemoteProtocolError, httpx.UnsupportedProtocol)):
        return Failure(FailureKind.PROTOCOL_MISMATCH, detail=detail)

    if isinstance(exc, (httpx.NetworkError, ConnectionError)):
        return Failure(FailureKind.CONNECTION_FAILURE, detail=detail)

    return Failure(FailureKind.UNKNOWN, detail=detail)
