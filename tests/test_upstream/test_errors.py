"""Tests for src/upstream/errors.py — failure classification and retryability."""

from __future__ import annotations

import asyncio
import ssl

import httpx
import pytest

from src.upstream.errors import Failure, FailureKind, classify, is_retryable
from src.upstream.exceptions import UpstreamStatusError


def _wrapped(inner: BaseException, outer: Exception) -> Exception:
    outer.__cause__ = inner
    return outer


def _ssl_error(reason: str) -> ssl.SSLError:
    err = ssl.SSLError(1, f"[SSL: {reason}] {reason.lower()}")
    err.reason = reason  # type: ignore[misc]
    return err


class TestClassify:
    def test_status_error(self) -> None:
        failure = classify(UpstreamStatusError(503, "busy"))
        assert failure.kind is FailureKind.UPSTREAM_STATUS
        assert failure.status_code == 503
        assert failure.body == "busy"

    def test_cancelled(self) -> None:
        assert classify(asyncio.CancelledError()).kind is FailureKind.CANCELLED

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ConnectTimeout("connect"),
            httpx.ReadTimeout("read"),
            httpx.PoolTimeout("pool"),
            TimeoutError(),
        ],
    )
    def test_timeouts(self, exc: Exception) -> None:
        assert classify(exc).kind is FailureKind.TIMEOUT

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ConnectError("refused"),
            httpx.ReadError("reset"),
            ConnectionResetError(),
        ],
    )
    def test_connection_failures(self, exc: Exception) -> None:
        assert classify(exc).kind is FailureKind.CONNECTION_FAILURE

    def test_cert_failure_in_chain(self) -> None:
        exc = _wrapped(ssl.SSLCertVerificationError("unknown ca"), httpx.ConnectError("tls"))
        assert classify(exc).kind is FailureKind.TLS_PERMANENT

    def test_tls_to_plaintext_server(self) -> None:
        exc = _wrapped(_ssl_error("WRONG_VERSION_NUMBER"), httpx.ConnectError("tls"))
        assert classify(exc).kind is FailureKind.PROTOCOL_MISMATCH

    def test_other_ssl_error_is_connection_failure(self) -> None:
        exc = _wrapped(_ssl_error("SOMETHING_TRANSIENT"), httpx.ConnectError("tls"))
        assert classify(exc).kind is FailureKind.CONNECTION_FAILURE

    def test_remote_protocol_error(self) -> None:
        assert classify(httpx.RemoteProtocolError("junk")).kind is FailureKind.PROTOCOL_MISMATCH

    def test_unsupported_protocol(self) -> None:
        assert classify(httpx.UnsupportedProtocol("ftp")).kind is FailureKind.PROTOCOL_MISMATCH

    def test_unknown(self) -> None:
        failure = classify(ValueError("odd"))
        assert failure.kind is FailureKind.UNKNOWN
        assert failure.detail == "odd"

    def test_detail_falls_back_to_type_name(self) -> None:
        assert classify(RuntimeError()).detail == "RuntimeError"


class TestIsRetryable:
    @pytest.mark.parametrize(
        ("status", "retryable"),
        [
            (400, False),
            (401, False),
            (404, False),
            (422, False),
            (429, True),
            (500, True),
            (502, True),
            (503, True),
        ],
    )
    def test_status_codes(self, status: int, retryable: bool) -> None:
        failure = Failure(FailureKind.UPSTREAM_STATUS, status_code=status)
        assert is_retryable(failure) is retryable
        assert failure.retryable is retryable

    @pytest.mark.parametrize(
        ("kind", "retryable"),
        [
            (FailureKind.TIMEOUT, True),
            (FailureKind.CONNECTION_FAILURE, True),
            (FailureKind.TLS_PERMANENT, False),
            (FailureKind.PROTOCOL_MISMATCH, False),
            (FailureKind.CANCELLED, False),
            (FailureKind.UNKNOWN, False),
        ],
    )
    def test_kinds(self, kind: FailureKind, retryable: bool) -> None:
        assert is_retryable(Failure(kind)) is retryable


class TestDescribe:
    def test_status(self) -> None:
        failure = Failure(FailureKind.UPSTREAM_STATUS, status_code=500)
        assert failure.describe() == "upstream_status: status=500"

    def test_detail(self) -> None:
        assert Failure(FailureKind.TIMEOUT, detail="read").describe() == "timeout: read"

    def test_bare(self) -> None:
        assert Failure(FailureKind.UNKNOWN).describe() == "unknown"
