"""Tests for src/ingest/auth.py — token extraction, app ids, registry lookup."""

from __future__ import annotations

import pytest
from multidict import CIMultiDict

from src.core.config import AppConfig, Settings
from src.core.types import AppIdentity, Severity
from src.ingest.auth import (
    TOKEN_HEADER,
    AppRegistry,
    app_id_from_name,
    build_identity,
    extract_token,
)
from src.ingest.exceptions import IngestError, Unauthenticated


# ── Helpers ─────────────────────────────────────────────────────


def _headers(**kw: str) -> CIMultiDict[str]:
    return CIMultiDict({k.replace("_", "-"): v for k, v in kw.items()})


def _identity(name: str = "backup") -> AppIdentity:
    return AppIdentity(name=name, app_id=app_id_from_name(name))


class TestExtractToken:
    """Header beats query beats bearer; first non-empty wins."""

    def test_header_wins_over_query_and_bearer(self) -> None:
        headers = _headers(X_Gotify_Key="from-header", Authorization="Bearer from-bearer")
        assert extract_token(headers, {"token": "from-query"}) == "from-header"

    def test_query_wins_over_bearer(self) -> None:
        headers = _headers(Authorization="Bearer from-bearer")
        assert extract_token(headers, {"token": "from-query"}) == "from-query"

    def test_bearer_used_last(self) -> None:
        headers = _headers(Authorization="Bearer from-bearer")
        assert extract_token(headers, {}) == "from-bearer"

    def test_bearer_prefix_case_insensitive(self) -> None:
        headers = _headers(Authorization="bEaReR   spaced  ")
        assert extract_token(headers, {}) == "spaced"

    def test_header_name_case_insensitive(self) -> None:
        headers = CIMultiDict({"x-gotify-key": "lower"})
        assert extract_token(headers, {}) == "lower"

    def test_blank_header_falls_through(self) -> None:
        headers = _headers(X_Gotify_Key="   ")
        assert extract_token(headers, {"token": "q"}) == "q"

    def test_non_bearer_authorization_ignored(self) -> None:
        headers = _headers(Authorization="Basic dXNlcjpwYXNz")
        assert extract_token(headers, {}) == ""

    def test_nothing_present(self) -> None:
        assert extract_token(CIMultiDict(), {}) == ""


class TestAppId:
    def test_known_vectors(self) -> None:
        # FNV-1a 32-bit reference values
        assert app_id_from_name("") == 0x811C9DC5
        assert app_id_from_name("a") == 0xE40C292C
        assert app_id_from_name("foobar") == 0xBF9CF968

    def test_deterministic(self) -> None:
        assert app_id_from_name("backup") == app_id_from_name("backup")
        assert app_id_from_name("backup") != app_id_from_name("ci")

    def test_fits_uint32(self) -> None:
        assert 0 <= app_id_from_name("ünïcode-app") <= 0xFFFFFFFF


class TestBuildIdentity:
    def test_carries_overrides(self) -> None:
        app = build_identity(AppConfig(
            app_name="ci",
            alert_name="CIAlert",
            labels={"team": "dev"},
            severity_from_priority={0: "crit"},
        ))
        assert app.name == "ci"
        assert app.app_id == app_id_from_name("ci")
        assert app.alert_name == "CIAlert"
        assert app.labels == {"team": "dev"}
        assert app.severity_map == {0: Severity.CRITICAL}


class TestAppRegistry:
    def test_resolve_known_token(self) -> None:
        app = _identity()
        registry = AppRegistry({"tok": app})
        assert registry.resolve("tok") is app
        assert len(registry) == 1

    def test_unknown_token_rejected(self) -> None:
        registry = AppRegistry({"tok": _identity()})
        with pytest.raises(Unauthenticated, match="token missing or invalid"):
            registry.resolve("nope")

    def test_empty_token_rejected(self) -> None:
        registry = AppRegistry({"tok": _identity()})
        with pytest.raises(Unauthenticated):
            registry.resolve("")

    def test_unauthenticated_is_ingest_error(self) -> None:
        assert issubclass(Unauthenticated, IngestError)

    def test_authenticate_uses_precedence(self) -> None:
        header_app = _identity("header-app")
        query_app = _identity("query-app")
        registry = AppRegistry({"h": header_app, "q": query_app})
        headers = CIMultiDict({TOKEN_HEADER: "h"})
        assert registry.authenticate(headers, {"token": "q"}) is header_app

    def test_authenticate_does_not_fall_back_on_unknown_header(self) -> None:
        registry = AppRegistry({"q": _identity()})
        headers = CIMultiDict({TOKEN_HEADER: "unknown"})
        with pytest.raises(Unauthenticated):
            registry.authenticate(headers, {"token": "q"})

    def test_from_settings(self) -> None:
        settings = Settings(
            upstream={"url": "http://am:9093"},
            defaults={"ttl_secs": 60, "severity_from_priority": {0: "info"}},
            apps={"tok-a": {"app_name": "a"}, "tok-b": {"app_name": "b"}},
        )
        registry = AppRegistry.from_settings(settings)
        assert len(registry) == 2
        assert registry.resolve("tok-b").name == "b"
