"""Token extraction and app identity lookup."""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from src.core.config import AppConfig, Settings
from src.core.types import AppIdentity
from src.ingest.exceptions import Unauthenticated

logger = structlog.get_logger(__name__)

TOKEN_HEADER = "X-Gotify-Key"
TOKEN_QUERY_PARAM = "token"

_BEARER_PREFIX = "bearer "

_FNV32_OFFSET = 2166136261
_FNV32_PRIME = 16777619


def app_id_from_name(name: str) -> int:
    """Deterministic 32-bit FNV-1a hash of the app name."""
    h = _FNV32_OFFSET
    for byte in name.encode("utf-8"):
        h ^= byte
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return h


def extract_token(headers: Mapping[str, str], query: Mapping[str, str]) -> str:
    """Return the caller's token, or "" when none is present.

    Lookup order, first non-empty wins: the ``X-Gotify-Key`` header, the
    ``token`` query parameter, then ``Authorization: Bearer <token>``.
    ``headers`` is expected to be case-insensitive (aiohttp's CIMultiDict).
    """
    header_token = (headers.get(TOKEN_HEADER) or "").strip()
    if header_token:
        return header_token

    query_token = (query.get(TOKEN_QUERY_PARAM) or "").strip()
    if query_token:
        return query_token

    auth = (headers.get("Authorization") or "").strip()
    if not auth.lower().startswith(_BEARER_PREFIX):
        return ""
    return auth[len(_BEARER_PREFIX):].strip()


def build_identity(app: AppConfig) -> AppIdentity:
    return AppIdentity(
        name=app.app_name,
        app_id=app_id_from_name(app.app_name),
        alert_name=app.alert_name.strip() or None,
        labels=dict(app.labels),
        severity_map=dict(app.severity_from_priority),
    )


class AppRegistry:
    """Read-only token -> AppIdentity table.

    Built once at startup; safe for concurrent lookups since nothing
    mutates it afterwards.
    """

    def __init__(self, apps: Mapping[str, AppIdentity]) -> None:
        self._apps: dict[str, AppIdentity] = dict(apps)

    @classmethod
    def from_settings(cls, settings: Settings) -> AppRegistry:
        return cls({token: build_identity(app) for token, app in settings.apps.items()})

    def __len__(self) -> int:
        return len(self._apps)

    def resolve(self, token: str) -> AppIdentity:
        """Look up an app by token.

        Raises:
            Unauthenticated: The token is empty or unknown.
        """
        app = self._apps.get(token) if token else None
        if app is None:
            raise Unauthenticated("token missing or invalid")
        return app

    def authenticate(
        self,
        headers: Mapping[str, str],
        query: Mapping[str, str],
    ) -> AppIdentity:
        """Extract the request token and resolve it to an app."""
        try:
            return self.resolve(extract_token(headers, query))
        except Unauthenticated:
            logger.warning("authentication_failed")
            raise
