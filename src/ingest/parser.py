"""Inbound message parsing — JSON and URL-encoded form bodies."""

from __future__ import annotations

import json
from collections.abc import Mapping
from urllib.parse import parse_qsl

from pydantic import BaseModel, ConfigDict, ValidationError

from src.core.types import DEFAULT_PRIORITY, ExtrasTree, InboundMessage
from src.ingest.exceptions import (
    InvalidPriority,
    MalformedBody,
    MissingMessage,
    UnsupportedContentType,
)

JSON_MEDIA_TYPE = "application/json"
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"


class _JsonPayload(BaseModel):
    """JSON request body. Unknown fields are ignored for client compatibility."""

    model_config = ConfigDict(extra="ignore", strict=True)

    message: str | None = None
    title: str | None = None
    priority: int | None = None
    extras: ExtrasTree | None = None


def media_type(content_type: str | None) -> str:
    """Return the lower-cased media type of a Content-Type header ("" if absent).

    Raises:
        UnsupportedContentType: The header is present but unparsable.
    """
    if content_type is None or not content_type.strip():
        return ""
    media = content_type.split(";", 1)[0].strip().lower()
    kind, sep, subtype = media.partition("/")
    if not sep or not kind or not subtype or "/" in subtype or " " in media:
        raise UnsupportedContentType(f"parse content-type {content_type!r}")
    return media


def parse_message(
    content_type: str | None,
    body: bytes,
    query: Mapping[str, str] | None = None,
) -> InboundMessage:
    """Decode and validate a push message.

    JSON and form-encoded bodies are accepted. A missing Content-Type is
    treated as form-encoded, which is what many push clients send.

    Args:
        content_type: Raw Content-Type header value, or None.
        body: Raw request body.
        query: Query-string parameters; form fields fall back to them.

    Raises:
        UnsupportedContentType, MalformedBody, MissingMessage, InvalidPriority.
    """
    media = media_type(content_type)
    if media == JSON_MEDIA_TYPE:
        return _parse_json(body)
    if media in (FORM_MEDIA_TYPE, ""):
        return _parse_form(body, query or {})
    raise UnsupportedContentType(f"unsupported content type: {media!r}")


def _parse_json(body: bytes) -> InboundMessage:
    try:
        raw = json.loads(body)
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedBody(f"decode json: {exc}") from exc

    if not isinstance(raw, dict):
        raise MalformedBody("decode json: body must be a JSON object")

    try:
        payload = _JsonPayload.model_validate(raw)
    except ValidationError as exc:
        fields = ", ".join(str(e["loc"][0]) for e in exc.errors() if e["loc"])
        raise MalformedBody(f"decode json: invalid field(s): {fields}") from exc

    return _validate(
        message=payload.message or "",
        title=payload.title or "",
        priority=DEFAULT_PRIORITY if payload.priority is None else payload.priority,
        extras=payload.extras,
    )


def _parse_form(body: bytes, query: Mapping[str, str]) -> InboundMessage:
    try:
        pairs = parse_qsl(body.decode("utf-8"), keep_blank_values=True)
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedBody(f"parse form: {exc}") from exc

    form: dict[str, str] = {}
    for key, value in pairs:
        form.setdefault(key, value)

    def _value(key: str) -> str:
        if key in form:
            return form[key]
        return query.get(key) or ""

    priority = DEFAULT_PRIORITY
    priority_raw = _value("priority").strip()
    if priority_raw:
        try:
            priority = int(priority_raw)
        except ValueError:
            raise InvalidPriority(f"invalid priority: {priority_raw!r}") from None

    return _validate(
        message=_value("message"),
        title=_value("title"),
        priority=priority,
        extras=None,
    )


def _validate(
    message: str,
    title: str,
    priority: int,
    extras: ExtrasTree | None,
) -> InboundMessage:
    message = message.strip()
    if not message:
        raise MissingMessage("message is required")
    if priority < 0:
        raise InvalidPriority(f"invalid priority: {priority}")
    return InboundMessage(
        message=message,
        title=title.strip(),
        priority=priority,
        extras=extras,
    )
