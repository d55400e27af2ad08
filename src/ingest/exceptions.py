"""Exception hierarchy for inbound message authentication and parsing."""

from __future__ import annotations


class IngestError(Exception):
    """Base exception for all client-input errors."""


class Unauthenticated(IngestError):
    """No token was supplied or the token is unknown."""


class UnsupportedContentType(IngestError):
    """Declared content type is neither JSON nor form-encoded."""


class MalformedBody(IngestError):
    """Request body could not be decoded."""


class MissingMessage(IngestError):
    """The message field is missing or blank."""


class InvalidPriority(IngestError):
    """Priority is not an integer or is negative."""
