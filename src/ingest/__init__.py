"""Ingestion module — token authentication and message parsing."""

from src.ingest.auth import AppRegistry, app_id_from_name, extract_token
from src.ingest.exceptions import (
    IngestError,
    InvalidPriority,
    MalformedBody,
    MissingMessage,
    Unauthenticated,
    UnsupportedContentType,
)
from src.ingest.parser import parse_message

__all__ = [
    "AppRegistry",
    "IngestError",
    "InvalidPriority",
    "MalformedBody",
    "MissingMessage",
    "Unauthenticated",
    "UnsupportedContentType",
    "app_id_from_name",
    "extract_token",
    "parse_message",
]
