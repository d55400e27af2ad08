"""Domain types for the notification -> alert pipeline."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue

# Opaque extras tree as sent by push clients: string keys, JSON leaves
# (string, number, bool, null, nested tree or list).
ExtrasValue = JsonValue
ExtrasTree = dict[str, ExtrasValue]

DEFAULT_PRIORITY = 5


class Severity(StrEnum):
    """Canonical alert severity."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class InboundMessage(BaseModel):
    """A validated push message."""

    message: str
    title: str = ""
    priority: int = DEFAULT_PRIORITY
    extras: ExtrasTree | None = None


class AppIdentity(BaseModel):
    """An application resolved from its token. Built once at startup."""

    model_config = ConfigDict(frozen=True)

    name: str
    app_id: int
    alert_name: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    severity_map: dict[int, Severity] = Field(default_factory=dict)


class OutboundAlert(BaseModel):
    """Alert record in the Alertmanager v2 wire shape."""

    model_config = ConfigDict(populate_by_name=True)

    labels: dict[str, str]
    annotations: dict[str, str] = Field(default_factory=dict)
    starts_at: datetime = Field(alias="startsAt")
    ends_at: datetime = Field(alias="endsAt")

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with the upstream field names."""
        return self.model_dump(mode="json", by_alias=True)


class MessageAck(BaseModel):
    """Acknowledgment returned to the push client."""

    id: int
    appid: int
    message: str
    title: str = ""
    priority: int = DEFAULT_PRIORITY
    date: datetime
    extras: ExtrasTree | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
