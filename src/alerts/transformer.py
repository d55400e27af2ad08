"""Build Alertmanager alerts from validated push messages."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from src.alerts.extras import extras_annotations
from src.alerts.severity import resolve_severity, select_severity_map
from src.core.config import DEFAULT_ALERT_NAME, DefaultsConfig
from src.core.types import AppIdentity, InboundMessage, OutboundAlert

LABEL_ALERTNAME = "alertname"
LABEL_APP = "app"
LABEL_SEVERITY = "severity"
LABEL_PRIORITY = "priority"
LABEL_FORWARDING_ID = "alertbridge_id"

SUMMARY_MAX_CHARS = 120
TRUNCATION_MARKER = "…"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def pick_summary(app_name: str, title: str, message: str) -> str:
    """Title if set, else the (truncated) message, else the app name."""
    title = title.strip()
    if title:
        return title

    message = message.strip()
    if not message:
        return app_name
    if len(message) <= SUMMARY_MAX_CHARS:
        return message
    return message[:SUMMARY_MAX_CHARS] + TRUNCATION_MARKER


def pick_alert_name(app: AppIdentity, default: str) -> str:
    override = (app.alert_name or "").strip()
    if override:
        return override
    return default.strip() or DEFAULT_ALERT_NAME


class AlertTransformer:
    """Turns (app, message, forwarding id) into exactly one OutboundAlert.

    Label precedence on key collision is defaults < per-app < computed, so
    the identity-bearing labels (alertname, app, severity, priority and the
    forwarding id) can never be overridden by configuration.
    """

    def __init__(self, defaults: DefaultsConfig, clock: Clock | None = None) -> None:
        self._defaults = defaults
        self._ttl = timedelta(seconds=defaults.ttl_secs)
        self._clock = clock or utc_now

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def build(
        self,
        app: AppIdentity,
        message: InboundMessage,
        forwarding_id: int,
    ) -> OutboundAlert:
        severity_map = select_severity_map(app, self._defaults.severity_from_priority)
        severity = resolve_severity(severity_map, message.priority)

        labels = dict(self._defaults.labels)
        labels.update(app.labels)
        labels.update({
            LABEL_ALERTNAME: pick_alert_name(app, self._defaults.alert_name),
            LABEL_APP: app.name,
            LABEL_SEVERITY: severity.value,
            LABEL_PRIORITY: str(message.priority),
            LABEL_FORWARDING_ID: str(forwarding_id),
        })

        annotations = {
            "summary": pick_summary(app.name, message.title, message.message),
            "description": message.message,
        }
        annotations.update(extras_annotations(message.extras))

        starts_at = self._clock()
        return OutboundAlert(
            labels=labels,
            annotations=annotations,
            starts_at=starts_at,
            ends_at=starts_at + self._ttl,
        )
