"""Alert module — severity resolution, extras extraction, alert building."""

from src.alerts.extras import extras_annotations, string_at_path
from src.alerts.severity import resolve_severity, select_severity_map
from src.alerts.transformer import AlertTransformer, pick_alert_name, pick_summary

__all__ = [
    "AlertTransformer",
    "extras_annotations",
    "pick_alert_name",
    "pick_summary",
    "resolve_severity",
    "select_severity_map",
    "string_at_path",
]
