"""Priority -> severity resolution."""

from __future__ import annotations

from collections.abc import Mapping

from src.core.types import AppIdentity, Severity


def resolve_severity(mapping: Mapping[int, Severity], priority: int) -> Severity:
    """Resolve a message priority to a severity.

    An exact key wins. Otherwise the greatest key below the priority is
    used, falling back to the smallest configured key when the priority is
    below all of them.
    """
    if priority in mapping:
        return Severity(mapping[priority])

    if not mapping:
        # Unreachable with validated config (the default map is non-empty).
        return Severity.INFO

    lower = [key for key in mapping if key <= priority]
    key = max(lower) if lower else min(mapping)
    return Severity(mapping[key])


def select_severity_map(
    app: AppIdentity,
    default_map: Mapping[int, Severity],
) -> Mapping[int, Severity]:
    """A non-empty per-app map replaces the default map entirely."""
    if app.severity_map:
        return app.severity_map
    return default_map
