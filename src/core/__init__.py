"""Core module — config, types, logging."""

from src.core.config import Settings, get_settings, load_settings, reset_settings
from src.core.exceptions import ConfigError
from src.core.logging import setup_logging
from src.core.types import (
    AppIdentity,
    InboundMessage,
    MessageAck,
    OutboundAlert,
    Severity,
)

__all__ = [
    "AppIdentity",
    "ConfigError",
    "InboundMessage",
    "MessageAck",
    "OutboundAlert",
    "Settings",
    "Severity",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
