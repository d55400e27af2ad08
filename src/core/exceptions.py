"""Core exceptions."""

from __future__ import annotations


class ConfigError(Exception):
    """Configuration could not be loaded or failed validation."""
