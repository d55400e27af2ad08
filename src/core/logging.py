"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

from src.core.config import LoggingConfig

_LEVEL_ALIASES: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


def resolve_level(name: str) -> int:
    """Map a configured level name to a stdlib logging level (INFO if unknown)."""
    return _LEVEL_ALIASES.get(name.strip().lower(), logging.INFO)


def _renderer(fmt: str) -> structlog.types.Processor:
    fmt = fmt.strip().lower()
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    if fmt == "text":
        return structlog.processors.KeyValueRenderer(key_order=["level", "event"])
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(
    config: LoggingConfig | None = None,
    level: str | None = None,
    fmt: str | None = None,
) -> None:
    """Configure structlog with a JSON, key=value or console renderer.

    Args:
        config: Logging section of the settings. Defaults apply if None.
        level: Log level override (e.g. "debug"). Takes precedence over config.
        fmt: Renderer format override ("json", "text", "plain", "console").
    """
    cfg = config or LoggingConfig()
    log_level = resolve_level(level or cfg.level)
    log_format = fmt or cfg.format

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if cfg.include_time:
        shared_processors.insert(2, structlog.processors.TimeStamper(fmt="iso", utc=True))

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(log_format),
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # aiohttp's own access log duplicates the http_request event.
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
