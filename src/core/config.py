"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, model_validator

from src.core.exceptions import ConfigError
from src.core.types import Severity

_settings: Settings | None = None

DEFAULT_ALERT_NAME = "AlertbridgeNotification"

_LOG_LEVELS = ("debug", "info", "warn", "warning", "error", "fatal", "panic", "critical")
_LOG_FORMATS = ("plain", "text", "json", "console")

_SEVERITY_ALIASES: dict[str, Severity] = {
    "info": Severity.INFO,
    "warn": Severity.WARNING,
    "warning": Severity.WARNING,
    "crit": Severity.CRITICAL,
    "critical": Severity.CRITICAL,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> float:
    """Convert a duration to seconds.

    Accepts plain numbers (seconds) or Go-style duration strings such as
    ``"200ms"``, ``"5s"`` or ``"1h30m"``.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"invalid duration: {value!r}")

    text = value.strip()
    if not text:
        raise ValueError("duration is empty")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    try:
        return sign * float(text)
    except ValueError:
        pass

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return sign * total


def canonical_severity(value: Any) -> Severity:
    """Normalise a configured severity (aliases, case, whitespace)."""
    if isinstance(value, Severity):
        return value
    key = str(value).strip().lower()
    severity = _SEVERITY_ALIASES.get(key)
    if severity is None:
        raise ValueError(
            f"invalid severity {value!r} (allowed: info, warning, critical)"
        )
    return severity


def _check_severity_map(mapping: dict[int, Any], where: str) -> dict[int, Severity]:
    out: dict[int, Severity] = {}
    for priority, severity in mapping.items():
        if priority < 0:
            raise ValueError(f"{where}: priority must be >= 0, got {priority}")
        try:
            out[priority] = canonical_severity(severity)
        except ValueError as exc:
            raise ValueError(f"{where}[{priority}]: {exc}") from None
    return out


def redact_token(token: str) -> str:
    """Stable redaction so tokens never end up in error messages."""
    return f"token(len={len(token)})"


class ServerConfig(BaseModel):
    """Inbound HTTP listener configuration."""

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    request_timeout_secs: float = Field(default=10.0, ge=0)
    shutdown_timeout_secs: float = Field(default=10.0, ge=0)
    max_body_bytes: int = Field(default=1 << 20, gt=0)

    @field_validator("request_timeout_secs", "shutdown_timeout_secs", mode="before")
    @classmethod
    def _duration(cls, v: Any) -> float:
        return parse_duration(v)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "info"
    format: str = "plain"
    include_time: bool = False

    @field_validator("level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        level = v.strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"logging.level is invalid: {v!r}")
        return level

    @field_validator("format")
    @classmethod
    def _check_format(cls, v: str) -> str:
        fmt = v.strip().lower()
        if fmt not in _LOG_FORMATS:
            raise ValueError(
                f"logging.format is invalid (allowed: {', '.join(_LOG_FORMATS)}): {v!r}"
            )
        return fmt


class BasicAuthConfig(BaseModel):
    """HTTP basic credentials for the upstream Alertmanager."""

    username: str = ""
    password: SecretStr = SecretStr("")

    @model_validator(mode="after")
    def _both_required(self) -> BasicAuthConfig:
        if not self.username.strip():
            raise ValueError("upstream.basic_auth.username is required when basic_auth is set")
        if not self.password.get_secret_value().strip():
            raise ValueError("upstream.basic_auth.password is required when basic_auth is set")
        return self


class RetryConfig(BaseModel):
    """Bounded retry policy for alert delivery."""

    max_attempts: int = Field(default=3, ge=1)
    initial_backoff_secs: float = Field(default=0.2, gt=0)
    max_backoff_secs: float = Field(default=1.0, gt=0)

    @field_validator("initial_backoff_secs", "max_backoff_secs", mode="before")
    @classmethod
    def _duration(cls, v: Any) -> float:
        return parse_duration(v)

    @model_validator(mode="after")
    def _ordered(self) -> RetryConfig:
        if self.max_backoff_secs < self.initial_backoff_secs:
            raise ValueError("upstream.retry.max_backoff_secs must be >= initial_backoff_secs")
        return self


class UpstreamConfig(BaseModel):
    """Alertmanager connection settings."""

    url: str
    timeout_secs: float = 0.0
    ready_timeout_secs: float = Field(default=2.0, gt=0)
    insecure_skip_verify: bool = False
    basic_auth: BasicAuthConfig | None = None
    bearer_token: SecretStr = SecretStr("")
    retry: RetryConfig = RetryConfig()

    @field_validator("timeout_secs", "ready_timeout_secs", mode="before")
    @classmethod
    def _duration(cls, v: Any) -> float:
        return parse_duration(v)

    @field_validator("url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        url = v.strip()
        if not url:
            raise ValueError("upstream.url is required")
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https"):
            raise ValueError(f"upstream.url must use http or https scheme, got {parts.scheme!r}")
        if not parts.netloc.strip():
            raise ValueError("upstream.url must include host")
        return url

    @field_validator("timeout_secs")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("upstream.timeout_secs must be >= 0")
        return v

    @model_validator(mode="after")
    def _exclusive_auth(self) -> UpstreamConfig:
        if self.basic_auth is not None and self.bearer_token.get_secret_value().strip():
            raise ValueError("upstream.basic_auth and upstream.bearer_token are mutually exclusive")
        return self


class DefaultsConfig(BaseModel):
    """Process-wide defaults applied to every generated alert."""

    alert_name: str = DEFAULT_ALERT_NAME
    ttl_secs: float = 0.0
    severity_from_priority: dict[int, Severity] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("ttl_secs", mode="before")
    @classmethod
    def _duration(cls, v: Any) -> float:
        return parse_duration(v)

    @field_validator("severity_from_priority", mode="before")
    @classmethod
    def _severities(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        return {k: canonical_severity(s) for k, s in v.items()}

    @field_validator("alert_name")
    @classmethod
    def _alert_name(cls, v: str) -> str:
        return v.strip() or DEFAULT_ALERT_NAME

    @model_validator(mode="after")
    def _check(self) -> DefaultsConfig:
        if not self.severity_from_priority:
            raise ValueError("defaults.severity_from_priority is required and must be non-empty")
        _check_severity_map(self.severity_from_priority, "defaults.severity_from_priority")
        if self.ttl_secs <= 0:
            raise ValueError("defaults.ttl_secs must be > 0")
        return self


class AppConfig(BaseModel):
    """Per-token application definition."""

    app_name: str = ""
    alert_name: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    severity_from_priority: dict[int, Severity] = Field(default_factory=dict)

    @field_validator("app_name", "alert_name")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()

    @field_validator("severity_from_priority", mode="before")
    @classmethod
    def _severities(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        return {k: canonical_severity(s) for k, s in v.items()}


class Settings(BaseModel):
    """Root settings container."""

    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()
    upstream: UpstreamConfig
    defaults: DefaultsConfig
    apps: dict[str, AppConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_apps(self) -> Settings:
        for token, app in self.apps.items():
            if not token.strip():
                raise ValueError("apps contains an empty token key")
            where = f"apps[{redact_token(token)}]"
            if not app.app_name:
                raise ValueError(f"{where}.app_name is required")
            _check_severity_map(app.severity_from_priority, f"{where}.severity_from_priority")
        return self


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc_parts = [str(p) for p in err["loc"]]
        if len(loc_parts) > 1 and loc_parts[0] == "apps":
            loc_parts[1] = redact_token(loc_parts[1])
        loc = ".".join(loc_parts)
        msg = err["msg"].removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def load_settings(path: str | Path) -> Settings:
    """Load, validate and cache settings from a YAML file.

    Args:
        path: Path to the YAML config file.

    Returns:
        Parsed Settings instance.

    Raises:
        ConfigError: The file is missing, unreadable, not valid YAML, or
            fails validation.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path)
    if not str(path).strip():
        raise ConfigError("config file path is empty")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"read config file {str(config_path)!r}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"parse config file {str(config_path)!r}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"parse config file {str(config_path)!r}: top level must be a mapping")

    try:
        settings = Settings(**raw)
    except ValidationError as exc:
        raise ConfigError(
            f"validate config file {str(config_path)!r}: {_format_validation_error(exc)}"
        ) from exc
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"validate config file {str(config_path)!r}: {exc}") from exc

    _settings = settings
    return _settings


def get_settings() -> Settings:
    """Return the cached settings.

    Raises:
        ConfigError: ``load_settings`` has not been called yet.
    """
    if _settings is None:
        raise ConfigError("settings not loaded")
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
