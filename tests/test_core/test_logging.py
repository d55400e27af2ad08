"""Tests for src/core/logging.py — level aliases and renderer selection."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from src.core.config import LoggingConfig
from src.core.logging import resolve_level, setup_logging


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


class TestResolveLevel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("warn", logging.WARNING),
            ("warning", logging.WARNING),
            ("error", logging.ERROR),
            ("fatal", logging.CRITICAL),
            ("panic", logging.CRITICAL),
        ],
    )
    def test_aliases(self, name: str, expected: int) -> None:
        assert resolve_level(name) == expected

    def test_unknown_defaults_to_info(self) -> None:
        assert resolve_level("chatty") == logging.INFO


class TestSetupLogging:
    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingConfig(format="json"))
        structlog.stdlib.get_logger("test").info("alert_forwarded", app="ci")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "alert_forwarded"
        assert record["app"] == "ci"
        assert record["level"] == "info"
        assert "timestamp" not in record

    def test_include_time_adds_timestamp(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingConfig(format="json", include_time=True))
        structlog.stdlib.get_logger("test").info("tick")

        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert "timestamp" in record

    def test_text_output_is_key_value(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingConfig(format="text"))
        structlog.stdlib.get_logger("test").warning("upstream_slow", attempt=2)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        assert line.startswith("level='warning' event='upstream_slow'")
        assert "attempt=2" in line

    def test_level_override_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingConfig(level="debug", format="json"), level="error")
        log = structlog.stdlib.get_logger("test")
        log.info("hidden")
        log.error("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_format_override(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingConfig(format="json"), fmt="console")
        structlog.stdlib.get_logger("test").info("plain_event")

        err = capsys.readouterr().err
        assert "plain_event" in err
        with pytest.raises(json.JSONDecodeError):
            json.loads(err.strip().splitlines()[-1])

    def test_aiohttp_access_log_quietened(self) -> None:
        setup_logging(LoggingConfig(level="debug"))
        assert logging.getLogger("aiohttp.access").level == logging.WARNING
