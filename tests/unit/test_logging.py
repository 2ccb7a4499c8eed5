"""Unit tests for novelshelf.utils.logging."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator

import pytest

from novelshelf.utils.logging import configure_logging, get_logger

ESC = chr(27)


@pytest.fixture(autouse=True)
def _restore_stdlib_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    library_levels = {name: logging.getLogger(name).level for name in ("httpx", "httpcore")}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, lib_level in library_levels.items():
        logging.getLogger(name).setLevel(lib_level)


def _json_lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestConfigureLogging:
    def test_json_output_keeps_chinese_text(self) -> None:
        stream = io.StringIO()
        configure_logging("INFO", json_output=True, stream=stream)

        get_logger("novelshelf.test").info("novel_fetched", title="斗破苍穹")

        (record,) = _json_lines(stream)
        assert record["event"] == "novel_fetched"
        assert record["level"] == "info"
        assert "斗破苍穹" in stream.getvalue()
        assert "timestamp" in record

    def test_level_filters_structlog_events(self) -> None:
        stream = io.StringIO()
        configure_logging("WARNING", json_output=True, stream=stream)

        logger = get_logger("novelshelf.test")
        logger.info("fetch_attempt")
        logger.warning("fetch_attempt_failed")

        assert [r["event"] for r in _json_lines(stream)] == ["fetch_attempt_failed"]

    def test_stdlib_records_share_the_renderer(self) -> None:
        stream = io.StringIO()
        configure_logging("INFO", json_output=True, stream=stream)

        logging.getLogger("novelshelf.stdlib").warning("plain stdlib record")

        (record,) = _json_lines(stream)
        assert record["event"] == "plain stdlib record"

    def test_console_output_to_non_tty_has_no_colour(self) -> None:
        stream = io.StringIO()
        configure_logging("INFO", stream=stream)

        get_logger("novelshelf.test").info("cache_cleared", removed=2)

        text = stream.getvalue()
        assert "cache_cleared" in text
        assert ESC not in text

    @pytest.mark.parametrize(
        ("level", "expected"), [("INFO", logging.WARNING), ("DEBUG", logging.DEBUG)]
    )
    def test_http_library_loggers_quieted(self, level: str, expected: int) -> None:
        configure_logging(level, json_output=True, stream=io.StringIO())

        assert logging.getLogger("httpx").level == expected
        assert logging.getLogger("httpcore").level == expected

    def test_app_env_production_selects_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        stream = io.StringIO()
        configure_logging("INFO", stream=stream)

        get_logger("novelshelf.test").info("cache_set_retry", key="k")

        assert _json_lines(stream)[0]["key"] == "k"
