"""Tests for journaling and log redaction helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from wear_weather_sync.exceptions import JournalError
from wear_weather_sync.journal import JournalWriter
from wear_weather_sync.log_setup import JsonConsoleFormatter, setup_logger
from wear_weather_sync.redaction import REDACTED, sanitize_for_logging, sanitize_text


def test_sanitize_text_redacts_query_and_key_value_secrets() -> None:
    text = "GET /data/2.5/forecast/daily?q=Paris&appid=abc123 failed; OWM_API_KEY=xyz"

    sanitized = sanitize_text(text)

    assert "abc123" not in sanitized
    assert "xyz" not in sanitized
    assert "q=Paris" in sanitized


def test_sanitize_for_logging_redacts_sensitive_keys_recursively() -> None:
    payload = {"params": {"q": "Paris", "appid": "abc123"}, "tokens": ["a"], "ok": [1, ("x",)]}

    sanitized = sanitize_for_logging(payload)

    assert sanitized["params"] == {"q": "Paris", "appid": REDACTED}
    assert sanitized["tokens"] == REDACTED
    assert sanitized["ok"] == [1, ("x",)]


def test_journal_appends_jsonl_records(tmp_path: Path) -> None:
    journal = JournalWriter(journal_dir=tmp_path, session_id="abc")

    journal.write_event("startup", {"owm_api_key": "secret", "location": "PARIS"})
    journal.write_event("message", {"payload": b"\x01\x02"}, metadata={"source": "watch"})

    lines = journal.events_path.read_text(encoding="utf-8").splitlines()
    first, second = (json.loads(line) for line in lines)
    assert first["session_id"] == "abc"
    assert first["payload"] == {"owm_api_key": REDACTED, "location": "PARIS"}
    assert second["payload"] == {"payload": "0102"}
    assert second["metadata"] == {"source": "watch"}


def test_journal_rejects_unserializable_payload(tmp_path: Path) -> None:
    journal = JournalWriter(journal_dir=tmp_path, session_id="abc")

    with pytest.raises(JournalError):
        journal.write_event("bad", {"value": object()})


def test_json_console_formatter_redacts_message() -> None:
    record = logging.LogRecord(
        name="wear_weather_sync",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="request failed: %s",
        args=("https://api.openweathermap.org/x?appid=abc123",),
        exc_info=None,
    )

    event = json.loads(JsonConsoleFormatter().format(record))

    assert event["level"] == "WARNING"
    assert "abc123" not in event["message"]


def test_json_console_formatter_copies_context_fields() -> None:
    record = logging.LogRecord(
        name="wear_weather_sync",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Link watch: connecting -> connected",
        args=(),
        exc_info=None,
    )
    record.link = "watch"
    record.link_state = "connected"

    event = json.loads(JsonConsoleFormatter().format(record))

    assert event["link"] == "watch"
    assert event["link_state"] == "connected"
    assert "node_id" not in event


def test_setup_logger_accepts_level_names_and_reconfigures() -> None:
    logger = setup_logger("wear_weather_sync.test_levels", level="debug")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1

    again = setup_logger("wear_weather_sync.test_levels", level=logging.ERROR)
    assert again is logger
    assert logger.level == logging.ERROR
    assert len(logger.handlers) == 1
