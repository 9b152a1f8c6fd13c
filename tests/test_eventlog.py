"""Tests for the event log sinks and structlog configuration."""

import json
from pathlib import Path

import pytest
import structlog

from sysmon.config import Config, LoggingConfig
from sysmon.eventlog import MemorySink, StructlogSink, configure, error, info, warn


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_memory_sink_keeps_order():
    sink = MemorySink()
    sink.emit("first")
    sink.emit("second")
    assert sink.messages == ["first", "second"]


def test_structlog_sink_appends_json_lines(tmp_path: Path):
    log_path = tmp_path / "state" / "events.log"
    configure(Config(logging=LoggingConfig(enabled=True, path=log_path)))

    sink = StructlogSink()
    sink.emit("Enumerated 3 processes (0 skipped)")
    sink.emit("CPU sample failed: boom")

    records = [json.loads(line) for line in log_path.read_text().splitlines()]
    assert [r["event"] for r in records] == [
        "Enumerated 3 processes (0 skipped)",
        "CPU sample failed: boom",
    ]
    assert all(r["level"] == "info" for r in records)
    assert all("ts" in r for r in records)


def test_log_file_is_appended_not_truncated(tmp_path: Path):
    log_path = tmp_path / "events.log"
    log_path.write_text('{"event": "older"}\n')
    config = Config(logging=LoggingConfig(enabled=True, path=log_path))

    configure(config)
    StructlogSink().emit("newer")

    lines = log_path.read_text().splitlines()
    assert json.loads(lines[0])["event"] == "older"
    assert json.loads(lines[-1])["event"] == "newer"


def test_disabled_logging_writes_nothing(tmp_path: Path):
    log_path = tmp_path / "events.log"
    configure(Config(logging=LoggingConfig(enabled=False, path=log_path)))

    StructlogSink().emit("dropped")

    assert not log_path.exists()


def test_console_helpers(capsys):
    info("hello")
    warn("careful")
    error("broken")

    captured = capsys.readouterr()
    assert "[info] hello" in captured.out
    assert "[warn] careful" in captured.out
    assert "[err] broken" in captured.err
