"""Tests for logging setup and the JSONL formatter."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from feed_sync.config import LoggingConfig
from feed_sync.logging_utils import log_event, setup_logging


def test_file_logging_writes_jsonl_with_extras():
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = LoggingConfig(level="DEBUG", console=False, file=True, format="jsonl", filename="run.jsonl")
        logger = setup_logging(cfg, Path(tmpdir))

        log_event(logger, "Fetch complete", event="fetch_complete", returned=50)
        log_event(logger, "Ignored", level=logging.DEBUG, event="debug_event")
        for handler in logger.handlers:
            handler.flush()
            handler.close()
        logger.handlers = []
        logger.propagate = True

        lines = (Path(tmpdir) / "run.jsonl").read_text(encoding="utf-8").strip().split("\n")

    assert len(lines) == 2
    entry = json.loads(lines[0])
    assert entry["message"] == "Fetch complete"
    assert entry["event"] == "fetch_complete"
    assert entry["returned"] == 50
    assert entry["level"] == "INFO"
    assert entry["logger"] == "feed_sync"
    assert "timestamp" in entry


def test_setup_logging_console_only():
    logger = setup_logging(LoggingConfig(console=True, file=True), None)

    assert len(logger.handlers) == 1
    assert logger.propagate is False
    logger.handlers = []
    logger.propagate = True


def test_log_event_accepts_missing_logger():
    log_event(None, "nothing happens", event="noop")
