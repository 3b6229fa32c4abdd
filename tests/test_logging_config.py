"""Tests for the log formatters."""

import json
import sys
import logging

from logging_config import JSONFormatter, PlainFormatter, setup_logging


def make_record(msg, level=logging.INFO):
    return logging.LogRecord("oauth.service", level, __file__, 42, msg, None, None, func="exchange")


def test_json_formatter_lifts_tag():
    entry = json.loads(JSONFormatter().format(make_record("[TOKEN] Issued access token")))
    assert entry["tag"] == "TOKEN"
    assert entry["message"] == "Issued access token"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "oauth.service"
    assert entry["service"] == "workspace-mcp-server"
    assert entry["extra"] == {"function": "exchange", "line": 42}


def test_json_formatter_without_tag():
    entry = json.loads(JSONFormatter(service="svc").format(make_record("plain message")))
    assert entry["tag"] is None
    assert entry["message"] == "plain message"
    assert entry["service"] == "svc"


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = make_record("[SWEEP] failed", level=logging.ERROR)
        record.exc_info = sys.exc_info()
    entry = json.loads(JSONFormatter().format(record))
    assert "RuntimeError: boom" in entry["extra"]["exception"]


def test_plain_formatter():
    line = PlainFormatter().format(make_record("[AUTH] Request rejected"))
    assert line.endswith("[INFO] [AUTH] Request rejected")


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "server.log"
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("DEBUG", "json", str(log_file))
        logging.getLogger("oauth.stores").info("[REGISTER] Registered client")
        for handler in root.handlers:
            handler.flush()
        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert any(line["tag"] == "REGISTER" for line in lines)
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
