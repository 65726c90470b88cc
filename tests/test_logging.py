"""Tests for the JSON log formatter."""

import json
import logging

from app.logging_config import JsonFormatter, configure_logging


def _record(**extra):
    record = logging.LogRecord("omatrust.evidence", logging.WARNING, __file__, 1, "lookup %s", ("failed",), None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_formats_json_line():
    payload = json.loads(JsonFormatter().format(_record()))
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "omatrust.evidence"
    assert payload["msg"] == "lookup failed"
    assert "ts" in payload


def test_context_fields_included():
    payload = json.loads(JsonFormatter().format(_record(did="did:web:example.com", route="/evidence/verify")))
    assert payload["did"] == "did:web:example.com"
    assert payload["route"] == "/evidence/verify"
    assert "domain" not in payload


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("OMA_LOG_LEVEL", "debug")
    monkeypatch.delenv("OMA_LOG_FILE", raising=False)
    configure_logging()
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, JsonFormatter)
