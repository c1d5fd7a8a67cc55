"""
Unit tests for JSON logging setup
"""

import io
import json
import logging
import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.logging_setup import JsonFormatter, resolve_level, setup_logging


def _record(msg="hello", exc_info=None):
    return logging.LogRecord("tile_engine.pool", logging.INFO, __file__, 1, msg, None, exc_info)


class TestJsonFormatter:
    """Test cases for JsonFormatter"""

    def test_fields(self):
        payload = json.loads(JsonFormatter().format(_record()))
        assert payload["lvl"] == "INFO"
        assert payload["name"] == "tile_engine.pool"
        assert payload["msg"] == "hello"
        assert "thread" in payload and isinstance(payload["t"], int)
        assert "extra" not in payload

    def test_extra_dict(self):
        rec = _record()
        rec.extra = {"tile": "3/4/2.jpeg", "latency_ms": 5}
        payload = json.loads(JsonFormatter().format(rec))
        assert payload["extra"] == {"tile": "3/4/2.jpeg", "latency_ms": 5}

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            rec = _record(exc_info=sys.exc_info())
        payload = json.loads(JsonFormatter().format(rec))
        assert "RuntimeError: boom" in payload["exc_info"]


class TestSetup:
    """Test cases for setup_logging / resolve_level"""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        configured = getattr(root, "_tiles_configured", False)
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        root._tiles_configured = configured

    def test_resolve_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        assert resolve_level() == logging.WARNING
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level("nonsense") == logging.INFO

    def test_force_reconfigures(self):
        stream = io.StringIO()
        setup_logging("DEBUG", stream=stream, force=True)
        logging.getLogger("tile_server").debug("ready", extra={"extra": {"workers": 2}})
        line = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert line["msg"] == "ready"
        assert line["extra"] == {"workers": 2}

    def test_second_call_is_noop(self):
        first = io.StringIO()
        setup_logging("INFO", stream=first, force=True)
        setup_logging("DEBUG", stream=io.StringIO())
        assert logging.getLogger().level == logging.INFO
        logging.getLogger("x").info("kept")
        assert "kept" in first.getvalue()
