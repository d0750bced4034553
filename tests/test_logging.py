"""Tests for cfgscript.core.logging."""

import io
import json
import sys

import pytest
import structlog

from cfgscript.core.logging import (
    LogContext,
    bind_context,
    configure_logging,
    get_logger,
    unbind_context,
)


@pytest.fixture
def stderr_buffer(monkeypatch):
    """Swap sys.stderr for a buffer, restoring it before logging is reset."""
    buffer = io.StringIO()
    monkeypatch.setattr(sys, "stderr", buffer)
    yield buffer
    monkeypatch.undo()
    configure_logging(level="WARNING", json_format=False)


class TestLogContext:
    """Scoped contextvars binding."""

    def test_binds_and_clears(self):
        with LogContext(config="main.py", entry_point="main"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["config"] == "main.py"
            assert bound["entry_point"] == "main"
        assert "config" not in structlog.contextvars.get_contextvars()

    def test_bind_and_unbind(self):
        bind_context(session="abc")
        assert structlog.contextvars.get_contextvars()["session"] == "abc"
        unbind_context("session")
        assert "session" not in structlog.contextvars.get_contextvars()


class TestConfigureLogging:
    """Rendering goes to stderr."""

    def test_json_to_stderr(self, stderr_buffer):
        configure_logging(level="INFO", json_format=True, add_timestamp=False)
        get_logger("cfgscript.test").info("module.executed", module="/a.py")

        event = json.loads(stderr_buffer.getvalue().strip().splitlines()[-1])
        assert event["event"] == "module.executed"
        assert event["module"] == "/a.py"
        assert event["service"] == "cfgscript"
        assert event["level"] == "info"

    def test_level_filters(self, stderr_buffer):
        configure_logging(level="WARNING", json_format=True, add_timestamp=False)
        get_logger("cfgscript.test").debug("hidden")
        assert "hidden" not in stderr_buffer.getvalue()
