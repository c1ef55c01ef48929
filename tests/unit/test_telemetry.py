"""Tests for telemetry module."""

import io
import json
import logging

import pytest

from grappling_hook.sequencer import iterate_middleware
from grappling_hook.telemetry import (
    HookLogger,
    JsonFormatter,
    LogContext,
    LogLevel,
    TextFormatter,
    clear_log_context,
    get_log_context,
    get_logger,
    log_context,
    push_log_context,
    reset_log_context,
    set_log_context,
)


def make_record(msg: str = "Middleware registered", **fields) -> logging.LogRecord:
    record = logging.LogRecord("grappling_hook.test", logging.INFO, __file__, 1, msg, None, None)
    if fields:
        record.extra_fields = fields
    return record


@pytest.fixture(autouse=True)
def reset_context():
    """Start every test with an empty logging context."""
    clear_log_context()
    yield
    clear_log_context()


class TestLogContext:
    """Tests for LogContext."""

    def test_empty_context(self) -> None:
        """Test empty context."""
        assert LogContext().to_dict() == {}

    def test_context_with_fields(self) -> None:
        """Test context with fields."""
        ctx = LogContext(hook="pre:save", run_id="abc", method="save")
        assert ctx.to_dict() == {"hook": "pre:save", "run_id": "abc", "method": "save"}

    def test_context_with_extra(self) -> None:
        """Test context with extra fields."""
        ctx = LogContext(hook="pre:save").with_extra(user="alice")
        assert ctx.to_dict() == {"hook": "pre:save", "user": "alice"}

    def test_set_and_get(self) -> None:
        """Test setting the current context."""
        set_log_context(LogContext(hook="post:save", extra={"attempt": 2}))

        ctx = get_log_context()
        assert ctx.hook == "post:save"
        assert ctx.extra == {"attempt": 2}

    def test_log_context_block(self) -> None:
        """Test log_context adds fields for a block only."""
        with log_context(hook="pre:save", run_id=None):
            assert get_log_context().to_dict() == {"hook": "pre:save"}
            with log_context(run_id="r1"):
                assert get_log_context().run_id == "r1"
            assert get_log_context().run_id is None
        assert get_log_context().to_dict() == {}

    def test_push_and_reset(self) -> None:
        """Test token-based context changes."""
        token = push_log_context(method="save")
        assert get_log_context().method == "save"

        reset_log_context(token)
        assert get_log_context().method is None

    def test_sequencer_sets_context(self) -> None:
        """Test middleware runs with hook and run id in the context."""
        seen = []

        iterate_middleware(None, [lambda: seen.append(get_log_context())], (), hook="pre:save")

        assert seen[0].hook == "pre:save"
        assert seen[0].run_id
        assert get_log_context().hook is None


class TestFormatters:
    """Tests for log formatters."""

    def test_json(self) -> None:
        """Test JSON output with fields and context."""
        with log_context(hook="pre:save"):
            output = JsonFormatter(include_timestamp=False).format(make_record(count=2))

        data = json.loads(output)
        assert data["message"] == "Middleware registered"
        assert data["count"] == 2
        assert data["context"] == {"hook": "pre:save"}
        assert "timestamp" not in data

    def test_json_timestamp(self) -> None:
        """Test JSON output includes a timestamp by default."""
        data = json.loads(JsonFormatter().format(make_record()))
        assert data["timestamp"].endswith("Z")

    def test_text(self) -> None:
        """Test text output appends fields and context."""
        with log_context(run_id="r1"):
            output = TextFormatter().format(make_record(kind="serial"))

        assert "| Middleware registered" in output
        assert "kind=serial" in output
        assert "run_id=r1" in output

    def test_text_without_context(self) -> None:
        """Test text output can leave out the context."""
        with log_context(run_id="r1"):
            output = TextFormatter(include_context=False).format(make_record())

        assert "run_id" not in output


class TestHookLogger:
    """Tests for HookLogger."""

    def test_get_logger(self) -> None:
        """Test getting a logger."""
        logger = get_logger("grappling_hook.test")
        assert isinstance(logger, HookLogger)
        assert logger.name == "grappling_hook.test"

    def test_default_level(self) -> None:
        """Test debug output is off by default."""
        logger = HookLogger.get_logger("grappling_hook.test.default")
        assert not logger.is_enabled_for(LogLevel.DEBUG)

    def test_configure(self) -> None:
        """Test configure routes records to the given stream."""
        stream = io.StringIO()
        try:
            HookLogger.configure(level=LogLevel.DEBUG, format="json", stream=stream)
            logger = get_logger("grappling_hook.test.configured")
            logger.debug("Hook run started", middleware=3)

            record = json.loads(stream.getvalue().strip().splitlines()[-1])
            assert record["level"] == "DEBUG"
            assert record["middleware"] == 3
        finally:
            HookLogger.configure(level=LogLevel.WARNING, format="text")
