"""Unit tests for media_summarizer.logging - structured logging setup."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest
import structlog

from media_summarizer.logging import (
    configure_logging,
    generate_request_id,
    operation_logging_context,
)

if TYPE_CHECKING:
    from pathlib import Path


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_structlog() -> None:
    """Reset structlog state between tests."""
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# generate_request_id
# ---------------------------------------------------------------------------


class TestGenerateRequestId:
    def test_short_hex(self) -> None:
        rid = generate_request_id()
        assert len(rid) == 12
        int(rid, 16)

    def test_unique_across_calls(self) -> None:
        assert len({generate_request_id() for _ in range(10)}) == 10


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """configure_logging sets up handlers and levels."""

    def test_invalid_level_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="LOUD")

    def test_sets_root_level(self) -> None:
        configure_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_http_client_loggers_held_at_warning(self) -> None:
        configure_logging(level="INFO")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
        configure_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_reconfigure_does_not_duplicate_handlers(self) -> None:
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_json_file_output(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "app.log"
        configure_logging(level="INFO", fmt="json", log_file=log_file)
        structlog.get_logger("test").info("provider_ready", provider="openai")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "provider_ready"
        assert record["provider"] == "openai"


# ---------------------------------------------------------------------------
# operation_logging_context
# ---------------------------------------------------------------------------


class TestOperationLoggingContext:
    """operation_logging_context binds and unbinds operation metadata."""

    def test_binds_operation_and_request_id(self) -> None:
        configure_logging(level="DEBUG")
        with operation_logging_context("summarize", provider="OpenAI") as log:
            ctx = structlog.contextvars.get_contextvars()
            assert ctx["operation"] == "summarize"
            assert ctx["provider"] == "OpenAI"
            assert len(ctx["request_id"]) == 12
            assert log is not None

    def test_unbinds_on_exit(self) -> None:
        configure_logging(level="DEBUG")
        with operation_logging_context("enhance", transcript_chars=10):
            pass
        ctx = structlog.contextvars.get_contextvars()
        assert "operation" not in ctx
        assert "transcript_chars" not in ctx

    def test_unbinds_and_reraises_on_error(self) -> None:
        configure_logging(level="DEBUG")
        with pytest.raises(RuntimeError), operation_logging_context("summarize"):
            raise RuntimeError("boom")
        assert "operation" not in structlog.contextvars.get_contextvars()
