"""structlog configuration and per-operation logging context.

Provides request ID generation, an operation-level logging context manager,
and structured log configuration for console and JSON output with optional
file logging.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

# ---------------------------------------------------------------------------
# Request ID
# ---------------------------------------------------------------------------


def generate_request_id() -> str:
    """Generate a short identifier for one logical operation."""
    return uuid.uuid4().hex[:12]


# ---------------------------------------------------------------------------
# structlog configuration
# ---------------------------------------------------------------------------

# Chatty client libraries are held at WARNING unless DEBUG is requested.
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(
    level: str = "INFO",
    fmt: str = "console",
    log_file: str | Path | None = None,
) -> None:
    """Route structlog through stdlib handlers on stderr and an optional file.

    Command results go to stdout, so every log line goes to stderr. Colors
    are used only when stderr is a terminal. Calling this again replaces the
    previous handlers.

    Raises:
        ValueError: If ``level`` is not a stdlib level name.
    """
    numeric_level = logging.getLevelNamesMapping().get(level.upper())
    if numeric_level is None:
        msg = f"Invalid log level: {level!r}"
        raise ValueError(msg)

    renderer: structlog.types.Processor
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    library_level = numeric_level if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


# ---------------------------------------------------------------------------
# Operation logging context manager
# ---------------------------------------------------------------------------


@contextmanager
def operation_logging_context(
    operation: str,
    provider: str = "",
    **extra: Any,
) -> Iterator[structlog.stdlib.BoundLogger]:
    """Bind operation-level metadata to structlog for one logical call.

    Logs operation start and end, and binds the operation name, provider,
    and a fresh request ID to all log entries within the context. Context
    variables are task-local, so concurrent operations do not mix.

    Args:
        operation: Operation name (e.g. ``"summarize"``, ``"enhance"``).
        provider: Provider tag handling the operation.
        **extra: Additional key-value pairs to bind.

    Yields:
        A bound structlog logger with operation context.

    Example::

        with operation_logging_context("summarize", provider="openai") as log:
            log.info("chunks_built", count=3)
    """
    request_id = generate_request_id()
    structlog.contextvars.bind_contextvars(
        operation=operation,
        provider=provider,
        request_id=request_id,
        **extra,
    )

    log: structlog.stdlib.BoundLogger = structlog.get_logger(operation)
    log.info("operation_start")

    try:
        yield log
    except Exception:
        log.exception("operation_error")
        raise
    finally:
        log.info("operation_end")
        structlog.contextvars.unbind_contextvars(
            "operation", "provider", "request_id", *extra.keys()
        )
