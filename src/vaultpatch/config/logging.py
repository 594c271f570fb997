"""structlog configuration for vaultpatch.

Two output modes:
- Human (default): colored console output to stderr
- JSON (--log-json): Structured JSON lines to stderr

Library code logs through stdlib ``logging.getLogger(__name__)``; records
are rendered by structlog's ``ProcessorFormatter`` so both paths share one
format. Request attributes bound with :func:`request_context` are merged
into every record emitted while a mutation is dispatched.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

PACKAGE_LOGGER = "vaultpatch"


def _level(*, verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    return logging.WARNING


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_json: bool = False,
) -> None:
    """Configure structlog processors and output routing.

    Args:
        verbose: Enable DEBUG-level output for the ``vaultpatch`` logger.
        quiet: Only ERROR+ (ignored when *verbose* is set).
        log_json: Use JSON renderer instead of console renderer.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger(PACKAGE_LOGGER).setLevel(_level(verbose=verbose, quiet=quiet))


@contextmanager
def request_context(**fields: Any) -> Iterator[None]:
    """Bind request attributes (method, path, ...) to log records in scope."""
    with structlog.contextvars.bound_contextvars(**fields):
        yield
