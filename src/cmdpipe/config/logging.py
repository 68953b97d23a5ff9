"""Logging setup for the cmdpipe CLI and for applications that want it.

cmdpipe modules log through stdlib ``logging`` (dispatcher, registry,
plugins) and structlog (telemetry spans). Both end in a single stderr
handler whose formatter is a structlog ``ProcessorFormatter``, so every
line has the same shape: console text by default, JSON lines with
``--log-json``.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog
from structlog.types import Processor

# Third-party loggers that stay at WARNING even under --verbose.
_QUIET_LOGGERS = ("asyncio",)


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _render_chain(log_json: bool, stream: TextIO) -> list[Processor]:
    if log_json:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=stream.isatty())]


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Route cmdpipe and structlog output to *stream* (default: stderr).

    Replaces any handlers on the root logger and returns the new one.

    Args:
        verbose: DEBUG for the ``cmdpipe`` logger tree; WARNING otherwise.
        log_json: Render JSON lines instead of console text.
        stream: Destination, for callers that capture output.
    """
    out = stream or sys.stderr
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_render_chain(log_json, out),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.WARNING)

    logging.getLogger("cmdpipe").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
