"""Structured logging configuration using structlog."""

import logging
import sys

import structlog

# Third-party loggers that would otherwise print request URLs (and the
# invitation tokens in their query strings) at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog through stdlib logging for the API server and client workflows.

    Every event carries bound contextvars (``request_id`` from the request
    middleware), the logger name, the level and an ISO timestamp. Output is
    JSON when ``json_output`` is set or stderr is not a terminal, otherwise the
    coloured console renderer. The root stdlib logger writes to stdout at
    ``log_level``; the HTTP client loggers are held at WARNING.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output or not sys.stderr.isatty():
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger().setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
