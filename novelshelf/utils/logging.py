"""structlog configuration for the library and the ``novelshelf`` CLI.

Every module logs through structlog with snake_case event names
(``fetch_attempt_failed``, ``cache_set_retry``).  One processor chain feeds
both structlog loggers and the standard-library ``logging`` tree, so the
httpx records emitted during a fetch render exactly like our own events.

Differences from a plain service setup, all driven by the CLI:

* Logs go to **stderr**.  Commands print their results on stdout
  (``novelshelf history | grep ...``), which must stay free of log lines.
* Colour is used only when the stream is a terminal, so redirected logs
  (``2> fetch.log``) carry no ANSI escapes.
* ``httpx``/``httpcore`` announce every request at INFO.  A retrying fetch
  would drown its own ``fetch_attempt`` events, so those loggers sit at
  WARNING unless the level is DEBUG.

``APP_ENV=production`` (or ``json_output=True``) switches the renderer to
one JSON object per line.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

import structlog

_CHATTY_LIBRARY_LOGGERS = ("httpx", "httpcore")

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.dev.set_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _renderer(use_json: bool, stream: TextIO) -> structlog.types.Processor:
    if use_json:
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    isatty = getattr(stream, "isatty", None)
    return structlog.dev.ConsoleRenderer(colors=bool(isatty and isatty()))


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge for the whole process.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON rendering regardless of ``APP_ENV``.
        stream: Destination; defaults to ``sys.stderr``.

    Returns:
        A configured structlog BoundLogger.
    """
    level = log_level.upper()
    out = stream if stream is not None else sys.stderr
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    renderer = _renderer(use_json, out)

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_SHARED_PROCESSORS,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _CHATTY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger tagged with *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
