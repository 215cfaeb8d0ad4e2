"""Handler setup for the request log channel.

``LoggerSink`` writes finished records to the ``request_logger.requests``
logger. ``configure_logging`` gives that channel its level and handlers from
``LoggingSettings``; ``get_request_logger`` does so once, on first use.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from request_logger.config import LoggingSettings, load_settings

REQUEST_LOGGER_NAME = "request_logger.requests"

_logging_configured = False
_logging_lock = threading.Lock()

_logger = logging.getLogger(__name__)

# Records arrive as JSON documents, one per line.
_RECORD_FORMAT = "%(message)s"
_OWNED_HANDLER_ATTR = "_request_log_handler"


def _owned(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(logging.Formatter(_RECORD_FORMAT))
    setattr(handler, _OWNED_HANDLER_ATTR, True)
    return handler


def _build_handlers(settings: LoggingSettings) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if settings.stream:
        handlers.append(_owned(logging.StreamHandler(sys.stderr)))
    if settings.file:
        try:
            Path(settings.file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(_owned(logging.FileHandler(settings.file)))
        except OSError as exc:
            _logger.warning("Failed to open request log file %s: %s", settings.file, exc)
    return handlers


def configure_logging(settings: LoggingSettings | None = None) -> logging.Logger:
    """Set level, handlers and propagation on the request log channel.

    Handlers installed by an earlier call are closed and replaced. Handlers
    attached by the host application are left in place.
    """
    global _logging_configured

    settings = settings or load_settings().logging
    channel = logging.getLogger(REQUEST_LOGGER_NAME)

    for handler in list(channel.handlers):
        if getattr(handler, _OWNED_HANDLER_ATTR, False):
            channel.removeHandler(handler)
            handler.close()

    for handler in _build_handlers(settings):
        channel.addHandler(handler)

    channel.setLevel(getattr(logging, settings.level.upper(), logging.INFO))
    channel.propagate = settings.propagate

    _logging_configured = True
    return channel


def get_request_logger() -> logging.Logger:
    if not _logging_configured:
        with _logging_lock:
            if not _logging_configured:
                return configure_logging()
    return logging.getLogger(REQUEST_LOGGER_NAME)
