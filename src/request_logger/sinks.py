"""Destinations for finished request log records."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Protocol

from request_logger.logging_utils import get_request_logger
from request_logger.utils.serialization import json_default


class LogSink(Protocol):
    def emit(self, record: dict[str, Any], level: int) -> None: ...


class LoggerSink:
    """Writes each record as one JSON line on a ``logging.Logger``.

    The record dict is also attached as ``extra={"request_log": record}`` for
    handlers that format structured data themselves. Without an explicit
    logger the configured request log channel is used.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_request_logger()

    def emit(self, record: dict[str, Any], level: int) -> None:
        if not self.logger.isEnabledFor(level):
            return
        message = json.dumps(record, default=json_default, sort_keys=False)
        self.logger.log(level, message, extra={"request_log": record})


class CallbackSink:
    """Hands records to a plain callable ``(record, level) -> None``."""

    def __init__(self, callback: Callable[[dict[str, Any], int], None]) -> None:
        self._callback = callback

    def emit(self, record: dict[str, Any], level: int) -> None:
        self._callback(record, level)
