"""Structured request logging for Starlette applications."""

from __future__ import annotations

from request_logger.config import LoggingSettings, RequestLogSettings, Settings, load_settings
from request_logger.logging_utils import (
    REQUEST_LOGGER_NAME,
    configure_logging,
    get_request_logger,
)
from request_logger.middleware import RequestLogMiddleware
from request_logger.models import ExceptionInfo, RequestLogRecord
from request_logger.sinks import CallbackSink, LoggerSink, LogSink
from request_logger.utils.masking import (
    FILTERED,
    KeyListFilter,
    ParameterFilter,
    SupportsFilter,
    build_parameter_filter,
    filter_params,
)

__version__ = "0.1.0"

__all__ = [
    "FILTERED",
    "REQUEST_LOGGER_NAME",
    "CallbackSink",
    "ExceptionInfo",
    "KeyListFilter",
    "LoggingSettings",
    "LogSink",
    "LoggerSink",
    "ParameterFilter",
    "RequestLogMiddleware",
    "RequestLogRecord",
    "RequestLogSettings",
    "Settings",
    "SupportsFilter",
    "build_parameter_filter",
    "configure_logging",
    "filter_params",
    "get_request_logger",
    "load_settings",
]
