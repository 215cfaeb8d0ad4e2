from __future__ import annotations

import datetime
import json
import logging
from unittest.mock import MagicMock

import pytest

from request_logger.logging_utils import REQUEST_LOGGER_NAME
from request_logger.models import ExceptionInfo, RequestLogRecord
from request_logger.sinks import CallbackSink, LoggerSink


def _record(**overrides) -> RequestLogRecord:
    values = {
        "method": "GET",
        "path": "/users",
        "status": 200,
        "duration_ms": 1.23,
        "params": {"q": "x"},
        "format": "json",
        "host": "api.example.com",
        "remote_addr": "127.0.0.1",
        "request_id": "req-1",
    }
    values.update(overrides)
    return RequestLogRecord(**values)


def test_record_to_dict_omits_missing_exception() -> None:
    data = _record().to_dict()
    assert data == {
        "method": "GET",
        "path": "/users",
        "status": 200,
        "duration_ms": 1.23,
        "params": {"q": "x"},
        "format": "json",
        "host": "api.example.com",
        "remote_addr": "127.0.0.1",
        "request_id": "req-1",
    }


def test_record_to_dict_with_exception() -> None:
    info = ExceptionInfo(cls="ArgumentError", message="bad", backtrace=["frame"])
    data = _record(status=500, exception=info).to_dict()
    assert data["exception"] == {"class": "ArgumentError", "message": "bad", "backtrace": ["frame"]}


def test_logger_sink_writes_json(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.request_log")
    caplog.set_level(logging.INFO, logger=logger.name)
    record = _record(params={"at": datetime.date(2024, 5, 1)}).to_dict()

    LoggerSink(logger).emit(record, logging.INFO)

    assert len(caplog.records) == 1
    log_record = caplog.records[0]
    assert log_record.name == "tests.request_log"
    assert log_record.levelno == logging.INFO
    assert log_record.request_log is record
    assert json.loads(log_record.getMessage())["params"] == {"at": "2024-05-01"}


def test_logger_sink_defaults_to_request_channel(monkeypatch: pytest.MonkeyPatch) -> None:
    from request_logger import sinks

    channel = logging.getLogger(REQUEST_LOGGER_NAME)
    get_channel = MagicMock(return_value=channel)
    monkeypatch.setattr(sinks, "get_request_logger", get_channel)

    assert LoggerSink().logger is channel
    get_channel.assert_called_once_with()

    custom = logging.getLogger("tests.custom")
    assert LoggerSink(custom).logger is custom
    get_channel.assert_called_once_with()


def test_logger_sink_skips_disabled_level() -> None:
    logger = MagicMock()
    logger.isEnabledFor.return_value = False

    LoggerSink(logger).emit(_record().to_dict(), logging.DEBUG)

    logger.log.assert_not_called()


def test_logger_sink_custom_logger_level() -> None:
    logger = MagicMock()
    logger.isEnabledFor.return_value = True

    LoggerSink(logger).emit(_record().to_dict(), logging.ERROR)

    level, message = logger.log.call_args.args
    assert level == logging.ERROR
    assert json.loads(message)["path"] == "/users"


def test_callback_sink() -> None:
    calls = []
    CallbackSink(lambda record, level: calls.append((record, level))).emit({"a": 1}, 20)
    assert calls == [({"a": 1}, 20)]
