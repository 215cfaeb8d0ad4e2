from __future__ import annotations

import json
import logging
import sys
from unittest.mock import MagicMock, patch

import pytest

from request_logger import logging_utils
from request_logger.config import LoggingSettings
from request_logger.logging_utils import REQUEST_LOGGER_NAME, configure_logging
from request_logger.sinks import LoggerSink


@pytest.fixture
def channel(monkeypatch: pytest.MonkeyPatch):
    logger = logging.getLogger(REQUEST_LOGGER_NAME)
    monkeypatch.setattr(logging_utils, "_logging_configured", False)
    level, propagate, handlers = logger.level, logger.propagate, list(logger.handlers)
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


def _owned_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, "_request_log_handler", False)]


def test_configure_logging_sets_up_request_channel(channel: logging.Logger) -> None:
    result = configure_logging(LoggingSettings(level="warning"))

    assert result is channel
    assert channel.level == logging.WARNING
    assert channel.propagate is False
    handlers = _owned_handlers(channel)
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.StreamHandler)
    assert handlers[0].stream is sys.stderr
    assert logging_utils._logging_configured is True


def test_configure_logging_unknown_level_defaults_to_info(channel: logging.Logger) -> None:
    configure_logging(LoggingSettings(level="chatty", stream=False))

    assert channel.level == logging.INFO
    assert _owned_handlers(channel) == []


def test_reconfigure_replaces_own_handlers_only(channel: logging.Logger) -> None:
    host_handler = logging.NullHandler()
    channel.addHandler(host_handler)

    configure_logging(LoggingSettings())
    first = _owned_handlers(channel)
    configure_logging(LoggingSettings(propagate=True))

    assert len(_owned_handlers(channel)) == 1
    assert _owned_handlers(channel)[0] is not first[0]
    assert host_handler in channel.handlers
    assert channel.propagate is True


def test_records_written_to_file_as_json_lines(channel: logging.Logger, tmp_path) -> None:
    log_file = tmp_path / "logs" / "requests.log"
    configure_logging(LoggingSettings(level="INFO", file=str(log_file), stream=False))

    sink = LoggerSink()
    sink.emit({"method": "GET", "path": "/users", "status": 200}, logging.INFO)
    sink.emit({"method": "GET", "path": "/debug", "status": 200}, logging.DEBUG)
    for handler in channel.handlers:
        handler.flush()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [
        {"method": "GET", "path": "/users", "status": 200}
    ]


def test_unopenable_log_file_is_skipped(
    channel: logging.Logger,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.WARNING, logger="request_logger.logging_utils")

    with patch(
        "request_logger.logging_utils.logging.FileHandler",
        side_effect=OSError("permission denied"),
    ):
        configure_logging(LoggingSettings(file="/var/log/requests.log", stream=False))

    assert _owned_handlers(channel) == []
    assert "Failed to open request log file" in caplog.text


def test_configure_logging_reads_environment(
    channel: logging.Logger,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LOG_STREAM", "false")
    monkeypatch.setenv("LOG_PROPAGATE", "true")

    configure_logging()

    assert channel.level == logging.DEBUG
    assert channel.propagate is True
    assert _owned_handlers(channel) == []


def test_get_request_logger_configures_once(
    channel: logging.Logger,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_STREAM", "false")
    configure = MagicMock(wraps=logging_utils.configure_logging)
    monkeypatch.setattr(logging_utils, "configure_logging", configure)

    assert logging_utils.get_request_logger() is channel
    assert logging_utils.get_request_logger() is channel
    configure.assert_called_once_with()
