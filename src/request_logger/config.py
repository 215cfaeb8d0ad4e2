"""Configuration management for request logging."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from request_logger.utils.masking import (
    DEFAULT_EXCEPTION_KEYS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_ITEMS,
    DEFAULT_MAX_KEYS,
    DEFAULT_SENSITIVE_PATTERNS,
    ParameterFilter,
)

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")
    stream: bool = Field(default=True, description="Write request records to stderr")
    propagate: bool = Field(
        default=False, description="Pass request records on to ancestor loggers"
    )


class RequestLogSettings(BaseModel):
    """Request log middleware and parameter redaction settings.

    ``filter_parameters`` builds the delegate filter; leave it empty to rely
    on the pattern-based manual filter alone.
    """

    enabled: bool = Field(default=True)
    skip_paths: tuple[str, ...] = Field(default=("/health", "/ready"))
    filter_parameters: tuple[str, ...] = Field(default=())
    sensitive_patterns: tuple[str, ...] = Field(default=DEFAULT_SENSITIVE_PATTERNS)
    exception_keys: tuple[str, ...] = Field(
        default=tuple(sorted(DEFAULT_EXCEPTION_KEYS)),
    )
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1, le=100)
    max_keys: int = Field(default=DEFAULT_MAX_KEYS, ge=1, le=10_000)
    max_items: int = Field(default=DEFAULT_MAX_ITEMS, ge=1, le=10_000)
    count_sequence_depth: bool = Field(
        default=False,
        description="If True, every sequence adds a nesting level like a mapping does.",
    )
    parse_body: bool = Field(default=True)
    max_body_bytes: int = Field(default=1_048_576, ge=0)
    trust_forwarded_headers: bool = Field(default=False)
    backtrace_lines: int = Field(default=10, ge=0, le=200)

    @field_validator("sensitive_patterns")
    @classmethod
    def _validate_sensitive_patterns(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        patterns = tuple(p.strip().lower() for p in value if p.strip())
        if not patterns:
            raise ValueError("sensitive_patterns must not be empty")
        return patterns

    def build_parameter_filter(self) -> ParameterFilter:
        return ParameterFilter(
            self.sensitive_patterns,
            self.exception_keys,
            max_depth=self.max_depth,
            max_keys=self.max_keys,
            max_items=self.max_items,
            count_sequence_depth=self.count_sequence_depth,
        )


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    request_log: RequestLogSettings = Field(default_factory=RequestLogSettings)


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "log_stream": "LOG_STREAM",
    "log_propagate": "LOG_PROPAGATE",
    "enabled": "REQUEST_LOG_ENABLED",
    "skip_paths": "REQUEST_LOG_SKIP_PATHS",
    "filter_parameters": "REQUEST_LOG_FILTER_PARAMETERS",
    "sensitive_patterns": "REQUEST_LOG_SENSITIVE_PATTERNS",
    "exception_keys": "REQUEST_LOG_EXCEPTION_KEYS",
    "max_depth": "REQUEST_LOG_MAX_DEPTH",
    "max_keys": "REQUEST_LOG_MAX_KEYS",
    "max_items": "REQUEST_LOG_MAX_ITEMS",
    "count_sequence_depth": "REQUEST_LOG_COUNT_SEQUENCE_DEPTH",
    "parse_body": "REQUEST_LOG_PARSE_BODY",
    "max_body_bytes": "REQUEST_LOG_MAX_BODY_BYTES",
    "trust_forwarded_headers": "REQUEST_LOG_TRUST_FORWARDED_HEADERS",
    "backtrace_lines": "REQUEST_LOG_BACKTRACE_LINES",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    if candidate.is_absolute():
        return str(candidate.resolve())
    return str((_project_root() / candidate).resolve())


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_csv(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(key)
    if value is None:
        return default
    return tuple(_split_csv(value))


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


def reset_settings_cache() -> None:
    _load_settings_cached.cache_clear()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])
    logging_defaults = LoggingSettings()
    defaults = RequestLogSettings()

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], logging_defaults.level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
            "stream": _env_bool(ENV_KEYS["log_stream"], logging_defaults.stream),
            "propagate": _env_bool(ENV_KEYS["log_propagate"], logging_defaults.propagate),
        },
        "request_log": {
            "enabled": _env_bool(ENV_KEYS["enabled"], defaults.enabled),
            "skip_paths": _env_csv(ENV_KEYS["skip_paths"], defaults.skip_paths),
            "filter_parameters": _env_csv(
                ENV_KEYS["filter_parameters"], defaults.filter_parameters
            ),
            "sensitive_patterns": _env_csv(
                ENV_KEYS["sensitive_patterns"], defaults.sensitive_patterns
            ),
            "exception_keys": _env_csv(ENV_KEYS["exception_keys"], defaults.exception_keys),
            "max_depth": _env_int(ENV_KEYS["max_depth"], defaults.max_depth),
            "max_keys": _env_int(ENV_KEYS["max_keys"], defaults.max_keys),
            "max_items": _env_int(ENV_KEYS["max_items"], defaults.max_items),
            "count_sequence_depth": _env_bool(
                ENV_KEYS["count_sequence_depth"], defaults.count_sequence_depth
            ),
            "parse_body": _env_bool(ENV_KEYS["parse_body"], defaults.parse_body),
            "max_body_bytes": _env_int(ENV_KEYS["max_body_bytes"], defaults.max_body_bytes),
            "trust_forwarded_headers": _env_bool(
                ENV_KEYS["trust_forwarded_headers"], defaults.trust_forwarded_headers
            ),
            "backtrace_lines": _env_int(
                ENV_KEYS["backtrace_lines"], defaults.backtrace_lines
            ),
        },
    }

    try:
        return Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc
