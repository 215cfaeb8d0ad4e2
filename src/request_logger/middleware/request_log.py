"""Request logging middleware with parameter redaction."""

from __future__ import annotations

import logging
import re
import time
import traceback
from collections.abc import Iterable
from functools import lru_cache
from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import RequestLogSettings, load_settings
from ..extraction import collect_params, read_body_params
from ..models import ExceptionInfo, RequestLogRecord
from ..sinks import LogSink, LoggerSink
from ..utils.http import (
    extract_format,
    extract_host,
    extract_request_id,
    get_client_ip,
    sanitize_log_value,
)
from ..utils.masking import (
    FILTERED,
    ParameterFilter,
    SupportsFilter,
    build_parameter_filter,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=128)
def _get_mask_pattern(field: str) -> re.Pattern:
    """Get or create regex pattern for ``name=value`` masking."""
    return re.compile(
        rf'(["\']?\w*{re.escape(field)}\w*["\']?\s*[:=]\s*)["\']?[^"\'\s,;&]*["\']?',
        re.IGNORECASE,
    )


def mask_exception_message(message: str, patterns: Iterable[str]) -> str:
    """Mask ``name=value`` / ``name: value`` pairs whose name looks sensitive."""
    masked = message
    for field in patterns:
        masked = _get_mask_pattern(field).sub(rf"\1{FILTERED}", masked)
    return masked


class RequestLogMiddleware(BaseHTTPMiddleware):
    """
    Request logging middleware.

    Features:
    - One structured record per request: method, path, status, duration,
      redacted params, format, host, client address, request id
    - Exception class, masked message and backtrace for unhandled errors
    - Logging failures never affect the response or the raised exception
    """

    def __init__(
        self,
        app: Callable,
        settings: RequestLogSettings | None = None,
        sink: LogSink | None = None,
        parameter_filter: ParameterFilter | None = None,
        delegate: SupportsFilter | None = None,
    ) -> None:
        super().__init__(app)
        self.settings = settings or load_settings().request_log
        self.sink = sink or LoggerSink()
        self.parameter_filter = parameter_filter or self.settings.build_parameter_filter()
        self.delegate = (
            delegate
            if delegate is not None
            else build_parameter_filter(self.settings.filter_parameters)
        )
        self._skip_paths = frozenset(self.settings.skip_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and emit its log record."""
        if not self.settings.enabled:
            return await call_next(request)

        if request.url.path in self._skip_paths:
            return await call_next(request)

        start_time = time.perf_counter()

        # The body has to be read before the app consumes it.
        body_params: dict[str, Any] = {}
        if self.settings.parse_body:
            try:
                body_params = await read_body_params(request, self.settings.max_body_bytes)
            except Exception as exc:
                logger.debug(
                    "Could not read body params for %s %s: %s",
                    request.method,
                    sanitize_log_value(request.url.path),
                    exc,
                )

        error: Exception | None = None
        status_code: int = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response

        except Exception as e:
            error = e
            raise

        finally:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            try:
                self._emit(request, status_code, duration_ms, body_params, error)
            except Exception as log_exc:
                logger.warning(
                    "Failed to write request log for %s %s: %s",
                    request.method,
                    sanitize_log_value(request.url.path),
                    log_exc,
                )

    def filter_params(self, params: object) -> dict[Any, Any]:
        """Public method to redact parameters (for external use)."""
        return self.parameter_filter.filter_params(params, self.delegate)

    def build_record(
        self,
        request: Request,
        status_code: int,
        duration_ms: float,
        body_params: dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> RequestLogRecord:
        trust_forwarded = self.settings.trust_forwarded_headers
        return RequestLogRecord(
            method=request.method,
            path=sanitize_log_value(request.url.path),
            status=status_code,
            duration_ms=duration_ms,
            params=self.filter_params(collect_params(request, body_params)),
            format=extract_format(request),
            host=extract_host(request, trust_forwarded_headers=trust_forwarded),
            remote_addr=get_client_ip(request, trust_forwarded_headers=trust_forwarded),
            request_id=extract_request_id(request),
            exception=self._exception_info(error) if error is not None else None,
        )

    def _exception_info(self, error: Exception) -> ExceptionInfo:
        limit = self.settings.backtrace_lines
        frames = traceback.format_tb(error.__traceback__)[-limit:] if limit else []
        try:
            message = str(error)
        except Exception:
            message = f"<unprintable {type(error).__name__}>"
        patterns = self.parameter_filter.sensitive_patterns
        return ExceptionInfo(
            cls=type(error).__name__,
            message=mask_exception_message(message, patterns),
            # Frames include source lines, which can carry literals too.
            backtrace=[mask_exception_message(frame.rstrip(), patterns) for frame in frames],
        )

    def _emit(
        self,
        request: Request,
        status_code: int,
        duration_ms: float,
        body_params: dict[str, Any],
        error: Exception | None,
    ) -> None:
        record = self.build_record(request, status_code, duration_ms, body_params, error)
        level = logging.ERROR if error is not None else logging.INFO
        self.sink.emit(record.to_dict(), level)
