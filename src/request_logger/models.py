"""Data models for request log records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ExceptionInfo:
    cls: str
    message: str
    backtrace: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"class": self.cls, "message": self.message, "backtrace": list(self.backtrace)}


@dataclass
class RequestLogRecord:
    """One structured entry per request/response cycle."""

    method: str
    path: str
    status: int
    duration_ms: float
    params: dict[Any, Any] = field(default_factory=dict)
    format: str | None = None
    host: str | None = None
    remote_addr: str | None = None
    request_id: str | None = None
    exception: ExceptionInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "method": self.method,
            "path": self.path,
            "status": self.status,
            "duration_ms": self.duration_ms,
            "params": self.params,
            "format": self.format,
            "host": self.host,
            "remote_addr": self.remote_addr,
            "request_id": self.request_id,
        }
        if self.exception is not None:
            data["exception"] = self.exception.to_dict()
        return data
