"""Shared HTTP utilities for extracting request log fields."""

from __future__ import annotations

import re
import uuid
from pathlib import PurePosixPath

from starlette.requests import Request

# Control character pattern for log injection prevention.
_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")

# Format name by media type, in lookup order.
CONTENT_TYPES: dict[str, str] = {
    "application/json": "json",
    "application/xml": "xml",
    "text/xml": "xml",
    "text/plain": "txt",
    "text/html": "html",
    "text/csv": "csv",
    "application/octet-stream": "binary",
}

_EXTENSION_FORMATS = frozenset(CONTENT_TYPES.values())


def sanitize_log_value(value: str) -> str:
    """Replace control characters (newlines, tabs, etc.) to prevent log injection."""
    return _CONTROL_CHAR_RE.sub("_", value)


def first_forwarded_value(value: str | None) -> str | None:
    """Extract the first value from a comma-separated forwarded header.

    Used with X-Forwarded-For, X-Forwarded-Host, X-Forwarded-Proto, etc.
    """
    if not value:
        return None
    first = value.split(",", 1)[0].strip()
    return first or None


def _sanitize_ip(value: str) -> str:
    """Strip control characters from an IP string to prevent log injection."""
    return "".join(c for c in value if 0x20 <= ord(c) < 0x7F)


def get_client_ip(request: Request, trust_forwarded_headers: bool = False) -> str:
    """Get client IP with optional trusted proxy header support."""
    if trust_forwarded_headers:
        forwarded_for = first_forwarded_value(request.headers.get("x-forwarded-for"))
        if forwarded_for:
            return _sanitize_ip(forwarded_for)

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return _sanitize_ip(real_ip.strip())

    if request.client:
        return request.client.host

    return "unknown"


def extract_host(request: Request, trust_forwarded_headers: bool = False) -> str | None:
    forwarded_host = None
    if trust_forwarded_headers:
        forwarded_host = first_forwarded_value(request.headers.get("x-forwarded-host"))
    host = forwarded_host or request.headers.get("host") or request.url.hostname
    if not host:
        return None
    return sanitize_log_value(host)


def extract_request_id(request: Request) -> str:
    """Return the caller's X-Request-ID, or a fresh one."""
    request_id = request.headers.get("x-request-id")
    if request_id:
        return sanitize_log_value(request_id)
    return str(uuid.uuid4())


def _format_for_media_type(value: str | None) -> str | None:
    if not value:
        return None
    for part in value.split(","):
        media_type = part.split(";", 1)[0].strip().lower()
        if not media_type:
            continue
        if media_type in CONTENT_TYPES:
            return CONTENT_TYPES[media_type]
        if media_type.endswith("+json"):
            return "json"
        if media_type.endswith("+xml"):
            return "xml"
    return None


def extract_format(request: Request) -> str | None:
    """Work out the request format.

    Checked in order: path extension, Content-Type, Accept. Returns ``None``
    when nothing maps to a known format.
    """
    try:
        suffix = PurePosixPath(request.url.path).suffix.lstrip(".").lower()
        if suffix in _EXTENSION_FORMATS:
            return suffix
        return _format_for_media_type(
            request.headers.get("content-type")
        ) or _format_for_media_type(request.headers.get("accept"))
    except Exception:
        return None
