"""Request parameter extraction for log records."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qsl

from starlette.requests import Request

logger = logging.getLogger(__name__)

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _media_type(request: Request) -> str:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";", 1)[0].strip().lower()


def _is_json(media_type: str) -> bool:
    return media_type == "application/json" or media_type.endswith("+json")


def _group_pairs(pairs: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Collapse repeated keys into lists, keeping first-seen key order."""
    grouped: dict[str, Any] = {}
    for key, value in pairs:
        if key not in grouped:
            grouped[key] = value
        elif isinstance(grouped[key], list):
            grouped[key].append(value)
        else:
            grouped[key] = [grouped[key], value]
    return grouped


async def read_body_params(request: Request, max_body_bytes: int) -> dict[str, Any]:
    """Parse JSON or urlencoded request bodies into a parameter mapping.

    Returns ``{}`` for oversized, unsupported, or unparsable bodies.
    """
    media_type = _media_type(request)
    if not (_is_json(media_type) or media_type == _FORM_CONTENT_TYPE):
        return {}

    content_length = request.headers.get("content-length")
    if content_length is not None:
        try:
            if int(content_length) > max_body_bytes:
                return {}
        except ValueError:
            return {}

    try:
        body = await request.body()
    except Exception as exc:
        logger.debug("Could not read request body: %s", exc)
        return {}
    if not body or len(body) > max_body_bytes:
        return {}

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        return {}

    if media_type == _FORM_CONTENT_TYPE:
        return _group_pairs(parse_qsl(text, keep_blank_values=True))

    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError) as exc:
        # Well-formed but deeply nested documents exhaust the decoder's stack.
        logger.debug("Could not parse JSON request body: %s", exc)
        return {}
    if not isinstance(parsed, Mapping):
        return {}
    return dict(parsed)


def collect_params(request: Request, body_params: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Merge query, body, and path parameters; later sources win."""
    params: dict[str, Any] = {}
    try:
        params.update(_group_pairs(request.query_params.multi_items()))
        if body_params:
            params.update(body_params)
        params.update(request.path_params)
    except Exception as exc:
        logger.debug("Could not collect request params: %s", exc)
    return params
