"""JSON serialization utilities for log records."""

from __future__ import annotations

import base64
import datetime
import decimal
import enum
import uuid
from itertools import islice

_MAX_ITERABLE_ITEMS = 100


def json_default(obj: object) -> object:
    """JSON serializer for values a request log record may carry.

    Falls back to ``repr``-style placeholders instead of raising, so a
    single odd parameter never drops the whole record.
    """
    if isinstance(obj, (datetime.date, datetime.datetime, datetime.time)):
        return obj.isoformat()
    if isinstance(obj, decimal.Decimal):
        # Preserve numeric type: convert to int if no decimal part, else float.
        # For very large values that would lose precision as float, use string.
        if obj == obj.to_integral_value():
            return int(obj)
        f = float(obj)
        if decimal.Decimal(str(f)) != obj:
            return str(obj)
        return f
    if isinstance(obj, bytes):
        try:
            return obj.decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(obj).decode("utf-8")
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, uuid.UUID):
        return str(obj)

    # Sets, generators and other iterables, bounded like parameter sequences.
    if hasattr(obj, "__iter__") and not isinstance(obj, (str, bytes, dict, list)):
        try:
            return list(islice(obj, _MAX_ITERABLE_ITEMS))
        except Exception:
            pass

    try:
        return str(obj)
    except Exception:
        return f"<unserializable {type(obj).__name__}>"
