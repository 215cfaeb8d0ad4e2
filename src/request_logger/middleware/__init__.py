"""Request logging middleware."""

from .request_log import RequestLogMiddleware, mask_exception_message

__all__ = ["RequestLogMiddleware", "mask_exception_message"]
