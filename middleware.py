from __future__ import annotations

import logging
import time
from uuid import uuid4

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = b"x-request-id"
_JSON_UTF8 = b"application/json; charset=utf-8"


def _header(headers, name: bytes) -> bytes | None:
    for key, value in headers:
        if key.lower() == name:
            return value
    return None


def _with_utf8_charset(headers: list) -> list:
    content_type = _header(headers, b"content-type")
    if content_type is None:
        return headers
    lowered = content_type.lower()
    if not lowered.startswith(b"application/json") or b"charset" in lowered:
        return headers
    return [(k, v) for (k, v) in headers if k.lower() != b"content-type"] + [(b"content-type", _JSON_UTF8)]


class JSONCharsetMiddleware:
    """Declares utf-8 on JSON responses so names with accents survive older clients."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                message["headers"] = _with_utf8_charset(list(message.get("headers", [])))
            await send(message)

        await self.app(scope, receive, send_wrapper)


class RequestLoggingMiddleware:
    """One log line per request; the portal frontend may pass its own X-Request-ID."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        inbound = _header(scope.get("headers", []), REQUEST_ID_HEADER)
        request_id = inbound.decode("latin-1")[:64] if inbound else uuid4().hex
        method = scope.get("method", "-")
        path = scope.get("path", "-")
        status_code = 500
        started = time.perf_counter()

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = [(k, v) for (k, v) in message.get("headers", []) if k.lower() != REQUEST_ID_HEADER]
                headers.append((REQUEST_ID_HEADER, request_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            latency_ms = (time.perf_counter() - started) * 1000
            logger.log(
                logging.WARNING if status_code >= 500 else logging.INFO,
                "request method=%s path=%s status=%s latency_ms=%.2f request_id=%s",
                method,
                path,
                status_code,
                latency_ms,
                request_id,
            )
