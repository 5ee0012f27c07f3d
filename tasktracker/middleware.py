import logging
import time
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .lifecycle import Lifecycle

logger = logging.getLogger("tasktracker.access")

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'",
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-XSS-Protection": "0",
}


class BodyTooLarge(Exception):
    """Raised from the wrapped ``receive`` once the streamed body passes the limit."""


class BodyLimitMiddleware:
    """Reject requests whose body is over ``max_size`` bytes with 413.

    A declared ``Content-Length`` is checked before the app runs. Bodies
    without one are counted chunk by chunk as the app reads them, and the
    read is aborted as soon as the total passes the limit, so the body is
    never parsed.
    """

    def __init__(self, app: ASGIApp, max_size: int):
        self.app = app
        self.max_size = max_size

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse(
            status_code=413,
            content={"status": "error", "message": "Request body too large"},
        )
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None and length.isdigit() and int(length) > self.max_size:
            await self._reject(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_size:
                    raise BodyTooLarge()
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except BodyTooLarge:
            if response_started:
                raise
            logger.info("Rejected %s %s: body over %d bytes", scope.get("method"), scope.get("path"), self.max_size)
            await self._reject(scope, receive, send)


class SecureHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class LifecycleMiddleware(BaseHTTPMiddleware):
    """Turn away new requests once the process has started shutting down."""

    def __init__(self, app: ASGIApp, lifecycle: Lifecycle):
        super().__init__(app)
        self.lifecycle = lifecycle

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if not self.lifecycle.accepting_requests:
            return JSONResponse(
                status_code=503,
                content={"status": "error", "message": "Server is shutting down"},
                headers={"Connection": "close", "Retry-After": "5"},
            )
        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start_time = time.perf_counter()
        logger.info("--> %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start_time) * 1000
            logger.info("<-- %s %s 500 %.1fms", request.method, request.url.path, elapsed)
            raise
        elapsed = (time.perf_counter() - start_time) * 1000
        logger.info("<-- %s %s %d %.1fms", request.method, request.url.path, response.status_code, elapsed)
        return response
