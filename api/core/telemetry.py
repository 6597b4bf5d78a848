"""Request timing, security headers and business-operation tracking."""

import inspect
import os
import time
import uuid
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import get_logger
from core.wide_event import clear_wide_event, get_wide_event, init_wide_event

logger = get_logger(__name__)

SERVICE_NAME = os.getenv("SERVICE_NAME", "saude-para-todos-api")
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "1.0.0")

# Requests slower than this are always logged
SLOW_REQUEST_THRESHOLD_MS = 1000

P = ParamSpec("P")
R = TypeVar("R")


class SecurityHeadersMiddleware:
    """Adds security headers to every HTTP response."""

    SECURITY_HEADERS: list[tuple[bytes, bytes]] = [
        (b"x-content-type-options", b"nosniff"),
        (b"x-frame-options", b"DENY"),
        (b"referrer-policy", b"strict-origin-when-cross-origin"),
        (b"strict-transport-security", b"max-age=31536000; includeSubDomains"),
    ]

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.extend(self.SECURITY_HEADERS)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)


class RequestTimingMiddleware:
    """Times each request and emits one canonical log line per request.

    Errors (status >= 400) and slow requests are always emitted; fast
    successful requests are only logged at DEBUG.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")

        client = scope.get("client")
        client_ip = client[0] if client else "unknown"
        request_id = str(uuid.uuid4())

        wide_event = init_wide_event()
        wide_event["service_name"] = SERVICE_NAME
        wide_event["service_version"] = SERVICE_VERSION
        wide_event["request_id"] = request_id
        wide_event["http_method"] = method
        wide_event["http_path"] = path
        wide_event["http_client_ip"] = client_ip

        response_status: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status

            if message.get("type") == "http.response.start":
                response_status = int(message.get("status", 0))
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                duration_ms = (time.perf_counter() - start_time) * 1000
                headers.append(
                    (b"x-request-duration-ms", f"{duration_ms:.2f}".encode())
                )
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers

            elif message.get("type") == "http.response.body" and not message.get(
                "more_body", False
            ):
                duration_ms = (time.perf_counter() - start_time) * 1000
                route = scope.get("route")
                route_path = getattr(route, "path", None) or path

                event = get_wide_event()
                event["http_route"] = route_path
                event["http_status_code"] = response_status
                event["duration_ms"] = round(duration_ms, 2)
                event["outcome"] = (
                    "success" if response_status and response_status < 400 else "error"
                )

                if (
                    response_status is None
                    or response_status >= 400
                    or duration_ms > SLOW_REQUEST_THRESHOLD_MS
                ):
                    logger.info("request.completed", **event)
                else:
                    logger.debug("request.completed", **event)

                clear_wide_event()

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            route = scope.get("route")
            event = get_wide_event()
            event["http_route"] = getattr(route, "path", None) or path
            event["duration_ms"] = round(duration_ms, 2)
            event["outcome"] = "exception"
            event["exception_type"] = type(exc).__name__
            logger.info("request.completed", **event)
            clear_wide_event()
            raise


def track_operation(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator to log duration and outcome of an async business operation.

    Usage:
        @track_operation("estabelecimento_create")
        async def create_estabelecimento(db, payload): ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"track_operation expects a coroutine function: {func!r}")

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.info(
                    "operation.failed",
                    operation=operation_name,
                    duration_ms=round(duration_ms, 2),
                    error_type=type(e).__name__,
                )
                raise
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(
                "operation.completed",
                operation=operation_name,
                duration_ms=round(duration_ms, 2),
            )
            return result

        return wrapper

    return decorator
