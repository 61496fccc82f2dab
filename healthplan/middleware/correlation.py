"""Correlation ID middleware.

Tags every request with an ``X-Correlation-ID`` so log lines from the
router, the planner and the stores can be tied back to one call.

Implemented as pure ASGI rather than BaseHTTPMiddleware, which runs the
endpoint in a separate task and breaks asyncpg connections bound to the
request's event loop.
"""

import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from healthplan.logging_config import correlation_id_ctx, get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Probes hit these every few seconds; they still get an ID but are not logged
QUIET_PATHS = frozenset({"/health/live", "/health/ready"})


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class CorrelationIdMiddleware:
    """Reuse the caller's correlation ID or mint one, and echo it back."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        correlation_id = headers.get(b"x-correlation-id", b"").decode() or str(
            uuid.uuid4()
        )
        token = correlation_id_ctx.set(correlation_id)

        method = scope.get("method", "")
        path = scope.get("path", "")
        quiet = path in QUIET_PATHS
        start = time.perf_counter()
        status_code: int | None = None

        if not quiet:
            logger.info("Request started", method=method, path=path)

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status")
                response_headers = list(message.get("headers", []))
                response_headers.append(
                    (CORRELATION_ID_HEADER.lower().encode(), correlation_id.encode())
                )
                message = {**message, "headers": response_headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
            if not quiet:
                logger.info(
                    "Request completed",
                    method=method,
                    path=path,
                    status_code=status_code,
                    duration_ms=_elapsed_ms(start),
                )
        except Exception:
            logger.exception(
                "Request failed",
                method=method,
                path=path,
                duration_ms=_elapsed_ms(start),
            )
            raise
        finally:
            correlation_id_ctx.reset(token)
