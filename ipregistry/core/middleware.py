"""
KTTM IP Registry - HTTP Middleware

Every response carries ``X-Request-ID`` (echoed from the client when sent)
and ``X-Response-Time``. API calls get one access log line each.
"""

import time
from typing import Callable, FrozenSet

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ipregistry.core.logging_config import generate_request_id, logger, set_request_id


REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time"

# Polled by load balancers and browsers; not worth an access line
QUIET_PATHS: FrozenSet[str] = frozenset({
    "/", "/favicon.ico", "/api/health", "/docs", "/redoc", "/openapi.json",
})

SLOW_REQUEST_MS = 1000.0


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request id propagation, timing headers and access logging"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        set_request_id(request_id)

        try:
            return await self._timed(request, call_next, request_id)
        finally:
            set_request_id("")

    async def _timed(self, request: Request, call_next: Callable, request_id: str) -> Response:
        method, path = request.method, request.url.path
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.log_error_with_context(
                exc, context=f"{method} {path}", duration_ms=round(_elapsed_ms(started), 2)
            )
            raise

        duration_ms = _elapsed_ms(started)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[RESPONSE_TIME_HEADER] = f"{duration_ms:.2f}ms"

        if path not in QUIET_PATHS:
            logger.log_request(method, path, response.status_code, duration_ms)
            if duration_ms > SLOW_REQUEST_MS:
                logger.warning(
                    f"Slow request {method} {path}: {duration_ms:.0f}ms",
                    extra={"event_type": "slow_request", "duration_ms": round(duration_ms, 2)},
                )

        return response
