"""
Observability middleware.

Adds correlation IDs and timing headers to every response and writes one
access log line per request, tagged with the authenticated user when the
route resolved one.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("adorder.access")

CORRELATION_HEADER = "X-Correlation-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}"

        # Set by get_current_user on authenticated routes
        user_id = getattr(request.state, "user_id", None)

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "user_id": user_id,
            "ip": request.client.host if request.client else "unknown"
        }
        summary = "%s %s -> %s (user=%s)"
        args = (request.method, request.url.path, response.status_code, user_id or "-")

        if response.status_code >= 500:
            logger.error(summary, *args, extra=log_data)
        elif response.status_code >= 400:
            logger.warning(summary, *args, extra=log_data)
        else:
            logger.info(summary, *args, extra=log_data)

        return response
