"""
muntanyers Backend: Request Logging Middleware
==============================================

What:  One access log line per HTTP request on the "muntanyers.access" logger.
How:   Measures wall time around the downstream call and picks the level
       from the status code (5xx ERROR, 4xx WARNING, otherwise INFO).

Logged:     method, path, status, duration, client IP, request ID
Not logged: request bodies (passwords, post text), cookies, the session
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from muntanyers.middleware.request_id import request_id_var

logger = logging.getLogger("muntanyers.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Access logging with request-ID correlation.

    Health checks and avatar downloads are skipped; both are polled or
    fetched far more often than anything worth reading in the log.
    """

    QUIET_PREFIXES = ("/health", "/uploads/")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path.startswith(self.QUIET_PREFIXES):
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
