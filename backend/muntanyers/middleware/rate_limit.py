"""
muntanyers Backend: Credential Rate Limiting Middleware
=======================================================

What:  Per-IP sliding window limiter in front of /api/login and /api/register.
How:   Each client IP keeps the timestamps of its recent credential attempts.
       Timestamps older than the window are dropped on every request; once
       the remaining count reaches the limit the request is answered with
       429 and a Retry-After header.

State is in-process memory. Several workers each keep their own window, so
the effective limit scales with the worker count.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from muntanyers.config import settings
from muntanyers.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding window limiter.

    Configuration (from settings):
        auth_rate_limit_requests: attempts allowed per window (default 30)
        auth_rate_limit_window:   window length in seconds (default 300)
    """

    LIMITED_PATHS = {"/api/login", "/api/register"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method != "POST" or request.url.path not in self.LIMITED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window = settings.auth_rate_limit_window
        window_start = now - window

        attempts = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = attempts

        if len(attempts) >= settings.auth_rate_limit_requests:
            retry_after = int(attempts[0] + window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s on %s: %d attempts in %ds window",
                client_ip,
                request.url.path,
                len(attempts),
                window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many attempts. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        attempts.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Drop IPs with no attempt inside the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
