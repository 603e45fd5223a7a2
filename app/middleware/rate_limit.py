"""Per-client API throttling middleware."""

from collections.abc import Callable

import structlog
from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.rate_limiter import FixedWindowRateLimiter, RateLimitResult
from app.middleware.error_handler import error_response

logger = structlog.get_logger(__name__)


def client_address(request: Request) -> str:
    """Best-effort client IP: first X-Forwarded-For hop, X-Real-IP, then the peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def set_rate_limit_headers(response: Response, limit: int, result: RateLimitResult) -> None:
    """Expose the window state to clients."""
    response.headers["X-RateLimit-Limit"] = str(limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(result.reset_at // 1000)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies a per-IP fixed-window limit to every API path."""

    def __init__(
        self,
        app,
        limiter: FixedWindowRateLimiter,
        limit: int,
        window_ms: int,
        path_prefix: str = "/api/",
    ):
        super().__init__(app)
        self.limiter = limiter
        self.limit = limit
        self.window_ms = window_ms
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        address = client_address(request)
        result = self.limiter.check(f"ratelimit:{address}", self.limit, self.window_ms)

        if result.allowed:
            response = await call_next(request)
        else:
            logger.info("rate_limit_exceeded", client=address, path=request.url.path)
            response = error_response(
                status.HTTP_429_TOO_MANY_REQUESTS, "Too many requests. Please try again later."
            )

        set_rate_limit_headers(response, self.limit, result)
        return response
