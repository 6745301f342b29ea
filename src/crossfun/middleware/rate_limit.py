"""Rate limiting middleware — Redis fixed-window counters per client IP.

Learn: Each request increments "crossfun:rl:{ip}:{bucket}:{minute}".
Credential endpoints (login, register, wallet-login) share a stricter
"auth" bucket so password guessing is throttled before the lockout
counter even comes into play.

Skips limiting entirely when Redis is not initialized (e.g., in tests).
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from crossfun.cache import get_redis

logger = structlog.get_logger()

AUTH_PATHS = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/wallet-login",
)


def bucket_for(path: str) -> str:
    return "auth" if path.startswith(AUTH_PATHS) else "api"


def window_key(client_ip: str, bucket: str, now: float) -> str:
    return f"crossfun:rl:{client_ip}:{bucket}:{int(now // 60)}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP requests-per-minute limit."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket = bucket_for(request.url.path)
        rpm = self.auth_rpm if bucket == "auth" else self.default_rpm
        key = window_key(client_ip, bucket, time.time())

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except Exception as e:
            # Redis trouble never blocks traffic
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests, please try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
