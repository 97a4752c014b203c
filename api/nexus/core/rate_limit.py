"""
Atomic rate limiting using Redis INCR/EXPIRE.

Contract:
- Key: rate:{bucket}:{principal}:{route_group}
- Bucket: minute timestamp (floor to minute)
- Principal: user_id or IP
- Route group: auth | read | mutate

Operation (atomic per Redis):
1. count = INCR key
2. if count == 1 then EXPIRE key 60
3. if count > limit → 429
"""
import time

import structlog
from fastapi import Request, Response, status
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from nexus.core.config import settings
from nexus.core.redis import redis_client
from nexus.core.security import InvalidTokenError, decode_access_token

logger = structlog.get_logger(__name__)

BYPASS_HEADER = "X-Test-Bypass-RateLimit"
MUTATING_METHODS = frozenset(["POST", "PUT", "DELETE", "PATCH"])


def get_bucket() -> int:
    """Get current minute bucket (epoch // 60)."""
    return int(time.time()) // 60


def get_route_group(request: Request) -> tuple[str, int]:
    """Route group and its per-minute limit."""
    if request.url.path.startswith("/v1/auth"):
        return "auth", settings.RATE_LIMIT_AUTH
    if request.method in MUTATING_METHODS:
        return "mutate", settings.RATE_LIMIT_MUTATE
    return "read", settings.RATE_LIMIT_READ


def get_rate_limit_key(request: Request, user_id: str | None) -> tuple[str, int]:
    """
    Build rate limit key and get limit.

    Returns (key, limit_per_minute).
    """
    group, limit = get_route_group(request)
    ip = request.client.host if request.client else "unknown"

    # Principal: prefer user_id, fallback to IP
    principal = user_id if user_id else f"ip:{ip}"

    return f"rate:{get_bucket()}:{principal}:{group}", limit


def check_rate_limit_atomic(key: str, limit: int, window: int = 60) -> tuple[bool, int, int]:
    """
    Check rate limit using atomic INCR/EXPIRE.

    Returns (allowed, remaining, retry_after_seconds).
    """
    try:
        count = redis_client.incr(key)

        # First request in this window - set expiry
        if count == 1:
            redis_client.expire(key, window)

        if count > limit:
            ttl = redis_client.ttl(key)
            retry_after = ttl if ttl > 0 else window
            return False, 0, retry_after

        return True, limit - count, 0

    except RedisError:
        # Fail open
        logger.warning("rate_limit.redis_unavailable", key=key)
        return True, limit, 0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware.

    - Per-user limits for authenticated requests, per-IP otherwise
    - auth (5/min) < mutate (30/min) < read (120/min)
    - Headers: X-RateLimit-Limit, X-RateLimit-Remaining, Retry-After
    - Bypass via X-Test-Bypass-RateLimit (local/test env only)
    """

    SKIP_PATHS = frozenset([
        "/",
        "/v1",
        "/healthz",
        "/readyz",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/metrics",
    ])

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        if settings.is_local and request.headers.get(BYPASS_HEADER):
            return await call_next(request)

        user_id = self._extract_user_id(request)

        key, limit = get_rate_limit_key(request, user_id)
        allowed, remaining, retry_after = check_rate_limit_atomic(key, limit)

        if not allowed:
            logger.info("rate_limit.exceeded", key=key, path=request.url.path)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Too many requests. Please try again later.",
                    "retry_after": retry_after,
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, remaining))

        return response

    def _extract_user_id(self, request: Request) -> str | None:
        """Subject of a valid access token, if one is presented."""
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1]
        else:
            token = request.cookies.get(settings.ACCESS_COOKIE_NAME)

        if not token:
            return None

        try:
            return str(decode_access_token(token).id)
        except InvalidTokenError:
            return None
