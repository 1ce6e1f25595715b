"""Token bucket rate limiter backed by Redis.

Each caller gets one bucket per endpoint category. Callers are identified by
their worker id when the gateway forwarded one, otherwise by client IP.
"""

import time

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request, Response

from app.auth.middleware import WORKER_HEADER
from app.config import settings
from app.redis import get_redis

# Atomic refill-then-take. Returns {allowed, tokens_left, retry_after_seconds}.
_TOKEN_BUCKET_SCRIPT = """
local capacity = tonumber(ARGV[1])
local per_second = tonumber(ARGV[2]) / 60.0
local now = tonumber(ARGV[3])

local state = redis.call('HMGET', KEYS[1], 'tokens', 'ts')
local tokens = tonumber(state[1]) or capacity
local ts = tonumber(state[2]) or now

tokens = math.min(capacity, tokens + (now - ts) * per_second)

local allowed = 0
local retry_after = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
elseif per_second > 0 then
    retry_after = math.ceil((1 - tokens) / per_second)
else
    retry_after = 60
end

redis.call('HSET', KEYS[1], 'tokens', tokens, 'ts', now)
redis.call('EXPIRE', KEYS[1], 120)
return {allowed, math.floor(tokens), retry_after}
"""

# Each category reads rate_limit_<category>_capacity / _refill_per_min from settings
CATEGORIES = ("identity", "vote", "moderation", "review_write", "read")

_VOTE_SUFFIXES = ("/helpful", "/report")
_MODERATION_SUFFIXES = ("/moderation", "/rating/recompute")
_WRITE_METHODS = frozenset({"POST", "PATCH", "PUT", "DELETE"})


def _classify(method: str, path: str) -> str:
    path = path.rstrip("/")
    if path.startswith("/workers/") and "/identity" in path:
        # Identity numbers are the most sensitive data served; reads count too
        return "identity"
    if method == "POST" and path.endswith(_VOTE_SUFFIXES):
        return "vote"
    if method == "POST" and path.endswith(_MODERATION_SUFFIXES):
        return "moderation"
    if method in _WRITE_METHODS:
        return "review_write"
    return "read"


def _get_rate_config(method: str, path: str) -> tuple[int, int, str]:
    """Return (capacity, refill_per_min, category) based on endpoint."""
    category = _classify(method, path)
    return (
        getattr(settings, f"rate_limit_{category}_capacity"),
        getattr(settings, f"rate_limit_{category}_refill_per_min"),
        category,
    )


def _get_client_ip(request: Request) -> str:
    """Extract client IP, respecting X-Forwarded-For for reverse proxies."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the chain is the original client
        return forwarded_for.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def _bucket_key(request: Request, category: str) -> str:
    worker_id = request.headers.get(WORKER_HEADER)
    if worker_id:
        return f"ratelimit:{worker_id}:{category}"
    return f"ratelimit:ip:{_get_client_ip(request)}:{category}"


async def check_rate_limit(
    request: Request,
    response: Response,
    redis: aioredis.Redis = Depends(get_redis),
) -> None:
    """Rate limit dependency. Sets X-RateLimit-* headers; raises 429 when the bucket is empty."""
    capacity, refill_rate, category = _get_rate_config(request.method.upper(), request.url.path)

    allowed, remaining, retry_after = (
        int(v)
        for v in await redis.eval(
            _TOKEN_BUCKET_SCRIPT, 1, _bucket_key(request, category), capacity, refill_rate, time.time()
        )
    )

    response.headers["X-RateLimit-Limit"] = str(capacity)
    response.headers["X-RateLimit-Remaining"] = str(remaining)

    if not allowed:
        raise HTTPException(
            status_code=429,
            detail="Rate limit exceeded",
            headers={"Retry-After": str(retry_after)},
        )
