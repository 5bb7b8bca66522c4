"""Simple Redis-backed rate limiting dependency."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, Request
import redis.asyncio as redis

from config import settings

logger = logging.getLogger(__name__)

_local_counters: Dict[str, Tuple[int, float]] = {}
_local_lock = asyncio.Lock()


def _client_identifier(request: Request) -> str:
    """Socket peer address; ``X-Forwarded-For`` only counts behind a trusted proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and settings.TRUST_PROXY_HEADERS:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    if forwarded:
        return forwarded.split(",")[0].strip()
    return "unknown"


async def _consume_local_quota(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    async with _local_lock:
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        if now >= reset_at:
            count = 0
            reset_at = now + window_seconds
        count += 1
        _local_counters[key] = (count, reset_at)
        return count <= limit


def rate_limit(
    prefix: str,
    limit: Optional[int] = None,
    window_seconds: Optional[int] = None,
) -> Callable[[Request], None]:
    """Return a FastAPI dependency that enforces per-client request quotas."""
    quota = int(limit or settings.RATE_LIMIT_PER_WINDOW)
    window = int(window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS)

    async def _dependency(request: Request):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        client_id = _client_identifier(request)
        key = f"streamstore:rate:{prefix}:{client_id}"

        try:
            redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
            try:
                current = await redis_client.incr(key)
                if current == 1:
                    await redis_client.expire(key, window)
            finally:
                await redis_client.aclose()
            allowed = current <= quota
        except Exception as exc:
            logger.debug("Redis rate limiter unavailable, using local counters: %s", exc)
            allowed = await _consume_local_quota(key, quota, window)

        if not allowed:
            logger.warning("rate_limit_exceeded prefix=%s client=%s", prefix, client_id)
            raise HTTPException(
                status_code=429,
                detail="Too many requests, please try again later.",
                headers={"Retry-After": str(window)},
            )

    return _dependency
