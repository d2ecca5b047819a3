"""Redis cache utility functions."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

import redis

logger = logging.getLogger(__name__)

# Redis connection
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis | None:
    """
    Get or create Redis client instance.

    Returns None when REDIS_URL is not configured or the connection fails,
    in which case every cache call is a miss.
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        return None

    try:
        _redis_client = redis.from_url(redis_url, decode_responses=True)
        # Test connection
        _redis_client.ping()
        logger.info("Redis cache connected successfully")
        return _redis_client
    except redis.RedisError as e:
        logger.warning(f"Redis cache unavailable: {e}. Continuing without cache.")
        _redis_client = None
        return None


def cache_get(key: str) -> Any | None:
    """Decoded JSON stored under ``key``, or None on a miss or Redis failure."""
    client = get_redis_client()
    if client is None:
        return None

    try:
        raw = client.get(key)
    except redis.RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Discarding undecodable cache entry {key}")
        return None


def cache_set(key: str, value: Any, ttl: int) -> bool:
    client = get_redis_client()
    if client is None:
        return False

    # Datetimes and other non-JSON values are stored as their str()
    payload = json.dumps(value, default=str)
    try:
        client.setex(key, ttl, payload)
    except redis.RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")
        return False
    return True


def cache_invalidate(pattern: str) -> int:
    """Drop every key matching the glob ``pattern``; returns how many went."""
    client = get_redis_client()
    if client is None:
        return 0

    try:
        stale = list(client.scan_iter(match=pattern))
        removed = client.delete(*stale) if stale else 0
    except redis.RedisError as e:
        logger.warning(f"Cache invalidation failed for {pattern}: {e}")
        return 0
    if removed:
        logger.debug(f"Invalidated {removed} cached entries for {pattern}")
    return removed
