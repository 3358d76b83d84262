"""Redis connection and the region-mean cache.

Values are stored as text: the float's repr, or ``nodata`` for a region with
no valid pixels. A Redis error or an unreadable entry reads as a miss and a
failed write is dropped, so sampling never depends on the cache.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

log = logging.getLogger(__name__)

NODATA = "nodata"

_redis_client = None
_redis_checked = False


def get_redis():
    """Lazy singleton.  Returns ``redis.Redis`` or ``None`` when no cache is configured or reachable."""
    global _redis_client, _redis_checked
    if _redis_checked:
        return _redis_client
    _redis_checked = True

    from route_exposure.config import settings

    if not settings.redis_url:
        log.debug("No ROUTE_EXPOSURE_REDIS_URL, region means are not cached")
        return None
    try:
        import redis

        client = redis.Redis.from_url(settings.redis_url, decode_responses=True, socket_connect_timeout=3)
        client.ping()
    except Exception as exc:
        log.warning("Redis unavailable at %s (%s), region means are not cached", settings.redis_url, exc)
        return None

    log.info("Region-mean cache on %s", settings.redis_url)
    _redis_client = client
    return _redis_client


def redis_healthy() -> bool:
    r = get_redis()
    if r is None:
        return False
    try:
        return bool(r.ping())
    except Exception as exc:
        log.debug("Redis ping failed: %s", exc)
        return False


def get_region_mean(key: str) -> Tuple[bool, Optional[float]]:
    """(hit, value) for a cached region mean; value is None for cached NoData."""
    r = get_redis()
    if r is None:
        return False, None
    try:
        raw = r.get(key)
    except Exception as exc:
        log.debug("Cache read failed for %s: %s", key, exc)
        return False, None

    if raw is None:
        return False, None
    if raw == NODATA:
        return True, None
    try:
        return True, float(raw)
    except ValueError:
        log.warning("Ignoring unreadable cache entry %s=%r", key, raw)
        return False, None


def set_region_mean(key: str, value: Optional[float], ttl: int) -> None:
    r = get_redis()
    if r is None:
        return
    try:
        r.set(key, NODATA if value is None else repr(float(value)), ex=ttl)
    except Exception as exc:
        log.debug("Cache write failed for %s: %s", key, exc)
