"""
Report cache - built inventory reports kept in Redis per store.

One key per store and report type:

    {prefix}:store:{store_id}:reports:{report_type}

Every stock or catalog write calls `invalidate_reports(store_id)` after its
commit. With the cache disabled or Redis unreachable, reports are simply
built on every request.
"""
import json
import logging
from typing import Any, Callable, Optional

import redis
from flask import Flask
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class ReportCache:
    """Report payloads (plain JSON dicts) with a TTL, dropped on writes."""

    def __init__(self, client=None, prefix: str = 'backoffice', ttl: int = 120):
        self.client = client
        self.prefix = prefix
        self.ttl = ttl

    @classmethod
    def from_app(cls, app: Flask) -> 'ReportCache':
        prefix = app.config.get('CACHE_KEY_PREFIX', 'backoffice')
        ttl = app.config.get('CACHE_REPORTS_TTL', 120)

        if not app.config.get('CACHE_ENABLED', True):
            logger.info("[CACHE] Report cache is DISABLED via config")
            return cls(None, prefix, ttl)

        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')
        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                health_check_interval=30
            )
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] Redis connection failed: {e}. Reports will not be cached.")
            return cls(None, prefix, ttl)

        logger.info(f"[CACHE] Report cache connected: {redis_url}")
        return cls(client, prefix, ttl)

    def is_available(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def key(self, store_id: int, report_type: str) -> str:
        return f"{self.prefix}:store:{store_id}:reports:{report_type}"

    def get(self, store_id: int, report_type: str) -> Optional[dict]:
        if self.client is None:
            return None
        try:
            raw = self.client.get(self.key(store_id, report_type))
        except RedisError as e:
            logger.warning(f"[CACHE] Get error: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"[CACHE] Unreadable entry {self.key(store_id, report_type)}, rebuilding")
            return None

    def set(self, store_id: int, report_type: str, report: dict, ttl: Optional[int] = None) -> bool:
        if self.client is None:
            return False
        try:
            self.client.setex(self.key(store_id, report_type), ttl or self.ttl, json.dumps(report))
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Set error: {e}")
            return False

    def invalidate_reports(self, store_id: int) -> int:
        """Drop every cached report of one store; returns how many keys went."""
        if self.client is None:
            return 0
        pattern = self.key(store_id, '*')
        try:
            keys = list(self.client.scan_iter(match=pattern, count=100))
            if keys:
                self.client.delete(*keys)
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidate error for {pattern}: {e}")
            return 0
        if keys:
            logger.info(f"[CACHE] INVALIDATE: {pattern} ({len(keys)} keys)")
        return len(keys)

    def get_or_build(self, store_id: int, report_type: str, build: Callable[[], dict]) -> dict:
        cached = self.get(store_id, report_type)
        if cached is not None:
            return cached
        report = build()
        self.set(store_id, report_type, report)
        return report


_report_cache: Optional[ReportCache] = None


def init_cache(app: Flask) -> None:
    global _report_cache
    _report_cache = ReportCache.from_app(app)
    app.extensions['report_cache'] = _report_cache


def get_cache() -> ReportCache:
    if _report_cache is None:
        raise RuntimeError("Report cache not initialized.")
    return _report_cache


def cached_report(store_id: int, report_type: str, build: Callable[[], Any]) -> Any:
    """Cached report, or a plain build when the cache was never set up."""
    if _report_cache is None:
        return build()
    return _report_cache.get_or_build(store_id, report_type, build)


def invalidate_reports(store_id: int) -> None:
    """Called after every committed stock or catalog write of a store."""
    if _report_cache is None:
        return
    _report_cache.invalidate_reports(store_id)
