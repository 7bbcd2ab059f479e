import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ip_lookup.errors import CacheConfigError, CacheOperationError
from ip_lookup.logger import logger
from ip_lookup.models.common import CacheStats, ErrorInfo
from ip_lookup.utils.cache.base import BaseCache


@dataclass(frozen=True)
class CacheOptions:
    """Options of the in-process cache; all values are in seconds except `max_keys`."""

    ttl: int = 3600
    check_period: int = 600
    max_keys: int = 10000


@dataclass
class _Entry:
    value: Any
    expires_at: float


class MemoryCache(BaseCache):
    """In-process TTL cache backed by a dict.

    Expired entries are dropped when accessed, and at most once per
    `check_period` seconds a sweep removes every expired entry. Values are
    stored by reference, not copied.
    """

    def __init__(self, options: CacheOptions | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._options = options or CacheOptions()
        self._validate_options(self._options)
        self._clock = clock
        self._store: dict[str, _Entry] = {}
        self._stats = CacheStats()
        self._last_check = clock()

    @staticmethod
    def _validate_options(options: CacheOptions) -> None:
        checks = (
            (options.ttl, "Cache TTL must be a positive integer"),
            (options.check_period, "Cache check period must be a positive integer"),
            (options.max_keys, "Cache max keys must be a positive integer"),
        )
        for value, message in checks:
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise CacheConfigError(message)

    async def get(self, key: str) -> Any | None:
        self._check_period()
        now = self._clock()

        entry = self._store.get(key)
        if entry is not None and entry.expires_at <= now:
            self._expire(key)
            entry = None

        if entry is None:
            self._stats.misses += 1
            logger.debug(f"Cache miss key={key}")
            return None

        self._stats.hits += 1
        logger.debug(f"Cache hit key={key}")
        return entry.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        self._check_period()
        try:
            self._put(key, value, ttl)
        except CacheOperationError as exc:
            logger.error(f"Cache set error key={key} error={exc}")
            self._stats.last_error = ErrorInfo(message=str(exc))
            return False

        logger.debug(f"Cache set successful key={key}")
        return True

    async def delete(self, key: str) -> int:
        removed = 1 if self._store.pop(key, None) is not None else 0
        if removed:
            logger.debug(f"Cache entry deleted key={key}")
        return removed

    async def flush(self) -> None:
        self._store.clear()
        logger.info("Cache flushed")

    async def get_metrics(self) -> CacheStats:
        self._purge_expired()
        self._stats.keys = len(self._store)
        return self._stats.model_copy(deep=True)

    async def close(self) -> None:
        self._store.clear()
        logger.info("Cache closed")

    def _put(self, key: str, value: Any, ttl: int | None) -> None:
        if ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 0):
            raise CacheOperationError(f"Invalid TTL {ttl} for key {key}")

        if key not in self._store and len(self._store) >= self._options.max_keys:
            self._purge_expired()
            if len(self._store) >= self._options.max_keys:
                raise CacheOperationError("Cache max keys amount exceeded")

        ttl_seconds = ttl or self._options.ttl
        self._store[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    def _expire(self, key: str) -> None:
        del self._store[key]
        logger.debug(f"Cache entry expired key={key}")

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [key for key, entry in self._store.items() if entry.expires_at <= now]:
            self._expire(key)

    def _check_period(self) -> None:
        now = self._clock()
        if now - self._last_check >= self._options.check_period:
            self._last_check = now
            self._purge_expired()
