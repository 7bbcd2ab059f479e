from abc import ABC, abstractmethod
from typing import Any

from ip_lookup.models.common import CacheStats


class BaseCache(ABC):
    """Abstract key/value cache with TTL and hit/miss metrics.

    Concrete implementations (in-process memory, Redis, ...) must never raise
    from `get`/`set`: absence is a normal outcome and store failures are
    reported as a `False` return from `set`.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store a value; `ttl` of None or 0 uses the cache default. Returns success."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> int:
        """Remove a key and return the number of removed entries."""
        raise NotImplementedError

    @abstractmethod
    async def flush(self) -> None:
        """Remove every entry."""
        raise NotImplementedError

    @abstractmethod
    async def get_metrics(self) -> CacheStats:
        """Return a snapshot of the cache counters."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying resources."""
        raise NotImplementedError
