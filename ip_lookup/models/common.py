from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProviderResponse(CamelModel):
    """Result of a single provider lookup, cached verbatim per provider.

    `data` is provider-specific and opaque to the aggregation engine.
    """

    ip: str
    data: Any
    last_updated: str = Field(default_factory=utc_now_iso)


class IpLookupResult(CamelModel):
    """Consolidated lookup result for one IP, keyed by lowercased provider name."""

    ip: str
    providers: dict[str, Any] = Field(default_factory=dict)
    last_updated: str = Field(default_factory=utc_now_iso)
    error: str | None = None


class ErrorInfo(CamelModel):
    timestamp: str = Field(default_factory=utc_now_iso)
    message: str


class LookupMetrics(CamelModel):
    """Request-level counters owned by the lookup service."""

    total_requests: int = 0
    errors: int = 0
    last_error: ErrorInfo | None = None


class CacheMetrics(CamelModel):
    hits: int = 0
    misses: int = 0
    keys: int = 0


class CacheStats(CacheMetrics):
    """Cache-internal counters, independent of the lookup metrics."""

    last_error: ErrorInfo | None = None


class Metrics(LookupMetrics):
    """Snapshot merging lookup metrics with live cache counters."""

    cache: CacheMetrics = Field(default_factory=CacheMetrics)


class ProviderStatus(CamelModel):
    name: str
    available: bool
