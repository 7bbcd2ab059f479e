from pydantic import Field

from ip_lookup.models.common import CamelModel, IpLookupResult, Metrics, ProviderStatus, utc_now_iso


class HealthResponse(CamelModel):
    """Response model for the health check endpoint."""

    status: str
    timestamp: str = Field(default_factory=utc_now_iso)
    providers: list[ProviderStatus]
    metrics: Metrics


class IPLookupResponse(CamelModel):
    """Response model for IP lookup, one result per requested address."""

    results: list[IpLookupResult]


class ErrorResponse(CamelModel):
    """Body returned for every failed request."""

    error: bool = True
    code: str
    message: str
    request_id: str
