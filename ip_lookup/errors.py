class AppError(Exception):
    """Base application error for the IP lookup service."""


class IpLookupError(AppError):
    """Base error for domain failures while looking up an IP address.

    Carries the provider (or component) that raised it and the IP being looked
    up, so failures can be logged and aggregated with their context.
    """

    def __init__(
        self,
        message: str,
        provider: str = "IpLookupService",
        ip: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.ip = ip
        self.cause = cause


class InvalidInputError(IpLookupError):
    """Raised when an IP address is missing or malformed."""


class TooManyIpsError(InvalidInputError):
    """Raised when a request carries more IP addresses than allowed."""


class ProviderInitError(IpLookupError):
    """Raised when a single provider fails to initialise."""


class ProviderLookupError(IpLookupError):
    """Raised when a single provider fails (or returns nothing) for an IP."""


class AllProvidersFailedError(IpLookupError):
    """Raised when no provider produced data for an IP."""

    def __init__(self, message: str, ip: str | None = None, failures: list[IpLookupError] | None = None) -> None:
        super().__init__(message, ip=ip)
        self.failures = failures or []


class ProvidersUnavailableError(IpLookupError):
    """Raised when not a single provider could be initialised."""


class RequestTimeoutError(AppError):
    """Raised when a batch of lookups does not settle within the request budget."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Request timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class CacheOperationError(AppError):
    """Raised inside the cache store; absorbed by the cache and never propagated."""


class CacheConfigError(AppError, ValueError):
    """Raised at construction time when cache options are invalid."""
