from abc import ABC, abstractmethod

from ip_lookup.models.common import ProviderResponse


class BaseIPLookupProvider(ABC):
    """Abstract base for all IP lookup providers.

    Concrete implementations (e.g. MaxMind, IPInfo) are injected into the
    lookup service. `name` must be stable and unique: lowercased, it is used
    both as the cache key segment and as the key of the merged result.
    """

    name: str

    @abstractmethod
    async def initialise(self) -> None:
        """Prepare the provider; raise ProviderInitError on failure."""
        raise NotImplementedError

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether the provider can serve lookups. Must not raise."""
        raise NotImplementedError

    @abstractmethod
    async def lookup(self, ip: str) -> ProviderResponse | None:
        """Look up information for an IP address; raise ProviderLookupError on failure."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release provider resources, if any."""
        return None
