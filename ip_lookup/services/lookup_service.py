import asyncio
from collections.abc import Sequence
from typing import Any

from ip_lookup.errors import (
    AllProvidersFailedError,
    InvalidInputError,
    IpLookupError,
    ProviderLookupError,
    ProvidersUnavailableError,
)
from ip_lookup.logger import logger
from ip_lookup.models.common import (
    CacheMetrics,
    ErrorInfo,
    IpLookupResult,
    LookupMetrics,
    Metrics,
    ProviderResponse,
    ProviderStatus,
)
from ip_lookup.providers.base import BaseIPLookupProvider
from ip_lookup.utils.cache.base import BaseCache


def cache_key(ip: str, provider: BaseIPLookupProvider) -> str:
    """Per-provider cache key, so each provider's cached data expires independently."""
    return f"{ip}:{provider.name.lower()}"


class IpLookupService:
    """Aggregates lookups across providers, with per-provider caching.

    Providers are attempted sequentially in the order given; that order is
    also the order of the merged `providers` mapping. A lookup succeeds when
    at least one provider contributes data; failures of the others are
    reported in the result's `error` field.
    """

    def __init__(self, providers: Sequence[BaseIPLookupProvider], cache: BaseCache) -> None:
        self._providers: tuple[BaseIPLookupProvider, ...] = tuple(providers)
        self._cache = cache
        self._metrics = LookupMetrics()

    @property
    def providers(self) -> tuple[BaseIPLookupProvider, ...]:
        return self._providers

    async def initialise(self) -> None:
        """Initialise every provider concurrently; fail only if none of them succeeds."""
        logger.info(
            "Initialising IP lookup service providers "
            f"provider_count={len(self._providers)} providers={[p.name for p in self._providers]}"
        )

        results = await asyncio.gather(*(self._initialise_provider(p) for p in self._providers))
        initialised = sum(results)

        if initialised == 0:
            logger.error(
                "Failed to initialise all providers "
                f"total_providers={len(self._providers)} "
                f"results={dict(zip((p.name for p in self._providers), results))}"
            )
            raise ProvidersUnavailableError("Failed to initialise all providers")

        logger.info(f"Initialised {initialised}/{len(self._providers)} providers")

    async def _initialise_provider(self, provider: BaseIPLookupProvider) -> bool:
        try:
            await provider.initialise()
        except Exception as exc:
            logger.exception(f"Failed to initialise provider provider={provider.name} error={exc}")
            return False

        logger.info(f"Provider {provider.name} initialised successfully")
        return True

    async def lookup(self, ip: str) -> IpLookupResult:
        """Look up an IP across all available providers and merge their data.

        Raises InvalidInputError for an empty IP and AllProvidersFailedError when
        no provider contributed. Every failed call is counted once in the
        error metrics before the exception is re-raised unchanged.
        """
        self._metrics.total_requests += 1
        logger.info(f"Starting IP lookup ip={ip}")

        try:
            return await self._lookup(ip)
        except Exception as exc:
            self._metrics.errors += 1
            self._metrics.last_error = ErrorInfo(message=str(exc))
            logger.error(f"IP lookup service error ip={ip} error={exc}")
            raise

    async def _lookup(self, ip: str) -> IpLookupResult:
        if not ip:
            logger.warning("IP lookup attempted with empty IP address")
            raise InvalidInputError("IP address is required", ip=ip)

        contributions: dict[str, Any] = {}
        failures: list[IpLookupError] = []

        for provider in self._providers:
            try:
                response = await self._lookup_provider(provider, ip)
            except IpLookupError as exc:
                failures.append(exc)
                logger.error(f"Provider lookup failed provider={provider.name} ip={ip} error={exc}")
                continue

            if response is not None:
                contributions[provider.name.lower()] = response.data

        if not contributions:
            logger.error(
                f"All providers failed during IP lookup ip={ip} error_count={len(failures)} "
                f"errors={[str(f) for f in failures]}"
            )
            raise AllProvidersFailedError("All providers failed to lookup IP", ip=ip, failures=failures)

        result = IpLookupResult(ip=ip, providers=contributions)
        if failures:
            result.error = "; ".join(str(f) for f in failures)
            logger.warning(
                f"Some providers failed during IP lookup ip={ip} "
                f"successful_providers={list(contributions)} error_count={len(failures)}"
            )
        else:
            logger.info(f"Successfully completed IP lookup with all providers ip={ip} providers={list(contributions)}")

        return result

    async def _lookup_provider(self, provider: BaseIPLookupProvider, ip: str) -> ProviderResponse | None:
        """Return the provider's response from cache or a fresh lookup.

        Returns None when the provider is unavailable (skipped silently); any
        provider failure is raised as a ProviderLookupError naming the provider.
        """
        try:
            if not await provider.is_available():
                return None

            key = cache_key(ip, provider)
            cached = await self._cache.get(key)
            if cached is not None:
                logger.info(f"Cache hit for IP lookup provider={provider.name} ip={ip} cache_key={key}")
                return cached

            logger.info(f"Cache miss, performing provider lookup provider={provider.name} ip={ip} cache_key={key}")
            response = await provider.lookup(ip)
        except Exception as exc:
            raise ProviderLookupError(
                f"Provider {provider.name} lookup failed: {exc}", provider.name, ip, exc
            ) from exc

        if response is None:
            logger.warning(f"Provider returned null result provider={provider.name} ip={ip}")
            raise ProviderLookupError(f"Provider {provider.name} returned null result", provider.name, ip)

        await self._cache.set(key, response)
        logger.info(f"Successfully cached provider result provider={provider.name} ip={ip} cache_key={key}")
        return response

    async def get_metrics(self) -> Metrics:
        """Merge the service counters with the cache's live counters."""
        cache_stats = await self._cache.get_metrics()
        return Metrics(
            total_requests=self._metrics.total_requests,
            errors=self._metrics.errors,
            last_error=self._metrics.last_error,
            cache=CacheMetrics(hits=cache_stats.hits, misses=cache_stats.misses, keys=cache_stats.keys),
        )

    async def get_provider_status(self) -> list[ProviderStatus]:
        availability = await asyncio.gather(*(p.is_available() for p in self._providers))
        return [ProviderStatus(name=p.name, available=a) for p, a in zip(self._providers, availability)]

    async def close(self) -> None:
        await self._cache.close()
