from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError

from ip_lookup.config import Settings, get_settings
from ip_lookup.errors import AppError
from ip_lookup.exception_handlers import (
    app_error_handler,
    request_validation_exception_handler,
    unhandled_exception_handler,
)
from ip_lookup.logger import logger
from ip_lookup.middleware import request_context_middleware
from ip_lookup.models.common import Metrics
from ip_lookup.models.request_models import IPLookupQuery
from ip_lookup.models.response_models import HealthResponse, IPLookupResponse
from ip_lookup.providers.ipinfo_provider import IPInfoProvider
from ip_lookup.providers.maxmind_provider import MaxMindProvider
from ip_lookup.services.batch_lookup import lookup_batch
from ip_lookup.services.lookup_service import IpLookupService
from ip_lookup.utils.cache.memory import CacheOptions, MemoryCache

router = APIRouter()


def build_lookup_service(settings: Settings) -> IpLookupService:
    """Wire the cache and the providers into a lookup service; provider order is the merge order."""
    cache = MemoryCache(
        CacheOptions(
            ttl=settings.cache_ttl,
            check_period=settings.cache_check_period,
            max_keys=settings.cache_max_keys,
        )
    )
    providers = [
        MaxMindProvider(
            asn_db_path=settings.maxmind_asn_db_path,
            city_db_path=settings.maxmind_city_db_path,
            country_db_path=settings.maxmind_country_db_path,
        ),
        IPInfoProvider(token=settings.ipinfo_token, base_url=settings.ipinfo_base_url),
    ]
    return IpLookupService(providers, cache)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    service: IpLookupService = app.state.lookup_service
    await service.initialise()
    logger.info("Started IP Lookup Service")
    try:
        yield
    finally:
        logger.info("Shutting down IP Lookup Service")
        await service.close()
        for provider in service.providers:
            await provider.close()


def get_lookup_service(request: Request) -> IpLookupService:
    """Dependency returning the lookup service built for this application."""
    return request.app.state.lookup_service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get(
    "/health",
    tags=["health"],
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health(service: Annotated[IpLookupService, Depends(get_lookup_service)]) -> HealthResponse:
    """Report provider availability together with the current metrics."""
    providers = await service.get_provider_status()
    metrics = await service.get_metrics()
    return HealthResponse(status="ok", providers=providers, metrics=metrics)


@router.get(
    "/metrics",
    tags=["metrics"],
    response_model=Metrics,
    status_code=status.HTTP_200_OK,
    summary="Lookup and cache metrics",
)
async def metrics(service: Annotated[IpLookupService, Depends(get_lookup_service)]) -> Metrics:
    return await service.get_metrics()


@router.get(
    "/api/v1/ip-lookup",
    tags=["ip-lookup"],
    response_model=IPLookupResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Look up information about one or more IP addresses across all providers.",
)
async def ip_lookup(
    response: Response,
    query: Annotated[IPLookupQuery, Query()],
    service: Annotated[IpLookupService, Depends(get_lookup_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> IPLookupResponse:
    """Look up every `ip` query value concurrently.

    - At most `MAX_IPS_PER_REQUEST` addresses are accepted, all of which must be valid.
    - The whole batch must settle within `REQUEST_TIMEOUT_MS`, otherwise the request fails.
    - An address no provider could resolve is returned with only its `error` set.
    """
    logger.info(f"Processing IP lookup request ip={query.ip}")
    results = await lookup_batch(
        service,
        query.ip,
        max_ips_per_request=settings.max_ips_per_request,
        request_timeout_ms=settings.request_timeout_ms,
    )
    response.headers["Cache-Control"] = (
        f"public, max-age={settings.cache_control_max_age}, "
        f"stale-if-error={settings.cache_control_stale_if_error}"
    )
    return IPLookupResponse(results=results)


def create_app(settings: Settings | None = None, service: IpLookupService | None = None) -> FastAPI:
    """Build the FastAPI application; the lookup service is created here unless one is injected."""
    settings = settings or get_settings()
    docs_enabled = not settings.is_production

    app = FastAPI(
        title="IP Lookup Service",
        version="0.1.0",
        description="Looks up IP addresses across MaxMind GeoLite2 and ipinfo.io and merges the results.",
        lifespan=lifespan,
        docs_url="/documentation" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings
    app.state.lookup_service = service or build_lookup_service(settings)

    app.middleware("http")(request_context_middleware)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.include_router(router)

    logger.info(
        "IP Lookup Service configured "
        f"max_ips_per_request={settings.max_ips_per_request} request_timeout_ms={settings.request_timeout_ms} "
        f"cache_control_max_age={settings.cache_control_max_age} "
        f"cache_control_stale_if_error={settings.cache_control_stale_if_error}"
    )
    return app


app = create_app()
