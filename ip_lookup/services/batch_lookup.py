import asyncio
from collections.abc import Sequence

from ip_lookup.errors import InvalidInputError, RequestTimeoutError, TooManyIpsError
from ip_lookup.logger import logger
from ip_lookup.models.common import IpLookupResult
from ip_lookup.services.lookup_service import IpLookupService
from ip_lookup.utils.ip_validator import is_valid_ip

# Batches abandoned on timeout keep running; hold a reference until they settle.
_abandoned_batches: set[asyncio.Future] = set()


async def lookup_batch(
    service: IpLookupService,
    ips: Sequence[str],
    *,
    max_ips_per_request: int,
    request_timeout_ms: int,
) -> list[IpLookupResult]:
    """Look up several IPs concurrently within a single wall-clock budget.

    The batch is rejected before any lookup when it is empty, too large, or
    contains an invalid address. A failing address yields a result carrying
    only its error, so one entry is returned per address. If the whole batch
    has not settled after `request_timeout_ms`, RequestTimeoutError is raised
    and results already collected are discarded; lookups still in flight are
    left to finish in the background.
    """
    if not ips:
        logger.warning("IP address missing in request")
        raise InvalidInputError("IP address is required")

    if len(ips) > max_ips_per_request:
        logger.warning(f"Too many IPs in request count={len(ips)} limit={max_ips_per_request}")
        raise TooManyIpsError(f"Maximum of {max_ips_per_request} IPs allowed per request")

    invalid_ips = [ip for ip in ips if not is_valid_ip(ip)]
    if invalid_ips:
        logger.warning(f"Invalid IP addresses detected invalid_ips={invalid_ips}")
        raise InvalidInputError(f"Invalid IP addresses found: {', '.join(invalid_ips)}")

    logger.info(f"Starting parallel IP lookups count={len(ips)} addresses={list(ips)}")
    batch = asyncio.gather(*(_lookup_one(service, ip) for ip in ips))

    done, _ = await asyncio.wait({batch}, timeout=request_timeout_ms / 1000)
    if batch not in done:
        _abandoned_batches.add(batch)
        batch.add_done_callback(_release_abandoned)
        logger.error(f"IP lookup batch timed out timeout_ms={request_timeout_ms} count={len(ips)}")
        raise RequestTimeoutError(request_timeout_ms)

    results: list[IpLookupResult] = batch.result()
    logger.info(
        "Completed all IP lookups "
        f"success_count={sum(r.error is None for r in results)} "
        f"error_count={sum(r.error is not None for r in results)}"
    )
    return results


async def _lookup_one(service: IpLookupService, ip: str) -> IpLookupResult:
    try:
        result = await service.lookup(ip)
    except Exception as exc:
        logger.error(f"Error looking up IP ip={ip} error={exc}")
        return IpLookupResult(ip=ip, providers={}, error=str(exc))

    logger.info(f"Successfully looked up IP ip={ip}")
    return result


def _release_abandoned(batch: asyncio.Future) -> None:
    _abandoned_batches.discard(batch)
    if not batch.cancelled() and batch.exception() is not None:
        logger.warning(f"Abandoned IP lookup batch failed error={batch.exception()}")
