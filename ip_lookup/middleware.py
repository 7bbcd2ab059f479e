import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response

from ip_lookup.logger import logger, request_id_var

REQUEST_ID_HEADER = "X-Request-Id"


async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Tag each request with an id and timing headers, and log its start and end.

    The id is taken from an incoming X-Request-Id header when present.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id
    request_id_var.set(request_id)

    started = time.perf_counter()
    client_ip = request.client.host if request.client else None
    logger.info(f"Incoming {request.method} request url={request.url.path} client_ip={client_ip}")

    response = await call_next(request)

    response_time_ms = round((time.perf_counter() - started) * 1000)
    response.headers[REQUEST_ID_HEADER] = request_id
    response.headers["X-Response-Time"] = str(response_time_ms)
    logger.info(
        f"Request completed method={request.method} url={request.url.path} "
        f"status_code={response.status_code} response_time_ms={response_time_ms}"
    )
    return response


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request_id_var.get()
