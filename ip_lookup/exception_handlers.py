from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ip_lookup.errors import (
    AllProvidersFailedError,
    AppError,
    InvalidInputError,
    IpLookupError,
    RequestTimeoutError,
    TooManyIpsError,
)
from ip_lookup.logger import logger
from ip_lookup.middleware import REQUEST_ID_HEADER, get_request_id
from ip_lookup.models.response_models import ErrorResponse


def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    request_id = get_request_id(request)
    payload = ErrorResponse(code=code, message=message, request_id=request_id)
    return JSONResponse(
        status_code=status_code,
        content=payload.model_dump(by_alias=True),
        headers={REQUEST_ID_HEADER: request_id},
    )


def _error_code(exc: AppError) -> str:
    """Map domain errors to short machine-readable codes."""
    if isinstance(exc, TooManyIpsError):
        return "too_many_ips"
    if isinstance(exc, InvalidInputError):
        return "invalid_ip"
    if isinstance(exc, AllProvidersFailedError):
        return "all_providers_failed"
    if isinstance(exc, RequestTimeoutError):
        return "request_timeout"
    return "lookup_error"


def _normalize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Make sure validation error dicts are JSON-serializable for logging."""
    normalized: list[dict[str, Any]] = []
    for error in errors:
        e = dict(error)
        ctx = e.get("ctx")
        if isinstance(ctx, dict):
            e["ctx"] = {k: str(v) for k, v in ctx.items()}
        normalized.append(e)
    return normalized


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle query/body validation errors with a stable 400 payload.

    Internal validation details are logged but not exposed to clients.
    """
    logger.info(
        "Request validation error during request handling "
        f"path={request.url.path} method={request.method} errors={_normalize_validation_errors(exc.errors())}"
    )
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "invalid_request", "Invalid request parameters")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Domain errors are client errors; anything else (e.g. a timeout) is a server error."""
    status_code = (
        status.HTTP_400_BAD_REQUEST if isinstance(exc, IpLookupError) else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    logger.error(
        "Request error "
        f"path={request.url.path} method={request.method} status_code={status_code} "
        f"error={exc!r} provider={getattr(exc, 'provider', None)} ip={getattr(exc, 'ip', None)}"
    )
    return _error_response(request, status_code, _error_code(exc), str(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected errors to return a structured 500 response."""
    logger.exception(
        f"Unhandled exception while processing request: {exc!r} path={request.url.path} method={request.method}"
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred while processing the request.",
    )
