from http import HTTPStatus
from typing import Any

import httpx

from ip_lookup.errors import InvalidInputError, ProviderInitError, ProviderLookupError
from ip_lookup.logger import logger
from ip_lookup.models.common import ProviderResponse
from ip_lookup.providers.base import BaseIPLookupProvider
from ip_lookup.utils.ip_validator import get_ip_version, is_valid_ip

PROBE_IP = "8.8.8.8"


class IPInfoProvider(BaseIPLookupProvider):
    """Provider backed by the https://ipinfo.io REST API.

    The provider is only available when an API token is configured. The JSON
    payload is passed through untouched as the provider data, so the response
    carries whatever fields the token's plan exposes (asn, company, privacy,
    abuse, domains, ...).
    """

    name = "IPInfo"

    def __init__(self, token: str = "", base_url: str = "https://ipinfo.io", timeout_seconds: float = 5.0) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    async def initialise(self) -> None:
        if not await self.is_available():
            logger.info(f"IPInfo provider initialisation skipped, no token available provider={self.name}")
            return

        logger.info(f"Starting IPInfo provider initialisation provider={self.name}")
        try:
            # Probe the API so a bad token is caught at startup rather than on first lookup.
            await self._request(PROBE_IP)
        except ProviderLookupError as exc:
            logger.error(f"Failed to initialise IPInfo provider provider={self.name} error={exc}")
            raise ProviderInitError("Failed to initialise IPInfo provider", self.name, PROBE_IP, exc) from exc

        logger.info(f"IPInfo provider initialised successfully provider={self.name}")

    async def is_available(self) -> bool:
        return bool(self._token)

    async def lookup(self, ip: str) -> ProviderResponse:
        logger.info(f"Starting IPInfo lookup provider={self.name} ip={ip}")

        if not ip:
            raise InvalidInputError("IP address is required", self.name, ip)

        if not is_valid_ip(ip):
            logger.warning(
                f"Invalid IP address format for IPInfo lookup provider={self.name} ip={ip} "
                f"ip_version={get_ip_version(ip)}"
            )
            raise ProviderLookupError(f"Invalid IP address format: {ip}", self.name, ip)

        if not await self.is_available():
            logger.error(f"IPInfo provider not available for lookup provider={self.name} ip={ip}")
            raise ProviderLookupError("IPInfo provider not available - no token configured", self.name, ip)

        data = await self._request(ip)

        logger.info(
            f"Successfully completed IPInfo lookup provider={self.name} ip={ip} "
            f"has_location={bool(data.get('loc'))} has_asn={bool(data.get('asn'))} "
            f"has_privacy={bool(data.get('privacy'))}"
        )
        return ProviderResponse(ip=str(data["ip"]), data=data)

    async def _request(self, ip: str) -> dict[str, Any]:
        """Perform the HTTP request and validate the response.

        Any transport failure, non-2xx status, undecodable body, or payload
        without an `ip` field is reported as a ProviderLookupError.
        """
        url = f"{self._base_url}/{ip}"
        logger.debug(f"Making IPInfo API request provider={self.name} ip={ip} url={url}")

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.get(url, params={"token": self._token})
        except httpx.RequestError as exc:
            raise self._request_failed(ip, "unknown", repr(exc), exc) from exc

        self._handle_http_errors(ip, response)

        data = self._parse_json(ip, response)
        if not isinstance(data, dict) or not data.get("ip"):
            logger.warning(f"Invalid response from IPInfo API provider={self.name} ip={ip}")
            raise self._request_failed(ip, response.status_code, "Invalid response from IPInfo API")

        return data

    def _handle_http_errors(self, ip: str, response: httpx.Response) -> None:
        """Map HTTP status codes from the API to lookup errors."""
        status_code = response.status_code

        if status_code == HTTPStatus.TOO_MANY_REQUESTS:
            raise self._request_failed(ip, status_code, "rate limit or quota exceeded")

        if status_code in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
            raise self._request_failed(ip, status_code, "authentication with IPInfo failed")

        if status_code >= HTTPStatus.BAD_REQUEST:
            raise self._request_failed(ip, status_code, response.text)

    def _parse_json(self, ip: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise self._request_failed(ip, response.status_code, f"failed to decode response as JSON: {exc}") from exc

    def _request_failed(
        self,
        ip: str,
        status_code: int | str,
        reason: str,
        cause: BaseException | None = None,
    ) -> ProviderLookupError:
        logger.error(f"IPInfo API request failed provider={self.name} ip={ip} status_code={status_code} error={reason}")
        return ProviderLookupError(f"IPInfo API request failed ({status_code}): {reason}", self.name, ip, cause)
