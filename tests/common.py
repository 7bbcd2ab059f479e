import asyncio
from http import HTTPStatus
from typing import Any

import httpx

from ip_lookup.models.common import ProviderResponse
from ip_lookup.providers.base import BaseIPLookupProvider


class MockResponse:
    def __init__(
        self,
        status_code: int,
        payload: Any = None,
        text: str = "",
        content: bytes = b"",
    ) -> None:
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = text
        self.content = content

    def json(self) -> Any:
        return self._payload


class MockAsyncClient:
    """Minimal async context-manager mock for httpx.AsyncClient that records requested URLs."""

    def __init__(self, response: MockResponse) -> None:
        self._response = response
        self.calls: list[tuple[str, dict[str, Any] | None]] = []

    async def __aenter__(self) -> "MockAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, params: dict[str, Any] | None = None) -> MockResponse:
        self.calls.append((url, params))
        return self._response


class FailingAsyncClient:
    """Async client that raises a RequestError on enter to simulate network failure.

    The target URL is provided at construction time, so tests for different
    targets can reuse this implementation.
    """

    def __init__(self, url: str, *args: Any, **kwargs: Any) -> None:
        self._url = url

    async def __aenter__(self) -> "FailingAsyncClient":
        request = httpx.Request("GET", self._url)
        raise httpx.RequestError("Network failure", request=request)

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, params: dict[str, Any] | None = None) -> MockResponse:
        return MockResponse(status_code=HTTPStatus.OK, payload={})


class FakeProvider(BaseIPLookupProvider):
    """Configurable provider test double that counts its calls.

    - `data`: payload returned by lookup (ignored when `lookup_error` is set).
    - `lookup_error`: exception raised by lookup.
    - `init_error`: exception raised by initialise.
    - `returns_none`: lookup returns None instead of a response.
    - `hang`: lookup never resolves.
    """

    def __init__(
        self,
        name: str,
        data: Any = None,
        available: bool = True,
        lookup_error: Exception | None = None,
        init_error: Exception | None = None,
        returns_none: bool = False,
        hang: bool = False,
    ) -> None:
        self.name = name
        self._data = data if data is not None else {"source": name}
        self._available = available
        self._lookup_error = lookup_error
        self._init_error = init_error
        self._returns_none = returns_none
        self._hang = hang
        self.init_calls = 0
        self.lookup_calls: list[str] = []
        self.closed = False

    async def initialise(self) -> None:
        self.init_calls += 1
        if self._init_error:
            raise self._init_error

    async def is_available(self) -> bool:
        return self._available

    async def lookup(self, ip: str) -> ProviderResponse | None:
        self.lookup_calls.append(ip)
        if self._hang:
            await asyncio.Event().wait()
        if self._lookup_error:
            raise self._lookup_error
        if self._returns_none:
            return None
        return ProviderResponse(ip=ip, data=self._data)

    async def close(self) -> None:
        self.closed = True
