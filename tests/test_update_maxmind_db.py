from http import HTTPStatus
from pathlib import Path

import httpx
import pytest

from tests.common import FailingAsyncClient, MockAsyncClient, MockResponse
from update_maxmind_db import DATABASES, DatabaseDownloadError, download_database, update_databases


@pytest.mark.asyncio
async def test_update_databases_writes_every_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    response = MockResponse(status_code=HTTPStatus.OK, content=b"mmdb-bytes")
    monkeypatch.setattr(httpx, "AsyncClient", lambda *args, **kwargs: MockAsyncClient(response))

    await update_databases(tmp_path / "data")

    for name in DATABASES:
        assert (tmp_path / "data" / name).read_bytes() == b"mmdb-bytes"


@pytest.mark.asyncio
async def test_download_database_rejects_http_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    response = MockResponse(status_code=HTTPStatus.NOT_FOUND)
    monkeypatch.setattr(httpx, "AsyncClient", lambda *args, **kwargs: MockAsyncClient(response))
    target = tmp_path / "GeoLite2-ASN.mmdb"

    with pytest.raises(DatabaseDownloadError, match="HTTP 404"):
        await download_database("https://git.io/GeoLite2-ASN.mmdb", target)

    assert not target.exists()


@pytest.mark.asyncio
async def test_download_database_rejects_empty_body(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    response = MockResponse(status_code=HTTPStatus.OK, content=b"")
    monkeypatch.setattr(httpx, "AsyncClient", lambda *args, **kwargs: MockAsyncClient(response))

    with pytest.raises(DatabaseDownloadError, match="No data received for GeoLite2-City.mmdb"):
        await download_database("https://git.io/GeoLite2-City.mmdb", tmp_path / "GeoLite2-City.mmdb")


@pytest.mark.asyncio
async def test_download_database_network_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        httpx, "AsyncClient", lambda *args, **kwargs: FailingAsyncClient("https://git.io", *args, **kwargs)
    )

    with pytest.raises(DatabaseDownloadError, match="Failed to download GeoLite2-Country.mmdb"):
        await download_database("https://git.io/GeoLite2-Country.mmdb", tmp_path / "GeoLite2-Country.mmdb")
