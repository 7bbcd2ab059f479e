"""Download the MaxMind GeoLite2 databases used by the MaxMind provider."""

import asyncio
import sys
from pathlib import Path

import httpx

from ip_lookup.errors import AppError
from ip_lookup.logger import logger

DATA_DIR = Path("data")

DATABASES: dict[str, str] = {
    "GeoLite2-ASN.mmdb": "https://git.io/GeoLite2-ASN.mmdb",
    "GeoLite2-City.mmdb": "https://git.io/GeoLite2-City.mmdb",
    "GeoLite2-Country.mmdb": "https://git.io/GeoLite2-Country.mmdb",
}


class DatabaseDownloadError(AppError):
    """Raised when a GeoLite2 database could not be downloaded."""


async def download_database(url: str, path: Path, timeout_seconds: float = 60.0) -> None:
    logger.info(f"Downloading {path.name} url={url}")
    try:
        async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as client:
            response = await client.get(url)
    except httpx.RequestError as exc:
        raise DatabaseDownloadError(f"Failed to download {path.name}: {exc!r}") from exc

    if response.status_code >= 400:
        raise DatabaseDownloadError(f"Failed to download {path.name}: HTTP {response.status_code}")
    if not response.content:
        raise DatabaseDownloadError(f"No data received for {path.name}")

    path.write_bytes(response.content)
    logger.info(f"{path.name} updated successfully")


async def update_databases(data_dir: Path = DATA_DIR) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    await asyncio.gather(*(download_database(url, data_dir / name) for name, url in DATABASES.items()))
    logger.info("All databases updated successfully")


def main() -> None:
    try:
        asyncio.run(update_databases())
    except DatabaseDownloadError as exc:
        logger.error(f"Failed to update databases: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
