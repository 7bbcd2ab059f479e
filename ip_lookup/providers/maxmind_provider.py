import asyncio
from typing import Any, Literal

import geoip2.database
import geoip2.errors

from ip_lookup.errors import InvalidInputError, ProviderInitError, ProviderLookupError
from ip_lookup.logger import logger
from ip_lookup.models.common import ProviderResponse
from ip_lookup.providers.base import BaseIPLookupProvider
from ip_lookup.utils.ip_validator import get_ip_version, is_valid_ip

DatabaseType = Literal["asn", "city", "country"]


class MaxMindProvider(BaseIPLookupProvider):
    """Provider backed by local MaxMind GeoLite2 ASN, City and Country databases.

    Readers are opened once by `initialise` and reused for every lookup. A
    lookup queries the three databases concurrently; a miss in one database
    only blanks that part of the result.
    """

    name = "MaxMind"

    def __init__(
        self,
        asn_db_path: str = "data/GeoLite2-ASN.mmdb",
        city_db_path: str = "data/GeoLite2-City.mmdb",
        country_db_path: str = "data/GeoLite2-Country.mmdb",
    ) -> None:
        self._db_paths: dict[DatabaseType, str] = {
            "asn": asn_db_path,
            "city": city_db_path,
            "country": country_db_path,
        }
        self._readers: dict[DatabaseType, geoip2.database.Reader] = {}

    async def initialise(self) -> None:
        results = await asyncio.gather(
            *(asyncio.to_thread(geoip2.database.Reader, path) for path in self._db_paths.values()),
            return_exceptions=True,
        )
        readers = [r for r in results if not isinstance(r, BaseException)]
        failures = [r for r in results if isinstance(r, BaseException)]

        if failures:
            for reader in readers:
                reader.close()
            exc = failures[0]
            if not isinstance(exc, (OSError, ValueError, RuntimeError)):  # RuntimeError covers InvalidDatabaseError
                raise exc
            logger.error(
                f"Failed to initialise MaxMind databases provider={self.name} "
                f"databases={list(self._db_paths.values())} error={exc!r}"
            )
            raise ProviderInitError("Failed to initialise MaxMind databases", self.name, cause=exc) from exc

        self._readers = dict(zip(self._db_paths, readers))
        logger.info(
            f"MaxMind databases initialised successfully provider={self.name} "
            f"databases={list(self._db_paths.values())}"
        )

    async def is_available(self) -> bool:
        available = len(self._readers) == len(self._db_paths)
        if not available:
            logger.warning(f"MaxMind provider is not available provider={self.name}")
        return available

    async def lookup(self, ip: str) -> ProviderResponse:
        logger.info(f"Starting MaxMind lookup provider={self.name} ip={ip}")

        if not ip:
            raise InvalidInputError("IP address is required", self.name, ip)

        if not is_valid_ip(ip):
            logger.warning(
                f"Invalid IP address format for MaxMind lookup provider={self.name} ip={ip} "
                f"ip_version={get_ip_version(ip)}"
            )
            raise ProviderLookupError(f"Invalid IP address format: {ip}", self.name, ip)

        if not await self.is_available():
            logger.error(f"MaxMind databases not initialised for lookup provider={self.name} ip={ip}")
            raise ProviderLookupError("MaxMind databases not initialised", self.name, ip)

        asn, city, country = await asyncio.gather(
            self._lookup_database("asn", ip),
            self._lookup_database("city", ip),
            self._lookup_database("country", ip),
        )

        if asn is None and city is None and country is None:
            logger.warning(f"No data found in any MaxMind database provider={self.name} ip={ip}")
            raise ProviderLookupError(f"No data found for IP {ip} in any database", self.name, ip)

        logger.info(
            f"Successfully completed MaxMind lookup provider={self.name} ip={ip} "
            f"has_asn={asn is not None} has_city={city is not None} has_country={country is not None}"
        )
        return ProviderResponse(ip=ip, data={"asn": asn, "city": city, "country": country})

    async def close(self) -> None:
        for reader in self._readers.values():
            reader.close()
        self._readers = {}

    async def _lookup_database(self, database: DatabaseType, ip: str) -> dict[str, Any] | None:
        """Query one database; a miss or a lookup failure yields None."""
        reader = self._readers[database]
        query = getattr(reader, database)
        try:
            record = await asyncio.to_thread(query, ip)
        except (geoip2.errors.GeoIP2Error, ValueError, TypeError) as exc:
            logger.warning(
                f"Failed to lookup {database} data provider={self.name} ip={ip} database={database} error={exc}"
            )
            return None

        return record.to_dict()
