from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration, read from environment variables and an optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Application
    app_env: str = "development"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    # Cache (validated eagerly by the cache itself)
    cache_ttl: int = 3600
    cache_check_period: int = 600
    cache_max_keys: int = 10000

    # Providers
    ipinfo_token: str = Field(default="", validation_alias="IPINFO_API_TOKEN")
    ipinfo_base_url: str = "https://ipinfo.io"
    maxmind_asn_db_path: str = "data/GeoLite2-ASN.mmdb"
    maxmind_city_db_path: str = "data/GeoLite2-City.mmdb"
    maxmind_country_db_path: str = "data/GeoLite2-Country.mmdb"

    # IP lookup endpoint
    max_ips_per_request: int = Field(default=100, ge=1, le=1000)
    request_timeout_ms: int = Field(default=30000, ge=1, le=60000)
    cache_control_max_age: int = Field(default=3600, ge=0, le=86400)
    cache_control_stale_if_error: int = Field(default=600, ge=0, le=86400)

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
