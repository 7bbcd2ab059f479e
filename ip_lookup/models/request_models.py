from pydantic import BaseModel, Field, field_validator


class IPLookupQuery(BaseModel):
    """Query parameters of the IP lookup endpoint.

    `ip` may be repeated to look up several addresses in one request
    (`?ip=8.8.8.8&ip=1.1.1.1`). Address syntax is checked by the batch
    lookup so that a single response lists every invalid address.
    """

    ip: list[str] = Field(
        default=[],
        description="IPv4 or IPv6 address(es) to look up.",
        examples=[["8.8.8.8"], ["8.8.8.8", "2001:4860:4860::8888"]],
    )

    @field_validator("ip", mode="before")
    @classmethod
    def _normalize_ips(cls, value: str | list[str] | None) -> list[str]:
        """Accept a single value or a list, strip whitespace and drop blank entries."""
        if value is None:
            return []
        values = value if isinstance(value, list) else [value]
        stripped = (str(item).strip() for item in values)
        return [item for item in stripped if item]
