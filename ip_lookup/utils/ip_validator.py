"""Validation and classification of IPv4/IPv6 address strings.

All functions are pure and never raise: anything that is not a valid address
(including non-string input) yields ``False`` or ``None``.
"""

import re
from typing import Any, Literal

IpVersion = Literal["v4", "v6"]

_IPV4_PATTERN = re.compile(r"([0-9]{1,3}\.){3}[0-9]{1,3}")
_IPV4_MAPPED_IPV6_PATTERN = re.compile(r"::ffff:(([0-9]{1,3}\.){3}[0-9]{1,3})")
_HEXTET_PATTERN = re.compile(r"[0-9a-fA-F]{1,4}")

_IPV6_GROUPS = 8

_PRIVATE_IPV4_RANGES = [
    ("10.0.0.0", "10.255.255.255"),
    ("172.16.0.0", "172.31.255.255"),
    ("192.168.0.0", "192.168.255.255"),
]

_PRIVATE_IPV6_RANGES = [
    ("fc00::", "fdff:ffff:ffff:ffff:ffff:ffff:ffff:ffff"),
]


def is_valid_ip(ip: Any) -> bool:
    """Return True for IPv4, IPv6 and IPv4-mapped IPv6 addresses."""
    return is_valid_ipv4(ip) or is_valid_ipv6(ip)


def is_valid_ipv4(ip: Any) -> bool:
    """Return True for a dotted quad whose four octets are all in [0, 255].

    Octets with leading zeros (e.g. "01") are accepted since they parse numerically.
    """
    if not isinstance(ip, str) or not _IPV4_PATTERN.fullmatch(ip):
        return False
    return all(0 <= int(octet) <= 255 for octet in ip.split("."))


def is_valid_ipv6(ip: Any) -> bool:
    """Return True for a colon-separated hextet address, with at most one "::".

    The IPv4-mapped form ``::ffff:a.b.c.d`` is valid when its dotted quad is.
    """
    if not isinstance(ip, str):
        return False

    mapped = _IPV4_MAPPED_IPV6_PATTERN.fullmatch(ip)
    if mapped:
        return is_valid_ipv4(mapped.group(1))

    return _split_ipv6_groups(ip) is not None


def get_ip_version(ip: Any) -> IpVersion | None:
    """Classify an address; IPv4-mapped IPv6 addresses are reported as "v4"."""
    if not isinstance(ip, str):
        return None

    mapped = _IPV4_MAPPED_IPV6_PATTERN.fullmatch(ip)
    if mapped:
        return "v4" if is_valid_ipv4(mapped.group(1)) else None

    if is_valid_ipv4(ip):
        return "v4"
    if is_valid_ipv6(ip):
        return "v6"
    return None


def is_private_ip(ip: Any) -> bool:
    """Return True for RFC1918 IPv4 addresses and IPv6 unique-local (fc00::/7) addresses."""
    version = get_ip_version(ip)
    if version is None:
        return False

    if version == "v4":
        mapped = _IPV4_MAPPED_IPV6_PATTERN.fullmatch(ip)
        return _is_private_ipv4(mapped.group(1) if mapped else ip)
    return _is_private_ipv6(ip)


def _split_ipv6_groups(ip: str) -> list[str] | None:
    """Split an IPv6 address into its explicit hextets, or None if it is malformed.

    With "::" the explicit groups must number at most 7, so that the
    compression stands for at least one zero group, and the address must end
    with a hextet ("::" alone or "fe80::" are rejected).
    """
    halves = ip.split("::")
    if len(halves) > 2:
        return None

    if len(halves) == 1:
        groups = ip.split(":")
        if len(groups) != _IPV6_GROUPS:
            return None
    else:
        head, tail = halves
        if not tail:
            return None
        groups = (head.split(":") if head else []) + tail.split(":")
        if len(groups) >= _IPV6_GROUPS:
            return None

    if not all(_HEXTET_PATTERN.fullmatch(group) for group in groups):
        return None
    return groups


def _ipv4_to_int(ip: str) -> int:
    value = 0
    for octet in ip.split("."):
        value = (value << 8) + int(octet)
    return value


def _is_private_ipv4(ip: str) -> bool:
    value = _ipv4_to_int(ip)
    return any(_ipv4_to_int(start) <= value <= _ipv4_to_int(end) for start, end in _PRIVATE_IPV4_RANGES)


def _ipv6_to_bytes(ip: str) -> bytes:
    """Expand an IPv6 address (compressed or not) into its 16 big-endian bytes."""
    if "::" in ip:
        head, tail = ip.split("::")
        head_groups = head.split(":") if head else []
        tail_groups = tail.split(":") if tail else []
        zeros = ["0"] * (_IPV6_GROUPS - len(head_groups) - len(tail_groups))
        groups = head_groups + zeros + tail_groups
    else:
        groups = ip.split(":")
    return b"".join(int(group, 16).to_bytes(2, "big") for group in groups)


def _is_private_ipv6(ip: str) -> bool:
    value = _ipv6_to_bytes(ip)
    return any(_ipv6_to_bytes(start) <= value <= _ipv6_to_bytes(end) for start, end in _PRIVATE_IPV6_RANGES)
