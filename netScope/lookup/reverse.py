"""Reverse-DNS (PTR) query name construction."""
from __future__ import annotations

from netScope.lookup.classifier import TargetKind, is_ipv4, parse_ipv6_groups

IPV4_REVERSE_SUFFIX = ".in-addr.arpa"
IPV6_REVERSE_SUFFIX = ".ip6.arpa"

_UNSPECIFIED = ":".join(["0000"] * 8)
_LOOPBACK = ":".join(["0000"] * 7 + ["0001"])


def expand_ipv6(address: str) -> str:
    """
    Expand an IPv6 literal to 8 colon-separated groups of 4 lowercase hex digits.

    Idempotent on already-expanded input. Raises ValueError if the address
    is not a valid IPv6 literal.
    """
    if address == "::":
        return _UNSPECIFIED
    if address == "::1":
        return _LOOPBACK

    groups = parse_ipv6_groups(address)
    if groups is None:
        raise ValueError(f"Not an IPv6 address: {address!r}")
    return ":".join(g.lower().zfill(4) for g in groups)


def ipv4_to_reverse_dns(address: str) -> str:
    if not is_ipv4(address):
        raise ValueError(f"Not an IPv4 address: {address!r}")
    return ".".join(reversed(address.split("."))) + IPV4_REVERSE_SUFFIX


def ipv6_to_reverse_dns(address: str) -> str:
    # nibble-reverse the 32 hex digits
    nibbles = expand_ipv6(address).replace(":", "")
    return ".".join(reversed(nibbles)) + IPV6_REVERSE_SUFFIX


def reverse_dns_name(target: str, kind: TargetKind) -> str:
    """Return the PTR query name for an already-classified IP target."""
    if kind is TargetKind.IPV4:
        return ipv4_to_reverse_dns(target)
    if kind is TargetKind.IPV6:
        return ipv6_to_reverse_dns(target)
    raise ValueError(f"Reverse DNS name requested for non-IP target: {target!r}")
