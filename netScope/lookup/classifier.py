"""Target classification: IPv4 address, IPv6 address, or domain name."""
from __future__ import annotations

import re
from enum import Enum
from typing import List, Optional


class TargetKind(str, Enum):
    IPV4 = "IPv4"
    IPV6 = "IPv6"
    DOMAIN = "Domain"


_DEC_OCTET = re.compile(r"[0-9]{1,3}")
_HEX_GROUP = re.compile(r"[0-9a-fA-F]{1,4}")


def is_ipv4(value: str) -> bool:
    """Dotted quad, each octet 1-3 digits in [0, 255]. Leading zeros are accepted."""
    parts = value.split(".")
    if len(parts) != 4:
        return False
    return all(_DEC_OCTET.fullmatch(p) and int(p) <= 255 for p in parts)


def _embedded_ipv4_groups(value: str) -> Optional[str]:
    """Rewrite a trailing dotted quad as two hex groups, or return None if malformed."""
    head, sep, last = value.rpartition(":")
    if not sep or not is_ipv4(last):
        return None
    o = [int(p) for p in last.split(".")]
    return f"{head}:{(o[0] << 8) | o[1]:x}:{(o[2] << 8) | o[3]:x}"


def parse_ipv6_groups(value: str) -> Optional[List[str]]:
    """
    Parse an IPv6 literal into its 8 hex groups (unpadded, case preserved).

    Accepts the fully expanded form, a single `::` compression at any group
    boundary, and a trailing embedded dotted quad (`::ffff:1.2.3.4`,
    `1:2:3:4:5:6:1.2.3.4`). Returns None for anything else, including
    strings with more than one `::` and zone identifiers.
    """
    if ":" not in value or value.count("::") > 1:
        return None

    if "." in value:
        rewritten = _embedded_ipv4_groups(value)
        if rewritten is None:
            return None
        value = rewritten

    if "::" in value:
        left_text, right_text = value.split("::")
        left = left_text.split(":") if left_text else []
        right = right_text.split(":") if right_text else []
        if len(left) + len(right) > 7:
            return None
        groups = left + ["0"] * (8 - len(left) - len(right)) + right
    else:
        groups = value.split(":")
        if len(groups) != 8:
            return None

    if not all(_HEX_GROUP.fullmatch(g) for g in groups):
        return None
    return groups


def is_ipv6(value: str) -> bool:
    return not is_ipv4(value) and parse_ipv6_groups(value) is not None


def classify_target(target: str) -> TargetKind:
    """
    Classify a target string by pure string matching.

    Never raises: anything that is not a well-formed IP literal, including
    malformed strings containing colons, is a Domain.
    """
    if is_ipv4(target):
        return TargetKind.IPV4
    if is_ipv6(target):
        return TargetKind.IPV6
    return TargetKind.DOMAIN
