"""Data models for DoH lookups."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict


class RecordType(str, Enum):
    A = "A"
    AAAA = "AAAA"
    MX = "MX"
    TXT = "TXT"
    NS = "NS"
    CNAME = "CNAME"
    SOA = "SOA"
    PTR = "PTR"

    @classmethod
    def parse(cls, value: Union[str, "RecordType"]) -> "RecordType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown record type: {value!r}") from None


DEFAULT_RECORD_TYPES: Tuple[RecordType, ...] = tuple(RecordType)


def parse_record_types(values: Iterable[Union[str, RecordType]]) -> List[RecordType]:
    """Parse and de-duplicate record types, keeping first-seen order."""
    return list(dict.fromkeys(RecordType.parse(v) for v in values))


class DNSAnswer(BaseModel):
    """One answer record as returned by the DoH JSON API."""
    name: str
    type: int
    TTL: int
    data: str

    model_config = ConfigDict(extra="ignore")


class DoHResponse(BaseModel):
    """Subset of the application/dns-json response body we rely on."""
    Status: int = 0
    Answer: Optional[List[DNSAnswer]] = None

    model_config = ConfigDict(extra="ignore")


# Record type name -> answers; every requested type is present
LookupResult = Dict[str, List[DNSAnswer]]
