"""
DNS record aggregation over DNS-over-HTTPS.

For each requested record type the aggregator decides, before any network
call, whether the type applies to the target:

- PTR applies only to IP targets and is queried under the reverse-DNS name.
- A, AAAA, MX, TXT, NS, CNAME and SOA apply only to domain targets.

Applicable queries are launched together and joined once. Each one either
yields its DoH answers or, on any failure, an empty list. The returned
mapping always holds every requested type; an empty list does not tell
"not applicable" apart from "lookup failed".
"""
from __future__ import annotations

import asyncio
import time
from typing import Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from netScope.logging_config import get_logger
from netScope.lookup.classifier import TargetKind, classify_target
from netScope.lookup.models import (
    DEFAULT_RECORD_TYPES,
    DNSAnswer,
    DoHResponse,
    LookupResult,
    RecordType,
    parse_record_types,
)
from netScope.lookup.reverse import reverse_dns_name
from netScope.lookup.transport import HTTPRequest, HTTPTransport, TransportError

logger = get_logger("dns")

DEFAULT_DOH_ENDPOINT = "https://cloudflare-dns.com/dns-query"
DOH_JSON_MEDIA_TYPE = "application/dns-json"
DEFAULT_DOH_TIMEOUT_SECONDS = 5.0


def applicable_query_name(record_type: RecordType, target: str, kind: TargetKind) -> Optional[str]:
    """Return the name to query for this type, or None if the type does not apply."""
    is_ip = kind is not TargetKind.DOMAIN
    if record_type is RecordType.PTR:
        return reverse_dns_name(target, kind) if is_ip else None
    return None if is_ip else target


class DNSAggregator:
    """Concurrent DoH lookups for one target across a list of record types."""

    def __init__(
        self,
        transport: HTTPTransport,
        endpoint: str = DEFAULT_DOH_ENDPOINT,
        timeout: float = DEFAULT_DOH_TIMEOUT_SECONDS,
    ) -> None:
        self.transport = transport
        self.endpoint = endpoint
        self.timeout = timeout

    async def lookup(
        self,
        target: str,
        record_types: Iterable[Union[str, RecordType]] = DEFAULT_RECORD_TYPES,
    ) -> LookupResult:
        """
        Look up every requested record type for target.

        Args:
            target: IP address or domain name
            record_types: Record types to query; duplicates are queried once

        Returns:
            Mapping of record type name to answers, in request order
        """
        types = parse_record_types(record_types)
        kind = classify_target(target)
        start_time = time.time()

        pairs = await asyncio.gather(
            *(self._lookup_type(rtype, target, kind) for rtype in types)
        )
        result: LookupResult = {rtype.value: answers for rtype, answers in pairs}

        logger.info(
            f"DNS aggregation for {target} finished",
            extra={
                "target": target,
                "kind": kind.value,
                "record_types": [t.value for t in types],
                "answers": sum(len(a) for a in result.values()),
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            },
        )
        return result

    async def _lookup_type(
        self, record_type: RecordType, target: str, kind: TargetKind
    ) -> Tuple[RecordType, List[DNSAnswer]]:
        query_name = applicable_query_name(record_type, target, kind)
        if query_name is None:
            logger.debug(
                f"{record_type.value} not applicable to {kind.value} target",
                extra={"target": target, "record_type": record_type.value, "outcome": "skipped"},
            )
            return record_type, []
        return record_type, await self.query(query_name, record_type)

    async def query(self, name: str, record_type: RecordType) -> List[DNSAnswer]:
        """Issue one DoH query. Any failure yields an empty list."""
        request = HTTPRequest(
            url=self.endpoint,
            params={"name": name, "type": record_type.value},
            headers={"Accept": DOH_JSON_MEDIA_TYPE},
            timeout=self.timeout,
        )
        log_extra = {"query_name": name, "record_type": record_type.value}
        start_time = time.time()

        try:
            response = await self.transport.perform(request)
        except TransportError as exc:
            logger.warning(
                f"DoH {record_type.value} query for {name} failed: {exc}",
                extra={**log_extra, "outcome": "transport_error", "error_type": type(exc).__name__},
            )
            return []
        except Exception as exc:
            logger.error(
                f"DoH {record_type.value} query for {name} raised: {exc}",
                exc_info=True,
                extra={**log_extra, "outcome": "error", "error_type": type(exc).__name__},
            )
            return []

        if not response.ok:
            logger.warning(
                f"DoH returned status {response.status} for {record_type.value} {name}",
                extra={**log_extra, "status_code": response.status, "outcome": "http_error"},
            )
            return []

        try:
            payload = DoHResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning(
                f"Malformed DoH body for {record_type.value} {name}",
                extra={**log_extra, "outcome": "malformed", "error_type": type(exc).__name__},
            )
            return []

        answers = payload.Answer or []
        logger.debug(
            f"DoH {record_type.value} {name}: {len(answers)} answers",
            extra={
                **log_extra,
                "answers": len(answers),
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            },
        )
        return answers
