"""Target analysis endpoint: DNS aggregation plus third-party intel."""
from __future__ import annotations

import asyncio
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from netScope.api.models import AnalyzeResponse, ErrorResponse, err
from netScope.api.utils.deps import aggregator_dep, config_dep, transport_dep
from netScope.config import NetScopeConfig
from netScope.intel.sources import lookup_abuse, lookup_internetdb, lookup_ip_info
from netScope.logging_config import get_logger, sanitize_log_data
from netScope.lookup.aggregator import DNSAggregator
from netScope.lookup.classifier import classify_target
from netScope.lookup.models import parse_record_types
from netScope.lookup.transport import HTTPTransport

logger = get_logger("api")
router = APIRouter(prefix="/api", tags=["analyze"])

# Loose guard against obvious garbage; colons admitted for IPv6 literals
TARGET_PATTERN = re.compile(r"[A-Za-z0-9.:-]+")


async def _skipped() -> None:
    return None


def _bad_request(detail: str) -> JSONResponse:
    return JSONResponse(status_code=400, content=err(detail))


@router.get(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={400: {"model": ErrorResponse}},
)
async def analyze(
    request: Request,
    target: Optional[str] = Query(None, description="IP address or domain name"),
    types: Optional[str] = Query(None, description="Comma-separated DNS record types"),
    aggregator: DNSAggregator = Depends(aggregator_dep),
    transport: HTTPTransport = Depends(transport_dep),
    cfg: NetScopeConfig = Depends(config_dep),
):
    request_id = getattr(request.state, "request_id", "unknown")
    target = (target or "").strip()

    if not target:
        return _bad_request("target required")
    if not TARGET_PATTERN.fullmatch(target):
        logger.info(
            "Rejected malformed target",
            extra={"request_id": request_id, "user_input": sanitize_log_data({"target": target}), "outcome": "invalid"},
        )
        return _bad_request("Invalid target format")

    if types:
        try:
            record_types = parse_record_types(t for t in types.split(",") if t.strip())
        except ValueError as exc:
            return _bad_request(str(exc))
        if not record_types:
            return _bad_request("types must name at least one record type")
    else:
        record_types = cfg.doh.record_types

    kind = classify_target(target)
    logger.info(
        "Analyzing target",
        extra={
            "request_id": request_id,
            "target": target,
            "kind": kind.value,
            "record_types": [t.value for t in record_types],
        },
    )

    intel = cfg.intel
    if intel.enabled:
        intel_calls = (
            lookup_ip_info(transport, target, intel),
            lookup_abuse(transport, target, kind, intel),
            lookup_internetdb(transport, target, intel),
        )
    else:
        intel_calls = (_skipped(), _skipped(), _skipped())

    dns, ip_info, abuse, shodan = await asyncio.gather(
        aggregator.lookup(target, record_types),
        *intel_calls,
    )

    return AnalyzeResponse(
        target=target,
        kind=kind.value,
        dns=dns,
        ipInfo=ip_info,
        abuse=abuse,
        shodan=shodan,
    )
