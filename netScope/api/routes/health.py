"""Health and dependency status endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from netScope.api.models import ok
from netScope.api.utils.deps import config_dep
from netScope.config import NetScopeConfig
from netScope.intel import circuit_stats
from netScope.logging_config import get_logger

logger = get_logger("api")
router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(request: Request, cfg: NetScopeConfig = Depends(config_dep)):
    """
    Report service configuration and the state of external API circuits.

    Status is "degraded" while any intel circuit is open or half-open.
    """
    circuits = circuit_stats()
    overall_status = "healthy"
    if any(c["state"] != "closed" for c in circuits):
        overall_status = "degraded"

    logger.debug(
        "Health check performed",
        extra={"state": overall_status, "outcome": "success"},
    )

    return ok(
        {
            "status": overall_status,
            "api_base": str(request.base_url).rstrip("/"),
            "doh_endpoint": cfg.doh.endpoint,
            "record_types": [t.value for t in cfg.doh.record_types],
            "intel_enabled": cfg.intel.enabled,
            "circuits": circuits,
        }
    )
