"""API-scoped shared resources and FastAPI dependencies.

One HTTP transport is shared by every request and closed at shutdown. The
DNS aggregator is request-scoped and built around that transport.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Depends

from netScope.config import NetScopeConfig
from netScope.logging_config import get_logger
from netScope.lookup.aggregator import DNSAggregator
from netScope.lookup.transport import AiohttpTransport, HTTPTransport

logger = get_logger("api")

_config: Optional[NetScopeConfig] = None
_transport: Optional[AiohttpTransport] = None


def get_config() -> NetScopeConfig:
    global _config
    if _config is None:
        _config = NetScopeConfig.from_env()
        logger.info(
            "Configuration loaded",
            extra={
                "record_types": [t.value for t in _config.doh.record_types],
                "state": "configured",
            },
        )
    return _config


async def init_resources() -> None:
    """Load configuration and create the shared HTTP transport."""
    global _transport
    cfg = get_config()
    if _transport is None:
        _transport = AiohttpTransport(timeout=max(cfg.doh.timeout_seconds, cfg.intel.timeout_seconds))


async def close_resources() -> None:
    global _transport
    if _transport is not None:
        await _transport.close()
        _transport = None


def config_dep() -> NetScopeConfig:
    return get_config()


async def transport_dep() -> HTTPTransport:
    if _transport is None:
        await init_resources()
    return _transport


def aggregator_dep(
    transport: HTTPTransport = Depends(transport_dep),
    cfg: NetScopeConfig = Depends(config_dep),
) -> DNSAggregator:
    return DNSAggregator(transport, endpoint=cfg.doh.endpoint, timeout=cfg.doh.timeout_seconds)
