"""Geolocation, abuse-reputation and open-port lookups against free public APIs."""
from __future__ import annotations

import time
from typing import Any, Dict

from netScope.config import IntelConfig
from netScope.intel import get_circuit_breaker, get_rate_limiter
from netScope.logging_config import get_logger
from netScope.lookup.classifier import TargetKind
from netScope.lookup.transport import HTTPRequest, HTTPTransport, TransportError

# Per-service loggers; "service" is stamped on every record
ipapi_logger = get_logger("intel", context={"service": "ip_api"})
abuse_logger = get_logger("intel", context={"service": "abuseipdb"})
shodan_logger = get_logger("intel", context={"service": "shodan_internetdb"})

IP_API_FIELDS = "status,message,country,regionName,city,lat,lon,isp,org,as,proxy,hosting,query"

_ipapi_breaker = get_circuit_breaker("ip_api", failure_threshold=5, recovery_time=120.0)
_abuseipdb_breaker = get_circuit_breaker("abuseipdb", failure_threshold=5, recovery_time=120.0)
_shodan_breaker = get_circuit_breaker("shodan_internetdb", failure_threshold=5, recovery_time=120.0)


def _ip_info_error(message: str) -> Dict[str, Any]:
    return {"error": "ipInfoError", "message": message}


def _abuse_skipped(message: str) -> Dict[str, Any]:
    return {"error": "abuseSkipped", "message": message}


def _abuse_error(message: str) -> Dict[str, Any]:
    return {"error": "abuseError", "message": message}


def empty_internetdb() -> Dict[str, Any]:
    return {"hostnames": [], "ports": [], "vulns": [], "tags": []}


async def lookup_ip_info(transport: HTTPTransport, target: str, config: IntelConfig) -> Dict[str, Any]:
    """
    Geolocation and ASN data from ip-api.com (free tier: 45 requests/minute).
    Works for domains too; ip-api resolves them itself.

    The quota is checked before the circuit breaker: once the breaker lets
    a call through, that call always reaches ip-api and reports back.
    """
    limiter = get_rate_limiter("ip_api", max_requests=config.ip_api_rate_limit, window_seconds=60.0)
    if limiter.tokens_available() == 0:
        ipapi_logger.debug(
            f"ip-api.com rate limited, {limiter.time_until_available():.1f}s until next slot",
            extra={"target": target, "outcome": "rate_limited"},
        )
        return _ip_info_error("rate limited")

    if _ipapi_breaker.is_open():
        ipapi_logger.debug(
            f"ip-api.com circuit open, skipping lookup for {target}",
            extra={"target": target, "circuit": "ip_api", "outcome": "circuit_open"},
        )
        return _ip_info_error("circuit open")

    limiter.try_acquire()
    request = HTTPRequest(
        url=f"{config.ip_api_url.rstrip('/')}/{target}",
        params={"fields": IP_API_FIELDS},
        timeout=config.timeout_seconds,
    )
    start_time = time.time()
    try:
        response = await transport.perform(request)
        if not response.ok:
            raise TransportError(f"IP-API failed with status {response.status}")
        data = response.json()
    except (TransportError, ValueError) as exc:
        _ipapi_breaker.record_failure()
        ipapi_logger.warning(
            f"ip-api.com lookup failed for {target}: {exc}",
            extra={"target": target, "outcome": "error", "error_type": type(exc).__name__},
        )
        return _ip_info_error(str(exc))
    except Exception as exc:
        _ipapi_breaker.record_failure()
        ipapi_logger.error(
            f"ip-api.com lookup raised for {target}: {exc}",
            exc_info=True,
            extra={"target": target, "outcome": "error", "error_type": type(exc).__name__},
        )
        return _ip_info_error(str(exc))

    _ipapi_breaker.record_success()
    ipapi_logger.info(
        f"ip-api.com lookup successful for {target}",
        extra={
            "target": target,
            "duration": round((time.time() - start_time) * 1000, 2),
            "outcome": "success",
        },
    )
    return data


async def lookup_abuse(
    transport: HTTPTransport, target: str, kind: TargetKind, config: IntelConfig
) -> Dict[str, Any]:
    """AbuseIPDB reputation report. Only IP targets are checked."""
    if kind is TargetKind.DOMAIN:
        return _abuse_skipped("Target is not an IP")
    if not config.abuseipdb_key:
        return _abuse_skipped("AbuseIPDB key not configured")
    if _abuseipdb_breaker.is_open():
        abuse_logger.debug(
            f"AbuseIPDB circuit open, skipping lookup for {target}",
            extra={"target": target, "circuit": "abuseipdb", "outcome": "circuit_open"},
        )
        return _abuse_error("circuit open")

    request = HTTPRequest(
        url=f"{config.abuseipdb_url.rstrip('/')}/check",
        params={"ipAddress": target},
        headers={"Key": config.abuseipdb_key, "Accept": "application/json"},
        timeout=config.timeout_seconds,
    )
    try:
        response = await transport.perform(request)
        if not response.ok:
            raise TransportError(f"AbuseIPDB failed: {response.status} {response.text()}")
        data = response.json()
    except (TransportError, ValueError) as exc:
        _abuseipdb_breaker.record_failure()
        abuse_logger.warning(
            f"AbuseIPDB lookup failed for {target}: {exc}",
            extra={"target": target, "outcome": "error", "error_type": type(exc).__name__},
        )
        return _abuse_error(str(exc))
    except Exception as exc:
        _abuseipdb_breaker.record_failure()
        abuse_logger.error(
            f"AbuseIPDB lookup raised for {target}: {exc}",
            exc_info=True,
            extra={"target": target, "outcome": "error", "error_type": type(exc).__name__},
        )
        return _abuse_error(str(exc))

    _abuseipdb_breaker.record_success()
    report = data.get("data") if isinstance(data, dict) else None
    return report or {}


async def lookup_internetdb(transport: HTTPTransport, target: str, config: IntelConfig) -> Dict[str, Any]:
    """Open ports, hostnames and known CVEs from Shodan InternetDB."""
    if _shodan_breaker.is_open():
        return empty_internetdb()

    request = HTTPRequest(url=f"{config.shodan_url.rstrip('/')}/{target}", timeout=config.timeout_seconds)
    try:
        response = await transport.perform(request)
    except TransportError as exc:
        _shodan_breaker.record_failure()
        shodan_logger.warning(
            f"InternetDB lookup failed for {target}: {exc}",
            extra={"target": target, "outcome": "error"},
        )
        return empty_internetdb()
    except Exception as exc:
        _shodan_breaker.record_failure()
        shodan_logger.error(
            f"InternetDB lookup raised for {target}: {exc}",
            exc_info=True,
            extra={"target": target, "outcome": "error", "error_type": type(exc).__name__},
        )
        return empty_internetdb()

    if response.status == 404:
        # No data for this host; the service itself is healthy
        _shodan_breaker.record_success()
        return empty_internetdb()
    if not response.ok:
        _shodan_breaker.record_failure()
        shodan_logger.warning(
            f"InternetDB returned status {response.status} for {target}",
            extra={"target": target, "status_code": response.status, "outcome": "http_error"},
        )
        return empty_internetdb()

    try:
        data = response.json()
    except ValueError:
        _shodan_breaker.record_failure()
        shodan_logger.warning(
            f"Malformed InternetDB body for {target}",
            extra={"target": target, "outcome": "malformed"},
        )
        return empty_internetdb()

    _shodan_breaker.record_success()
    return data if isinstance(data, dict) else empty_internetdb()
