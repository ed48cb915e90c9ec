"""HTTP transport abstraction used by the DoH aggregator and intel sources."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import aiohttp

from netScope.logging_config import get_logger

logger = get_logger("transport")

DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "netScope/0.1"


class TransportError(Exception):
    """Network-level failure: connection error, timeout, broken response."""


@dataclass
class HTTPRequest:
    url: str
    method: str = "GET"
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None


@dataclass
class HTTPResponse:
    status: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON. Raises ValueError if it is not valid JSON."""
        return json.loads(self.body)


class HTTPTransport(Protocol):
    async def perform(self, request: HTTPRequest) -> HTTPResponse:
        ...


class AiohttpTransport:
    """HTTPTransport backed by a lazily created, shared aiohttp session."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def _client(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": USER_AGENT},
            )
        return self.session

    async def perform(self, request: HTTPRequest) -> HTTPResponse:
        client = await self._client()
        kwargs: Dict[str, Any] = {"headers": request.headers}
        if request.params:
            kwargs["params"] = request.params
        if request.timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=request.timeout)

        try:
            async with client.request(request.method, request.url, **kwargs) as resp:
                body = await resp.read()
                return HTTPResponse(status=resp.status, body=body, headers=dict(resp.headers))
        except asyncio.TimeoutError as exc:
            raise TransportError(f"Timed out requesting {request.url}") from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"{type(exc).__name__} requesting {request.url}: {exc}") from exc

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self.session is not None and not self.session.closed:
            await self.session.close()
            logger.debug("HTTP session closed", extra={"state": "closed"})
        self.session = None
