"""Shared response helpers and models for the API layer."""
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from netScope.lookup.models import DNSAnswer


class APIStatus(BaseModel):
    status: str = Field(default="ok")


class ErrorResponse(APIStatus):
    detail: str
    status: str = Field(default="error")


class AnalyzeResponse(BaseModel):
    target: str
    kind: str
    dns: Dict[str, List[DNSAnswer]]
    ipInfo: Any = None
    abuse: Any = None
    shodan: Any = None


def ok(data: object) -> dict:
    return {"status": "ok", "data": data}


def err(detail: str) -> dict:
    return {"status": "error", "detail": detail}
