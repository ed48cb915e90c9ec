"""Configuration loader for netScope."""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from netScope.lookup.aggregator import DEFAULT_DOH_ENDPOINT, DEFAULT_DOH_TIMEOUT_SECONDS
from netScope.lookup.models import DEFAULT_RECORD_TYPES, RecordType, parse_record_types


class DoHConfig(BaseModel):
    endpoint: str = Field(default=DEFAULT_DOH_ENDPOINT)
    timeout_seconds: float = Field(default=DEFAULT_DOH_TIMEOUT_SECONDS, gt=0)
    record_types: List[RecordType] = Field(
        default_factory=lambda: list(DEFAULT_RECORD_TYPES), min_length=1
    )

    @field_validator("record_types", mode="before")
    @classmethod
    def _normalize_types(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        return parse_record_types(v for v in value if str(v).strip())


class IntelConfig(BaseModel):
    enabled: bool = Field(default=True)
    timeout_seconds: float = Field(default=10.0, gt=0)
    ip_api_url: str = Field(default="http://ip-api.com/json")
    ip_api_rate_limit: int = Field(default=45, ge=1)
    abuseipdb_url: str = Field(default="https://api.abuseipdb.com/api/v2")
    abuseipdb_key: Optional[str] = Field(default=None)
    shodan_url: str = Field(default="https://internetdb.shodan.io")


class NetScopeConfig(BaseModel):
    doh: DoHConfig = Field(default_factory=DoHConfig)
    intel: IntelConfig = Field(default_factory=IntelConfig)

    @classmethod
    def load(cls, path: str) -> "NetScopeConfig":
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"netScope config not found: {cfg_path}")
        try:
            raw = yaml.safe_load(cfg_path.read_text()) or {}
            return cls(**raw)
        except ValidationError as exc:
            raise ValueError(f"Invalid netScope config: {exc}") from exc

    @classmethod
    def from_env(cls) -> "NetScopeConfig":
        """Load NETSCOPE_CONFIG if set, then apply environment overrides."""
        path = os.getenv("NETSCOPE_CONFIG")
        cfg = cls.load(path) if path else cls()

        endpoint = os.getenv("NETSCOPE_DOH_ENDPOINT")
        if endpoint:
            cfg.doh.endpoint = endpoint
        timeout = os.getenv("NETSCOPE_DOH_TIMEOUT")
        if timeout:
            try:
                cfg.doh.timeout_seconds = float(timeout)
            except ValueError as exc:
                raise ValueError(f"Invalid NETSCOPE_DOH_TIMEOUT: {timeout!r}") from exc
        key = os.getenv("ABUSEIPDB_KEY")
        if key:
            cfg.intel.abuseipdb_key = key
        return cfg
