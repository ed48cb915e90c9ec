"""Command-line entrypoint: one-off DNS lookups and the API server."""
from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import List, Optional

import dns.rdatatype
from rich.console import Console
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from netScope.config import NetScopeConfig
from netScope.logging_config import get_logger
from netScope.lookup.aggregator import DNSAggregator
from netScope.lookup.classifier import classify_target
from netScope.lookup.models import LookupResult, RecordType, parse_record_types
from netScope.lookup.transport import AiohttpTransport

install_rich_traceback()
console = Console()
logger = get_logger("cli")


def _type_name(code: int) -> str:
    try:
        return dns.rdatatype.to_text(code)
    except ValueError:
        return str(code)


def render_table(target: str, result: LookupResult) -> Table:
    table = Table(title=f"DNS records for {target} ({classify_target(target).value})")
    table.add_column("Requested")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("TTL", justify="right")
    table.add_column("Data", overflow="fold")

    for requested, answers in result.items():
        if not answers:
            table.add_row(requested, "[dim]-", "", "", "[dim]no records")
            continue
        for answer in answers:
            table.add_row(requested, answer.name, _type_name(answer.type), str(answer.TTL), answer.data)
    return table


async def run_lookup(target: str, record_types: List[RecordType], cfg: NetScopeConfig) -> LookupResult:
    transport = AiohttpTransport(timeout=cfg.doh.timeout_seconds)
    try:
        aggregator = DNSAggregator(transport, endpoint=cfg.doh.endpoint, timeout=cfg.doh.timeout_seconds)
        return await aggregator.lookup(target, record_types)
    finally:
        await transport.close()


def _load_config(path: Optional[str]) -> NetScopeConfig:
    return NetScopeConfig.load(path) if path else NetScopeConfig.from_env()


def cmd_lookup(args: argparse.Namespace) -> int:
    cfg = _load_config(args.config)
    try:
        record_types = parse_record_types(args.types.split(",")) if args.types else cfg.doh.record_types
    except ValueError as exc:
        console.print(f"[red]{exc}")
        return 2

    result = asyncio.run(run_lookup(args.target, record_types, cfg))
    if args.json:
        payload = {k: [a.model_dump() for a in v] for k, v in result.items()}
        console.print_json(json.dumps(payload))
    else:
        console.print(render_table(args.target, result))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    if args.config:
        os.environ["NETSCOPE_CONFIG"] = args.config
    console.print(f"[green]Starting netScope API on {args.host}:{args.port}", highlight=False)
    uvicorn.run("netScope.api.server:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="netscope", description="netScope network intelligence lookups")
    parser.add_argument(
        "--config",
        default=os.getenv("NETSCOPE_CONFIG"),
        help="Path to netScope YAML config",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    lookup = sub.add_parser("lookup", help="Aggregate DNS records for an IP or domain")
    lookup.add_argument("target", help="IP address or domain name")
    lookup.add_argument("--types", help="Comma-separated record types (default: from config)")
    lookup.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    lookup.set_defaults(func=cmd_lookup)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=os.getenv("NETSCOPE_API_HOST", "0.0.0.0"))
    serve.add_argument("--port", type=int, default=int(os.getenv("NETSCOPE_API_PORT", "8000")))
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
