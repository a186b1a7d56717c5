"""Domain-aware MCP server entrypoint."""

from __future__ import annotations

import argparse
import time
from collections.abc import Callable
from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings
from starlette.requests import Request
from starlette.responses import JSONResponse

from finance_mcp.config import settings
from finance_mcp.mcp._utils import utc_now_iso
from finance_mcp.mcp.market_data import (
    FUNDAMENTALS_TOOL_NAMES,
    MARKET_TOOL_NAMES,
    register_fundamentals_tools,
    register_market_data_tools,
)
from finance_mcp.observability.sentry_setup import init_backend_sentry
from finance_mcp.util.logger import configure_logging, log_error, log_success, logger

SERVICE_NAME = "finance-mcp-server"


def _register_all_tools(mcp: FastMCP) -> None:
    register_market_data_tools(mcp)
    register_fundamentals_tools(mcp)


@dataclass(frozen=True, slots=True)
class McpDomainSpec:
    domain: str
    display_name: str
    instructions: str
    register_tools: Callable[[FastMCP], None]
    tool_names: tuple[str, ...]


_DOMAIN_SPECS: dict[str, McpDomainSpec] = {
    "market": McpDomainSpec(
        domain="market",
        display_name="Finance Market Data MCP Server",
        instructions="MCP server for intraday equity price series.",
        register_tools=register_market_data_tools,
        tool_names=MARKET_TOOL_NAMES,
    ),
    "fundamentals": McpDomainSpec(
        domain="fundamentals",
        display_name="Finance Fundamentals MCP Server",
        instructions="MCP server for company overview and fundamentals lookups.",
        register_tools=register_fundamentals_tools,
        tool_names=FUNDAMENTALS_TOOL_NAMES,
    ),
    "all": McpDomainSpec(
        domain="all",
        display_name=settings.mcp_server_name,
        instructions=(
            "MCP server for equity market data: intraday OHLCV series "
            "and company overviews."
        ),
        register_tools=_register_all_tools,
        tool_names=MARKET_TOOL_NAMES + FUNDAMENTALS_TOOL_NAMES,
    ),
}

_DOMAIN_ALIASES: dict[str, str] = {
    "market_data": "market",
    "market-data": "market",
}

SUPPORTED_DOMAINS: tuple[str, ...] = (
    "all",
    "market",
    "market_data",
    "market-data",
    "fundamentals",
)


def _resolve_domain(value: str) -> str:
    normalized = value.strip().lower()
    aliased = _DOMAIN_ALIASES.get(normalized, normalized)
    if aliased not in _DOMAIN_SPECS:
        raise ValueError(
            f"Unsupported MCP domain '{value}'. "
            f"Use one of: {', '.join(SUPPORTED_DOMAINS)}."
        )
    return aliased


def registered_tool_names(*, domain: str) -> tuple[str, ...]:
    """Return registered tool names for one MCP domain."""
    resolved_domain = _resolve_domain(domain)
    return _DOMAIN_SPECS[resolved_domain].tool_names


def _register_health_routes(mcp: FastMCP, *, domain: str) -> None:
    started_at = time.monotonic()

    @mcp.custom_route("/health", methods=["GET"])
    async def health(request: Request) -> JSONResponse:
        del request
        return JSONResponse(
            {
                "status": "ok",
                "service": SERVICE_NAME,
                "version": settings.mcp_server_version,
                "timestamp": utc_now_iso(),
                "uptime": f"{time.monotonic() - started_at:.1f}s",
            }
        )

    @mcp.custom_route("/health/live", methods=["GET"])
    async def health_live(request: Request) -> JSONResponse:
        del request
        return JSONResponse({"status": "alive", "timestamp": utc_now_iso()})

    @mcp.custom_route("/health/ready", methods=["GET"])
    async def health_ready(request: Request) -> JSONResponse:
        del request
        api_ok = settings.has_upstream_credentials
        return JSONResponse(
            {
                "status": "ready" if api_ok else "not_ready",
                "timestamp": utc_now_iso(),
                "checks": {"api": "ok" if api_ok else "missing_credentials"},
            },
            status_code=200 if api_ok else 503,
        )

    @mcp.custom_route("/info", methods=["GET"])
    async def info(request: Request) -> JSONResponse:
        del request
        return JSONResponse(
            {
                "service": SERVICE_NAME,
                "title": settings.mcp_server_title,
                "name": settings.mcp_server_name,
                "version": settings.mcp_server_version,
                "domain": domain,
                "tools": list(registered_tool_names(domain=domain)),
            }
        )


def create_mcp_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8080,
    mount_path: str = "/",
    stateless_http: bool = True,
    domain: str = "all",
) -> FastMCP:
    """Create one MCP server for a specific domain."""
    resolved_domain = _resolve_domain(domain)
    domain_spec = _DOMAIN_SPECS[resolved_domain]

    mcp = FastMCP(
        name=domain_spec.display_name,
        instructions=domain_spec.instructions,
        host=host,
        port=port,
        mount_path=mount_path,
        streamable_http_path="/mcp",
        stateless_http=stateless_http,
        # Tunneled hostnames are accepted for remote probes.
        transport_security=TransportSecuritySettings(
            enable_dns_rebinding_protection=False
        ),
    )
    domain_spec.register_tools(mcp)
    _register_health_routes(mcp, domain=resolved_domain)
    return mcp


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the finance market-data MCP server.")
    parser.add_argument(
        "--domain",
        choices=SUPPORTED_DOMAINS,
        default="all",
        help="Server domain to run: all, market/market_data, or fundamentals.",
    )
    parser.add_argument(
        "--transport",
        choices=("streamable-http", "sse", "stdio"),
        default="streamable-http",
        help="MCP transport mode.",
    )
    parser.add_argument("--host", default=settings.mcp_host, help="Host for HTTP/SSE modes.")
    parser.add_argument(
        "--port",
        type=int,
        default=settings.mcp_port,
        help="Port for HTTP/SSE modes.",
    )
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for HTTP/SSE modes (default '/').",
    )
    parser.add_argument(
        "--stateful-http",
        action="store_true",
        help="Use stateful streamable HTTP mode (default is stateless).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(level=settings.log_level)
    if not settings.has_upstream_credentials:
        log_error("API_URL and API_KEY must be set before starting the server")
        return 1

    init_backend_sentry(source="mcp")
    resolved_domain = _resolve_domain(args.domain)
    mcp = create_mcp_server(
        host=args.host,
        port=args.port,
        mount_path=args.mount_path,
        stateless_http=not bool(args.stateful_http),
        domain=resolved_domain,
    )
    logger.info(
        "mcp server starting domain=%s transport=%s host=%s port=%s mount_path=%s",
        resolved_domain,
        args.transport,
        args.host,
        args.port,
        args.mount_path,
    )
    log_success(
        f"mcp server registered tools: {', '.join(registered_tool_names(domain=resolved_domain))}"
    )
    mcp.run(transport=args.transport)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
