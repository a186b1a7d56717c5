"""Market-data MCP tools backed by the Alpha Vantage query endpoint."""

from __future__ import annotations

import asyncio
from functools import lru_cache
from typing import Any

from mcp.server.fastmcp import FastMCP

from finance_mcp.config import settings
from finance_mcp.engine.market_data.errors import MarketDataError
from finance_mcp.engine.market_data.models import IntradayPriceRequest
from finance_mcp.engine.market_data.overview import normalize_overview
from finance_mcp.engine.market_data.parser import IntradayParser
from finance_mcp.engine.market_data.queries import build_intraday_queries, build_overview_queries
from finance_mcp.engine.market_data.validation import validate_intraday_request, validate_symbol
from finance_mcp.mcp._utils import build_payload
from finance_mcp.observability.sentry_setup import capture_exception_with_context
from finance_mcp.providers.alpha_vantage_client import AlphaVantageClient

CATEGORY = "market_data"

MARKET_TOOL_NAMES: tuple[str, ...] = ("get_intraday_price_stock",)
FUNDAMENTALS_TOOL_NAMES: tuple[str, ...] = ("get_overview_stock",)
TOOL_NAMES: tuple[str, ...] = MARKET_TOOL_NAMES + FUNDAMENTALS_TOOL_NAMES


@lru_cache(maxsize=1)
def _get_alpha_vantage_client() -> AlphaVantageClient:
    return AlphaVantageClient()


@lru_cache(maxsize=1)
def _get_intraday_parser() -> IntradayParser:
    return IntradayParser(
        parallel_threshold=settings.decode_parallel_threshold,
        max_workers=settings.decode_max_workers,
    )


def _build_success_payload(tool: str, data: dict[str, Any]) -> str:
    return build_payload(category=CATEGORY, tool=tool, ok=True, data=data)


def _build_error_payload(
    *,
    tool: str,
    error_code: str,
    error_message: str,
    context: dict[str, Any] | None = None,
) -> str:
    return build_payload(
        category=CATEGORY,
        tool=tool,
        ok=False,
        error_code=error_code,
        error_message=error_message,
        context=context,
    )


def _market_data_error_payload(
    *,
    tool: str,
    exc: MarketDataError,
    context: dict[str, Any],
) -> str:
    merged = dict(context)
    merged.update(exc.context)
    if exc.retryable:
        merged["retryable"] = True
    return _build_error_payload(
        tool=tool,
        error_code=exc.code,
        error_message=exc.message,
        context=merged,
    )


async def get_intraday_price_stock(
    symbol: str,
    interval: str,
    adjusted: bool | None = None,
    extended_hours: bool | None = None,
    month: str | None = None,
    output_size: str | None = None,
) -> str:
    """
    Get intraday OHLCV bars for one equity symbol, oldest first.

    `interval`: 1min, 5min, 15min, 30min or 60min.
    `month`: optional YYYY-MM for a historical month.
    `output_size`: compact (latest 100 bars) or full.
    """
    tool = "get_intraday_price_stock"
    context: dict[str, Any] = {"symbol": symbol, "interval": interval}
    request = IntradayPriceRequest(
        symbol=symbol,
        interval=interval,
        adjusted=adjusted,
        extended_hours=extended_hours,
        month=month,
        output_size=output_size,
    )
    try:
        validate_intraday_request(request)
        symbol_key = symbol.strip().upper()
        context["symbol"] = symbol_key

        body = await _get_alpha_vantage_client().fetch(
            symbol_key,
            build_intraday_queries(request),
        )
        series = await asyncio.to_thread(
            _get_intraday_parser().normalize,
            body,
            symbol=symbol_key,
        )
    except MarketDataError as exc:
        return _market_data_error_payload(tool=tool, exc=exc, context=context)
    except Exception as exc:  # noqa: BLE001
        capture_exception_with_context(
            exc,
            tags={"mcp_tool": tool},
            extras=context,
        )
        return _build_error_payload(
            tool=tool,
            error_code="INTRADAY_FETCH_ERROR",
            error_message=f"{type(exc).__name__}: {exc}",
            context=context,
        )

    wire = series.to_wire()
    return _build_success_payload(
        tool=tool,
        data={
            "symbol": symbol_key,
            "interval": interval,
            "rows": len(series.time_series),
            "meta_data": wire["meta_data"],
            "time_series": wire["time_series"],
        },
    )


async def get_overview_stock(symbol: str) -> str:
    """
    Get the company overview for one equity symbol.

    Returns identity, sector, valuation and dividend fields as text.
    """
    tool = "get_overview_stock"
    context: dict[str, Any] = {"symbol": symbol}
    try:
        validate_symbol(symbol)
        symbol_key = symbol.strip().upper()
        context["symbol"] = symbol_key

        body = await _get_alpha_vantage_client().fetch(symbol_key, build_overview_queries())
        overview = normalize_overview(body, symbol=symbol_key)
    except MarketDataError as exc:
        return _market_data_error_payload(tool=tool, exc=exc, context=context)
    except Exception as exc:  # noqa: BLE001
        capture_exception_with_context(
            exc,
            tags={"mcp_tool": tool},
            extras=context,
        )
        return _build_error_payload(
            tool=tool,
            error_code="OVERVIEW_FETCH_ERROR",
            error_message=f"{type(exc).__name__}: {exc}",
            context=context,
        )

    return _build_success_payload(
        tool=tool,
        data={"symbol": symbol_key, "overview": overview},
    )


def register_market_data_tools(mcp: FastMCP) -> None:
    """Register intraday price tools."""
    mcp.tool()(get_intraday_price_stock)


def register_fundamentals_tools(mcp: FastMCP) -> None:
    """Register company fundamentals tools."""
    mcp.tool()(get_overview_stock)
