"""Intraday market-data validation, query assembly and normalization."""

from finance_mcp.engine.market_data.errors import MarketDataError
from finance_mcp.engine.market_data.models import (
    IntradayPriceRequest,
    Metadata,
    NormalizedRecord,
    NormalizedSeries,
)
from finance_mcp.engine.market_data.overview import normalize_overview
from finance_mcp.engine.market_data.parser import IntradayParser, normalize_intraday_response
from finance_mcp.engine.market_data.queries import (
    Query,
    build_intraday_queries,
    build_overview_queries,
)
from finance_mcp.engine.market_data.validation import (
    validate_intraday_request,
    validate_symbol,
)

__all__ = [
    "IntradayParser",
    "IntradayPriceRequest",
    "MarketDataError",
    "Metadata",
    "NormalizedRecord",
    "NormalizedSeries",
    "Query",
    "build_intraday_queries",
    "build_overview_queries",
    "normalize_intraday_response",
    "normalize_overview",
    "validate_intraday_request",
    "validate_symbol",
]
