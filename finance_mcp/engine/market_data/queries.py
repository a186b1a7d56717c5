"""Outbound query parameter assembly for upstream functions."""

from __future__ import annotations

from dataclasses import dataclass

from finance_mcp.engine.market_data.models import IntradayPriceRequest

INTRADAY_FUNCTION = "TIME_SERIES_INTRADAY"
OVERVIEW_FUNCTION = "OVERVIEW"


@dataclass(frozen=True, slots=True)
class Query:
    name: str
    value: str


def _format_flag(value: bool) -> str:
    return "true" if value else "false"


def build_intraday_queries(request: IntradayPriceRequest) -> list[Query]:
    """Return mandatory params first, then every optional field that is set.

    No validation happens here; see ``validation.validate_intraday_request``.
    """
    queries = [
        Query("function", INTRADAY_FUNCTION),
        Query("interval", request.interval),
    ]
    if request.adjusted is not None:
        queries.append(Query("adjusted", _format_flag(request.adjusted)))
    if request.extended_hours is not None:
        queries.append(Query("extended_hours", _format_flag(request.extended_hours)))
    if request.month is not None:
        queries.append(Query("month", request.month))
    if request.output_size is not None:
        queries.append(Query("outputsize", request.output_size))
    return queries


def build_overview_queries() -> list[Query]:
    return [Query("function", OVERVIEW_FUNCTION)]
