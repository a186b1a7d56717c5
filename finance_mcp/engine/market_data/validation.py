"""Input validation for symbols and intraday request parameters."""

from __future__ import annotations

import re

from finance_mcp.engine.market_data.errors import InvalidParameter, InvalidSymbol
from finance_mcp.engine.market_data.models import IntradayPriceRequest

MAX_SYMBOL_LENGTH = 10
VALID_INTERVALS: tuple[str, ...] = ("1min", "5min", "15min", "30min", "60min")
VALID_OUTPUT_SIZES: tuple[str, ...] = ("compact", "full")

_SYMBOL_CHARS_RE = re.compile(r"[A-Za-z0-9.]+")


def validate_symbol(symbol: str) -> None:
    """Validate a ticker-like symbol.

    Leading/trailing whitespace is ignored. The trimmed symbol must be
    non-empty, at most ten characters, and made of ASCII letters, digits and
    dots. Case is not checked; callers uppercase before use.
    """
    trimmed = symbol.strip()
    if not trimmed:
        raise InvalidSymbol("symbol cannot be empty", symbol=symbol)

    if len(trimmed) > MAX_SYMBOL_LENGTH:
        raise InvalidSymbol(
            f"symbol '{trimmed}' appears to be invalid (too long)",
            symbol=trimmed,
        )

    if _SYMBOL_CHARS_RE.fullmatch(trimmed) is None:
        raise InvalidSymbol(
            f"symbol '{trimmed}' contains invalid characters",
            symbol=trimmed,
        )


def validate_interval(interval: str) -> None:
    if interval not in VALID_INTERVALS:
        raise InvalidParameter(
            f"invalid interval '{interval}'. Valid intervals are: "
            f"{', '.join(VALID_INTERVALS)}",
            parameter="interval",
            value=interval,
        )


def validate_output_size(output_size: str | None) -> None:
    if output_size is None:
        return
    if output_size not in VALID_OUTPUT_SIZES:
        raise InvalidParameter(
            f"invalid output size '{output_size}'. Valid sizes are: "
            f"{', '.join(VALID_OUTPUT_SIZES)}",
            parameter="output_size",
            value=output_size,
        )


def validate_month(month: str | None) -> None:
    """Shape-only check for ``YYYY-MM``; calendar validity is not enforced."""
    if month is None:
        return
    if len(month) != 7 or month[4] != "-":
        raise InvalidParameter(
            f"invalid month format '{month}'. Expected format: YYYY-MM",
            parameter="month",
            value=month,
        )


def validate_intraday_request(request: IntradayPriceRequest) -> None:
    """Run every request-path check; the first failure wins."""
    validate_symbol(request.symbol)
    validate_interval(request.interval)
    validate_output_size(request.output_size)
    validate_month(request.month)
