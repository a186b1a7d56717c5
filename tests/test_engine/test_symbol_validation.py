from __future__ import annotations

import pytest

from finance_mcp.engine.market_data.errors import InvalidParameter, InvalidSymbol
from finance_mcp.engine.market_data.models import IntradayPriceRequest
from finance_mcp.engine.market_data.validation import (
    validate_interval,
    validate_intraday_request,
    validate_month,
    validate_output_size,
    validate_symbol,
)


@pytest.mark.parametrize("symbol", ["AAPL", "  aapl  ", "BRK.B", "IBM", "A", "ABCDEFGHIJ"])
def test_validate_symbol_accepts_ticker_like_values(symbol: str) -> None:
    validate_symbol(symbol)


@pytest.mark.parametrize("symbol", ["", "   ", "\t\n"])
def test_validate_symbol_reports_empty_for_blank_input(symbol: str) -> None:
    with pytest.raises(InvalidSymbol) as exc_info:
        validate_symbol(symbol)

    assert "empty" in str(exc_info.value)
    assert exc_info.value.code == "INVALID_SYMBOL"


def test_validate_symbol_rejects_long_symbol() -> None:
    with pytest.raises(InvalidSymbol) as exc_info:
        validate_symbol("VERYLONGSYMBOL")

    assert "too long" in str(exc_info.value)
    assert exc_info.value.symbol == "VERYLONGSYMBOL"


def test_validate_symbol_length_is_measured_after_trim() -> None:
    validate_symbol("   ABCDEFGHIJ   ")
    with pytest.raises(InvalidSymbol):
        validate_symbol("ABCDEFGHIJK")


@pytest.mark.parametrize("symbol", ["AA PL", "AAPL!", "BRK-B", "ÄPPL", "$SPY"])
def test_validate_symbol_rejects_invalid_characters(symbol: str) -> None:
    with pytest.raises(InvalidSymbol) as exc_info:
        validate_symbol(symbol)

    assert "invalid characters" in str(exc_info.value)


def test_invalid_symbol_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        validate_symbol("")


def test_validate_interval_lists_supported_values() -> None:
    for interval in ("1min", "5min", "15min", "30min", "60min"):
        validate_interval(interval)

    with pytest.raises(InvalidParameter) as exc_info:
        validate_interval("2min")

    assert exc_info.value.parameter == "interval"
    assert "1min, 5min, 15min, 30min, 60min" in str(exc_info.value)


def test_validate_output_size() -> None:
    validate_output_size(None)
    validate_output_size("compact")
    validate_output_size("full")

    with pytest.raises(InvalidParameter) as exc_info:
        validate_output_size("medium")
    assert exc_info.value.parameter == "output_size"


def test_validate_month_checks_shape_only() -> None:
    validate_month(None)
    validate_month("2024-01")
    # Calendar validity is intentionally not enforced.
    validate_month("2024-13")
    validate_month("abcd-ef")

    for bad in ("2024-1", "2024/01", "202401", "2024-011"):
        with pytest.raises(InvalidParameter) as exc_info:
            validate_month(bad)
        assert exc_info.value.parameter == "month"
        assert "YYYY-MM" in str(exc_info.value)


def test_validate_intraday_request_reports_symbol_before_interval() -> None:
    request = IntradayPriceRequest(symbol="", interval="bogus")

    with pytest.raises(InvalidSymbol):
        validate_intraday_request(request)


def test_validate_intraday_request_accepts_full_request() -> None:
    validate_intraday_request(
        IntradayPriceRequest(
            symbol=" ibm ",
            interval="5min",
            adjusted=True,
            extended_hours=False,
            month="2009-01",
            output_size="full",
        )
    )
