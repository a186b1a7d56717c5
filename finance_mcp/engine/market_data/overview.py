"""Company overview normalization."""

from __future__ import annotations

from finance_mcp.engine.market_data.errors import NoDataForSymbol
from finance_mcp.engine.market_data.parser import classify_upstream_envelope, decode_envelope

OVERVIEW_FIELDS: tuple[str, ...] = (
    "Symbol",
    "AssetType",
    "Name",
    "Description",
    "CIK",
    "Exchange",
    "Currency",
    "Country",
    "Sector",
    "Industry",
    "Address",
    "FiscalYearEnd",
    "LatestQuarter",
    "MarketCapitalization",
    "EBITDA",
    "PERatio",
    "PEGRatio",
    "BookValue",
    "DividendPerShare",
    "DividendYield",
    "EPS",
    "RevenuePerShareTTM",
    "ProfitMargin",
    "OperatingMarginTTM",
    "ReturnOnAssetsTTM",
    "ReturnOnEquityTTM",
    "RevenueTTM",
    "GrossProfitTTM",
    "DilutedEPSTTM",
    "QuarterlyEarningsGrowthYOY",
    "QuarterlyRevenueGrowthYOY",
    "AnalystTargetPrice",
    "ForwardPE",
    "PriceToSalesRatioTTM",
    "PriceToBookRatio",
    "EVToRevenue",
    "EVToEBITDA",
    "Beta",
    "52WeekHigh",
    "52WeekLow",
    "50DayMovingAverage",
    "200DayMovingAverage",
    "SharesOutstanding",
    "DividendDate",
    "ExDividendDate",
)


def normalize_overview(body: bytes | str, *, symbol: str) -> dict[str, str]:
    """Keep the known string fields of an overview document, in canonical order.

    Unknown symbols come back as ``{}``, which is reported as no data.
    """
    envelope = decode_envelope(body)
    classify_upstream_envelope(envelope)

    overview = {
        name: envelope[name]
        for name in OVERVIEW_FIELDS
        if isinstance(envelope.get(name), str)
    }
    if not overview:
        raise NoDataForSymbol(
            f"no data returned for symbol '{symbol}' - "
            "symbol may not exist or API limit reached",
            symbol=symbol,
        )
    return overview
