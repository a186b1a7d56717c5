from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import pytest
from mcp.server.fastmcp import FastMCP

from finance_mcp.engine.market_data.errors import UpstreamTransportError
from finance_mcp.engine.market_data.parser import IntradayParser
from finance_mcp.engine.market_data.queries import Query
from finance_mcp.mcp.market_data import tools as market_tools


def _extract_payload(call_result: object) -> dict[str, Any]:
    if isinstance(call_result, tuple) and len(call_result) == 2:
        maybe_result = call_result[1]
        if isinstance(maybe_result, dict):
            raw = maybe_result.get("result")
            if isinstance(raw, str):
                return json.loads(raw)
    if isinstance(call_result, list) and call_result:
        text = getattr(call_result[0], "text", None)
        if isinstance(text, str):
            return json.loads(text)
    raise AssertionError(f"Unexpected call result: {call_result!r}")


class _FakeClient:
    def __init__(self, body: bytes | Exception) -> None:
        self._body = body
        self.calls: list[tuple[str, list[Query]]] = []

    async def fetch(self, symbol: str, queries: Sequence[Query]) -> bytes:
        self.calls.append((symbol, list(queries)))
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


def _bar(open_: str, close: str, volume: str) -> dict[str, str]:
    return {
        "1. open": open_,
        "2. high": open_,
        "3. low": close,
        "4. close": close,
        "5. volume": volume,
    }


def _intraday_body(symbol: str = "IBM", interval: str = "5min") -> bytes:
    envelope = {
        "Meta Data": {
            "1. Information": "Intraday (5min) open, high, low, close prices and volume",
            "2. Symbol": symbol,
            "3. Last Refreshed": "2024-01-15 19:55:00",
            "4. Interval": interval,
            "5. Output Size": "Compact",
            "6. Time Zone": "US/Eastern",
        },
        f"Time Series ({interval})": {
            "2024-01-15 19:55:00": _bar("167.50", "167.60", "1200"),
            "2024-01-15 19:50:00": _bar("167.40", "167.45", "900"),
        },
    }
    return json.dumps(envelope).encode("utf-8")


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> _FakeClient:
    client = _FakeClient(_intraday_body())
    monkeypatch.setattr(market_tools, "_get_alpha_vantage_client", lambda: client)
    monkeypatch.setattr(market_tools, "_get_intraday_parser", lambda: IntradayParser())
    return client


@pytest.fixture
def mcp_server() -> FastMCP:
    mcp = FastMCP("test-market-data")
    market_tools.register_market_data_tools(mcp)
    market_tools.register_fundamentals_tools(mcp)
    return mcp


@pytest.mark.asyncio
async def test_intraday_tool_returns_sorted_series(
    fake_client: _FakeClient,
    mcp_server: FastMCP,
) -> None:
    result = await mcp_server.call_tool(
        "get_intraday_price_stock",
        {"symbol": " ibm ", "interval": "5min", "extended_hours": False},
    )
    payload = _extract_payload(result)

    assert payload["category"] == "market_data"
    assert payload["tool"] == "get_intraday_price_stock"
    assert payload["ok"] is True
    assert payload["symbol"] == "IBM"
    assert payload["interval"] == "5min"
    assert payload["rows"] == 2
    assert payload["meta_data"]["2. Symbol"] == "IBM"
    assert [row["timestamp"] for row in payload["time_series"]] == [
        "2024-01-15T19:50:00",
        "2024-01-15T19:55:00",
    ]
    assert payload["time_series"][1]["volume"] == 1200

    symbol, queries = fake_client.calls[0]
    assert symbol == "IBM"
    assert [(q.name, q.value) for q in queries] == [
        ("function", "TIME_SERIES_INTRADAY"),
        ("interval", "5min"),
        ("extended_hours", "false"),
    ]


@pytest.mark.asyncio
async def test_intraday_tool_rejects_bad_input_before_fetch(
    fake_client: _FakeClient,
    mcp_server: FastMCP,
) -> None:
    payload = _extract_payload(
        await mcp_server.call_tool(
            "get_intraday_price_stock",
            {"symbol": "AAPL", "interval": "2min"},
        )
    )

    assert payload["ok"] is False
    assert payload["error"]["code"] == "INVALID_PARAMETER"
    assert payload["context"]["parameter"] == "interval"
    assert fake_client.calls == []


@pytest.mark.asyncio
async def test_intraday_tool_reports_long_symbol(
    fake_client: _FakeClient,
    mcp_server: FastMCP,
) -> None:
    payload = _extract_payload(
        await mcp_server.call_tool(
            "get_intraday_price_stock",
            {"symbol": "VERYLONGSYMBOL", "interval": "1min"},
        )
    )

    assert payload["error"]["code"] == "INVALID_SYMBOL"
    assert "too long" in payload["error"]["message"]


@pytest.mark.asyncio
async def test_intraday_tool_surfaces_rate_limit_as_retryable(
    monkeypatch: pytest.MonkeyPatch,
    mcp_server: FastMCP,
) -> None:
    client = _FakeClient(json.dumps({"Note": "5 calls per minute"}).encode("utf-8"))
    monkeypatch.setattr(market_tools, "_get_alpha_vantage_client", lambda: client)

    payload = _extract_payload(
        await mcp_server.call_tool(
            "get_intraday_price_stock",
            {"symbol": "IBM", "interval": "5min"},
        )
    )

    assert payload["ok"] is False
    assert payload["error"]["code"] == "UPSTREAM_RATE_LIMIT"
    assert payload["context"]["retryable"] is True
    assert payload["context"]["upstream_message"] == "5 calls per minute"


@pytest.mark.asyncio
async def test_intraday_tool_reports_bad_price_with_timestamp(
    monkeypatch: pytest.MonkeyPatch,
    mcp_server: FastMCP,
) -> None:
    envelope = json.loads(_intraday_body())
    envelope["Time Series (5min)"]["2024-01-15 19:50:00"]["1. open"] = "not-a-number"
    client = _FakeClient(json.dumps(envelope).encode("utf-8"))
    monkeypatch.setattr(market_tools, "_get_alpha_vantage_client", lambda: client)

    payload = _extract_payload(
        await mcp_server.call_tool(
            "get_intraday_price_stock",
            {"symbol": "IBM", "interval": "5min"},
        )
    )

    assert payload["error"]["code"] == "INVALID_PRICE"
    assert payload["context"]["timestamp"] == "2024-01-15 19:50:00"
    assert payload["context"]["field"] == "open"


@pytest.mark.asyncio
async def test_intraday_tool_maps_transport_failures(
    monkeypatch: pytest.MonkeyPatch,
    mcp_server: FastMCP,
) -> None:
    client = _FakeClient(UpstreamTransportError("error executing request: ConnectError"))
    monkeypatch.setattr(market_tools, "_get_alpha_vantage_client", lambda: client)

    payload = _extract_payload(
        await mcp_server.call_tool(
            "get_intraday_price_stock",
            {"symbol": "IBM", "interval": "5min"},
        )
    )

    assert payload["error"]["code"] == "UPSTREAM_FETCH_ERROR"
    assert payload["context"]["retryable"] is True


@pytest.mark.asyncio
async def test_intraday_tool_wraps_unexpected_errors(
    monkeypatch: pytest.MonkeyPatch,
    mcp_server: FastMCP,
) -> None:
    captured: list[BaseException] = []
    client = _FakeClient(RuntimeError("boom"))
    monkeypatch.setattr(market_tools, "_get_alpha_vantage_client", lambda: client)
    monkeypatch.setattr(
        market_tools,
        "capture_exception_with_context",
        lambda exc, **_: captured.append(exc),
    )

    payload = _extract_payload(
        await mcp_server.call_tool(
            "get_intraday_price_stock",
            {"symbol": "IBM", "interval": "5min"},
        )
    )

    assert payload["error"]["code"] == "INTRADAY_FETCH_ERROR"
    assert payload["error"]["message"] == "RuntimeError: boom"
    assert len(captured) == 1


@pytest.mark.asyncio
async def test_overview_tool_returns_known_fields(
    monkeypatch: pytest.MonkeyPatch,
    mcp_server: FastMCP,
) -> None:
    client = _FakeClient(
        json.dumps(
            {
                "Symbol": "IBM",
                "Name": "International Business Machines",
                "Exchange": "NYSE",
                "Unlisted": "dropped",
            }
        ).encode("utf-8")
    )
    monkeypatch.setattr(market_tools, "_get_alpha_vantage_client", lambda: client)

    payload = _extract_payload(await mcp_server.call_tool("get_overview_stock", {"symbol": "ibm"}))

    assert payload["ok"] is True
    assert payload["symbol"] == "IBM"
    assert payload["overview"] == {
        "Symbol": "IBM",
        "Name": "International Business Machines",
        "Exchange": "NYSE",
    }
    symbol, queries = client.calls[0]
    assert symbol == "IBM"
    assert queries == [Query("function", "OVERVIEW")]


@pytest.mark.asyncio
async def test_overview_tool_reports_unknown_symbol(
    monkeypatch: pytest.MonkeyPatch,
    mcp_server: FastMCP,
) -> None:
    client = _FakeClient(b"{}")
    monkeypatch.setattr(market_tools, "_get_alpha_vantage_client", lambda: client)

    payload = _extract_payload(await mcp_server.call_tool("get_overview_stock", {"symbol": "ZZZZ"}))

    assert payload["ok"] is False
    assert payload["error"]["code"] == "NO_DATA_FOR_SYMBOL"
    assert payload["context"]["symbol"] == "ZZZZ"


@pytest.mark.asyncio
async def test_overview_tool_validates_symbol(mcp_server: FastMCP) -> None:
    payload = _extract_payload(await mcp_server.call_tool("get_overview_stock", {"symbol": "   "}))

    assert payload["error"]["code"] == "INVALID_SYMBOL"
    assert "empty" in payload["error"]["message"]
