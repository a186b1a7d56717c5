from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def _make_bar(open_: str, high: str, low: str, close: str, volume: str) -> dict[str, str]:
    return {
        "1. open": open_,
        "2. high": high,
        "3. low": low,
        "4. close": close,
        "5. volume": volume,
    }


def _make_intraday_envelope(
    bars: dict[str, Any],
    *,
    symbol: str = "AAPL",
    interval: str = "1min",
) -> dict[str, Any]:
    return {
        "Meta Data": {
            "1. Information": f"Intraday ({interval}) open, high, low, close prices and volume",
            "2. Symbol": symbol,
            "3. Last Refreshed": "2024-01-15 16:00:00",
            "4. Interval": interval,
            "5. Output Size": "Compact",
            "6. Time Zone": "US/Eastern",
        },
        f"Time Series ({interval})": bars,
    }


@pytest.fixture
def aapl_intraday_body() -> bytes:
    envelope = _make_intraday_envelope(
        {
            "2024-01-15 16:00:00": _make_bar("380.50", "380.75", "380.25", "380.60", "75000"),
            "2024-01-15 15:59:00": _make_bar("380.10", "380.55", "380.00", "380.50", "62000"),
            "2024-01-15 15:58:00": _make_bar("379.90", "380.20", "379.80", "380.10", "58000"),
        }
    )
    return json.dumps(envelope).encode("utf-8")
