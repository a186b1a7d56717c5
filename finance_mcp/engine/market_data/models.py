"""Typed request, record and series models for intraday market data."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Wire labels used by the upstream "Meta Data" block, in upstream order.
METADATA_WIRE_KEYS: tuple[tuple[str, str], ...] = (
    ("information", "1. Information"),
    ("symbol", "2. Symbol"),
    ("last_refreshed", "3. Last Refreshed"),
    ("interval", "4. Interval"),
    ("output_size", "5. Output Size"),
    ("time_zone", "6. Time Zone"),
)

# Wire labels for one OHLCV entry inside the "Time Series (...)" block.
OHLCV_WIRE_KEYS: tuple[tuple[str, str], ...] = (
    ("open", "1. open"),
    ("high", "2. high"),
    ("low", "3. low"),
    ("close", "4. close"),
    ("volume", "5. volume"),
)


@dataclass(frozen=True, slots=True)
class IntradayPriceRequest:
    """Inbound request descriptor for one intraday series."""

    symbol: str
    interval: str
    adjusted: bool | None = None
    extended_hours: bool | None = None
    month: str | None = None
    output_size: str | None = None


@dataclass(frozen=True, slots=True)
class Metadata:
    """Series-level description. Every field is upstream text."""

    information: str = ""
    symbol: str = ""
    last_refreshed: str = ""
    interval: str = ""
    output_size: str = ""
    time_zone: str = ""

    def to_wire(self) -> dict[str, str]:
        return {wire: getattr(self, attr) for attr, wire in METADATA_WIRE_KEYS}


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One timestamp's OHLCV quintuple exactly as received."""

    timestamp: str
    open: str
    high: str
    low: str
    close: str
    volume: str


@dataclass(frozen=True, slots=True)
class NormalizedRecord:
    """Decoded OHLCV bar. ``timestamp`` is naive; the zone lives in metadata."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int

    def to_wire(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True, slots=True)
class NormalizedSeries:
    """Metadata plus records sorted ascending by timestamp."""

    meta_data: Metadata
    time_series: tuple[NormalizedRecord, ...] = field(default_factory=tuple)

    def to_wire(self) -> dict[str, Any]:
        return {
            "meta_data": self.meta_data.to_wire(),
            "time_series": [record.to_wire() for record in self.time_series],
        }
