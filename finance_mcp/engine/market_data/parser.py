"""Normalization of upstream intraday payloads into typed, ordered series.

Pipeline for one response body::

    bytes -> decode_envelope -> classify_upstream_envelope
          -> resolve_time_series -> decode_metadata
          -> extract_raw_records (lenient: malformed entries dropped)
          -> IntradayParser.assemble (strict: first bad value aborts)
          -> check_integrity

The parser holds configuration only. Each call works on its own data, so a
single instance is safe to share between concurrent normalizations.
"""

from __future__ import annotations

import json
import math
import re
import threading
from collections.abc import Mapping, Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from finance_mcp.engine.market_data.errors import (
    InvalidPrice,
    InvalidTimestamp,
    InvalidVolume,
    MalformedPayload,
    MalformedResponse,
    MalformedTimeSeries,
    NoDataForSymbol,
    NoTimeSeriesData,
    NoTimeSeriesFound,
    UpstreamError,
    UpstreamInformational,
    UpstreamRateLimited,
)
from finance_mcp.engine.market_data.models import (
    METADATA_WIRE_KEYS,
    OHLCV_WIRE_KEYS,
    Metadata,
    NormalizedRecord,
    NormalizedSeries,
    RawRecord,
)
from finance_mcp.util.logger import logger

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
METADATA_KEY = "Meta Data"
TIME_SERIES_MARKER = "time series"

_TIMESTAMP_SHAPE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}")
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_RATE_LIMIT_HINTS = ("rate limit", "premium")


# ---------------------------------------------------------------------------
# Envelope decoding + upstream error classification
# ---------------------------------------------------------------------------
def decode_envelope(body: bytes | str) -> dict[str, Any]:
    """Decode one complete JSON document into a generic mapping."""
    try:
        envelope = json.loads(body)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload(f"error parsing JSON payload: {exc}") from exc
    if not isinstance(envelope, dict):
        raise MalformedPayload(
            f"expected a JSON object at top level, got {type(envelope).__name__}"
        )
    return envelope


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


def classify_upstream_envelope(envelope: Mapping[str, Any]) -> None:
    """Fail on the first upstream error marker, in priority order.

    ``Error Message`` beats ``Note`` beats ``Information``. ``Note`` always
    means rate limiting; ``Information`` only when its text mentions a rate
    limit or a premium plan.
    """
    if "Error Message" in envelope:
        text = _as_text(envelope["Error Message"])
        raise UpstreamError(f"API error: {text}", upstream_message=text)

    if "Note" in envelope:
        text = _as_text(envelope["Note"])
        raise UpstreamRateLimited(
            f"API rate limit reached: {text}",
            upstream_message=text,
        )

    if "Information" in envelope:
        text = _as_text(envelope["Information"])
        lowered = text.lower()
        if any(hint in lowered for hint in _RATE_LIMIT_HINTS):
            raise UpstreamRateLimited(
                f"API rate limit reached: {text}",
                upstream_message=text,
            )
        raise UpstreamInformational(f"API information: {text}", upstream_message=text)


# ---------------------------------------------------------------------------
# Structural extraction
# ---------------------------------------------------------------------------
def resolve_time_series(envelope: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
    """Locate the series container whose key embeds the interval.

    The first key (in document order) whose lowercase form contains
    ``"time series"`` wins.
    """
    matches = [key for key in envelope if TIME_SERIES_MARKER in key.lower()]
    if not matches:
        raise NoTimeSeriesFound("no time series data found in response")
    if len(matches) > 1:
        logger.warning(
            "multiple time series keys in response keys=%s using=%s",
            matches,
            matches[0],
        )

    key = matches[0]
    container = envelope[key]
    if not isinstance(container, dict):
        raise MalformedTimeSeries(
            f"time series data under '{key}' is not in expected format",
            key=key,
        )
    return key, container


def decode_metadata(envelope: Mapping[str, Any]) -> Metadata:
    """Decode the fixed-shape metadata block; absent fields become ``""``."""
    raw = envelope.get(METADATA_KEY)
    if raw is None:
        return Metadata()
    if not isinstance(raw, dict):
        raise MalformedPayload(f"'{METADATA_KEY}' is not a JSON object")

    values: dict[str, str] = {}
    for attr, wire in METADATA_WIRE_KEYS:
        value = raw.get(wire, "")
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise MalformedPayload(
                f"'{METADATA_KEY}' field '{wire}' must be a string, "
                f"got {type(value).__name__}"
            )
        values[attr] = value
    return Metadata(**values)


def _raw_record(timestamp: str, entry: Any) -> RawRecord | None:
    if not isinstance(entry, dict):
        return None
    fields: dict[str, str] = {}
    for attr, wire in OHLCV_WIRE_KEYS:
        value = entry.get(wire)
        if not isinstance(value, str):
            return None
        fields[attr] = value
    return RawRecord(timestamp=timestamp, **fields)


def extract_raw_records(container: Mapping[str, Any]) -> list[RawRecord]:
    """Collect well-shaped entries, silently dropping malformed ones.

    An entry is kept only when it is an object holding all five OHLCV
    sub-keys as strings. Whether those strings are numeric is decided later.
    """
    records: list[RawRecord] = []
    dropped = 0
    for timestamp, entry in container.items():
        record = _raw_record(timestamp, entry)
        if record is None:
            dropped += 1
            continue
        records.append(record)
    if dropped:
        logger.debug(
            "dropped malformed time series entries dropped=%s kept=%s",
            dropped,
            len(records),
        )
    return records


# ---------------------------------------------------------------------------
# Record decoding
# ---------------------------------------------------------------------------
def parse_timestamp(raw: str) -> datetime:
    if _TIMESTAMP_SHAPE_RE.fullmatch(raw) is None:
        raise InvalidTimestamp(raw)
    try:
        return datetime.strptime(raw, TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise InvalidTimestamp(raw) from exc


def _parse_price(raw: str, *, field: str, timestamp: str) -> float:
    # float() tolerates padding, digit separators and non-ASCII digits; the
    # upstream never sends them.
    if not raw or not raw.isascii() or raw != raw.strip() or "_" in raw:
        raise InvalidPrice(field=field, timestamp=timestamp, raw=raw)
    try:
        value = float(raw)
    except ValueError as exc:
        raise InvalidPrice(field=field, timestamp=timestamp, raw=raw) from exc
    # Overflow and inf/nan literals would serialize as invalid JSON.
    if not math.isfinite(value):
        raise InvalidPrice(field=field, timestamp=timestamp, raw=raw)
    return value


def _parse_volume(raw: str, *, timestamp: str) -> int:
    if _INTEGER_RE.fullmatch(raw) is None:
        raise InvalidVolume(timestamp=timestamp, raw=raw)
    volume = int(raw, 10)
    if not _INT64_MIN <= volume <= _INT64_MAX:
        raise InvalidVolume(timestamp=timestamp, raw=raw)
    return volume


def decode_record(raw: RawRecord) -> NormalizedRecord:
    """Decode one raw quintuple. No range checks: negative prices pass."""
    timestamp = parse_timestamp(raw.timestamp)
    return NormalizedRecord(
        timestamp=timestamp,
        open=_parse_price(raw.open, field="open", timestamp=raw.timestamp),
        high=_parse_price(raw.high, field="high", timestamp=raw.timestamp),
        low=_parse_price(raw.low, field="low", timestamp=raw.timestamp),
        close=_parse_price(raw.close, field="close", timestamp=raw.timestamp),
        volume=_parse_volume(raw.volume, timestamp=raw.timestamp),
    )


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------
def check_integrity(series: NormalizedSeries, symbol: str) -> None:
    """Reject technically well-formed but unusable series.

    Checks run in order: symbol, interval, non-empty records.
    """
    if not series.meta_data.symbol:
        raise NoDataForSymbol(
            f"no data returned for symbol '{symbol}' - "
            "symbol may not exist or API limit reached",
            symbol=symbol,
        )
    if not series.meta_data.interval:
        raise MalformedResponse(
            f"invalid response: missing interval information for symbol '{symbol}'",
            symbol=symbol,
        )
    if not series.time_series:
        raise NoTimeSeriesData(
            f"no time series data returned for symbol '{symbol}' - "
            "check if market is open or try a different time period",
            symbol=symbol,
        )


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------
class _Aborted(Exception):
    """Internal signal: another worker already failed."""


def _decode_chunk(chunk: Sequence[RawRecord], abort: threading.Event) -> list[NormalizedRecord]:
    decoded: list[NormalizedRecord] = []
    for raw in chunk:
        if abort.is_set():
            raise _Aborted()
        try:
            decoded.append(decode_record(raw))
        except Exception:
            abort.set()
            raise
    return decoded


@dataclass(frozen=True, slots=True)
class IntradayParser:
    """Reusable, immutable decoder configuration.

    When a series holds more than ``parallel_threshold`` records the decode
    fans out over a fixed pool of ``max_workers`` threads. The pool is
    created per call and fully drained before results are merged, so no
    state is shared between calls.
    """

    parallel_threshold: int = 2000
    max_workers: int = 4

    def __post_init__(self) -> None:
        if self.parallel_threshold < 1:
            raise ValueError("parallel_threshold must be >= 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

    def assemble(self, raw_records: Sequence[RawRecord]) -> list[NormalizedRecord]:
        """Decode every record then sort ascending by timestamp.

        All-or-nothing: the first decode failure propagates and no partial
        list is returned.
        """
        if not raw_records:
            return []
        if self.max_workers > 1 and len(raw_records) > self.parallel_threshold:
            decoded = self._decode_parallel(raw_records)
        else:
            decoded = [decode_record(raw) for raw in raw_records]
        decoded.sort(key=lambda record: record.timestamp)
        return decoded

    def _decode_parallel(self, raw_records: Sequence[RawRecord]) -> list[NormalizedRecord]:
        workers = min(self.max_workers, len(raw_records))
        size = -(-len(raw_records) // workers)
        chunks = [raw_records[start : start + size] for start in range(0, len(raw_records), size)]
        logger.debug(
            "decoding time series in parallel records=%s workers=%s",
            len(raw_records),
            len(chunks),
        )

        abort = threading.Event()
        with ThreadPoolExecutor(
            max_workers=len(chunks),
            thread_name_prefix="series-decode",
        ) as executor:
            futures: list[Future[list[NormalizedRecord]]] = [
                executor.submit(_decode_chunk, chunk, abort) for chunk in chunks
            ]
            wait(futures, return_when=FIRST_EXCEPTION)
            if abort.is_set():
                for future in futures:
                    future.cancel()
        # Leaving the executor block joins every worker.

        first_error: BaseException | None = None
        decoded: list[NormalizedRecord] = []
        for future in futures:
            if future.cancelled():
                continue
            error = future.exception()
            if error is None:
                decoded.extend(future.result())
                continue
            if isinstance(error, _Aborted):
                continue
            if first_error is None:
                first_error = error
        if first_error is not None:
            raise first_error
        return decoded

    def normalize(self, body: bytes | str, *, symbol: str) -> NormalizedSeries:
        """Run the full pipeline over one response body."""
        envelope = decode_envelope(body)
        classify_upstream_envelope(envelope)
        _, container = resolve_time_series(envelope)
        meta_data = decode_metadata(envelope)
        records = self.assemble(extract_raw_records(container))
        series = NormalizedSeries(meta_data=meta_data, time_series=tuple(records))
        check_integrity(series, symbol)
        return series


def normalize_intraday_response(
    body: bytes | str,
    *,
    symbol: str,
    parser: IntradayParser | None = None,
) -> NormalizedSeries:
    """Convenience wrapper around ``IntradayParser.normalize``."""
    return (parser or IntradayParser()).normalize(body, symbol=symbol)
