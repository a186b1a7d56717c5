"""Error taxonomy for market-data request validation, fetch and normalization."""

from __future__ import annotations

from typing import Any


class MarketDataError(Exception):
    """Base error carrying a stable code, a readable message and context."""

    code = "MARKET_DATA_ERROR"
    retryable = False

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = {
            key: value for key, value in context.items() if value is not None
        }

    @property
    def detail(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
        }

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Request-shape errors
# ---------------------------------------------------------------------------
class InvalidInputError(MarketDataError, ValueError):
    """Raised before any network or parse work when the request is malformed."""

    code = "INVALID_INPUT"


class InvalidSymbol(InvalidInputError):
    code = "INVALID_SYMBOL"

    def __init__(self, message: str, *, symbol: str) -> None:
        super().__init__(message, symbol=symbol)
        self.symbol = symbol


class InvalidParameter(InvalidInputError):
    code = "INVALID_PARAMETER"

    def __init__(self, message: str, *, parameter: str, value: Any = None) -> None:
        super().__init__(message, parameter=parameter, value=value)
        self.parameter = parameter
        self.value = value


class ClientConfigurationError(InvalidInputError):
    code = "CLIENT_CONFIGURATION_ERROR"


# ---------------------------------------------------------------------------
# Upstream signals embedded in a transport-level success
# ---------------------------------------------------------------------------
class UpstreamSignalError(MarketDataError):
    """The upstream answered but did not honor the request."""

    code = "UPSTREAM_SIGNAL"

    def __init__(self, message: str, *, upstream_message: str, **context: Any) -> None:
        super().__init__(message, upstream_message=upstream_message, **context)
        self.upstream_message = upstream_message


class UpstreamError(UpstreamSignalError):
    code = "UPSTREAM_ERROR"


class UpstreamRateLimited(UpstreamSignalError):
    code = "UPSTREAM_RATE_LIMIT"
    retryable = True


class UpstreamInformational(UpstreamSignalError):
    code = "UPSTREAM_INFORMATION"


# ---------------------------------------------------------------------------
# Structural / lexical decode failures
# ---------------------------------------------------------------------------
class DecodeError(MarketDataError):
    code = "DECODE_ERROR"


class MalformedPayload(DecodeError):
    code = "MALFORMED_PAYLOAD"


class NoTimeSeriesFound(DecodeError):
    code = "NO_TIME_SERIES_FOUND"


class MalformedTimeSeries(DecodeError):
    code = "MALFORMED_TIME_SERIES"

    def __init__(self, message: str, *, key: str) -> None:
        super().__init__(message, key=key)
        self.key = key


class InvalidTimestamp(DecodeError):
    code = "INVALID_TIMESTAMP"

    def __init__(self, timestamp: str) -> None:
        super().__init__(
            f"error parsing timestamp '{timestamp}': expected YYYY-MM-DD HH:MM:SS",
            timestamp=timestamp,
        )
        self.timestamp = timestamp


class InvalidPrice(DecodeError):
    code = "INVALID_PRICE"

    def __init__(self, *, field: str, timestamp: str, raw: str) -> None:
        super().__init__(
            f"error parsing {field} price '{raw}' for {timestamp}",
            field=field,
            timestamp=timestamp,
            raw=raw,
        )
        self.field = field
        self.timestamp = timestamp
        self.raw = raw


class InvalidVolume(DecodeError):
    code = "INVALID_VOLUME"

    def __init__(self, *, timestamp: str, raw: str) -> None:
        super().__init__(
            f"error parsing volume '{raw}' for {timestamp}",
            field="volume",
            timestamp=timestamp,
            raw=raw,
        )
        self.field = "volume"
        self.timestamp = timestamp
        self.raw = raw


# ---------------------------------------------------------------------------
# Post-decode integrity failures
# ---------------------------------------------------------------------------
class IntegrityError(MarketDataError):
    code = "INTEGRITY_ERROR"

    def __init__(self, message: str, *, symbol: str) -> None:
        super().__init__(message, symbol=symbol)
        self.symbol = symbol


class NoDataForSymbol(IntegrityError):
    code = "NO_DATA_FOR_SYMBOL"


class MalformedResponse(IntegrityError):
    code = "MALFORMED_RESPONSE"


class NoTimeSeriesData(IntegrityError):
    code = "NO_TIME_SERIES_DATA"


# ---------------------------------------------------------------------------
# Transport failures
# ---------------------------------------------------------------------------
class UpstreamHTTPError(MarketDataError):
    code = "UPSTREAM_HTTP_ERROR"

    def __init__(self, message: str, *, status_code: int, **context: Any) -> None:
        super().__init__(message, status_code=status_code, **context)
        self.status_code = status_code
        self.retryable = status_code >= 500


class UpstreamTransportError(MarketDataError):
    code = "UPSTREAM_FETCH_ERROR"
    retryable = True
