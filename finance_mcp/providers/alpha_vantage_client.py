"""Alpha Vantage REST transport.

Returns raw response bodies. Payload interpretation (error envelopes, series
decoding) belongs to ``finance_mcp.engine.market_data``.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from finance_mcp.config import settings
from finance_mcp.engine.market_data.errors import (
    ClientConfigurationError,
    UpstreamError,
    UpstreamHTTPError,
    UpstreamRateLimited,
    UpstreamTransportError,
)
from finance_mcp.engine.market_data.queries import Query
from finance_mcp.util.logger import log_upstream, logger

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass(frozen=True, slots=True)
class ClientStats:
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_latency_ms: float = 0.0


class _StatsRecorder:
    """Request counters shared by concurrent fetches."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._latency_total_ms = 0.0

    def record(self, *, ok: bool, latency_ms: float) -> None:
        with self._lock:
            self._total += 1
            if ok:
                self._successful += 1
            else:
                self._failed += 1
            self._latency_total_ms += latency_ms

    def snapshot(self) -> ClientStats:
        with self._lock:
            average = self._latency_total_ms / self._total if self._total else 0.0
            return ClientStats(
                total_requests=self._total,
                successful_requests=self._successful,
                failed_requests=self._failed,
                average_latency_ms=average,
            )


def build_query_params(
    symbol: str,
    queries: Sequence[Query],
    *,
    api_key: str,
) -> list[tuple[str, str]]:
    """Builder output first, then ``symbol`` and ``apikey``.

    The ``function`` value is uppercased; the symbol is trimmed and uppercased.
    """
    params: list[tuple[str, str]] = []
    for query in queries:
        value = query.value.upper() if query.name == "function" else query.value
        params.append((query.name, value))
    params.append(("symbol", symbol.strip().upper()))
    params.append(("apikey", api_key))
    return params


class AlphaVantageClient:
    """Async client for the upstream ``/query`` endpoint."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        request_timeout_seconds: float | None = None,
        max_retries: int | None = None,
        retry_backoff_seconds: float | None = None,
        max_response_bytes: int | None = None,
        user_agent: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = (settings.api_key if api_key is None else api_key).strip()
        self.base_url = (settings.upstream_query_url if base_url is None else base_url).strip()
        if not self.api_key:
            raise ClientConfigurationError("API key is required")
        if not self.base_url:
            raise ClientConfigurationError("base URL is required")

        timeout = settings.upstream_timeout_seconds if request_timeout_seconds is None else request_timeout_seconds
        retries = settings.upstream_max_retries if max_retries is None else max_retries
        backoff = (
            settings.upstream_retry_backoff_seconds
            if retry_backoff_seconds is None
            else retry_backoff_seconds
        )
        size_cap = settings.upstream_max_response_bytes if max_response_bytes is None else max_response_bytes

        self.request_timeout_seconds = max(float(timeout), 0.1)
        self.max_retries = max(int(retries), 0)
        self.retry_backoff_seconds = max(float(backoff), 0.0)
        self.max_response_bytes = max(int(size_cap), 1)
        self.user_agent = user_agent or settings.upstream_user_agent
        self._client = client or httpx.AsyncClient(timeout=self.request_timeout_seconds)
        self._owns_client = client is None
        self._stats = _StatsRecorder()

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Cache-Control": "no-cache",
            "User-Agent": self.user_agent,
        }

    def stats(self) -> ClientStats:
        return self._stats.snapshot()

    async def _backoff(self, attempt: int) -> None:
        await asyncio.sleep(self.retry_backoff_seconds * (2**attempt))

    async def _read_capped(self, response: httpx.Response) -> bytes:
        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > self.max_response_bytes:
            raise UpstreamTransportError(
                f"response too large: {declared} bytes exceeds limit of {self.max_response_bytes}",
                limit=self.max_response_bytes,
            )
        chunks: list[bytes] = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > self.max_response_bytes:
                raise UpstreamTransportError(
                    f"response too large: exceeds limit of {self.max_response_bytes} bytes",
                    limit=self.max_response_bytes,
                )
            chunks.append(chunk)
        return b"".join(chunks)

    def _status_error(self, status_code: int, *, symbol: str) -> Exception:
        if status_code == 429:
            return UpstreamRateLimited(
                "API rate limit exceeded",
                upstream_message=f"HTTP {status_code}",
                symbol=symbol,
            )
        if status_code == 401:
            return UpstreamError(
                "invalid API key",
                upstream_message=f"HTTP {status_code}",
                symbol=symbol,
            )
        if status_code == 403:
            return UpstreamError(
                "access forbidden - check API permissions",
                upstream_message=f"HTTP {status_code}",
                symbol=symbol,
            )
        return UpstreamHTTPError(
            f"HTTP error {status_code}",
            status_code=status_code,
            symbol=symbol,
        )

    async def _get(self, params: list[tuple[str, str]], *, symbol: str) -> bytes:
        for attempt in range(self.max_retries + 1):
            try:
                async with self._client.stream(
                    "GET",
                    self.base_url,
                    params=params,
                    headers=self._headers(),
                    timeout=self.request_timeout_seconds,
                ) as response:
                    status = response.status_code
                    if status in _RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                        logger.warning(
                            "upstream status=%s symbol=%s retrying attempt=%s/%s",
                            status,
                            symbol,
                            attempt + 1,
                            self.max_retries,
                        )
                    elif status != 200:
                        raise self._status_error(status, symbol=symbol)
                    else:
                        return await self._read_capped(response)
            except httpx.HTTPError as exc:
                if attempt >= self.max_retries:
                    raise UpstreamTransportError(
                        f"error executing request: {exc.__class__.__name__}: {exc}",
                        symbol=symbol,
                    ) from exc
                logger.warning(
                    "upstream request failed symbol=%s error=%s retrying attempt=%s/%s",
                    symbol,
                    exc.__class__.__name__,
                    attempt + 1,
                    self.max_retries,
                )
            await self._backoff(attempt)
        raise RuntimeError("unreachable")

    async def fetch(self, symbol: str, queries: Sequence[Query]) -> bytes:
        """Send one upstream request and return the raw body."""
        params = build_query_params(symbol, queries, api_key=self.api_key)
        function = params[0][1] if params and params[0][0] == "function" else ""
        normalized_symbol = symbol.strip().upper()
        started = time.perf_counter()
        ok = False
        try:
            body = await self._get(params, symbol=normalized_symbol)
            ok = True
            return body
        finally:
            latency_ms = (time.perf_counter() - started) * 1000.0
            self._stats.record(ok=ok, latency_ms=latency_ms)
            log_upstream(function, normalized_symbol, ok=ok, latency_ms=latency_ms)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
