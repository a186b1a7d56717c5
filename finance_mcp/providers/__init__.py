"""Upstream data providers."""

from finance_mcp.providers.alpha_vantage_client import AlphaVantageClient, ClientStats

__all__ = [
    "AlphaVantageClient",
    "ClientStats",
]
