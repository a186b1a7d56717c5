"""Market data MCP tools."""

from finance_mcp.mcp.market_data.tools import (
    FUNDAMENTALS_TOOL_NAMES,
    MARKET_TOOL_NAMES,
    TOOL_NAMES,
    register_fundamentals_tools,
    register_market_data_tools,
)

__all__ = [
    "FUNDAMENTALS_TOOL_NAMES",
    "MARKET_TOOL_NAMES",
    "TOOL_NAMES",
    "register_fundamentals_tools",
    "register_market_data_tools",
]
