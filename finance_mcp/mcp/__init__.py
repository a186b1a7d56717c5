"""MCP package for the finance market-data server."""

from __future__ import annotations

__all__ = [
    "create_mcp_server",
    "registered_tool_names",
]


def __getattr__(name: str):  # noqa: ANN201
    if name in __all__:
        from finance_mcp.mcp import server as server_module

        return getattr(server_module, name)
    raise AttributeError(f"module 'finance_mcp.mcp' has no attribute {name!r}")
