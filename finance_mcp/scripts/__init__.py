"""Operator scripts for a running finance MCP server."""
