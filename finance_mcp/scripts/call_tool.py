#!/usr/bin/env python3
"""Call one tool on a running finance MCP server over streamable HTTP.

Example::

    python -m finance_mcp.scripts.call_tool get_intraday_price_stock \
        --arg symbol=IBM --arg interval=5min
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

import httpx

from finance_mcp.config import settings

PROTOCOL_VERSION = "2025-03-26"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Call one tool on a running MCP server.")
    parser.add_argument("tool", help="Tool name, e.g. get_intraday_price_stock.")
    parser.add_argument(
        "--arg",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Tool argument. Values are parsed as JSON when possible.",
    )
    parser.add_argument(
        "--server-url",
        default="",
        help="MCP endpoint. Default uses http://{MCP_HOST}:{MCP_PORT}/mcp.",
    )
    parser.add_argument("--timeout-seconds", type=float, default=60.0, help="HTTP timeout.")
    parser.add_argument("--list", action="store_true", help="List tools before calling.")
    return parser.parse_args(argv)


def parse_tool_arguments(pairs: list[str]) -> dict[str, Any]:
    """Turn ``KEY=VALUE`` pairs into tool arguments.

    ``true``/``false``/numbers decode as JSON; anything else stays a string.
    """
    arguments: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"argument '{pair}' must look like KEY=VALUE")
        try:
            arguments[key] = json.loads(raw)
        except json.JSONDecodeError:
            arguments[key] = raw
    return arguments


def extract_jsonrpc_messages(response_text: str) -> list[dict[str, Any]]:
    stripped = response_text.strip()
    if not stripped:
        return []

    if stripped.startswith("{"):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError:
            return []
        return [parsed] if isinstance(parsed, dict) else []

    # Stream mode: parse SSE lines.
    messages: list[dict[str, Any]] = []
    for line in response_text.splitlines():
        if not line.startswith("data:"):
            continue
        payload = line.split("data:", 1)[1].strip()
        if not payload:
            continue
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            messages.append(parsed)
    return messages


def _mcp_rpc_call(
    client: httpx.Client,
    *,
    server_url: str,
    method: str,
    request_id: str,
    params: dict[str, Any],
    session_id: str | None = None,
) -> tuple[dict[str, Any], str | None]:
    headers = {
        "accept": "application/json, text/event-stream",
        "content-type": "application/json",
    }
    if session_id:
        headers["mcp-session-id"] = session_id

    response = client.post(
        server_url,
        headers=headers,
        json={"jsonrpc": "2.0", "id": request_id, "method": method, "params": params},
    )
    response.raise_for_status()
    session_id_resp = response.headers.get("mcp-session-id") or session_id

    for message in extract_jsonrpc_messages(response.text):
        if message.get("id") != request_id:
            continue
        if "result" in message and isinstance(message["result"], dict):
            return message["result"], session_id_resp
        if "error" in message:
            raise RuntimeError(f"MCP method={method} error={message['error']}")

    raise RuntimeError(f"MCP method={method} missing result for id={request_id}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    server_url = args.server_url or f"http://{settings.mcp_host}:{settings.mcp_port}/mcp"
    arguments = parse_tool_arguments(args.arg)

    with httpx.Client(timeout=max(5.0, args.timeout_seconds), trust_env=False) as client:
        _, session_id = _mcp_rpc_call(
            client,
            server_url=server_url,
            method="initialize",
            request_id="init-1",
            params={
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": "finance-mcp-call-tool", "version": "1.0.0"},
            },
        )
        if args.list:
            listed, session_id = _mcp_rpc_call(
                client,
                server_url=server_url,
                method="tools/list",
                request_id="list-1",
                params={},
                session_id=session_id,
            )
            names = [tool.get("name") for tool in listed.get("tools", [])]
            print(json.dumps({"tools": names}, indent=2))

        result, _ = _mcp_rpc_call(
            client,
            server_url=server_url,
            method="tools/call",
            request_id="call-1",
            params={"name": args.tool, "arguments": arguments},
            session_id=session_id,
        )

    for item in result.get("content", []):
        text = item.get("text") if isinstance(item, dict) else None
        if not text:
            continue
        try:
            print(json.dumps(json.loads(text), indent=2, ensure_ascii=False))
        except json.JSONDecodeError:
            print(text)
    return 1 if result.get("isError") else 0


if __name__ == "__main__":
    sys.exit(main())
