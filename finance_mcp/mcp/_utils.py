"""Shared helpers for MCP tool implementations."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from finance_mcp.util.logger import logger


def utc_now_iso() -> str:
    """Return a compact UTC timestamp string."""
    return datetime.now(UTC).isoformat()


def to_json(payload: dict[str, Any]) -> str:
    """Serialize MCP tool result payloads consistently."""
    return json.dumps(payload, ensure_ascii=False, default=str)


def build_payload(
    *,
    category: str,
    tool: str,
    ok: bool,
    data: dict[str, Any] | None = None,
    error_code: str | None = None,
    error_message: str | None = None,
    context: dict[str, Any] | None = None,
) -> str:
    """Build the JSON envelope every tool returns and log its outcome."""
    payload: dict[str, Any] = {
        "category": category,
        "tool": tool,
        "ok": ok,
        "timestamp_utc": utc_now_iso(),
    }
    resolved_error_code: str | None = None
    resolved_error_message: str | None = None

    if data:
        payload.update(data)
    if context:
        payload["context"] = context
    if not ok:
        resolved_error_code = error_code or "UNKNOWN_ERROR"
        resolved_error_message = error_message or "Unknown error"
        payload["error"] = {
            "code": resolved_error_code,
            "message": resolved_error_message,
        }

    log_mcp_tool_result(
        category=category,
        tool=tool,
        ok=ok,
        error_code=resolved_error_code,
        error_message=resolved_error_message,
    )
    return to_json(payload)


def log_mcp_tool_result(
    *,
    category: str,
    tool: str,
    ok: bool,
    error_code: str | None = None,
    error_message: str | None = None,
) -> None:
    """Emit a compact, consistent log line for each MCP tool response."""
    prefix = f"mcp.{category} tool={tool} ok={ok}"
    if ok:
        logger.info(prefix)
        return

    resolved_code = error_code or "UNKNOWN_ERROR"
    resolved_message = (error_message or "").strip()
    if resolved_message:
        logger.warning(
            "%s error_code=%s error_message=%s",
            prefix,
            resolved_code,
            resolved_message,
        )
        return
    logger.warning("%s error_code=%s", prefix, resolved_code)
