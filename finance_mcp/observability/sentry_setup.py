"""Optional Sentry reporting for the MCP server.

Nothing is sent unless ``SENTRY_DSN`` is configured. Every outgoing event
passes through ``sentry_before_send``, which masks credentials. The upstream
API key travels as an ``apikey=`` query parameter, so URL strings anywhere in
the event are scrubbed too.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Literal

from finance_mcp.config import settings
from finance_mcp.util.logger import logger

SentrySource = Literal["mcp", "script"]

REDACTED = "[REDACTED]"
_MAX_DEPTH = 8

# Compared against keys lowercased with punctuation removed.
_SECRET_KEY_SUFFIXES = ("apikey", "token", "secret", "password")
_SECRET_KEYS = {"authorization", "cookie", "setcookie"}

_APIKEY_PARAM_RE = re.compile(r"(apikey=)[^&\s\"']+", re.IGNORECASE)

# Event sections scrubbed on every send.
_SCRUBBED_SECTIONS: tuple[tuple[str, ...], ...] = (
    ("request", "headers"),
    ("request", "query_string"),
    ("request", "url"),
    ("extra",),
)


def redact_api_key(text: str) -> str:
    """Mask the value of every ``apikey=`` parameter in ``text``."""
    return _APIKEY_PARAM_RE.sub(rf"\1{REDACTED}", text)


def _is_secret_key(key: str) -> bool:
    compact = re.sub(r"[^a-z0-9]", "", key.lower())
    return compact in _SECRET_KEYS or compact.endswith(_SECRET_KEY_SUFFIXES)


def _scrub(value: Any, depth: int = 0) -> Any:
    if depth >= _MAX_DEPTH:
        return redact_api_key(str(value))
    if isinstance(value, str):
        return redact_api_key(value)
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if _is_secret_key(str(key)) else _scrub(item, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_scrub(item, depth + 1) for item in value]
    if isinstance(value, tuple):
        return tuple(_scrub(item, depth + 1) for item in value)
    return value


def sentry_before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """Return a scrubbed copy of ``event``; the original is left untouched."""
    del hint
    scrubbed = deepcopy(event)

    for section in _SCRUBBED_SECTIONS:
        parent: Any = scrubbed
        for segment in section[:-1]:
            parent = parent.get(segment) if isinstance(parent, dict) else None
        if isinstance(parent, dict) and parent.get(section[-1]) is not None:
            parent[section[-1]] = _scrub(parent[section[-1]])

    breadcrumbs = scrubbed.get("breadcrumbs")
    if isinstance(breadcrumbs, dict) and isinstance(breadcrumbs.get("values"), list):
        breadcrumbs["values"] = [_scrub(item) for item in breadcrumbs["values"]]
    return scrubbed


def _sentry_environment() -> str:
    runtime = settings.app_env.strip().lower()
    return {"prod": "production", "dev": "development"}.get(runtime, runtime or "development")


def init_backend_sentry(*, source: SentrySource) -> bool:
    """Initialize Sentry for one process role. Returns False without a DSN."""
    dsn = settings.sentry_dsn.strip()
    if not dsn:
        return False

    import sentry_sdk

    environment = _sentry_environment()
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=f"{settings.mcp_server_name}@{settings.mcp_server_version}",
        before_send=sentry_before_send,
        send_default_pii=False,
        traces_sample_rate=settings.sentry_traces_sample_rate,
    )
    sentry_sdk.set_tag("source", source)
    logger.info("Sentry initialized for source=%s env=%s", source, environment)
    return True


def capture_exception_with_context(
    exc: BaseException,
    *,
    tags: Mapping[str, Any] | None = None,
    extras: Mapping[str, Any] | None = None,
) -> None:
    """Report one exception. The SDK drops it when no client is initialized."""
    import sentry_sdk

    with sentry_sdk.new_scope() as scope:
        for key, value in (tags or {}).items():
            if value is not None:
                scope.set_tag(str(key), str(value))
        for key, value in (extras or {}).items():
            scope.set_extra(str(key), REDACTED if _is_secret_key(str(key)) else _scrub(value))
        sentry_sdk.capture_exception(exc)
