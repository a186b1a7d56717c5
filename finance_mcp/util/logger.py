"""Logging for the finance MCP server.

Console output goes through Rich (on stderr, so the stdio transport keeps
stdout for protocol frames). A plain-text copy of every record lands in
``logs/finance_mcp.log`` at the project root, rotated at 10 MB with five
backups.
"""

from __future__ import annotations

import logging
import logging.handlers
import re
from collections.abc import Iterable
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

LOG_FILE_NAME = "finance_mcp.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_LOG_DIR = _PROJECT_ROOT / "logs"
_LOG_DIR.mkdir(parents=True, exist_ok=True)

# Third-party loggers that serve the HTTP transports.
_SERVER_LOGGERS: tuple[str, ...] = ("uvicorn", "uvicorn.error", "mcp")
_HTTP_CLIENT_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")

console = Console(
    theme=Theme(
        {
            "info": "cyan",
            "warning": "yellow",
            "error": "bold red",
            "debug": "dim white",
            "success": "bold green",
            "upstream": "bold blue",
        }
    ),
    stderr=True,
)


def _build_console_handler() -> RichHandler:
    handler = RichHandler(
        console=console,
        show_path=False,
        log_time_format="%m/%d/%y %H:%M:%S",
        omit_repeated_times=False,
        rich_tracebacks=True,
        markup=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


# Matches only our own style tags; tickers like ``[BRK.B]`` stay intact.
_MARKUP_RE = re.compile(r"\[/?(?:success|error|upstream|bold|dim)\]", re.IGNORECASE)


class _PlainFileFormatter(logging.Formatter):
    """Drop Rich markup so the file log stays grep-friendly."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        plain = logging.makeLogRecord(record.__dict__)
        plain.msg = _MARKUP_RE.sub("", record.getMessage())
        plain.args = None
        return super().format(plain)


def _build_file_handler() -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=_LOG_DIR / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setFormatter(
        _PlainFileFormatter(
            fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.setLevel(logging.DEBUG)
    return handler


_console_handler = _build_console_handler()
_file_handler = _build_file_handler()


def _attach(names: Iterable[str], level: int) -> None:
    for name in names:
        target = logging.getLogger(name)
        target.handlers.clear()
        target.addHandler(_console_handler)
        target.addHandler(_file_handler)
        target.setLevel(level)
        target.propagate = False


def setup_logger(name: str = "finance_mcp", level: int = logging.INFO) -> logging.Logger:
    """Return the application logger, attaching handlers on first use."""
    app_logger = logging.getLogger(name)
    app_logger.setLevel(level)
    if not app_logger.handlers:
        app_logger.addHandler(_console_handler)
        app_logger.addHandler(_file_handler)
        app_logger.propagate = False
    return app_logger


def configure_logging(level: str = "INFO", show_requests: bool = False) -> logging.Logger:
    """Wire root, server and HTTP-client loggers to the shared handlers.

    httpx request lines are hidden unless ``show_requests`` is set, since
    they include the ``apikey`` query parameter.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(_console_handler)
    root_logger.addHandler(_file_handler)
    root_logger.setLevel(log_level)

    _attach(_SERVER_LOGGERS, log_level)
    _attach(_HTTP_CLIENT_LOGGERS, logging.DEBUG if show_requests else logging.WARNING)

    access_logger = logging.getLogger("uvicorn.access")
    access_logger.handlers.clear()
    access_logger.addHandler(_file_handler)
    access_logger.propagate = False

    return setup_logger(level=log_level)


logger = setup_logger()


def log_upstream(function: str, symbol: str, *, ok: bool, latency_ms: float) -> None:
    """Log one upstream request outcome at DEBUG."""
    outcome = "ok" if ok else "failed"
    logger.debug(
        f"[upstream]{function}[/upstream] {symbol} {outcome} latency_ms={latency_ms:.1f}"
    )


def log_success(message: str) -> None:
    logger.info(f"[success]{message}[/success]")


def log_error(message: str, exc: Exception | None = None) -> None:
    logger.error(f"[error]{message}[/error]", exc_info=exc)
