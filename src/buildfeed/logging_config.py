"""
Logging setup for the buildfeed service.

Every record is rendered either as one JSON object per line (production) or
as a short text line (local runs). Before rendering, the record's extra
fields pass through a filter that:
- drops credential fields (the AppVeyor bearer token, Authorization headers)
- reduces URLs to their path, so no query string reaches a log line
- trims upstream response bodies

Usage:
    from buildfeed.logging_config import setup_logging, get_logger

    setup_logging(json_format=False)
    logger = get_logger(__name__)
    logger.info("Fetched artifacts", extra={"job_id": job_id, "count": 5})
"""

from __future__ import annotations

import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit

import orjson

BODY_LIMIT = 200

_URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+")
_CREDENTIAL_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bbearer\s+[\w\-\.=]+", re.I), "Bearer [TOKEN]"),
    (re.compile(r"\b(token|authorization)([=:]\s*)['\"]?[\w\-\.]+['\"]?", re.I), r"\1\2[REDACTED]"),
)

# Keys dropped from every record (matched as substrings of the lowercased key)
BLOCKED_FIELDS: frozenset[str] = frozenset(
    {
        "token",
        "authorization",
        "bearer",
        "secret",
        "password",
        "credential",
    }
)

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


def _normalize_url(url: str) -> str:
    """Reduce a URL to its path."""
    return urlsplit(url).path or "/"


def _sanitize_text(text: str) -> str:
    """Reduce embedded URLs to paths and redact credentials in free-form text."""
    if not text:
        return text
    result = _URL_PATTERN.sub(lambda m: _normalize_url(m.group(0)), text)
    for pattern, replacement in _CREDENTIAL_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def _filter_log_record(record: dict[str, Any]) -> dict[str, Any]:
    """Drop blocked keys and sanitize values of a record's extra fields."""
    filtered: dict[str, Any] = {}
    for key, value in record.items():
        key_lower = key.lower()
        if any(blocked in key_lower for blocked in BLOCKED_FIELDS):
            continue

        if key_lower == "url" and isinstance(value, str):
            filtered["endpoint"] = _normalize_url(value)
        elif key_lower == "body" and isinstance(value, str):
            body = _sanitize_text(value)
            filtered[key] = body if len(body) <= BODY_LIMIT else body[:BODY_LIMIT] + "..."
        elif isinstance(value, (int, float, bool, type(None))):
            filtered[key] = value
        elif isinstance(value, dict):
            filtered[key] = _filter_log_record(value)
        else:
            filtered[key] = _sanitize_text(str(value))
    return filtered


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    {"ts": "...", "level": "INFO", "logger": "buildfeed.feed.aggregator", "msg": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": _sanitize_text(record.getMessage()),
        }
        if record.levelno >= logging.WARNING:
            out["file"] = record.filename
            out["line"] = record.lineno
        if record.exc_info:
            out["exc"] = _sanitize_text(self.formatException(record.exc_info))
        out.update(_filter_log_record(_extra_fields(record)))
        return orjson.dumps(out, default=str).decode()


class SimpleFormatter(logging.Formatter):
    """Text lines for local runs: level, logger, message, then key=value extras."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname:8s} {record.name}: {_sanitize_text(record.getMessage())}"
        extra = _filter_log_record(_extra_fields(record))
        if extra:
            line += " | " + " ".join(f"{k}={v}" for k, v in extra.items())
        if record.exc_info:
            line += "\n" + _sanitize_text(self.formatException(record.exc_info))
        return line


def setup_logging(
    *,
    level: int | str = logging.INFO,
    json_format: bool = True,
    stream: Any = None,
) -> None:
    """Install a single stream handler on the root logger.

    Args:
        level: Root log level.
        json_format: JSON lines when True, SimpleFormatter otherwise.
        stream: Output stream (default stderr).
    """
    handler = logging.StreamHandler(sys.stderr if stream is None else stream)
    handler.setFormatter(JsonFormatter() if json_format else SimpleFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # aiohttp logs every connection at INFO
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name."""
    return logging.getLogger(name)
