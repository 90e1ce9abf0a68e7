"""Tests for logging configuration module.

Verifies that logging configuration:
1. Filters out credentials (BLOCKED_FIELDS), including the AppVeyor token
2. Normalizes URLs to paths
3. Produces valid JSON output
"""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest

from buildfeed.logging_config import (
    BLOCKED_FIELDS,
    BODY_LIMIT,
    JsonFormatter,
    SimpleFormatter,
    _filter_log_record,
    _normalize_url,
    _sanitize_text,
    get_logger,
    setup_logging,
)


def _record(msg: str, level: int = logging.INFO, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("buildfeed.test", level, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestBlockedFields:
    """Sensitive fields never reach the output."""

    def test_token_fields_listed(self) -> None:
        assert "token" in BLOCKED_FIELDS
        assert "authorization" in BLOCKED_FIELDS

    def test_filter_removes_token(self) -> None:
        filtered = _filter_log_record({"appveyor_token": "abc", "build": "1.0.1"})
        assert filtered == {"build": "1.0.1"}

    def test_filter_removes_partial_matches(self) -> None:
        record = {"x_authorization_header": "v", "user_token": "v", "job_id": "j"}
        assert _filter_log_record(record) == {"job_id": "j"}

    def test_nested_dicts_filtered(self) -> None:
        record = {"headers": {"Authorization": "Bearer abc", "Accept": "application/json"}}
        assert _filter_log_record(record) == {"headers": {"Accept": "application/json"}}


class TestNormalization:
    """URLs and bodies are normalized."""

    def test_url_becomes_endpoint(self) -> None:
        filtered = _filter_log_record({"url": "https://ci.appveyor.com/api/projects?x=1"})
        assert filtered == {"endpoint": "/api/projects"}

    def test_short_body_kept(self) -> None:
        assert _filter_log_record({"body": "upstream down"}) == {"body": "upstream down"}

    def test_long_body_trimmed(self) -> None:
        filtered = _filter_log_record({"body": "x" * 500})
        assert filtered["body"] == "x" * BODY_LIMIT + "..."

    def test_body_urls_reduced(self) -> None:
        filtered = _filter_log_record({"body": "see https://ci.example/api/x?token=abc"})
        assert filtered == {"body": "see /api/x"}

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://api.nuget.org/v3/index.json", "/v3/index.json"),
            ("https://example.com", "/"),
            ("https://cdn.example/public/2.2.27/a.zip?sig=secret", "/public/2.2.27/a.zip"),
        ],
    )
    def test_normalize_url(self, url: str, expected: str) -> None:
        assert _normalize_url(url) == expected


class TestSanitizeText:
    """Free-form messages are scrubbed."""

    def test_bearer_token_redacted(self) -> None:
        assert "abc123" not in _sanitize_text("sent Bearer abc123 upstream")

    def test_token_assignment_redacted(self) -> None:
        assert _sanitize_text("token=abc123 rejected") == "token=[REDACTED] rejected"

    def test_url_in_text_reduced_to_path(self) -> None:
        text = _sanitize_text("GET https://ci.appveyor.com/api/projects?token=x failed")
        assert text == "GET /api/projects failed"

    def test_empty(self) -> None:
        assert _sanitize_text("") == ""


class TestFormatters:
    """JSON and human-readable output."""

    def test_json_output(self) -> None:
        line = JsonFormatter().format(_record("Built feed entry", build="1.0.1", token="t"))
        data = json.loads(line)
        assert data["level"] == "INFO"
        assert data["logger"] == "buildfeed.test"
        assert data["msg"] == "Built feed entry"
        assert data["build"] == "1.0.1"
        assert "token" not in data
        assert "file" not in data

    def test_json_warning_has_location(self) -> None:
        data = json.loads(JsonFormatter().format(_record("careful", logging.WARNING)))
        assert data["line"] == 10

    def test_json_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record("failed", logging.ERROR)
            record.exc_info = sys.exc_info()
        data = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in data["exc"]

    def test_simple_output(self) -> None:
        line = SimpleFormatter().format(_record("Probed registry", source="Nuget.org"))
        assert line == "INFO     buildfeed.test: Probed registry | source=Nuget.org"


class TestSetupLogging:
    """Root logger configuration."""

    def test_setup_json(self) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.DEBUG, json_format=True, stream=stream)
        try:
            get_logger("buildfeed.x").info("hello", extra={"cache": "projects"})
            data = json.loads(stream.getvalue().strip())
            assert data["msg"] == "hello"
            assert data["cache"] == "projects"
            assert logging.getLogger("aiohttp").level == logging.WARNING
        finally:
            logging.getLogger().handlers.clear()

    def test_setup_text(self) -> None:
        stream = io.StringIO()
        setup_logging(json_format=False, stream=stream)
        try:
            get_logger("buildfeed.y").debug("hidden")
            get_logger("buildfeed.y").info("shown")
            assert stream.getvalue() == "INFO     buildfeed.y: shown\n"
        finally:
            logging.getLogger().handlers.clear()
