"""
Config validation tests for the service process and feed settings.

Tests __post_init__ validation: port ranges, URL schemes and defaults.
"""

from __future__ import annotations

import pytest
from scripts.run_server import ServiceConfig

from buildfeed.cache import FailurePolicy
from buildfeed.feed import FeedConfig


class TestServiceConfig:
    """ServiceConfig.__post_init__ validation."""

    def test_default_config_valid(self) -> None:
        """Defaults match the Functions host port and pinned failures."""
        config = ServiceConfig()
        assert config.port == 7071
        assert config.failure_policy is FailurePolicy.PIN
        assert config.json_logs is True

    def test_invalid_port_zero(self) -> None:
        with pytest.raises(ValueError, match="port"):
            ServiceConfig(port=0)

    def test_invalid_port_too_high(self) -> None:
        with pytest.raises(ValueError, match="port"):
            ServiceConfig(port=70000)

    def test_empty_host(self) -> None:
        with pytest.raises(ValueError, match="host"):
            ServiceConfig(host="")


class TestFeedConfig:
    """FeedConfig.__post_init__ validation."""

    def test_defaults(self) -> None:
        config = FeedConfig()
        assert config.feed_url.endswith("cli-feed-v3.json")
        assert config.cdn_root == "https://functionscdn.azureedge.net/public"
        assert config.template_prefix == "itemTemplates."

    def test_cdn_root_trailing_slash_stripped(self) -> None:
        assert FeedConfig(cdn_root="https://cdn.example/public/").cdn_root == (
            "https://cdn.example/public"
        )

    @pytest.mark.parametrize(
        "field", ["feed_url", "cdn_root", "item_template_url", "project_template_url"]
    )
    def test_non_http_url_rejected(self, field: str) -> None:
        with pytest.raises(ValueError, match=field):
            FeedConfig(**{field: "ftp://example/x"})

    def test_empty_template_prefix(self) -> None:
        with pytest.raises(ValueError, match="template_prefix"):
            FeedConfig(template_prefix="")
