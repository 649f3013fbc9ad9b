"""
Tests for store domain resolution and environment-driven settings.
"""

import pytest

from neto_history.config.settings import Settings
from neto_history.platform.errors import InvalidTenantError
from neto_history.services.tenant import tenant_from_origin


class TestTenantFromOrigin:

    @pytest.mark.parametrize("origin", [
        "https://mystore.neto.com.au",
        "http://mystore.neto.com.au",
        "https://mystore.neto.com.au/",
        "https://MyStore.Neto.com.au",
        "mystore.neto.com.au",
        "  https://mystore.neto.com.au/checkout  ",
    ])
    def test_normalizes_to_domain(self, origin):
        assert tenant_from_origin(origin) == "mystore.neto.com.au"

    def test_keeps_port(self):
        assert tenant_from_origin("https://localhost:8080") == "localhost:8080"

    @pytest.mark.parametrize("origin", [None, "", "   ", "null", "https://", "https:///path"])
    def test_unusable_origin_rejected(self, origin):
        with pytest.raises(InvalidTenantError) as exc_info:
            tenant_from_origin(origin)

        assert exc_info.value.status_code == 400


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in (
            "REDIS_URL", "NETO_CLIENT_ID", "NETO_CLIENT_SECRET", "APP_URL",
            "NETO_REQUEST_TIMEOUT_SECONDS", "DIGEST_TTL_DAYS", "ORDER_LOOKBACK_HOURS",
            "DIGEST_SERVE_STALE_ON_ERROR", "CORS_ALLOW_ORIGINS", "LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.redis_url == "redis://localhost:6379/0"
        assert settings.digest_ttl_days == 60
        assert settings.order_lookback_hours == 24
        assert settings.upstream_timeout_seconds == 30.0
        assert settings.serve_stale_on_error is False
        assert settings.cors_allow_origins == ["*"]
        assert settings.missing_required() == ["NETO_CLIENT_ID", "NETO_CLIENT_SECRET"]

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("NETO_CLIENT_ID", "client-id")
        monkeypatch.setenv("NETO_CLIENT_SECRET", "client-secret")
        monkeypatch.setenv("APP_URL", "https://history.example.com/")
        monkeypatch.setenv("NETO_REQUEST_TIMEOUT_SECONDS", "7.5")
        monkeypatch.setenv("DIGEST_SERVE_STALE_ON_ERROR", "true")
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example.com, https://b.example.com")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.missing_required() == []
        assert settings.callback_url == "https://history.example.com/auth/callback"
        assert settings.upstream_timeout_seconds == 7.5
        assert settings.serve_stale_on_error is True
        assert settings.cors_allow_origins == ["https://a.example.com", "https://b.example.com"]
        assert settings.log_level == "DEBUG"
