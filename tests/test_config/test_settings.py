"""Tests for application settings."""

import sys

import pytest
from pydantic import ValidationError

sys.path.append("src")
from marketpulse.config.settings import Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.quote_cache_ttl_seconds == 30.0
        assert settings.max_stock_allocation == 5.0
        assert settings.max_sector_allocation == 20.0
        assert settings.quote_providers == ["yahoo", "finnhub", "stooq"]

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PRICE_POLL_SECONDS", "5")
        monkeypatch.setenv("QUOTE_PROVIDERS", '["Stooq"]')
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.price_poll_seconds == 5
        assert settings.quote_providers == ["stooq"]
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("quote_providers", ["nope"]),
            ("quote_providers", []),
            ("price_poll_seconds", 0),
            ("quote_cache_ttl_seconds", 0),
            ("environment", "staging"),
            ("log_format", "xml"),
        ],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_paths(self, tmp_path):
        settings = Settings(_env_file=None, data_directory=str(tmp_path))

        assert settings.get_local_store_path() == tmp_path / "local_store.json"
        assert settings.get_database_url() == f"sqlite:///{tmp_path / 'marketpulse.db'}"

    def test_api_keys(self):
        settings = Settings(_env_file=None, finnhub_api_key="abc")

        assert settings.get_api_keys()["finnhub"] == "abc"
        assert settings.get_api_keys()["fmp"] is None

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
