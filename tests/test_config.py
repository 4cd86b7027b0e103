"""
Test suite for config.py module.

Covers defaults, environment overrides and the settings cache.
"""

import os
from unittest.mock import patch

from place_import.core.config import Settings, get_settings, reload_settings


class TestSettingsDefaults:
    """Test Settings class with default values."""

    def test_settings_default_values(self):
        """Test that Settings has correct default values."""
        settings = Settings(_env_file=None)

        # Rate limiting
        assert settings.RATE_LIMIT_ENABLED is True
        assert settings.RATE_LIMIT_REQUESTS == 10
        assert settings.RATE_LIMIT_TIMEFRAME == 60

        # Caching
        assert settings.ENABLE_CACHE is True
        assert settings.CACHE_TTL == 3600
        assert settings.REDIS_URL is None

        # Resolution
        assert settings.NEARBY_SEARCH_RADII == [10.0, 50.0, 100.0, 200.0]
        assert settings.TEXT_SEARCH_BIAS_RADIUS == 100.0
        assert settings.MAX_PHOTOS == 6
        assert settings.ALLOW_COORDINATE_ONLY is False
        assert settings.REVERSE_GEOCODE_FALLBACK is False

        assert settings.GOOGLE_MAPS_API_KEY is None
        assert settings.google_api_configured is False

    def test_blank_api_key_is_not_configured(self):
        settings = Settings(_env_file=None, GOOGLE_MAPS_API_KEY="   ")
        assert settings.google_api_configured is False


class TestSettingsOverrides:
    """Test environment and constructor overrides."""

    @patch.dict(os.environ, {"RATE_LIMIT_REQUESTS": "25", "GOOGLE_MAPS_API_KEY": "env-key"})
    def test_environment_overrides(self):
        settings = Settings(_env_file=None)
        assert settings.RATE_LIMIT_REQUESTS == 25
        assert settings.google_api_configured is True

    def test_radii_from_comma_separated_string(self):
        settings = Settings(_env_file=None, NEARBY_SEARCH_RADII="5, 25,125")
        assert settings.NEARBY_SEARCH_RADII == [5.0, 25.0, 125.0]

    @patch.dict(os.environ, {"NEARBY_SEARCH_RADII": "[5, 25]"})
    def test_radii_from_environment_json(self):
        settings = Settings(_env_file=None)
        assert settings.NEARBY_SEARCH_RADII == [5.0, 25.0]

    def test_cors_origins_from_string(self):
        settings = Settings(_env_file=None, CORS_ORIGINS="https://a.example, https://b.example")
        assert settings.CORS_ORIGINS == ["https://a.example", "https://b.example"]


class TestSettingsCache:
    """Test get_settings caching."""

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reload_settings(self):
        first = get_settings()
        reloaded = reload_settings()
        assert reloaded is not first
        assert get_settings() is reloaded
