"""Tests for configuration validation."""

import pytest
from pydantic import ValidationError

from src.core.config import Settings


def test_defaults() -> None:
    """Test the cache and pipeline defaults."""
    settings = Settings(_env_file=None)

    assert settings.cache_ttl_seconds == 300
    assert settings.slow_request_threshold_ms == 500
    assert settings.notification_webhook_url is None


@pytest.mark.parametrize("ttl", [299, 601])
def test_cache_ttl_must_stay_within_window(ttl: int) -> None:
    """Test the cache TTL is bounded to five to ten minutes."""
    with pytest.raises(ValidationError, match="cache_ttl_seconds"):
        Settings(_env_file=None, cache_ttl_seconds=ttl)


def test_slow_threshold_must_be_positive() -> None:
    with pytest.raises(ValidationError, match="slow_request_threshold_ms"):
        Settings(_env_file=None, slow_request_threshold_ms=0)


def test_exclude_patterns_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test list settings are read as JSON from the environment."""
    monkeypatch.setenv("PERFORMANCE_EXCLUDE_PATTERNS", '["List", "Get"]')
    monkeypatch.setenv("CACHE_TTL_SECONDS", "600")

    settings = Settings(_env_file=None)

    assert settings.performance_exclude_patterns == ["List", "Get"]
    assert settings.cache_ttl_seconds == 600


def test_is_production() -> None:
    assert Settings(_env_file=None, environment="Production").is_production
    assert not Settings(_env_file=None, environment="development").is_production
