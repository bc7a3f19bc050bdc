"""Tests for settings loaded from the environment."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from parkgrid import ParkGridSettings
from parkgrid.exceptions import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "PARKGRID_URL",
        "PARKGRID_API_KEY",
        "PARKGRID_TABLE",
        "PARKGRID_IDENTITY_PATH",
        "PARKGRID_POLL_INTERVAL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_from_env(clean_env):
    clean_env.setenv("PARKGRID_URL", "https://example.supabase.co")
    clean_env.setenv("PARKGRID_API_KEY", "secret")
    clean_env.setenv("PARKGRID_TABLE", "yard")
    clean_env.setenv("PARKGRID_POLL_INTERVAL", "2.5")

    settings = ParkGridSettings.from_env()

    assert settings.url == "https://example.supabase.co"
    assert settings.table == "yard"
    assert settings.poll_interval == timedelta(seconds=2.5)
    assert settings.lease_ttl == timedelta(minutes=5)
    assert settings.heartbeat_interval == timedelta(seconds=30)


def test_overrides_take_precedence(clean_env):
    clean_env.setenv("PARKGRID_URL", "https://example.supabase.co")

    settings = ParkGridSettings.from_env(api_key="override", table="other")

    assert settings.api_key == "override"
    assert settings.table == "other"


def test_missing_credentials(clean_env):
    with pytest.raises(ConfigurationError):
        ParkGridSettings.from_env()


def test_bad_poll_interval(clean_env):
    clean_env.setenv("PARKGRID_URL", "https://example.supabase.co")
    clean_env.setenv("PARKGRID_API_KEY", "secret")
    clean_env.setenv("PARKGRID_POLL_INTERVAL", "soon")

    with pytest.raises(ConfigurationError):
        ParkGridSettings.from_env()


def test_settings_are_frozen(clean_env):
    settings = ParkGridSettings(url="https://example.supabase.co", api_key="secret")

    with pytest.raises(ValidationError):
        settings.table = "other"
