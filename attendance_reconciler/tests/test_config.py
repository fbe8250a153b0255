"""
Tests for configuration validation
"""
from datetime import time

import pytest
from pydantic import ValidationError

from attendance_reconciler.core.config import Settings


def _prod(**overrides):
    values = {
        "DATABASE_URL": "postgresql://test",
        "JWT_SECRET_KEY": "a" * 32,
        "APP_ENV": "prod",
        "ALLOWED_ORIGINS": "https://hr.example.com",
    }
    values.update(overrides)
    return Settings(**values)


def test_prod_settings_rejects_wildcard_origins():
    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        _prod(ALLOWED_ORIGINS="*").validate_production()


def test_prod_settings_rejects_short_jwt_secret():
    with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
        _prod(JWT_SECRET_KEY="short").validate_production()


def test_prod_settings_rejects_sqlite():
    with pytest.raises(ValueError, match="SQLite"):
        _prod(DATABASE_URL="sqlite:///./attendance.db").validate_production()


def test_valid_prod_settings():
    _prod().validate_production()


def test_local_settings_allows_wildcard_origins():
    settings = Settings(DATABASE_URL="sqlite://", JWT_SECRET_KEY="test-key", APP_ENV="local", ALLOWED_ORIGINS="*")

    settings.validate_production()
    assert settings.get_allowed_origins_list() == ["*"]


def test_get_allowed_origins_list():
    settings = Settings(ALLOWED_ORIGINS="https://example.com, https://app.example.com,")

    assert settings.get_allowed_origins_list() == ["https://example.com", "https://app.example.com"]


def test_business_calendar_settings():
    settings = Settings(APP_TIMEZONE="Asia/Kolkata", ATTENDANCE_WINDOW_START="05:30")

    assert settings.APP_TIMEZONE == "Asia/Kolkata"
    assert settings.ATTENDANCE_WINDOW_START == time(5, 30)


def test_unknown_timezone_rejected():
    with pytest.raises(ValidationError):
        Settings(APP_TIMEZONE="Mars/Olympus_Mons")


def test_invalid_app_env_rejected():
    with pytest.raises(ValidationError):
        Settings(APP_ENV="production")


def test_log_level_is_normalised():
    assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


def test_sync_interval_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(SYNC_INTERVAL_MINUTES=0)


def test_device_ids_include_default_device():
    settings = Settings(TERMINAL_DEVICE_ID="gate-a", TERMINAL_DEVICE_IDS="gate-b, gate-a,,gate-c")

    assert settings.get_device_ids() == ["gate-a", "gate-b", "gate-c"]
