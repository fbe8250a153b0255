"""
Configuration management for the attendance reconciliation service
"""
from datetime import time
from typing import Optional, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    DATABASE_URL: str = Field(default="sqlite:///./attendance.db", description="SQLAlchemy database URL")
    JWT_SECRET_KEY: str = Field(default="change-me", description="Secret used to verify caller bearer tokens")
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="Lifetime of tokens minted by create_access_token")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Business calendar. Instants are stored in UTC; every day/weekday/holiday
    # comparison happens in this zone.
    APP_TIMEZONE: str = Field(default="Asia/Dhaka", description="IANA zone of the business calendar")
    ATTENDANCE_WINDOW_START: time = Field(
        default=time(6, 0),
        description="Local time-of-day at which an attendance window opens; earlier punches belong to the previous day",
    )

    # Biometric terminal gateway
    TERMINAL_BASE_URL: Optional[str] = Field(default=None, description="Base URL of the terminal gateway")
    TERMINAL_DEVICE_ID: str = Field(default="terminal-1", description="Device id used for the watermark")
    TERMINAL_DEVICE_IDS: str = Field(
        default="",
        description="Comma-separated ids of further devices served by the gateway; TERMINAL_DEVICE_ID is always included",
    )
    TERMINAL_TIMEOUT_SECONDS: float = Field(default=20.0, description="Connect/read timeout for terminal calls")

    SYNC_INTERVAL_MINUTES: int = Field(default=5, description="Interval of the scheduled punch sync")
    ACTIVITY_DRAIN_SECONDS: int = Field(default=30, description="Interval at which queued activity events are persisted")
    SCHEDULER_ENABLED: bool = Field(default=False, description="Start the background scheduler on app startup")

    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("APP_TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """APP_TIMEZONE must name a zone known to zoneinfo"""
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("SYNC_INTERVAL_MINUTES")
    @classmethod
    def validate_sync_interval(cls, v: int) -> int:
        if v < 1:
            raise ValueError("SYNC_INTERVAL_MINUTES must be at least 1")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

            if self.DATABASE_URL.startswith("sqlite"):
                raise ValueError("DATABASE_URL must not point at SQLite in production environment")

    def get_device_ids(self) -> List[str]:
        """
        Get list of configured terminal device ids

        Returns:
            TERMINAL_DEVICE_ID followed by any TERMINAL_DEVICE_IDS, without duplicates
        """
        ids = [self.TERMINAL_DEVICE_ID]
        for device_id in self.TERMINAL_DEVICE_IDS.split(","):
            device_id = device_id.strip()
            if device_id and device_id not in ids:
                ids.append(device_id)
        return ids

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
