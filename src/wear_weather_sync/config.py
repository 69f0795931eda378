"""Typed settings loader for the phone and watch processes."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    preferred_location: str = Field(default="94043", alias="PREFERRED_LOCATION")

    snapshot_store: Literal["memory", "openweathermap"] = Field(
        default="memory",
        alias="SNAPSHOT_STORE",
    )
    owm_api_base_url: AnyUrl = Field(
        default=AnyUrl("https://api.openweathermap.org"),
        alias="OWM_API_BASE_URL",
    )
    owm_api_key: str | None = Field(default=None, alias="OWM_API_KEY", repr=False)
    owm_units: Literal["metric", "imperial"] = Field(default="metric", alias="OWM_UNITS")
    owm_forecast_days: int = Field(default=7, alias="OWM_FORECAST_DAYS")
    owm_timeout_seconds: float = Field(default=15.0, alias="OWM_TIMEOUT_SECONDS")

    interactive_update_rate_ms: int = Field(default=60_000, alias="INTERACTIVE_UPDATE_RATE_MS")
    publish_connect_timeout_seconds: float | None = Field(
        default=None,
        alias="PUBLISH_CONNECT_TIMEOUT_SECONDS",
    )
    use_24_hour_time: bool = Field(default=True, alias="USE_24_HOUR_TIME")

    journal_dir: Path = Field(default=Path("./data/journal"), alias="JOURNAL_DIR")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("owm_api_key", "publish_connect_timeout_seconds", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat empty env-string values as unset optionals."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_case_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def validate_settings(self) -> Settings:
        """Cross-field validation."""
        if not self.preferred_location.strip():
            raise ValueError("PREFERRED_LOCATION must not be empty.")
        if self.snapshot_store == "openweathermap" and not self.owm_api_key:
            raise ValueError("OWM_API_KEY is required when SNAPSHOT_STORE='openweathermap'.")
        if not (1 <= self.owm_forecast_days <= 16):
            raise ValueError("OWM_FORECAST_DAYS must be between 1 and 16.")
        if self.owm_timeout_seconds <= 0:
            raise ValueError("OWM_TIMEOUT_SECONDS must be > 0.")
        if self.interactive_update_rate_ms <= 0:
            raise ValueError("INTERACTIVE_UPDATE_RATE_MS must be > 0.")
        if (
            self.publish_connect_timeout_seconds is not None
            and self.publish_connect_timeout_seconds <= 0
        ):
            raise ValueError("PUBLISH_CONNECT_TIMEOUT_SECONDS must be > 0 when set.")
        return self

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for journaling (no credentials)."""
        return {
            "app_env": self.app_env,
            "preferred_location": self.preferred_location,
            "snapshot_store": self.snapshot_store,
            "owm_api_base_url": str(self.owm_api_base_url),
            "owm_units": self.owm_units,
            "owm_forecast_days": self.owm_forecast_days,
            "owm_timeout_seconds": self.owm_timeout_seconds,
            "interactive_update_rate_ms": self.interactive_update_rate_ms,
            "publish_connect_timeout_seconds": self.publish_connect_timeout_seconds,
            "use_24_hour_time": self.use_24_hour_time,
            "log_level": self.log_level,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc
    return settings
