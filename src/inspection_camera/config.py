"""Application configuration."""

import os
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from inspection_camera.domain.sessions import IdentificationMode

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    company_label: str = "NORDESTE LOCAÇÕES"
    identification_mode: IdentificationMode = IdentificationMode.UPFRONT
    jpeg_quality: int = Field(default=92, ge=85, le=95)
    timezone: str = "America/Fortaleza"
    date_format: str = "%d/%m/%Y"
    time_format: str = "%H:%M:%S"
    font_path: str | None = None
    bold_font_path: str | None = None
    logo_path: str | None = None
    gps_unavailable_label: str = "GPS INDISPONÍVEL"
    location_max_age_seconds: float | None = 60.0
    export_delay_seconds: float = Field(default=0.5, ge=0.0)
    export_directory: str | None = None
    camera_snapshot_url: str | None = None
    location_url: str | None = None
    location_poll_seconds: float = Field(default=30.0, gt=0.0)
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def zone(self) -> ZoneInfo:
        """Return the timezone used to print capture timestamps."""
        return ZoneInfo(self.timezone)
