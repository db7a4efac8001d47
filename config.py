"""
Configuration module for the appointment scheduling service.
Loads environment variables and provides typed configuration.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.constants import MAX_SERIES_OCCURRENCES

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase (checked by validate_all_required at startup)
    supabase_url: str = ""
    supabase_key: str = ""

    # Telegram bot used for client notifications; notifications are
    # disabled when unset
    bot_token: Optional[str] = None

    # Scheduling
    timezone: str = "America/Bogota"  # Default tenant timezone (IANA)
    max_series_occurrences: int = MAX_SERIES_OCCURRENCES
    notify_all_appointments_default: bool = True
    reminder_hours_before: int = 24

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_file: bool = True

    # Redis Configuration (for APScheduler cluster support)
    redis_url: Optional[str] = (
        None  # Redis connection URL (e.g., redis://localhost:6379/0)
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.bot_token)

    def validate_all_required(self) -> None:
        """
        Validate that all required settings are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        required_fields = ["supabase_url", "supabase_key"]

        missing = []
        for field in required_fields:
            value = getattr(self, field, None)
            if not value or str(value).lower().startswith("your_"):
                missing.append(field)

        if self.max_series_occurrences < 1:
            missing.append("max_series_occurrences")

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


# Global settings instance
settings = Settings()
