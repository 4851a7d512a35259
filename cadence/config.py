"""Application configuration."""
from datetime import date
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./cadence.db"
    DATABASE_ECHO: bool = False

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Period windows
    # Lookback used for overdue / period-picker windows when the user
    # has no financial tracking start date.
    DEFAULT_LOOKBACK_MONTHS: int = 6
    PERIOD_PICKER_LOOKAHEAD_MONTHS: int = 3
    NEXT_OCCURRENCE_HORIZON_DAYS: int = 366

    # Business calendar (income dates are moved off these days)
    BUSINESS_HOLIDAYS: List[date] = []

    # CORS
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if self.APP_ENV == "development":
            return ["*"]  # Allow all origins in development
        return [self.FRONTEND_URL, "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
