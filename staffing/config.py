import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    env: str = Field(default="dev", description="Deployment environment")
    app_name: str = "Staffing Back-Office"
    log_level: str = "INFO"

    data_path: Path = Field(default=Path("data/store.json"), description="JSON key-value store file")
    store_prefix: str = "cm_"

    normal_weekly_hours: float = 35.0
    overtime_125_band_hours: float = 8.0
    overtime_125_multiplier: float = 1.25
    overtime_150_multiplier: float = 1.50
    daily_overtime_threshold: float = 8.0
    default_hours_per_day: float = 7.0
    max_break_minutes: int = 480

    vat_rate: float = 0.20
    currency: str = "EUR"
    payment_terms_days: int = 30
    invoice_number_prefix: str = "FAC"

    model_config = SettingsConfigDict(env_prefix="STAFFING_", extra="ignore")

    @field_validator(
        "normal_weekly_hours",
        "overtime_125_band_hours",
        "daily_overtime_threshold",
        "default_hours_per_day",
        "vat_rate",
    )
    @classmethod
    def non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("overtime_125_multiplier", "overtime_150_multiplier")
    @classmethod
    def at_least_one(cls, value: float) -> float:
        if value < 1:
            raise ValueError("overtime multipliers must be at least 1")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=get_settings_env_file())


def get_settings_env_file() -> str | None:
    """Resolve environment-specific env file if it exists."""
    env = os.getenv("STAFFING_ENV", "dev")
    env_file = BASE_DIR / f".env.{env}"
    default_file = BASE_DIR / ".env"
    if env_file.exists():
        return str(env_file)
    if default_file.exists():
        return str(default_file)
    return None
