from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from hydrobot.models import DrinkingWindow, EligibilityPolicy


class Settings(BaseSettings):
    telegram_token: SecretStr = Field(SecretStr("TEST_TOKEN"), alias="TELEGRAM_TOKEN")
    timezone: str = Field("UTC", alias="TIMEZONE")
    database_url: str = Field("sqlite+aiosqlite:///./storage/hydrobot.db", alias="DATABASE_URL")
    scheduler_tick_seconds: int = Field(60, alias="SCHEDULER_TICK_SECONDS")

    drinking_window: DrinkingWindow = Field(DrinkingWindow.PRE_BED_CUTOFF, alias="DRINKING_WINDOW")
    eligibility_policy: EligibilityPolicy = Field(EligibilityPolicy.SEQUENTIAL, alias="ELIGIBILITY_POLICY")
    grace_window_minutes: int = Field(120, alias="GRACE_WINDOW_MINUTES")
    pre_bed_cutoff_minutes: int = Field(120, alias="PRE_BED_CUTOFF_MINUTES")

    serving_count: int = 8
    ml_per_kg: int = 35
    min_weight_kg: float = 20
    max_weight_kg: float = 300
    min_height_cm: float = 100
    max_height_cm: float = 250

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
