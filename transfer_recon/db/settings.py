from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Transfer Reconciliation"
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/transfers"
    database_echo: bool = False
    log_level: str = "INFO"

    transfer_day_window: int = 5
    transfer_relative_amount_tolerance: Decimal = Decimal("0.02")
    transfer_absolute_amount_tolerance: Decimal = Decimal("1.00")
    transfer_day_penalty: Decimal = Decimal("10")
    transfer_amount_penalty: Decimal = Decimal("1")
    transfer_high_confidence_threshold: Decimal = Decimal("80")
    transfer_medium_confidence_threshold: Decimal = Decimal("50")


@lru_cache
def get_settings() -> Settings:
    return Settings()
