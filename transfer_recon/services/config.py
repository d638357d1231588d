from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from transfer_recon.db.settings import Settings, get_settings


class ReconciliationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    day_window: int = Field(default=5, ge=0)
    relative_amount_tolerance: Decimal = Field(default=Decimal("0.02"), ge=0, lt=1)
    absolute_amount_tolerance: Decimal = Field(default=Decimal("1.00"), ge=0)
    day_penalty: Decimal = Field(default=Decimal("10"), ge=0)
    amount_penalty: Decimal = Field(default=Decimal("1"), ge=0)
    high_confidence_threshold: Decimal = Field(default=Decimal("80"), ge=0)
    medium_confidence_threshold: Decimal = Field(default=Decimal("50"), ge=0)

    @model_validator(mode="after")
    def check_thresholds(self) -> ReconciliationConfig:
        if self.medium_confidence_threshold > self.high_confidence_threshold:
            raise ValueError("medium_confidence_threshold must not exceed high_confidence_threshold")
        return self

    def with_overrides(self, **overrides: object) -> ReconciliationConfig:
        values = self.model_dump()
        values.update({key: value for key, value in overrides.items() if value is not None})
        return ReconciliationConfig(**values)


DEFAULT_CONFIG = ReconciliationConfig()


def config_from_settings(settings: Settings) -> ReconciliationConfig:
    return ReconciliationConfig(
        day_window=settings.transfer_day_window,
        relative_amount_tolerance=settings.transfer_relative_amount_tolerance,
        absolute_amount_tolerance=settings.transfer_absolute_amount_tolerance,
        day_penalty=settings.transfer_day_penalty,
        amount_penalty=settings.transfer_amount_penalty,
        high_confidence_threshold=settings.transfer_high_confidence_threshold,
        medium_confidence_threshold=settings.transfer_medium_confidence_threshold,
    )


def get_reconciliation_config() -> ReconciliationConfig:
    return config_from_settings(get_settings())
