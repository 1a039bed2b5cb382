"""Application configuration and environment validation."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .awards import AwardPolicy, flat_per_order, per_currency_unit


REQUIRED_ENV_VARS = [
    "LOYALTY_DATA_DIR",
    "LOG_LEVEL",
    "TZ",
]

AWARD_POLICIES = ("flat", "per_unit")


class ConfigError(RuntimeError):
    """Raised when the environment configuration is invalid."""


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    data_dir: str = Field(..., alias="LOYALTY_DATA_DIR")
    log_level: str = Field(..., alias="LOG_LEVEL")
    timezone: str = Field(..., alias="TZ")
    loyalty_enabled: bool = Field(True, alias="LOYALTY_ENABLED")
    award_policy_name: str = Field("flat", alias="AWARD_POLICY")
    points_per_order: int = Field(50, alias="POINTS_PER_ORDER")
    points_per_currency_unit: int = Field(1, alias="POINTS_PER_CURRENCY_UNIT")

    @field_validator("data_dir", "log_level")
    @classmethod
    def non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value

    @field_validator("award_policy_name")
    @classmethod
    def validate_policy(cls, value: str) -> str:
        value = value.lower()
        if value not in AWARD_POLICIES:
            raise ValueError(f"AWARD_POLICY must be one of {', '.join(AWARD_POLICIES)}")
        return value

    @field_validator("points_per_order", "points_per_currency_unit")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def award_policy(self) -> AwardPolicy:
        if self.award_policy_name == "per_unit":
            return per_currency_unit(self.points_per_currency_unit)
        return flat_per_order(self.points_per_order)


def _missing_required_env() -> list[str]:
    return [key for key in REQUIRED_ENV_VARS if key not in os.environ or os.environ[key] == ""]


def load_settings() -> Settings:
    missing = _missing_required_env()
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(sorted(missing))}")
    try:
        env_values = {
            field.alias: os.environ.get(field.alias)
            for field in Settings.model_fields.values()
            if os.environ.get(field.alias) is not None
        }
        settings = Settings(**env_values)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def reset_settings_cache() -> None:
    get_settings.cache_clear()  # type: ignore[attr-defined]


def is_environment_valid() -> tuple[bool, Optional[str]]:
    try:
        reset_settings_cache()
        get_settings()
    except ConfigError as exc:
        return False, str(exc)
    return True, None
