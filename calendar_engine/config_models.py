from __future__ import annotations

import logging
from datetime import time
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from calendar_engine import ARGS_DIR

logger = logging.getLogger(__name__)


# =============================================================================
# Recurrence expansion limits
# =============================================================================

class RecurrenceConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    max_instances: int = Field(default=1000, ge=1)
    max_span_days: int = Field(default=730, ge=1)


# =============================================================================
# Booking page defaults
# =============================================================================

class BookingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    daily_start: time = Field(default=time(9, 0))
    daily_end: time = Field(default=time(17, 0))
    enabled_weekdays: list[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4])
    timezone: str = Field(default="UTC")
    min_notice_minutes: int = Field(default=60, ge=0)
    max_advance_days: int = Field(default=60, ge=0)
    buffer_before_minutes: int = Field(default=0, ge=0)
    buffer_after_minutes: int = Field(default=0, ge=0)
    slot_granularity_minutes: int = Field(default=15, ge=1)
    max_bookings_per_day: Optional[int] = Field(default=None, ge=1)

    @field_validator("enabled_weekdays")
    @classmethod
    def _weekdays_in_range(cls, value: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("weekdays must be 0 (Monday) through 6 (Sunday)")
        return sorted(set(value))

    @model_validator(mode="after")
    def _window_not_empty(self) -> "BookingConfig":
        if self.daily_start >= self.daily_end:
            raise ValueError("daily_start must be before daily_end")
        return self


# =============================================================================
# Multi-attendee search
# =============================================================================

class WorkingHoursConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    start: time = Field(default=time(9, 0))
    end: time = Field(default=time(17, 0))
    days: list[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4])
    timezone: str = Field(default="UTC")

    @model_validator(mode="after")
    def _window_not_empty(self) -> "WorkingHoursConfig":
        if self.start >= self.end:
            raise ValueError("working hours start must be before end")
        return self


class SchedulingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    step_minutes: int = Field(default=30, ge=1)
    default_max_suggestions: int = Field(default=5, ge=1)
    next_available_horizon_days: int = Field(default=14, ge=1)
    alternative_suggestions: int = Field(default=3, ge=1)
    max_candidates: Optional[int] = Field(default=5000, ge=1)
    max_seconds: Optional[float] = Field(default=None, gt=0)
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)


class MultiPartyConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    unknown_policy: Literal["exclude", "assume_available"] = Field(default="exclude")
    fetch_concurrency: int = Field(default=8, ge=1)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)


class EngineConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    recurrence: RecurrenceConfig = Field(default_factory=RecurrenceConfig)
    booking: BookingConfig = Field(default_factory=BookingConfig)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    multi_party: MultiPartyConfig = Field(default_factory=MultiPartyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# load_and_validate
# =============================================================================

_CONFIG_MAP: dict[str, type[BaseModel]] = {
    "engine": EngineConfig,
}


def load_and_validate(config_name: str = "engine", model_class: type[BaseModel] | None = None) -> BaseModel:
    if model_class is None:
        model_class = _CONFIG_MAP.get(config_name)
        if model_class is None:
            raise ValueError(f"Unknown config: {config_name}. Available: {list(_CONFIG_MAP.keys())}")

    yaml_path = ARGS_DIR / f"{config_name}.yaml"

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        return model_class.model_validate(raw)
    except Exception as e:
        logger.warning(f"Config validation failed for {config_name}: {e}, using defaults")
        return model_class()
