"""
Structured working-hours and availability configuration.

Validated at construction time so malformed schedules are rejected before
any slot generation happens.
"""

from datetime import date as date_type
from datetime import time
from typing import Optional, Tuple, Union

import pendulum
from pendulum import DateTime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_TIMEZONE = "America/Sao_Paulo"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DateLike = Union[DateTime, date_type]


def _coerce_time(value):
    # PyYAML reads unquoted 13:00 as the base-60 integer 780.
    if isinstance(value, int) and not isinstance(value, bool):
        hours, minutes = divmod(value, 60)
        return time(hour=hours, minute=minutes)
    return value


def _at(day: DateLike, wall_clock: time, timezone: str) -> DateTime:
    return pendulum.datetime(
        day.year, day.month, day.day,
        wall_clock.hour, wall_clock.minute,
        tz=timezone,
    )


class DayHours(BaseModel):
    """Opening and closing time of one weekday."""
    model_config = ConfigDict(frozen=True)

    open: time
    close: time

    @field_validator("open", "close", mode="before")
    @classmethod
    def coerce_time(cls, value):
        return _coerce_time(value)

    @model_validator(mode="after")
    def validate_order(self) -> "DayHours":
        if self.open >= self.close:
            raise ValueError(f"open ({self.open}) must be before close ({self.close})")
        return self


class LunchBreak(BaseModel):
    """Daily break applied to every open day."""
    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @field_validator("start", "end", mode="before")
    @classmethod
    def coerce_time(cls, value):
        return _coerce_time(value)

    @model_validator(mode="after")
    def validate_order(self) -> "LunchBreak":
        if self.start >= self.end:
            raise ValueError(f"lunch start ({self.start}) must be before end ({self.end})")
        return self


def _weekday(open_: str, close: str) -> DayHours:
    return DayHours(open=time.fromisoformat(open_), close=time.fromisoformat(close))


class WorkingHoursConfig(BaseModel):
    """
    Weekday -> opening hours, plus an optional lunch break.

    A weekday set to None is closed and contributes no slots.
    """
    model_config = ConfigDict(frozen=True)

    monday: Optional[DayHours] = Field(default_factory=lambda: _weekday("08:00", "18:00"))
    tuesday: Optional[DayHours] = Field(default_factory=lambda: _weekday("08:00", "18:00"))
    wednesday: Optional[DayHours] = Field(default_factory=lambda: _weekday("08:00", "18:00"))
    thursday: Optional[DayHours] = Field(default_factory=lambda: _weekday("08:00", "18:00"))
    friday: Optional[DayHours] = Field(default_factory=lambda: _weekday("08:00", "18:00"))
    saturday: Optional[DayHours] = None
    sunday: Optional[DayHours] = None
    lunch_break: Optional[LunchBreak] = Field(
        default_factory=lambda: LunchBreak(start=time(12, 0), end=time(14, 0))
    )
    timezone: str = DEFAULT_TIMEZONE

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @model_validator(mode="after")
    def validate_lunch_inside_open_days(self) -> "WorkingHoursConfig":
        """Ensure open < lunch start < lunch end < close on every open day."""
        if self.lunch_break is None:
            return self
        for name in WEEKDAYS:
            hours = getattr(self, name)
            if hours is None:
                continue
            if not hours.open < self.lunch_break.start < self.lunch_break.end < hours.close:
                raise ValueError(
                    f"lunch break {self.lunch_break.start}-{self.lunch_break.end} "
                    f"must lie strictly inside {name} hours {hours.open}-{hours.close}"
                )
        return self

    def hours_for(self, day: DateLike) -> Optional[DayHours]:
        """Return the opening hours for the weekday of ``day`` (None = closed)."""
        return getattr(self, WEEKDAYS[day.weekday()])

    def is_working_day(self, day: DateLike) -> bool:
        return self.hours_for(day) is not None

    def window_for(self, day: DateLike) -> Optional[Tuple[DateTime, DateTime]]:
        """
        Get the opening window of a specific day as clinic-local instants.
        Returns None if the clinic is closed that day.
        """
        hours = self.hours_for(day)
        if hours is None:
            return None
        return _at(day, hours.open, self.timezone), _at(day, hours.close, self.timezone)

    def lunch_for(self, day: DateLike) -> Optional[Tuple[DateTime, DateTime]]:
        if self.lunch_break is None or not self.is_working_day(day):
            return None
        return (
            _at(day, self.lunch_break.start, self.timezone),
            _at(day, self.lunch_break.end, self.timezone),
        )


class AvailabilityConfig(BaseModel):
    """Everything needed to enumerate one provider's open slots for a day."""
    model_config = ConfigDict(frozen=True)

    provider_id: str
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)
    appointment_duration_minutes: int = 30
    buffer_minutes: int = 15

    @field_validator("appointment_duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure appointment duration is positive."""
        if value <= 0:
            raise ValueError("appointment_duration_minutes must be greater than zero")
        return value

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        if value < 0:
            raise ValueError("buffer_minutes must not be negative")
        return value
