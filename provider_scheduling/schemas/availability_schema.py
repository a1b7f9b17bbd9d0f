"""Wire/persisted representation of a provider's weekly schedule.

These models are the strict ingestion gate for schedule upserts; they
reject malformed input before anything touches storage and hand back the
internal ``WeeklyAvailability`` via ``to_domain()``.
"""

from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator

from provider_scheduling.scheduling.availability import DaySchedule, WeeklyAvailability
from provider_scheduling.scheduling.time_window import HHMM_PATTERN, DayOfWeek, TimeRange


class TimeRangePayload(BaseModel):
    """One working window, ``"HH:mm"`` 24h."""

    model_config = ConfigDict(populate_by_name=True)

    start: str = Field(..., validation_alias=AliasChoices("start", "startTime", "from"))
    end: str = Field(..., validation_alias=AliasChoices("end", "endTime", "to"))

    @field_validator("start", "end")
    @classmethod
    def _hhmm(cls, value: str) -> str:
        if not HHMM_PATTERN.match(value):
            raise ValueError(f'invalid time "{value}", expected "HH:mm"')
        return value

    @model_validator(mode="after")
    def _ordered(self) -> "TimeRangePayload":
        # Zero-padded HH:mm compares correctly as text.
        if self.start >= self.end:
            raise ValueError(f"start must be before end (got {self.start} - {self.end})")
        return self

    def to_domain(self) -> TimeRange:
        return TimeRange.from_strings(self.start, self.end)


class DaySchedulePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day_of_week: Union[int, str] = Field(..., validation_alias=AliasChoices("dayOfWeek", "day_of_week"))
    is_available: StrictBool = Field(..., validation_alias=AliasChoices("isAvailable", "is_available"))
    windows: list[TimeRangePayload] = Field(
        default_factory=list, validation_alias=AliasChoices("windows", "slots")
    )

    @field_validator("day_of_week")
    @classmethod
    def _known_day(cls, value: Union[int, str]) -> str:
        return DayOfWeek.parse(value).label

    @model_validator(mode="after")
    def _windows_when_available(self) -> "DaySchedulePayload":
        if self.is_available and not self.windows:
            raise ValueError(
                f'At least one window is required when isAvailable is true for "{self.day_of_week}".'
            )
        return self

    def to_domain(self) -> DaySchedule:
        return DaySchedule(
            day=DayOfWeek.parse(self.day_of_week),
            is_available=self.is_available,
            windows=tuple(window.to_domain() for window in self.windows),
        )


class WeeklyAvailabilityPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    buffer_time_minutes: Optional[int] = Field(
        None, validation_alias=AliasChoices("bufferTimeMinutes", "bufferTime", "buffer_time_minutes")
    )
    days: list[DaySchedulePayload]

    @field_validator("buffer_time_minutes")
    @classmethod
    def _non_negative(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError("bufferTimeMinutes must be a non-negative number (minutes).")
        return value

    @model_validator(mode="after")
    def _unique_days(self) -> "WeeklyAvailabilityPayload":
        seen: set[str] = set()
        for day in self.days:
            if day.day_of_week in seen:
                raise ValueError(f'Duplicate dayOfWeek "{day.day_of_week}" in availability.days.')
            seen.add(day.day_of_week)
        return self

    def to_domain(self, fallback_buffer: int = 0) -> WeeklyAvailability:
        """Internal form; an omitted buffer keeps ``fallback_buffer``."""
        buffer = self.buffer_time_minutes if self.buffer_time_minutes is not None else fallback_buffer
        return WeeklyAvailability.from_days(
            (day.to_domain() for day in self.days), buffer_time_minutes=buffer
        )
