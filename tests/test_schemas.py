"""Tests for request payload validation and wire serialization."""

import pytest
from pydantic import ValidationError

from provider_scheduling.schemas.availability_schema import DaySchedulePayload, WeeklyAvailabilityPayload
from provider_scheduling.schemas.booking_schema import (
    BookingCreateRequest,
    BookingStatusUpdate,
    ExtendBookingRequest,
    PaymentStatus,
)
from provider_scheduling.scheduling.time_window import DayOfWeek
from tests.conftest import at, make_booking


def monday(**overrides):
    day = {"dayOfWeek": "Monday", "isAvailable": True, "windows": [{"start": "09:00", "end": "12:00"}]}
    day.update(overrides)
    return day


class TestWeeklyAvailabilityPayload:
    def test_numeric_day_and_legacy_keys(self):
        payload = WeeklyAvailabilityPayload.model_validate(
            {"bufferTime": 5, "days": [{"dayOfWeek": 1, "isAvailable": True, "slots": [{"from": "08:00", "to": "10:00"}]}]}
        )
        weekly = payload.to_domain()
        assert weekly.buffer_time_minutes == 5
        assert str(weekly.for_day(DayOfWeek.MONDAY).windows[0]) == "08:00-10:00"

    def test_omitted_buffer_uses_fallback(self):
        payload = WeeklyAvailabilityPayload.model_validate({"days": [monday()]})
        assert payload.to_domain(fallback_buffer=20).buffer_time_minutes == 20

    def test_duplicate_days_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate dayOfWeek"):
            WeeklyAvailabilityPayload.model_validate({"days": [monday(), monday(dayOfWeek=1)]})

    def test_negative_buffer_rejected(self):
        with pytest.raises(ValidationError, match="non-negative"):
            WeeklyAvailabilityPayload.model_validate({"bufferTimeMinutes": -5, "days": []})

    def test_off_day_needs_no_windows(self):
        payload = WeeklyAvailabilityPayload.model_validate(
            {"days": [{"dayOfWeek": "Sunday", "isAvailable": False}]}
        )
        assert payload.to_domain().for_day(DayOfWeek.SUNDAY).working_windows == ()


class TestDaySchedulePayload:
    def test_available_day_requires_window(self):
        with pytest.raises(ValidationError, match="At least one window"):
            DaySchedulePayload.model_validate(monday(windows=[]))

    def test_is_available_must_be_boolean(self):
        with pytest.raises(ValidationError):
            DaySchedulePayload.model_validate(monday(isAvailable="yes"))

    @pytest.mark.parametrize("window", [
        {"start": "9:00", "end": "12:00"},
        {"start": "24:00", "end": "24:30"},
        {"start": "12:00", "end": "09:00"},
        {"start": "10:00", "end": "10:00"},
    ])
    def test_malformed_windows(self, window):
        with pytest.raises(ValidationError):
            DaySchedulePayload.model_validate(monday(windows=[window]))

    @pytest.mark.parametrize("day", ["Funday", 7, -1])
    def test_unknown_day(self, day):
        with pytest.raises(ValidationError):
            DaySchedulePayload.model_validate(monday(dayOfWeek=day))


class TestBookingPayloads:
    def test_create_request_normalizes_to_utc(self):
        request = BookingCreateRequest.model_validate(
            {"serviceId": "SRV-30", "scheduledAt": "2026-01-05T11:00:00+02:00", "notes": "  "}
        )
        assert request.scheduled_at == at(9)
        assert request.notes is None

    def test_create_request_minimum_duration(self):
        with pytest.raises(ValidationError):
            BookingCreateRequest.model_validate(
                {"serviceId": "SRV-30", "scheduledAt": "2026-01-05T09:00:00Z", "durationMinutes": 5}
            )

    def test_status_update_aliases(self):
        update = BookingStatusUpdate.model_validate({"paymentStatus": "on-service"})
        assert update.payment_status == PaymentStatus.ON_SERVICE
        assert update.status is None

    def test_extend_minutes_must_be_positive(self):
        with pytest.raises(ValidationError):
            ExtendBookingRequest.model_validate({"minutes": -30})

    def test_booking_dumps_camel_case(self):
        dumped = make_booking(at(9), 30).model_dump(mode="json", by_alias=True)
        assert {"providerId", "scheduledAt", "durationMinutes", "paymentStatus"} <= set(dumped)
        assert dumped["status"] == "confirmed"
