"""Tests for doctor availability and booking checks."""

from datetime import UTC, date, datetime, time, timedelta
from uuid import uuid4

import pytest

from app.engines.availability import (
    AppointmentRequest,
    BookedSlot,
    BookingError,
    Weekday,
    check_conflict,
    enumerate_slots,
    free_slots,
    is_day_available,
    is_slot_bookable,
    try_book,
    working_window,
)
from app.schemas.appointments import AppointmentStatus

MONDAY = date(2025, 6, 2)
SATURDAY = date(2025, 6, 7)
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def test_weekday_mapping_uses_iso_weekday():
    """Dates map to weekday keys Monday through Sunday."""
    assert Weekday.from_date(MONDAY) == Weekday.MONDAY
    assert Weekday.from_date(MONDAY + timedelta(days=2)) == Weekday.WEDNESDAY
    assert Weekday.from_date(SATURDAY) == Weekday.SATURDAY
    assert Weekday.from_date(SATURDAY + timedelta(days=1)) == Weekday.SUNDAY


def test_enumerate_slots_full_day(weekly_availability):
    """09:00-17:00 in 30-minute steps gives 16 slots ending at 16:30."""
    slots = enumerate_slots(weekly_availability, MONDAY)
    times = list(slots)

    assert len(slots) == 16
    assert len(times) == 16
    assert times[0] == time(9, 0)
    assert times[-1] == time(16, 30)
    assert time(17, 0) not in times


def test_enumerate_slots_is_reiterable(weekly_availability):
    slots = enumerate_slots(weekly_availability, MONDAY, slot_minutes=60)
    assert list(slots) == list(slots)
    assert len(slots) == 8


def test_enumerate_slots_uneven_window():
    """A slot starting before the window end is kept even if it overruns it."""
    weekly = {"monday": {"available": True, "start": "09:00", "end": "10:15"}}
    assert list(enumerate_slots(weekly, MONDAY)) == [time(9, 0), time(9, 30), time(10, 0)]


def test_enumerate_slots_day_off(weekly_availability):
    slots = enumerate_slots(weekly_availability, SATURDAY)
    assert list(slots) == []
    assert not slots


def test_enumerate_slots_rejects_non_positive_step(weekly_availability):
    with pytest.raises(ValueError):
        enumerate_slots(weekly_availability, MONDAY, slot_minutes=0)


def test_slot_bookable_half_open_window(weekly_availability):
    """The window start is bookable and the window end is not."""
    assert is_slot_bookable(weekly_availability, MONDAY, time(9, 0))
    assert is_slot_bookable(weekly_availability, MONDAY, time(16, 59))
    assert not is_slot_bookable(weekly_availability, MONDAY, time(17, 0))
    assert not is_slot_bookable(weekly_availability, MONDAY, time(8, 59))
    assert not is_slot_bookable(weekly_availability, SATURDAY, time(10, 0))


@pytest.mark.parametrize(
    "entry",
    [
        None,
        "09:00-17:00",
        {"available": True, "start": "nine", "end": "17:00"},
        {"available": True, "start": "17:00", "end": "09:00"},
        {"available": True, "start": "09:00", "end": "09:00"},
        {"available": True, "start": "09:00"},
        {"available": "yes", "start": "09:00", "end": "17:00"},
    ],
)
def test_malformed_day_is_unavailable(entry):
    weekly = {"monday": entry}
    assert working_window(weekly, MONDAY) is None
    assert not is_day_available(weekly, MONDAY)
    assert not is_slot_bookable(weekly, MONDAY, time(10, 0))


def test_missing_availability_is_unavailable():
    assert not is_day_available(None, MONDAY)
    assert not is_day_available({}, MONDAY)


def test_conflict_only_for_blocking_statuses():
    """Cancelled, completed and no-show appointments release the slot."""
    doctor_id = uuid4()

    def slot(status):
        return BookedSlot(doctor_id, MONDAY, time(10, 0), status)

    assert check_conflict([slot(AppointmentStatus.SCHEDULED)], doctor_id, MONDAY, time(10, 0))
    assert check_conflict([slot(AppointmentStatus.CONFIRMED)], doctor_id, MONDAY, time(10, 0))
    assert check_conflict([slot(AppointmentStatus.IN_PROGRESS)], doctor_id, MONDAY, time(10, 0))
    assert not check_conflict([slot(AppointmentStatus.CANCELLED)], doctor_id, MONDAY, time(10, 0))
    assert not check_conflict([slot(AppointmentStatus.COMPLETED)], doctor_id, MONDAY, time(10, 0))
    assert not check_conflict([slot(AppointmentStatus.NO_SHOW)], doctor_id, MONDAY, time(10, 0))


def test_conflict_requires_exact_match():
    doctor_id = uuid4()
    existing = [BookedSlot(doctor_id, MONDAY, time(10, 0), AppointmentStatus.SCHEDULED)]

    assert not check_conflict(existing, doctor_id, MONDAY, time(10, 30))
    assert not check_conflict(existing, uuid4(), MONDAY, time(10, 0))
    assert not check_conflict(existing, doctor_id, MONDAY + timedelta(days=1), time(10, 0))


def test_try_book_success(weekly_availability):
    doctor_id = uuid4()
    request = AppointmentRequest(doctor_id, MONDAY, time(10, 0), duration_minutes=45)

    outcome = try_book(request, "active", weekly_availability, [], NOW)

    assert outcome.ok
    assert outcome.message is None
    assert outcome.appointment.doctor_id == doctor_id
    assert outcome.appointment.duration_minutes == 45
    assert outcome.appointment.status == AppointmentStatus.SCHEDULED


def test_try_book_then_cancel_frees_slot(weekly_availability):
    doctor_id = uuid4()
    request = AppointmentRequest(doctor_id, MONDAY, time(10, 0))
    booked = BookedSlot(doctor_id, MONDAY, time(10, 0), AppointmentStatus.SCHEDULED)

    outcome = try_book(request, "active", weekly_availability, [booked], NOW)
    assert outcome.error == BookingError.SLOT_CONFLICT
    assert outcome.message == "Time slot is already booked for this doctor"

    cancelled = BookedSlot(doctor_id, MONDAY, time(10, 0), AppointmentStatus.CANCELLED)
    assert try_book(request, "active", weekly_availability, [cancelled], NOW).ok


@pytest.mark.parametrize("doctor_status", ["inactive", "on_leave", None])
def test_try_book_rejects_unavailable_doctor(weekly_availability, doctor_status):
    request = AppointmentRequest(uuid4(), MONDAY, time(10, 0))
    outcome = try_book(request, doctor_status, weekly_availability, [], NOW)
    assert outcome.error == BookingError.DOCTOR_UNAVAILABLE


def test_try_book_rejects_past_and_present(weekly_availability):
    request = AppointmentRequest(uuid4(), MONDAY, time(10, 0))

    at_start = datetime(2025, 6, 2, 10, 0, tzinfo=UTC)
    assert try_book(request, "active", weekly_availability, [], at_start).error == (
        BookingError.PAST_DATE_TIME
    )

    one_minute_before = at_start - timedelta(minutes=1)
    assert try_book(request, "active", weekly_availability, [], one_minute_before).ok


def test_try_book_check_order(weekly_availability):
    """The first failing check wins: doctor, then time, then hours, then conflict."""
    doctor_id = uuid4()
    late_past = AppointmentRequest(doctor_id, date(2025, 5, 1), time(20, 0))
    booked = [BookedSlot(doctor_id, date(2025, 5, 1), time(20, 0), AppointmentStatus.SCHEDULED)]

    assert (
        try_book(late_past, "inactive", weekly_availability, booked, NOW).error
        == BookingError.DOCTOR_UNAVAILABLE
    )
    assert (
        try_book(late_past, "active", weekly_availability, booked, NOW).error
        == BookingError.PAST_DATE_TIME
    )

    late_future = AppointmentRequest(doctor_id, MONDAY, time(20, 0))
    booked_future = [BookedSlot(doctor_id, MONDAY, time(20, 0), AppointmentStatus.SCHEDULED)]
    assert (
        try_book(late_future, "active", weekly_availability, booked_future, NOW).error
        == BookingError.OUTSIDE_WORKING_HOURS
    )


def test_request_duration_bounds():
    with pytest.raises(ValueError):
        AppointmentRequest(uuid4(), MONDAY, time(10, 0), duration_minutes=10)
    with pytest.raises(ValueError):
        AppointmentRequest(uuid4(), MONDAY, time(10, 0), duration_minutes=181)


def test_free_slots_skips_booked_and_past(weekly_availability):
    doctor_id = uuid4()
    booked = [
        BookedSlot(doctor_id, MONDAY, time(9, 30), AppointmentStatus.CONFIRMED),
        BookedSlot(doctor_id, MONDAY, time(10, 0), AppointmentStatus.CANCELLED),
    ]
    not_before = datetime(2025, 6, 2, 9, 0, tzinfo=UTC)

    slots = free_slots(weekly_availability, MONDAY, booked, doctor_id, not_before=not_before)

    assert time(9, 0) not in slots
    assert time(9, 30) not in slots
    assert slots[0] == time(10, 0)
    assert len(slots) == 14
