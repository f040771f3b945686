"""Doctor availability and double-booking rules.

Everything here is a pure function of its arguments. Weekly availability is
accepted in the raw shape stored on the doctor record::

    {"monday": {"available": True, "start": "09:00", "end": "17:00"}, ...}

Malformed entries are treated as "not available" rather than raising, so a
half-edited doctor profile can never break booking for other doctors.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from app.schemas.appointments import AppointmentStatus
from app.schemas.doctors import DoctorStatus

DEFAULT_SLOT_MINUTES = 30
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 180

# Statuses that hold a slot. no_show releases it.
BLOCKING_STATUSES = frozenset(
    {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
    }
)


class Weekday(str, Enum):
    """Fixed weekday keys used in weekly availability."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        """Map a calendar date to its weekday key via the ISO weekday number."""
        return _ISO_WEEKDAYS[day.isoweekday()]


_ISO_WEEKDAYS = dict(enumerate(Weekday, start=1))


class BookingError(str, Enum):
    """Reasons a booking attempt is rejected."""

    DOCTOR_UNAVAILABLE = "doctor_unavailable"
    PAST_DATE_TIME = "past_date_time"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    SLOT_CONFLICT = "slot_conflict"


BOOKING_ERROR_MESSAGES = {
    BookingError.DOCTOR_UNAVAILABLE: "Doctor not found or not available",
    BookingError.PAST_DATE_TIME: "Appointment date and time must be in the future",
    BookingError.OUTSIDE_WORKING_HOURS: "Appointment time is outside doctor's working hours",
    BookingError.SLOT_CONFLICT: "Time slot is already booked for this doctor",
}


@dataclass(frozen=True)
class AppointmentRequest:
    """A candidate booking, not yet persisted."""

    doctor_id: UUID
    date: date
    time: time
    duration_minutes: int = DEFAULT_SLOT_MINUTES

    def __post_init__(self) -> None:
        if not MIN_DURATION_MINUTES <= self.duration_minutes <= MAX_DURATION_MINUTES:
            raise ValueError(
                f"duration_minutes must be between {MIN_DURATION_MINUTES} "
                f"and {MAX_DURATION_MINUTES}"
            )


@dataclass(frozen=True)
class BookedSlot:
    """The parts of an existing appointment that matter for conflicts."""

    doctor_id: UUID
    date: date
    time: time
    status: AppointmentStatus


@dataclass(frozen=True)
class AppointmentDraft:
    """An accepted booking ready to be persisted."""

    doctor_id: UUID
    date: date
    time: time
    duration_minutes: int
    status: AppointmentStatus = AppointmentStatus.SCHEDULED


@dataclass(frozen=True)
class BookingOutcome:
    """Result of :func:`try_book`: either a draft or a rejection reason."""

    appointment: AppointmentDraft | None = None
    error: BookingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str | None:
        return BOOKING_ERROR_MESSAGES[self.error] if self.error else None


def parse_time(value: Any) -> time | None:
    """Parse ``"HH:MM"``/``"HH:MM:SS"`` strings or pass ``time`` through."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        return None


def working_window(weekly: Mapping[str, Any] | None, day: date) -> tuple[time, time] | None:
    """
    Return the ``(start, end)`` window for the weekday of ``day``.

    Returns None when the day is marked unavailable, missing, or malformed
    (including ``start >= end``).
    """
    if not weekly:
        return None

    entry = weekly.get(Weekday.from_date(day).value)
    if not isinstance(entry, Mapping) or entry.get("available") is not True:
        return None

    start = parse_time(entry.get("start"))
    end = parse_time(entry.get("end"))
    if start is None or end is None or start >= end:
        return None
    return start, end


def is_day_available(weekly: Mapping[str, Any] | None, day: date) -> bool:
    """Whether the doctor works at all on the weekday of ``day``."""
    return working_window(weekly, day) is not None


class SlotSequence:
    """Re-iterable, lazily generated run of slot start times for one day."""

    def __init__(self, start: time, end: time, slot_minutes: int):
        self.start = start
        self.end = end
        self.step = timedelta(minutes=slot_minutes)

    def __iter__(self) -> Iterator[time]:
        anchor = date.min
        current = datetime.combine(anchor, self.start)
        stop = datetime.combine(anchor, self.end)
        while current < stop:
            yield current.time()
            current += self.step

    def __len__(self) -> int:
        span = datetime.combine(date.min, self.end) - datetime.combine(date.min, self.start)
        return max(0, -(-span // self.step))

    def __bool__(self) -> bool:
        return self.start < self.end

    def __repr__(self) -> str:
        return f"SlotSequence({self.start:%H:%M}-{self.end:%H:%M}, every {self.step})"


_EMPTY_SLOTS = SlotSequence(time.min, time.min, DEFAULT_SLOT_MINUTES)


def enumerate_slots(
    weekly: Mapping[str, Any] | None,
    day: date,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
) -> SlotSequence:
    """
    Enumerate slot start times for ``day``.

    Slots start at the window start and advance by ``slot_minutes``; a slot
    starting exactly at the window end is excluded. Unavailable days give an
    empty sequence.
    """
    if slot_minutes <= 0:
        raise ValueError("slot_minutes must be positive")

    window = working_window(weekly, day)
    if window is None:
        return _EMPTY_SLOTS
    return SlotSequence(window[0], window[1], slot_minutes)


def is_slot_bookable(weekly: Mapping[str, Any] | None, day: date, at: time) -> bool:
    """Whether ``at`` falls inside the half-open working window of ``day``."""
    window = working_window(weekly, day)
    if window is None:
        return False
    start, end = window
    return start <= at < end


def check_conflict(
    existing: Iterable[BookedSlot],
    doctor_id: UUID,
    day: date,
    at: time,
) -> bool:
    """
    Whether another blocking appointment already holds ``(doctor_id, day, at)``.

    Only exact start-time matches count; differing durations that overlap are
    not detected.
    """
    return any(
        slot.doctor_id == doctor_id
        and slot.date == day
        and slot.time == at
        and AppointmentStatus(slot.status) in BLOCKING_STATUSES
        for slot in existing
    )


def try_book(
    request: AppointmentRequest,
    doctor_status: DoctorStatus | str | None,
    weekly: Mapping[str, Any] | None,
    existing: Iterable[BookedSlot],
    now: datetime,
) -> BookingOutcome:
    """
    Run the booking checks in order and return the first failure or a draft.

    The requested wall-clock time is interpreted in the timezone of ``now``.
    """
    if doctor_status != DoctorStatus.ACTIVE:
        return BookingOutcome(error=BookingError.DOCTOR_UNAVAILABLE)

    requested_at = datetime.combine(request.date, request.time, tzinfo=now.tzinfo)
    if requested_at <= now:
        return BookingOutcome(error=BookingError.PAST_DATE_TIME)

    if not is_slot_bookable(weekly, request.date, request.time):
        return BookingOutcome(error=BookingError.OUTSIDE_WORKING_HOURS)

    if check_conflict(existing, request.doctor_id, request.date, request.time):
        return BookingOutcome(error=BookingError.SLOT_CONFLICT)

    return BookingOutcome(
        appointment=AppointmentDraft(
            doctor_id=request.doctor_id,
            date=request.date,
            time=request.time,
            duration_minutes=request.duration_minutes,
        )
    )


def free_slots(
    weekly: Mapping[str, Any] | None,
    day: date,
    existing: Iterable[BookedSlot],
    doctor_id: UUID,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
    not_before: datetime | None = None,
) -> list[time]:
    """Slots for ``day`` that are neither booked nor already in the past."""
    booked = list(existing)
    slots = []
    for slot in enumerate_slots(weekly, day, slot_minutes):
        if not_before is not None:
            if datetime.combine(day, slot, tzinfo=not_before.tzinfo) <= not_before:
                continue
        if not check_conflict(booked, doctor_id, day, slot):
            slots.append(slot)
    return slots
