"""Appointment lifecycle rules and derived read-only fields."""

from datetime import date, datetime, time

from app.schemas.appointments import AppointmentStatus

TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})

# Staff-driven moves; patients may only cancel.
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.COMPLETED,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.COMPLETED,
        }
    ),
    AppointmentStatus.IN_PROGRESS: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.NO_SHOW: frozenset(
        {AppointmentStatus.SCHEDULED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def is_terminal(status: AppointmentStatus | str) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES


def can_transition(current: AppointmentStatus | str, target: AppointmentStatus | str) -> bool:
    """Whether staff may move an appointment from ``current`` to ``target``.

    Staying in the same status is always allowed so that edits which do not
    touch the status pass through.
    """
    current = AppointmentStatus(current)
    target = AppointmentStatus(target)
    return current == target or target in ALLOWED_TRANSITIONS[current]


def is_past(day: date, at: time, now: datetime) -> bool:
    """Whether the appointment start lies before ``now`` (wall-clock in ``now``'s zone)."""
    return datetime.combine(day, at, tzinfo=now.tzinfo) < now


def is_today(day: date, now: datetime) -> bool:
    return day == now.date()
