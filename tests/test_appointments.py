"""Tests for appointment endpoints."""

from datetime import time, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient

from app.core.exceptions import BookingRejectedException, ForbiddenException
from app.engines.availability import BookingError, BookingOutcome
from app.schemas.appointments import AppointmentListResponse, AppointmentResponse
from app.services.appointment_service import AppointmentService
from tests.factories import NOW, make_user


@pytest.fixture
def sample_appointment_data(doctor_record) -> dict:
    """Sample appointment data for testing."""
    return {
        "doctor_id": doctor_record["id"],
        "appointment_date": (NOW.date() + timedelta(days=1)).isoformat(),
        "appointment_time": "10:00",
        "reason": "Regular checkup",
        "symptoms": ["headache", "  "],
    }


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["timestamp"].startswith("2025-06-04T08:00:00")


@pytest.mark.asyncio
async def test_book_own_appointment(
    client: AsyncClient,
    sample_appointment_data: dict,
    appointment_row: dict,
) -> None:
    """A patient books for themselves and gets the stored appointment back."""
    with patch.object(AppointmentService, "book_for_user", new_callable=AsyncMock) as book:
        book.return_value = AppointmentResponse.model_validate(appointment_row)
        response = await client.post(
            "/api/v1/appointments/patient",
            json=sample_appointment_data,
        )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "scheduled"
    assert data["is_past"] is False

    _, booking = book.call_args.args
    assert booking.symptoms == ["headache"]
    assert booking.duration_minutes == 30


@pytest.mark.asyncio
async def test_book_taken_slot_returns_conflict(
    client: AsyncClient,
    sample_appointment_data: dict,
) -> None:
    """A taken slot answers 409 with the machine-readable reason."""
    rejection = BookingRejectedException(BookingOutcome(error=BookingError.SLOT_CONFLICT))
    with patch.object(
        AppointmentService, "book_for_user", new=AsyncMock(side_effect=rejection)
    ):
        response = await client.post(
            "/api/v1/appointments/patient",
            json=sample_appointment_data,
        )

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "BookingRejectedException"
    assert data["reason"] == "slot_conflict"
    assert data["message"] == "Time slot is already booked for this doctor"


@pytest.mark.asyncio
async def test_book_outside_hours_returns_bad_request(
    client: AsyncClient,
    sample_appointment_data: dict,
) -> None:
    rejection = BookingRejectedException(
        BookingOutcome(error=BookingError.OUTSIDE_WORKING_HOURS)
    )
    with patch.object(
        AppointmentService, "book_for_user", new=AsyncMock(side_effect=rejection)
    ):
        response = await client.post(
            "/api/v1/appointments/patient",
            json=sample_appointment_data,
        )

    assert response.status_code == 400
    assert response.json()["reason"] == "outside_working_hours"


@pytest.mark.asyncio
async def test_book_requires_reason(client: AsyncClient, sample_appointment_data: dict) -> None:
    sample_appointment_data["reason"] = "   "

    response = await client.post("/api/v1/appointments/patient", json=sample_appointment_data)

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_book_rejects_short_duration(
    client: AsyncClient, sample_appointment_data: dict
) -> None:
    sample_appointment_data["duration_minutes"] = 10

    response = await client.post("/api/v1/appointments/patient", json=sample_appointment_data)

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("current_user", [make_user("patient")])
async def test_patient_cannot_create_for_others(
    client: AsyncClient,
    current_user: dict,
    sample_appointment_data: dict,
) -> None:
    """Staff-only booking route refuses patients."""
    sample_appointment_data["patient_id"] = sample_appointment_data["doctor_id"]

    response = await client.post("/api/v1/appointments", json=sample_appointment_data)

    assert response.status_code == 403
    assert "patient" in response.json()["message"]


@pytest.mark.asyncio
@pytest.mark.parametrize("current_user", [make_user("patient")])
async def test_patient_cannot_list_all_appointments(
    client: AsyncClient, current_user: dict
) -> None:
    response = await client.get("/api/v1/appointments")
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("current_user", [make_user("receptionist")])
async def test_list_appointments(
    client: AsyncClient, current_user: dict, appointment_row: dict
) -> None:
    """Staff list appointments with filters passed through."""
    listing = AppointmentListResponse(
        total=1,
        page=1,
        page_size=10,
        pages=1,
        items=[AppointmentResponse.model_validate(appointment_row)],
    )
    with patch.object(
        AppointmentService, "list_appointments", new=AsyncMock(return_value=listing)
    ) as list_appointments:
        response = await client.get(
            "/api/v1/appointments",
            params={"status": "scheduled", "date": NOW.date().isoformat()},
        )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert len(data["items"]) == 1

    (filters,) = list_appointments.call_args.args
    assert filters.status.value == "scheduled"
    assert filters.on_date == NOW.date()


@pytest.mark.asyncio
async def test_list_appointments_rejects_unknown_status(client: AsyncClient) -> None:
    response = await client.get("/api/v1/appointments", params={"status": "archived"})
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("current_user", [make_user("patient")])
async def test_get_appointment_forbidden(
    client: AsyncClient, current_user: dict, appointment_row: dict
) -> None:
    with patch.object(
        AppointmentService,
        "get_appointment",
        new=AsyncMock(side_effect=ForbiddenException("Access denied to this appointment")),
    ):
        response = await client.get(f"/api/v1/appointments/{appointment_row['id']}")

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied to this appointment"


@pytest.mark.asyncio
async def test_get_appointment_not_found(client: AsyncClient, db_session) -> None:
    """The real service answers 404 when the row is missing."""
    result = MagicMock()
    result.mappings.return_value.first.return_value = None
    db_session.execute.return_value = result

    response = await client.get("/api/v1/appointments/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["message"] == "Appointment not found"


@pytest.mark.asyncio
async def test_cancel_appointment(client: AsyncClient, appointment_row: dict) -> None:
    cancelled = AppointmentResponse.model_validate(
        {**appointment_row, "status": "cancelled", "cancellation_reason": "Travelling"}
    )
    with patch.object(
        AppointmentService, "cancel_appointment", new=AsyncMock(return_value=cancelled)
    ) as cancel:
        response = await client.put(
            f"/api/v1/appointments/{appointment_row['id']}/cancel",
            json={"cancellation_reason": "Travelling"},
        )

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert cancel.call_args.args[2] == "Travelling"


@pytest.mark.asyncio
async def test_check_availability(client: AsyncClient, doctor_record: dict) -> None:
    with patch.object(
        AppointmentService, "check_availability", new_callable=AsyncMock
    ) as check:
        check.return_value = {
            "available": True,
            "doctor_name": doctor_record["name"],
            "specialization": doctor_record["specialization"],
            "consultation_fee": 150.0,
        }
        response = await client.post(
            "/api/v1/appointments/check-availability",
            json={
                "doctor_id": doctor_record["id"],
                "appointment_date": "2025-06-05",
                "appointment_time": time(11, 30).isoformat(),
            },
        )

    assert response.status_code == 200
    assert response.json()["available"] is True


@pytest.mark.asyncio
async def test_requires_authentication(anonymous_client: AsyncClient) -> None:
    response = await anonymous_client.get("/api/v1/appointments")
    assert response.status_code in (401, 403)
