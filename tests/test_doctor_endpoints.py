"""Tests for doctor endpoints."""

from datetime import date, time
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient

from app.schemas.doctors import (
    AvailableDoctorsResponse,
    DoctorFilterOptions,
    DoctorResponse,
)
from app.services.doctor_service import DoctorService
from tests.factories import make_user


@pytest.fixture
def doctor_payload() -> dict:
    return {
        "name": "Dr. Michael Chen",
        "specialization": "Neurology",
        "department": "Neurology",
        "contact_number": "+15550101",
        "email": "Michael.Chen@hospital.com",
        "license_number": "MD-NEUR-002",
        "experience_years": 8,
        "consultation_fee": "140.00",
        "availability": {
            "monday": {"available": True, "start": "08:00", "end": "16:00"},
            "saturday": {"available": False},
        },
    }


def _row(doctor_record: dict) -> MagicMock:
    result = MagicMock()
    result.mappings.return_value.first.return_value = doctor_record
    return result


@pytest.mark.asyncio
async def test_get_doctor(client: AsyncClient, db_session, doctor_record: dict):
    """A doctor is read from the database and cached."""
    db_session.execute.return_value = _row(doctor_record)

    response = await client.get(f"/api/v1/doctors/{doctor_record['id']}")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == doctor_record["name"]
    assert data["availability"]["monday"]["start"] == "09:00"


@pytest.mark.asyncio
async def test_get_doctor_caches_result(
    client: AsyncClient, db_session, cache_manager, doctor_record: dict
):
    db_session.execute.return_value = _row(doctor_record)

    await client.get(f"/api/v1/doctors/{doctor_record['id']}")

    key, value = cache_manager.set_json.call_args.args
    assert key == f"doctor:{doctor_record['id']}"
    assert value["email"] == doctor_record["email"]


@pytest.mark.asyncio
async def test_get_doctor_not_found(client: AsyncClient, db_session):
    db_session.execute.return_value = _row(None)

    response = await client.get(f"/api/v1/doctors/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["message"] == "Doctor not found"


@pytest.mark.asyncio
async def test_create_doctor(client: AsyncClient, doctor_payload: dict, doctor_record: dict):
    with patch.object(DoctorService, "create_doctor", new_callable=AsyncMock) as create:
        create.return_value = DoctorResponse.model_validate(doctor_record)
        response = await client.post("/api/v1/doctors", json=doctor_payload)

    assert response.status_code == 201
    _, doctor_data = create.call_args.args
    assert doctor_data.availability.monday.start.hour == 8
    assert doctor_data.availability.saturday.available is False
    assert doctor_data.availability.sunday.available is False


@pytest.mark.asyncio
async def test_create_doctor_rejects_inverted_hours(client: AsyncClient, doctor_payload: dict):
    doctor_payload["availability"]["monday"] = {
        "available": True,
        "start": "17:00",
        "end": "09:00",
    }

    response = await client.post("/api/v1/doctors", json=doctor_payload)

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("current_user", [make_user("receptionist"), make_user("doctor")])
async def test_only_admin_creates_doctors(
    client: AsyncClient, current_user: dict, doctor_payload: dict
):
    response = await client.post("/api/v1/doctors", json=doctor_payload)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_available_doctors(client: AsyncClient, doctor_record: dict):
    available = AvailableDoctorsResponse(
        total=1,
        items=[DoctorResponse.model_validate(doctor_record)],
        filters=DoctorFilterOptions(specializations=["Cardiology"], departments=["Cardiology"]),
    )
    with patch.object(
        DoctorService, "list_available_doctors", new=AsyncMock(return_value=available)
    ) as list_available:
        response = await client.get(
            "/api/v1/doctors/available",
            params={"date": "2025-06-05", "specialization": "Cardiology"},
        )

    assert response.status_code == 200
    assert response.json()["filters"]["specializations"] == ["Cardiology"]
    assert list_available.call_args.kwargs["on_date"] == date(2025, 6, 5)


@pytest.mark.asyncio
async def test_doctor_slots(client: AsyncClient, db_session, doctor_record: dict):
    """Slots on a working day skip times already booked."""
    booked = MagicMock()
    booked.all.return_value = [
        MagicMock(
            doctor_id=UUID(doctor_record["id"]),
            appointment_date=date(2025, 6, 5),
            appointment_time=time(9, 0),
            status="scheduled",
        )
    ]
    db_session.execute.side_effect = [_row(doctor_record), booked]

    response = await client.get(
        f"/api/v1/doctors/{doctor_record['id']}/slots", params={"date": "2025-06-05"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["available"] is True
    assert data["slots"][0] == "09:30"
    assert len(data["slots"]) == 15


@pytest.mark.asyncio
async def test_doctor_slots_on_day_off(client: AsyncClient, db_session, doctor_record: dict):
    db_session.execute.side_effect = [_row(doctor_record), MagicMock(all=lambda: [])]

    response = await client.get(
        f"/api/v1/doctors/{doctor_record['id']}/slots", params={"date": "2025-06-07"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "doctor_id": doctor_record["id"],
        "date": "2025-06-07",
        "slot_minutes": 30,
        "available": False,
        "slots": [],
    }
