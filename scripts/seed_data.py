"""Load demo users, doctors, patients, appointments and bills.

Safe to run repeatedly: rows are keyed by email, and appointments and bills
are only added for patients that have none yet.
"""

import asyncio
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncConnection

from app.core.security import get_password_hash
from app.database import engine
from app.engines.availability import is_slot_bookable
from app.engines.billing import Bill, BillLineItem, items_payload, recompute
from app.models import appointments, bills, doctors, patients, users
from app.schemas.doctors import DayAvailability, WeeklyAvailability
from app.services.billing_service import BillingService

STAFF = [
    ("Super Admin", "admin@hospital.com", "admin123", "admin"),
    ("Amanda Smith", "amanda.smith@hospital.com", "reception123", "receptionist"),
]

DOCTORS = [
    # name, email, specialization, department, license, fee, hours
    ("Dr. Sarah Johnson", "sarah.johnson@hospital.com", "Cardiology", "Cardiology",
     "MD-CARD-001", "150.00", (9, 17)),
    ("Dr. Michael Chen", "michael.chen@hospital.com", "Neurology", "Neurology",
     "MD-NEUR-002", "140.00", (8, 16)),
    ("Dr. Emily Rodriguez", "emily.rodriguez@hospital.com", "Pediatrics", "Pediatrics",
     "MD-PEDI-003", "120.00", (9, 18)),
]

PATIENTS = [
    # name, email, age, gender, disease
    ("John Smith", "john.smith@email.com", 45, "male", "Hypertension"),
    ("Emma Wilson", "emma.wilson@email.com", 32, "female", "Asthma"),
    ("Michael Brown", "michael.brown@email.com", 58, "male", "Heart Disease"),
]


def _weekly(start_hour: int, end_hour: int) -> dict:
    open_day = DayAvailability(available=True, start=time(start_hour), end=time(end_hour))
    closed = DayAvailability(available=False)
    return WeeklyAvailability(
        monday=open_day,
        tuesday=open_day,
        wednesday=open_day,
        thursday=open_day,
        friday=open_day,
        saturday=closed,
        sunday=closed,
    ).model_dump(mode="json")


async def _upsert_user(conn: AsyncConnection, name: str, email: str, password: str, role: str):
    await conn.execute(
        insert(users)
        .values(
            email=email,
            password_hash=get_password_hash(password),
            full_name=name,
            role=role,
        )
        .on_conflict_do_nothing(index_elements=["email"])
    )
    return (await conn.execute(select(users.c.id).where(users.c.email == email))).scalar_one()


async def seed_staff(conn: AsyncConnection) -> dict[str, object]:
    ids = {}
    for name, email, password, role in STAFF:
        ids[role] = await _upsert_user(conn, name, email, password, role)
        print(f"✓ {role}: {email}")
    return ids


async def seed_doctors(conn: AsyncConnection) -> list:
    doctor_ids = []
    for name, email, specialization, department, license_number, fee, hours in DOCTORS:
        user_id = await _upsert_user(conn, name, email, "doctor123", "doctor")
        await conn.execute(
            insert(doctors)
            .values(
                user_id=user_id,
                name=name,
                email=email,
                contact_number="+15550100",
                license_number=license_number,
                specialization=specialization,
                department=department,
                experience_years=10,
                education=[],
                consultation_fee=Decimal(fee),
                availability=_weekly(*hours),
                status="active",
            )
            .on_conflict_do_nothing(index_elements=["email"])
        )
        doctor_ids.append(
            (await conn.execute(select(doctors.c.id).where(doctors.c.email == email))).scalar_one()
        )
        print(f"✓ doctor: {email}")
    return doctor_ids


async def seed_patients(conn: AsyncConnection, doctor_ids: list) -> list:
    patient_ids = []
    for index, (name, email, age, gender, disease) in enumerate(PATIENTS):
        user_id = await _upsert_user(conn, name, email, "patient123", "patient")
        await conn.execute(
            insert(patients)
            .values(
                user_id=user_id,
                name=name,
                email=email,
                age=age,
                gender=gender,
                contact_number="+15550200",
                medical_history=[],
                current_disease=disease,
                admitted_date=date.today(),
                assigned_doctor_id=doctor_ids[index % len(doctor_ids)],
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        patient_ids.append(
            (
                await conn.execute(select(patients.c.id).where(patients.c.user_id == user_id))
            ).scalar_one()
        )
        print(f"✓ patient: {email}")
    return patient_ids


def _next_weekday(start: date) -> date:
    day = start + timedelta(days=1)
    while day.isoweekday() > 5:
        day += timedelta(days=1)
    return day


async def seed_appointments(conn: AsyncConnection, patient_ids: list, doctor_ids: list) -> None:
    day = _next_weekday(date.today())
    for index, patient_id in enumerate(patient_ids):
        existing = await conn.scalar(
            select(func.count())
            .select_from(appointments)
            .where(appointments.c.patient_id == patient_id)
        )
        if existing:
            continue

        doctor_id = doctor_ids[index % len(doctor_ids)]
        weekly = await conn.scalar(select(doctors.c.availability).where(doctors.c.id == doctor_id))
        at = time(10 + index // 2, 30 * (index % 2))
        if not is_slot_bookable(weekly, day, at):
            continue

        await conn.execute(
            insert(appointments)
            .values(
                patient_id=patient_id,
                doctor_id=doctor_id,
                appointment_date=day,
                appointment_time=at,
                reason="Routine follow-up",
                status="scheduled",
            )
            .on_conflict_do_nothing()
        )
        print(f"✓ appointment on {day} at {at:%H:%M}")


async def seed_bills(conn: AsyncConnection, patient_ids: list, admin_id: object) -> None:
    now = datetime.now(UTC)
    for index, patient_id in enumerate(patient_ids):
        existing = await conn.scalar(
            select(func.count()).select_from(bills).where(bills.c.patient_id == patient_id)
        )
        if existing:
            continue

        bill = recompute(
            Bill(
                items=(
                    BillLineItem("Consultation", 1, Decimal("100.00")),
                    BillLineItem("Blood test", 2, Decimal("25.00")),
                ),
                tax=Decimal("15.00"),
                discount=Decimal("5.00"),
                paid_amount=Decimal("80.00") * index,
                due_date=now + timedelta(days=30),
            ),
            now,
        )
        await conn.execute(
            insert(bills).values(
                bill_number=BillingService.generate_bill_number(now),
                patient_id=patient_id,
                generated_by=admin_id,
                bill_date=now,
                due_date=bill.due_date,
                payment_date=now if bill.paid_amount > 0 else None,
                items=items_payload(bill.items),
                subtotal=bill.subtotal,
                tax=bill.tax,
                discount=bill.discount,
                total_amount=bill.total_amount,
                paid_amount=bill.paid_amount,
                balance=bill.balance,
                status=bill.status.value,
            )
        )
        print(f"✓ bill for patient {patient_id}: {bill.status.value}")


async def seed() -> None:
    async with engine.begin() as conn:
        staff_ids = await seed_staff(conn)
        doctor_ids = await seed_doctors(conn)
        patient_ids = await seed_patients(conn, doctor_ids)
        await seed_appointments(conn, patient_ids, doctor_ids)
        await seed_bills(conn, patient_ids, staff_ids["admin"])

    await engine.dispose()
    print("✓ Seed data loaded")


if __name__ == "__main__":
    asyncio.run(seed())
