"""Database models."""

from app.models.appointments import appointments
from app.models.bills import bills
from app.models.doctors import doctors
from app.models.metadata import metadata
from app.models.patients import patients
from app.models.users import users

__all__ = [
    "appointments",
    "bills",
    "doctors",
    "metadata",
    "patients",
    "users",
]
