"""
Modelos SQLAlchemy: exportar todos para que Alembic los detecte.
"""

from app.models.user import User, UserRole
from app.models.doctor import Doctor, DoctorStatus
from app.models.doctor_schedule import WeekDay, WeeklySlot
from app.models.doctor_day_off import DoctorDayOff
from app.models.patient import Patient
from app.models.appointment import Appointment, AppointmentStatus

__all__ = [
    "User",
    "UserRole",
    "Doctor",
    "DoctorStatus",
    "WeekDay",
    "WeeklySlot",
    "DoctorDayOff",
    "Patient",
    "Appointment",
    "AppointmentStatus",
]
