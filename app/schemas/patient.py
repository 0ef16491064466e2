"""
Schemas para Patient.
"""

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.appointment import AppointmentStatus
from app.schemas.user import UserEmbed


class PatientProfileCreate(BaseModel):
    gender: str = Field(..., min_length=1, max_length=20)
    date_of_birth: dt.date
    address: str = Field(..., min_length=3, max_length=500)
    medical_history: list[str] = []


class PatientProfileUpdate(BaseModel):
    gender: str | None = Field(None, min_length=1, max_length=20)
    date_of_birth: dt.date | None = None
    address: str | None = Field(None, min_length=3, max_length=500)
    medical_history: list[str] | None = None


class PatientResponse(BaseModel):
    id: UUID
    user: UserEmbed
    gender: str
    date_of_birth: dt.date
    address: str
    medical_history: list[str] = []
    created_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class PatientVisit(BaseModel):
    """Una cita del historial del paciente con un doctor."""
    id: UUID
    date: dt.date
    reason: str | None = None
    status: AppointmentStatus
    start_time: str | None = None
    end_time: str | None = None


class PatientDetailResponse(BaseModel):
    """Ficha del paciente vista por un doctor: datos + historial con ese doctor."""
    id: UUID
    name: str
    email: str
    phone: str | None = None
    gender: str
    date_of_birth: dt.date
    address: str
    medical_history: list[str] = []
    last_appointment: dt.date | None = None
    total_visits: int
    appointment_history: list[PatientVisit]
