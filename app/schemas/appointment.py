"""
Schemas para Appointment: reservas, reprogramación, disponibilidad y tableros.
"""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.appointment import AppointmentStatus
from app.schemas.doctor import CalendarDate, WeeklySlotResponse


# ── Reservas ─────────────────────────────────────────

class BookingRequest(BaseModel):
    date: CalendarDate | None = None
    reason: str | None = Field(None, max_length=2000)


class RescheduleRequest(BaseModel):
    new_date: CalendarDate | None = None


# ── Disponibilidad ───────────────────────────────────

class SlotResult(BaseModel):
    """Resultado de resolver la disponibilidad de un doctor en una fecha."""
    available: bool
    reason: str | None = Field(None, description="day_off | not_scheduled")
    remaining: int = 0
    slot: WeeklySlotResponse | None = None


# ── Respuestas ───────────────────────────────────────

class AppointmentDoctorEmbed(BaseModel):
    """Datos del doctor embebidos en la respuesta de cita."""
    id: UUID
    name: str
    email: str
    specialization: str


class AppointmentPatientEmbed(BaseModel):
    """Datos del paciente embebidos en la respuesta de cita."""
    id: UUID
    name: str
    email: str
    phone: str | None = None


class AppointmentResponse(BaseModel):
    id: UUID
    doctor_id: UUID
    patient_id: UUID
    date: dt.date
    start_time: str | None = None
    end_time: str | None = None
    status: AppointmentStatus
    reason: str | None = None

    doctor: AppointmentDoctorEmbed | None = None
    patient: AppointmentPatientEmbed | None = None

    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class AppointmentListResponse(BaseModel):
    items: list[AppointmentResponse]
    total: int


# ── Tableros del doctor ──────────────────────────────

class RevenueResponse(BaseModel):
    """Ingreso estimado: tarifa × citas confirmadas o completadas."""
    date_from: dt.date
    date_to: dt.date
    appointments: int
    consultation_fee: Decimal
    revenue: Decimal


class DoctorPatientSummary(BaseModel):
    patient_id: UUID
    name: str
    email: str
    phone: str | None = None
    total_visits: int
    last_appointment: dt.date
