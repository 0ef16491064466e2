"""
Schemas para Doctor: perfil, horario semanal, días libres y cupos.
"""

import re
import datetime as dt
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from dateutil.parser import isoparse
from pydantic import BaseModel, BeforeValidator, Field, field_validator

from app.models.doctor import DoctorStatus
from app.models.doctor_schedule import WeekDay
from app.schemas.user import UserEmbed, UserResponse

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _drop_time(value):
    """Acepta fechas ISO 8601 con hora y se queda con el día calendario."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return isoparse(value).date()
    return value


# Fecha de calendario; una hora adjunta (ej. "2026-10-26T10:30:00Z") se descarta
CalendarDate = Annotated[dt.date, BeforeValidator(_drop_time)]


# ── Horario semanal ──────────────────────────────────

class WeeklySlotIn(BaseModel):
    day: WeekDay
    start_time: str = Field(..., description="HH:MM")
    end_time: str = Field(..., description="HH:MM")
    max_patients_per_day: int | None = Field(None, ge=1, le=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def hhmm_format(cls, v: str) -> str:
        if not _HHMM.match(v):
            raise ValueError("time must use the HH:MM format")
        return v


class WeeklySlotResponse(BaseModel):
    id: UUID
    day: WeekDay
    start_time: str
    end_time: str
    max_patients_per_day: int

    model_config = {"from_attributes": True}


class AvailabilityUpdate(BaseModel):
    """Reemplaza todo el horario semanal del doctor."""
    weekly_slots: list[WeeklySlotIn] = Field(..., min_length=1)


# ── Días libres ──────────────────────────────────────

class DayOffCreate(BaseModel):
    date: CalendarDate
    reason: str | None = Field(None, max_length=500)


class DayOffResponse(BaseModel):
    id: UUID
    date: dt.date
    reason: str | None = None

    model_config = {"from_attributes": True}


# ── Perfil ───────────────────────────────────────────

class DoctorProfileCreate(BaseModel):
    specialization: str = Field(..., min_length=2, max_length=100)
    experience: int = Field(..., ge=0, le=80)
    consultation_fee: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    clinic_address: str = Field(..., min_length=3, max_length=500)
    weekly_slots: list[WeeklySlotIn] = Field(..., min_length=1)


class DoctorProfileUpdate(BaseModel):
    """Campos editables del perfil. El horario se edita en /availability."""
    specialization: str | None = Field(None, min_length=2, max_length=100)
    experience: int | None = Field(None, ge=0, le=80)
    consultation_fee: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    clinic_address: str | None = Field(None, min_length=3, max_length=500)


class DoctorResponse(BaseModel):
    id: UUID
    user: UserEmbed
    specialization: str
    experience: int
    consultation_fee: Decimal
    clinic_address: str
    is_approved: bool
    status: DoctorStatus
    weekly_slots: list[WeeklySlotResponse] = []
    days_off: list[DayOffResponse] = []
    created_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class DoctorFilter(BaseModel):
    """Filtros del listado público de doctores aprobados."""
    specialization: str | None = None
    min_fee: Decimal | None = Field(None, ge=0)
    max_fee: Decimal | None = Field(None, ge=0)
    min_experience: int | None = Field(None, ge=0)
    max_experience: int | None = Field(None, ge=0)


# ── Cupos disponibles ────────────────────────────────

class SeatSlot(BaseModel):
    date: dt.date
    day: WeekDay
    start_time: str
    end_time: str
    remaining_seats: int


class SeatsResponse(BaseModel):
    """Respuesta de la consulta de cupos: lista vacía si no hay atención."""
    doctor_id: UUID
    date: dt.date
    message: str
    reason: str | None = None
    slots: list[SeatSlot]


class PublicUserProfile(UserResponse):
    """Perfil público por email; `doctor_profile` solo viene para doctores."""
    doctor_profile: DoctorResponse | None = None
