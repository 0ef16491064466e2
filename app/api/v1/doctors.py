"""
Endpoints de doctores: perfil propio, horario semanal, días libres,
directorio público y consulta de cupos.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_role
from app.database import get_db
from app.models.user import User, UserRole
from app.schemas.doctor import (
    AvailabilityUpdate,
    CalendarDate,
    DayOffCreate,
    DoctorFilter,
    DoctorProfileCreate,
    DoctorProfileUpdate,
    DoctorResponse,
    SeatsResponse,
)
from app.services import doctor_service

router = APIRouter()

_doctor_only = require_role(UserRole.DOCTOR)


# ── Perfil propio ────────────────────────────────────

@router.post("/profile", response_model=DoctorResponse, status_code=201)
async def create_profile(
    data: DoctorProfileCreate,
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    """Crea el perfil del doctor; queda pendiente hasta que un admin lo apruebe."""
    return await doctor_service.create_profile(db, user, data)


@router.get("/me", response_model=DoctorResponse)
async def get_my_profile(
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    return await doctor_service.get_my_doctor(db, user)


@router.put("/profile", response_model=DoctorResponse)
async def update_profile(
    data: DoctorProfileUpdate,
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    return await doctor_service.update_profile(db, user, data)


@router.delete("/profile", status_code=204)
async def delete_profile(
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    """Elimina el perfil, sus citas y la cuenta de usuario."""
    await doctor_service.delete_profile(db, user)


# ── Horario ──────────────────────────────────────────

@router.put("/availability", response_model=DoctorResponse)
async def set_availability(
    data: AvailabilityUpdate,
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    """Reemplaza el horario semanal completo."""
    return await doctor_service.set_availability(db, user, data)


@router.post("/days-off", response_model=DoctorResponse, status_code=201)
async def add_day_off(
    data: DayOffCreate,
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    return await doctor_service.add_day_off(db, user, data)


@router.delete("/days-off/{day}", response_model=DoctorResponse)
async def remove_day_off(
    day: date,
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    return await doctor_service.remove_day_off(db, user, day)


# ── Directorio público ───────────────────────────────

@router.get("", response_model=list[DoctorResponse])
async def list_doctors(
    specialization: str | None = Query(None),
    min_fee: Decimal | None = Query(None, ge=0),
    max_fee: Decimal | None = Query(None, ge=0),
    min_experience: int | None = Query(None, ge=0),
    max_experience: int | None = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Lista doctores aprobados. No requiere autenticación."""
    filters = DoctorFilter(
        specialization=specialization,
        min_fee=min_fee,
        max_fee=max_fee,
        min_experience=min_experience,
        max_experience=max_experience,
    )
    return await doctor_service.list_doctors(db, filters)


@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return await doctor_service.get_doctor(db, doctor_id)


@router.get("/{doctor_id}/seats", response_model=SeatsResponse)
async def get_available_seats(
    doctor_id: UUID,
    target_date: CalendarDate = Query(..., alias="date", description="Fecha (YYYY-MM-DD, se ignora la hora)"),
    db: AsyncSession = Depends(get_db),
):
    """
    Cupos restantes del doctor en la fecha. Un día libre o no programado
    responde 200 con lista vacía y el motivo en `reason`.
    """
    return await doctor_service.get_available_seats(db, doctor_id, target_date)
