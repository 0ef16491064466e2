"""
Endpoints de pacientes: perfil propio, próximas citas y fichas para doctores.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_role
from app.config import get_settings
from app.database import get_db
from app.models.user import User, UserRole
from app.schemas.appointment import AppointmentResponse
from app.schemas.patient import (
    PatientDetailResponse,
    PatientProfileCreate,
    PatientProfileUpdate,
    PatientResponse,
)
from app.services import appointment_service, patient_service

settings = get_settings()
router = APIRouter()

_patient_only = require_role(UserRole.PATIENT)


@router.post("/profile", response_model=PatientResponse, status_code=201)
async def create_profile(
    data: PatientProfileCreate,
    user: User = Depends(_patient_only),
    db: AsyncSession = Depends(get_db),
):
    return await patient_service.create_profile(db, user, data)


@router.get("/me", response_model=PatientResponse)
async def get_my_profile(
    user: User = Depends(_patient_only),
    db: AsyncSession = Depends(get_db),
):
    return await patient_service.get_my_patient(db, user)


@router.put("/profile", response_model=PatientResponse)
async def update_profile(
    data: PatientProfileUpdate,
    user: User = Depends(_patient_only),
    db: AsyncSession = Depends(get_db),
):
    return await patient_service.update_profile(db, user, data)


@router.delete("/profile", status_code=204)
async def delete_profile(
    user: User = Depends(_patient_only),
    db: AsyncSession = Depends(get_db),
):
    """Elimina el perfil, sus citas y la cuenta de usuario."""
    await patient_service.delete_profile(db, user)


@router.get("/me/next-appointments", response_model=list[AppointmentResponse])
async def next_appointments(
    user: User = Depends(_patient_only),
    db: AsyncSession = Depends(get_db),
):
    """Próximas citas pendientes o confirmadas, desde hoy."""
    return await appointment_service.next_appointments(
        db, user, limit=settings.NEXT_APPOINTMENTS_LIMIT
    )


@router.get("", response_model=list[PatientResponse])
async def list_patients(
    user: User = Depends(require_role(UserRole.DOCTOR, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await patient_service.list_patients(db)


@router.get("/{patient_id}", response_model=PatientDetailResponse)
async def get_patient(
    patient_id: UUID,
    user: User = Depends(require_role(UserRole.DOCTOR)),
    db: AsyncSession = Depends(get_db),
):
    """Ficha del paciente con su historial de citas con el doctor autenticado."""
    return await patient_service.get_patient_for_doctor(db, user, patient_id)
