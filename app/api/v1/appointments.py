"""
Endpoints de citas: reserva, reprogramación, eliminación, cambios de
estado y tableros del doctor.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, require_role
from app.database import get_db
from app.models.appointment import AppointmentStatus
from app.models.user import User, UserRole
from app.schemas.appointment import (
    AppointmentListResponse,
    AppointmentResponse,
    BookingRequest,
    DoctorPatientSummary,
    RescheduleRequest,
    RevenueResponse,
)
from app.services import appointment_service

router = APIRouter()

_patient_only = require_role(UserRole.PATIENT)
_doctor_only = require_role(UserRole.DOCTOR)
_doctor_or_admin = require_role(UserRole.DOCTOR, UserRole.ADMIN)


# ── Tableros del doctor ──────────────────────────────

@router.get("/doctor", response_model=AppointmentListResponse)
async def list_doctor_appointments(
    status: AppointmentStatus | None = Query(None, description="Filtrar por estado"),
    date_from: date | None = Query(None, description="Desde fecha (YYYY-MM-DD)"),
    date_to: date | None = Query(None, description="Hasta fecha (YYYY-MM-DD)"),
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    """Citas del doctor autenticado con filtros por estado y rango de fechas."""
    return await appointment_service.list_doctor_appointments(
        db, user, status=status, date_from=date_from, date_to=date_to
    )


@router.get("/doctor/patients", response_model=list[DoctorPatientSummary])
async def list_doctor_patients(
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    return await appointment_service.doctor_patients(db, user)


@router.get("/today", response_model=AppointmentListResponse)
async def todays_appointments(
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    return await appointment_service.todays_appointments(db, user)


@router.get("/upcoming-week", response_model=AppointmentListResponse)
async def upcoming_week_appointments(
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    """Citas de mañana a siete días."""
    return await appointment_service.upcoming_week_appointments(db, user)


@router.get("/revenue/today", response_model=RevenueResponse)
async def todays_revenue(
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    return await appointment_service.todays_revenue(db, user)


@router.get("/revenue/week", response_model=RevenueResponse)
async def this_week_revenue(
    user: User = Depends(_doctor_only),
    db: AsyncSession = Depends(get_db),
):
    """Ingreso estimado de la semana en curso (lunes a domingo)."""
    return await appointment_service.this_week_revenue(db, user)


# ── Citas del paciente ───────────────────────────────

@router.get("/patient", response_model=AppointmentListResponse)
async def list_patient_appointments(
    status: AppointmentStatus | None = Query(None, description="Filtrar por estado"),
    user: User = Depends(_patient_only),
    db: AsyncSession = Depends(get_db),
):
    return await appointment_service.list_patient_appointments(db, user, status=status)


@router.post("/book/{doctor_id}", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    doctor_id: UUID,
    data: BookingRequest,
    user: User = Depends(_patient_only),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserva un cupo con el doctor en la fecha indicada. La cita queda
    pendiente hasta que el doctor la apruebe.
    """
    return await appointment_service.create_booking(
        db, doctor_id, user, data.date, reason=data.reason
    )


# ── Cita individual ──────────────────────────────────

@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await appointment_service.get_appointment(db, appointment_id, user)


@router.put("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: UUID,
    data: RescheduleRequest,
    user: User = Depends(_patient_only),
    db: AsyncSession = Depends(get_db),
):
    """Mueve una cita pendiente propia a otra fecha."""
    return await appointment_service.reschedule_booking(
        db, appointment_id, user, data.new_date
    )


@router.delete("/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: UUID,
    user: User = Depends(_patient_only),
    db: AsyncSession = Depends(get_db),
):
    await appointment_service.delete_booking(db, appointment_id, user)


# ── Cambios de estado ────────────────────────────────

@router.post("/{appointment_id}/approve", response_model=AppointmentResponse)
async def approve_appointment(
    appointment_id: UUID,
    user: User = Depends(_doctor_or_admin),
    db: AsyncSession = Depends(get_db),
):
    return await appointment_service.approve(db, appointment_id, user)


@router.post("/{appointment_id}/reapprove", response_model=AppointmentResponse)
async def reapprove_appointment(
    appointment_id: UUID,
    user: User = Depends(_doctor_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Vuelve a confirmar una cita cancelada si aún queda cupo ese día."""
    return await appointment_service.reapprove(db, appointment_id, user)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancela la cita. Puede hacerlo el doctor asignado, un admin o el paciente."""
    return await appointment_service.cancel(db, appointment_id, user)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: UUID,
    user: User = Depends(_doctor_or_admin),
    db: AsyncSession = Depends(get_db),
):
    return await appointment_service.complete(db, appointment_id, user)
