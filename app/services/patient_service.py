"""
Servicio de pacientes: perfil propio y ficha vista por el doctor.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.appointment import Appointment
from app.models.patient import Patient
from app.models.user import User
from app.schemas.patient import (
    PatientDetailResponse,
    PatientProfileCreate,
    PatientProfileUpdate,
    PatientVisit,
)
from app.services import notification_service
from app.services.doctor_service import get_my_doctor

logger = logging.getLogger(__name__)


async def find_patient_by_user(db: AsyncSession, user_id: UUID) -> Patient | None:
    result = await db.execute(select(Patient).where(Patient.user_id == user_id))
    return result.scalar_one_or_none()


async def get_my_patient(db: AsyncSession, user: User) -> Patient:
    patient = await find_patient_by_user(db, user.id)
    if not patient:
        raise NotFoundException("Patient profile")
    return patient


async def create_profile(
    db: AsyncSession,
    user: User,
    data: PatientProfileCreate,
) -> Patient:
    """Crea el perfil de paciente y envía el email de bienvenida."""
    if await find_patient_by_user(db, user.id):
        raise ConflictException("Patient profile already exists")

    patient = Patient(
        user=user,
        gender=data.gender,
        date_of_birth=data.date_of_birth,
        address=data.address,
        medical_history=data.medical_history,
    )
    db.add(patient)
    await db.flush()
    await db.refresh(patient)

    subject, html = notification_service.build_patient_welcome(user.name)
    notification_service.notify(db, user.email, subject, html)

    logger.info(f"Perfil de paciente {patient.id} creado para usuario {user.id}")
    return patient


async def update_profile(
    db: AsyncSession,
    user: User,
    data: PatientProfileUpdate,
) -> Patient:
    patient = await get_my_patient(db, user)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(patient, field, value)

    await db.flush()
    await db.refresh(patient)
    return patient


async def delete_profile(db: AsyncSession, user: User) -> None:
    """Elimina el perfil, sus citas y la cuenta de usuario."""
    patient = await get_my_patient(db, user)

    await db.execute(delete(Appointment).where(Appointment.patient_id == patient.id))
    await db.delete(patient)
    await db.delete(user)
    await db.flush()
    logger.info(f"Paciente {patient.id} y usuario {user.id} eliminados")


async def list_patients(db: AsyncSession) -> list[Patient]:
    result = await db.execute(select(Patient).order_by(Patient.created_at))
    return list(result.scalars().all())


async def get_patient_for_doctor(
    db: AsyncSession,
    doctor_user: User,
    patient_id: UUID,
) -> PatientDetailResponse:
    """Ficha del paciente con el historial de citas con el doctor autenticado."""
    doctor = await get_my_doctor(db, doctor_user)

    result = await db.execute(select(Patient).where(Patient.id == patient_id))
    patient = result.scalar_one_or_none()
    if not patient:
        raise NotFoundException("Patient")

    appts_result = await db.execute(
        select(Appointment)
        .where(
            Appointment.patient_id == patient.id,
            Appointment.doctor_id == doctor.id,
        )
        .order_by(Appointment.date.desc())
    )
    appointments = list(appts_result.scalars().all())

    return PatientDetailResponse(
        id=patient.id,
        name=patient.user.name,
        email=patient.user.email,
        phone=patient.user.phone,
        gender=patient.gender,
        date_of_birth=patient.date_of_birth,
        address=patient.address,
        medical_history=patient.medical_history or [],
        last_appointment=appointments[0].date if appointments else None,
        total_visits=len(appointments),
        appointment_history=[
            PatientVisit(
                id=a.id,
                date=a.date,
                reason=a.reason,
                status=a.status,
                start_time=a.start_time,
                end_time=a.end_time,
            )
            for a in appointments
        ],
    )
