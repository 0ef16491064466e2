"""
Servicio de administración: revisión de altas de doctores.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.doctor import Doctor, DoctorStatus
from app.services import notification_service
from app.services.doctor_service import find_doctor_by_id

logger = logging.getLogger(__name__)


async def list_pending_doctors(db: AsyncSession) -> list[Doctor]:
    """Doctores que aún no fueron aprobados (pendientes o rechazados)."""
    result = await db.execute(
        select(Doctor)
        .where(Doctor.is_approved.is_(False))
        .order_by(Doctor.created_at)
    )
    return list(result.scalars().all())


async def list_all_doctors(db: AsyncSession) -> list[Doctor]:
    result = await db.execute(select(Doctor).order_by(Doctor.created_at))
    return list(result.scalars().all())


async def _review(db: AsyncSession, doctor_id: UUID, approved: bool) -> Doctor:
    doctor = await find_doctor_by_id(db, doctor_id)
    if not doctor:
        raise NotFoundException("Doctor")

    doctor.is_approved = approved
    doctor.status = DoctorStatus.APPROVED if approved else DoctorStatus.REJECTED
    await db.flush()
    await db.refresh(doctor)

    logger.info(f"Doctor {doctor.id} {'aprobado' if approved else 'rechazado'}")

    subject, html = notification_service.build_doctor_review(doctor.user.name, approved)
    notification_service.notify(db, doctor.user.email, subject, html)
    return doctor


async def approve_doctor(db: AsyncSession, doctor_id: UUID) -> Doctor:
    """Habilita al doctor en el listado público y para recibir reservas."""
    return await _review(db, doctor_id, approved=True)


async def reject_doctor(db: AsyncSession, doctor_id: UUID) -> Doctor:
    return await _review(db, doctor_id, approved=False)
