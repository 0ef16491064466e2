"""
Servicio de doctores: perfil, horario semanal, días libres, listado
público y consulta de cupos.
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from app.models.appointment import Appointment
from app.models.doctor import Doctor
from app.models.doctor_day_off import DoctorDayOff
from app.models.doctor_schedule import WeeklySlot
from app.models.user import User
from app.schemas.doctor import (
    AvailabilityUpdate,
    DayOffCreate,
    DoctorFilter,
    DoctorProfileCreate,
    DoctorProfileUpdate,
    SeatSlot,
    SeatsResponse,
    WeeklySlotIn,
)
from app.services.availability_service import (
    DAY_OFF,
    resolve_availability,
    today,
    weekday_of,
)

settings = get_settings()
logger = logging.getLogger(__name__)


# ── Directorio ───────────────────────────────────────

async def find_doctor_by_id(
    db: AsyncSession,
    doctor_id: UUID,
    *,
    for_update: bool = False,
) -> Doctor | None:
    """
    Busca un doctor por ID. Con `for_update=True` bloquea la fila hasta el
    fin de la transacción: las reservas del mismo doctor se serializan.
    """
    query = select(Doctor).where(Doctor.id == doctor_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def find_doctor_by_user(db: AsyncSession, user_id: UUID) -> Doctor | None:
    result = await db.execute(select(Doctor).where(Doctor.user_id == user_id))
    return result.scalar_one_or_none()


async def get_my_doctor(db: AsyncSession, user: User) -> Doctor:
    """Perfil de doctor del usuario autenticado."""
    doctor = await find_doctor_by_user(db, user.id)
    if not doctor:
        raise NotFoundException("Doctor profile")
    return doctor


async def _reload(db: AsyncSession, doctor_id: UUID) -> Doctor:
    """Recarga el doctor con horario y días libres actualizados."""
    result = await db.execute(
        select(Doctor)
        .where(Doctor.id == doctor_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


def _build_slots(slots: list[WeeklySlotIn]) -> list[WeeklySlot]:
    return [
        WeeklySlot(
            day=s.day,
            start_time=s.start_time,
            end_time=s.end_time,
            max_patients_per_day=s.max_patients_per_day or settings.DEFAULT_MAX_PATIENTS_PER_DAY,
            position=i,
        )
        for i, s in enumerate(slots)
    ]


# ── Perfil ───────────────────────────────────────────

async def create_profile(
    db: AsyncSession,
    user: User,
    data: DoctorProfileCreate,
) -> Doctor:
    """Crea el perfil de doctor (queda pendiente de aprobación)."""
    if await find_doctor_by_user(db, user.id):
        raise ConflictException("Doctor profile already exists")

    doctor = Doctor(
        user=user,
        specialization=data.specialization,
        experience=data.experience,
        consultation_fee=data.consultation_fee,
        clinic_address=data.clinic_address,
        weekly_slots=_build_slots(data.weekly_slots),
        days_off=[],
    )
    db.add(doctor)
    await db.flush()

    logger.info(f"Perfil de doctor {doctor.id} creado para usuario {user.id}")
    return await _reload(db, doctor.id)


async def update_profile(
    db: AsyncSession,
    user: User,
    data: DoctorProfileUpdate,
) -> Doctor:
    doctor = await get_my_doctor(db, user)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(doctor, field, value)

    await db.flush()
    return await _reload(db, doctor.id)


async def delete_profile(db: AsyncSession, user: User) -> None:
    """Elimina el perfil, sus citas y la cuenta de usuario."""
    doctor = await get_my_doctor(db, user)

    await db.execute(delete(Appointment).where(Appointment.doctor_id == doctor.id))
    await db.delete(doctor)
    await db.delete(user)
    await db.flush()
    logger.info(f"Doctor {doctor.id} y usuario {user.id} eliminados")


# ── Horario semanal y días libres ────────────────────

async def set_availability(
    db: AsyncSession,
    user: User,
    data: AvailabilityUpdate,
) -> Doctor:
    """
    Reemplaza el horario semanal. Las citas existentes conservan el
    horario copiado al reservar.
    """
    doctor = await get_my_doctor(db, user)
    doctor.weekly_slots = _build_slots(data.weekly_slots)
    await db.flush()
    return await _reload(db, doctor.id)


async def add_day_off(
    db: AsyncSession,
    user: User,
    data: DayOffCreate,
) -> Doctor:
    doctor = await get_my_doctor(db, user)

    if data.date < today():
        raise ValidationException("Cannot add a day off in the past")
    if any(d.date == data.date for d in doctor.days_off):
        raise ConflictException("Day off already registered for this date")

    doctor.days_off.append(DoctorDayOff(date=data.date, reason=data.reason))
    await db.flush()
    return await _reload(db, doctor.id)


async def remove_day_off(
    db: AsyncSession,
    user: User,
    day: date,
) -> Doctor:
    doctor = await get_my_doctor(db, user)

    day_off = next((d for d in doctor.days_off if d.date == day), None)
    if not day_off:
        raise NotFoundException("Day off")

    doctor.days_off.remove(day_off)
    await db.flush()
    return await _reload(db, doctor.id)


# ── Listado público ──────────────────────────────────

async def list_doctors(
    db: AsyncSession,
    filters: DoctorFilter | None = None,
) -> list[Doctor]:
    """Lista doctores aprobados con filtros opcionales."""
    query = select(Doctor).where(Doctor.is_approved.is_(True))

    if filters:
        if filters.specialization:
            query = query.where(Doctor.specialization == filters.specialization)
        if filters.min_fee is not None:
            query = query.where(Doctor.consultation_fee >= filters.min_fee)
        if filters.max_fee is not None:
            query = query.where(Doctor.consultation_fee <= filters.max_fee)
        if filters.min_experience is not None:
            query = query.where(Doctor.experience >= filters.min_experience)
        if filters.max_experience is not None:
            query = query.where(Doctor.experience <= filters.max_experience)

    result = await db.execute(query.order_by(Doctor.created_at))
    return list(result.scalars().all())


async def get_doctor(db: AsyncSession, doctor_id: UUID) -> Doctor:
    """Detalle público: solo doctores aprobados."""
    doctor = await find_doctor_by_id(db, doctor_id)
    if not doctor or not doctor.is_approved:
        raise NotFoundException("Doctor")
    return doctor


async def get_available_seats(
    db: AsyncSession,
    doctor_id: UUID,
    target_date: date,
) -> SeatsResponse:
    """
    Consulta de cupos para una fecha. A diferencia de la reserva, un día
    libre o no programado no es error: se responde con lista vacía.
    Como el detalle público, solo expone doctores aprobados.
    """
    doctor = await get_doctor(db, doctor_id)

    result = await resolve_availability(db, doctor, target_date)
    day = weekday_of(target_date)

    if result.reason == DAY_OFF:
        message = "Doctor is off on this date"
    elif result.reason:
        message = f"Doctor is not available on {day.value}s"
    else:
        message = "Available slots fetched successfully"

    slots: list[SeatSlot] = []
    if result.available and result.slot:
        slots.append(SeatSlot(
            date=target_date,
            day=day,
            start_time=result.slot.start_time,
            end_time=result.slot.end_time,
            remaining_seats=result.remaining,
        ))

    return SeatsResponse(
        doctor_id=doctor.id,
        date=target_date,
        message=message,
        reason=result.reason,
        slots=slots,
    )
