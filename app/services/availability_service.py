"""
Servicio de disponibilidad: resuelve el cupo restante de un doctor en una
fecha a partir de su horario semanal, sus días libres y las citas activas.

Reglas:
    1. Fecha marcada como día libre → no disponible (day_off)
    2. Sin bloque semanal para ese día → no disponible (not_scheduled)
    3. remaining = max_patients_per_day del primer bloque del día
       − citas pending/confirmed del doctor en esa fecha
"""

from collections.abc import Iterable
from datetime import date, datetime
from uuid import UUID

from dateutil import tz
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.appointment import ACTIVE_STATUSES, Appointment
from app.models.doctor import Doctor
from app.models.doctor_day_off import DoctorDayOff
from app.models.doctor_schedule import WeekDay, WeeklySlot
from app.schemas.appointment import SlotResult
from app.schemas.doctor import WeeklySlotResponse

settings = get_settings()

DAY_OFF = "day_off"
NOT_SCHEDULED = "not_scheduled"


# ── Fechas ───────────────────────────────────────────

def today() -> date:
    """Fecha de hoy en la zona horaria de la clínica."""
    return datetime.now(tz.gettz(settings.TIMEZONE)).date()


def normalize_date(value: date | datetime) -> date:
    """Descarta la hora: una cita ocupa el día calendario completo."""
    if isinstance(value, datetime):
        return value.date()
    return value


def weekday_of(target_date: date) -> WeekDay:
    return WeekDay.from_index(target_date.weekday())


# ── Lookups sobre el horario ─────────────────────────

def find_weekly_slot(slots: Iterable[WeeklySlot], day: WeekDay) -> WeeklySlot | None:
    """
    Primer bloque semanal cuyo día coincide. Si hay varios bloques el
    mismo día, solo el primero (por `position`) define horario y cupo.
    """
    for slot in slots:
        if slot.day == day:
            return slot
    return None


def is_day_off(days_off: Iterable[DoctorDayOff], target_date: date) -> bool:
    return any(d.date == target_date for d in days_off)


async def count_active_bookings(
    db: AsyncSession,
    doctor_id: UUID,
    target_date: date,
    exclude_id: UUID | None = None,
) -> int:
    """Cuenta citas pending/confirmed de un doctor en una fecha."""
    query = select(func.count(Appointment.id)).where(
        Appointment.doctor_id == doctor_id,
        Appointment.date == target_date,
        Appointment.status.in_(ACTIVE_STATUSES),
    )
    if exclude_id:
        query = query.where(Appointment.id != exclude_id)

    result = await db.execute(query)
    return result.scalar() or 0


# ── Resolver ─────────────────────────────────────────

async def resolve_availability(
    db: AsyncSession,
    doctor: Doctor,
    target_date: date | datetime,
    exclude_appointment_id: UUID | None = None,
) -> SlotResult:
    """
    Calcula el cupo restante del doctor en la fecha.
    No modifica nada; emite una sola consulta de conteo.

    `exclude_appointment_id` deja fuera del conteo una cita que se está
    moviendo (reprogramación).
    """
    target_date = normalize_date(target_date)

    if is_day_off(doctor.days_off, target_date):
        return SlotResult(available=False, reason=DAY_OFF)

    slot = find_weekly_slot(doctor.weekly_slots, weekday_of(target_date))
    if slot is None:
        return SlotResult(available=False, reason=NOT_SCHEDULED)

    booked = await count_active_bookings(
        db, doctor.id, target_date, exclude_id=exclude_appointment_id
    )
    remaining = slot.max_patients_per_day - booked

    return SlotResult(
        available=remaining > 0,
        remaining=remaining,
        slot=WeeklySlotResponse.model_validate(slot),
    )
