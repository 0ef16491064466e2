"""
Servicio de citas: reserva, reprogramación, eliminación, state machine
de estados y tableros del doctor.

Las validaciones corren antes de cualquier escritura. La verificación de
cupo y la inserción se hacen con la fila del doctor bloqueada
(SELECT ... FOR UPDATE), así dos reservas simultáneas para el mismo doctor
no pueden superar el cupo del día.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    UnavailableException,
    ValidationException,
)
from app.models.appointment import (
    ACTIVE_STATUSES,
    VALID_TRANSITIONS,
    Appointment,
    AppointmentStatus,
    is_valid_transition,
)
from app.models.doctor import Doctor
from app.models.patient import Patient
from app.models.user import User, UserRole
from app.schemas.appointment import (
    AppointmentDoctorEmbed,
    AppointmentListResponse,
    AppointmentPatientEmbed,
    AppointmentResponse,
    DoctorPatientSummary,
    RevenueResponse,
    SlotResult,
)
from app.services import notification_service
from app.services.availability_service import (
    DAY_OFF,
    normalize_date,
    resolve_availability,
    today,
    weekday_of,
)
from app.services.doctor_service import find_doctor_by_id, find_doctor_by_user, get_my_doctor
from app.services.patient_service import find_patient_by_user, get_my_patient

logger = logging.getLogger(__name__)

# Estados que cuentan como atención facturable en los tableros
BILLABLE_STATUSES = (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED)


# ── Helpers ──────────────────────────────────────────

def _appointment_to_response(appt: Appointment) -> AppointmentResponse:
    """Convierte un modelo Appointment a su schema de respuesta."""
    doctor_embed = None
    patient_embed = None

    if appt.doctor and appt.doctor.user:
        doctor_embed = AppointmentDoctorEmbed(
            id=appt.doctor.id,
            name=appt.doctor.user.name,
            email=appt.doctor.user.email,
            specialization=appt.doctor.specialization,
        )
    if appt.patient and appt.patient.user:
        patient_embed = AppointmentPatientEmbed(
            id=appt.patient.id,
            name=appt.patient.user.name,
            email=appt.patient.user.email,
            phone=appt.patient.user.phone,
        )

    return AppointmentResponse(
        id=appt.id,
        doctor_id=appt.doctor_id,
        patient_id=appt.patient_id,
        date=appt.date,
        start_time=appt.start_time,
        end_time=appt.end_time,
        status=appt.status,
        reason=appt.reason,
        doctor=doctor_embed,
        patient=patient_embed,
        created_at=appt.created_at,
        updated_at=appt.updated_at,
    )


def _load_options():
    """Opciones de carga eager para relaciones de Appointment."""
    return [
        joinedload(Appointment.doctor),
        joinedload(Appointment.patient),
    ]


async def _get_appointment(db: AsyncSession, appointment_id: UUID) -> Appointment:
    result = await db.execute(
        select(Appointment)
        .options(*_load_options())
        .where(Appointment.id == appointment_id)
        .execution_options(populate_existing=True)
    )
    appointment = result.scalar_one_or_none()
    if not appointment:
        raise NotFoundException("Appointment")
    return appointment


async def _response(db: AsyncSession, appointment_id: UUID) -> AppointmentResponse:
    """Recarga la cita con relaciones y la serializa."""
    return _appointment_to_response(await _get_appointment(db, appointment_id))


def _notify_patient_status(db: AsyncSession, appt: Appointment) -> None:
    """Aviso best-effort al paciente tras un cambio de estado."""
    if not (appt.patient and appt.patient.user and appt.doctor and appt.doctor.user):
        return
    subject, html = notification_service.build_status_changed(
        patient_name=appt.patient.user.name,
        doctor_name=appt.doctor.user.name,
        appointment_date=appt.date.isoformat(),
        status=appt.status.value,
    )
    notification_service.notify(db, appt.patient.user.email, subject, html)


# ── Validación de fecha y cupo ───────────────────────

def _raise_unavailable(result: SlotResult, target_date: date) -> None:
    """Traduce un SlotResult no disponible en el error de la reserva."""
    if result.reason == DAY_OFF:
        raise UnavailableException("Doctor is off on this date", reason=result.reason)
    if result.reason:
        raise UnavailableException(
            f"Doctor is not available on {weekday_of(target_date).value}s",
            reason=result.reason,
        )
    raise ConflictException("No slots available on this date")


async def _check_duplicate(
    db: AsyncSession,
    doctor_id: UUID,
    patient_id: UUID,
    target_date: date,
    exclude_id: UUID | None = None,
) -> None:
    """Un paciente no puede tener dos citas activas con el mismo doctor el mismo día."""
    query = select(Appointment.id).where(
        Appointment.doctor_id == doctor_id,
        Appointment.patient_id == patient_id,
        Appointment.date == target_date,
        Appointment.status.in_(ACTIVE_STATUSES),
    )
    if exclude_id:
        query = query.where(Appointment.id != exclude_id)

    result = await db.execute(query.limit(1))
    if result.scalar_one_or_none():
        raise ConflictException("You have already booked an appointment on this date")


async def _validate_booking_date(
    db: AsyncSession,
    doctor_id: UUID,
    patient_id: UUID,
    target_date: date,
    exclude_id: UUID | None = None,
) -> tuple[Doctor, SlotResult]:
    """
    Validaciones comunes a reservar y reprogramar, en orden:

    1. La fecha no es anterior a hoy
    2. El doctor existe y está aprobado (se bloquea su fila)
    3. No hay otra cita activa del paciente con ese doctor esa fecha
    4. El doctor atiende ese día y queda cupo
    """
    if target_date < today():
        raise ValidationException("Cannot book appointment for past dates")

    doctor = await find_doctor_by_id(db, doctor_id, for_update=True)
    if not doctor or not doctor.is_approved:
        raise NotFoundException("Doctor")

    await _check_duplicate(db, doctor.id, patient_id, target_date, exclude_id=exclude_id)

    result = await resolve_availability(
        db, doctor, target_date, exclude_appointment_id=exclude_id
    )
    if not result.available:
        _raise_unavailable(result, target_date)

    return doctor, result


async def _flush_booking(db: AsyncSession) -> None:
    """El índice único parcial atrapa duplicados que se colaron por concurrencia."""
    try:
        await db.flush()
    except IntegrityError:
        raise ConflictException("You have already booked an appointment on this date")


# ── Reserva ──────────────────────────────────────────

async def create_booking(
    db: AsyncSession,
    doctor_id: UUID | None,
    patient_user: User,
    target_date: date | None,
    reason: str | None = None,
) -> AppointmentResponse:
    """
    Reserva un cupo del día con el doctor. La cita nace en `pending` con
    el horario del bloque semanal que corresponde a esa fecha.
    """
    if not doctor_id or not target_date:
        raise ValidationException("All fields are required")
    target_date = normalize_date(target_date)

    patient = await get_my_patient(db, patient_user)

    doctor, slot_result = await _validate_booking_date(
        db, doctor_id, patient.id, target_date
    )

    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=patient.id,
        date=target_date,
        start_time=slot_result.slot.start_time,
        end_time=slot_result.slot.end_time,
        status=AppointmentStatus.PENDING,
        reason=reason or "",
    )
    db.add(appointment)
    await _flush_booking(db)

    logger.info(
        f"Cita {appointment.id} reservada: doctor={doctor.id} paciente={patient.id} "
        f"fecha={target_date} cupo_restante={slot_result.remaining - 1}"
    )

    # Avisos best-effort: no afectan la reserva
    subject, html = notification_service.build_booking_created_for_patient(
        patient_name=patient_user.name,
        doctor_name=doctor.user.name,
        appointment_date=target_date.isoformat(),
        start_time=appointment.start_time,
        end_time=appointment.end_time,
    )
    notification_service.notify(db, patient_user.email, subject, html)

    subject, html = notification_service.build_booking_created_for_doctor(
        doctor_name=doctor.user.name,
        patient_name=patient_user.name,
        appointment_date=target_date.isoformat(),
    )
    notification_service.notify(db, doctor.user.email, subject, html)

    return await _response(db, appointment.id)


async def reschedule_booking(
    db: AsyncSession,
    appointment_id: UUID,
    requester: User,
    new_date: date | None,
) -> AppointmentResponse:
    """
    Mueve una cita pendiente a otra fecha. Solo el paciente dueño puede
    hacerlo; el estado no cambia y el horario se toma del bloque de la
    nueva fecha.
    """
    if not new_date:
        raise ValidationException("New date is required")
    new_date = normalize_date(new_date)

    appointment = await _get_appointment(db, appointment_id)

    patient = await find_patient_by_user(db, requester.id)
    if not patient or appointment.patient_id != patient.id:
        raise ForbiddenException("You are not authorized to update this appointment")

    if appointment.status != AppointmentStatus.PENDING:
        raise ConflictException("Only pending appointments can be updated")

    _, slot_result = await _validate_booking_date(
        db,
        appointment.doctor_id,
        patient.id,
        new_date,
        exclude_id=appointment.id,
    )

    old_date = appointment.date
    appointment.date = new_date
    appointment.start_time = slot_result.slot.start_time
    appointment.end_time = slot_result.slot.end_time
    await _flush_booking(db)

    logger.info(f"Cita {appointment.id} reprogramada de {old_date} a {new_date}")
    return await _response(db, appointment.id)


async def delete_booking(
    db: AsyncSession,
    appointment_id: UUID,
    requester: User,
) -> None:
    """Elimina una cita pendiente del paciente dueño, liberando el cupo."""
    appointment = await _get_appointment(db, appointment_id)

    patient = await find_patient_by_user(db, requester.id)
    if not patient or appointment.patient_id != patient.id:
        raise ForbiddenException("You are not authorized to delete this appointment")

    if appointment.status != AppointmentStatus.PENDING:
        raise ConflictException("Only pending appointments can be deleted")

    await db.delete(appointment)
    await db.flush()
    logger.info(f"Cita {appointment_id} eliminada por el paciente {patient.id}")


# ── State machine ────────────────────────────────────

async def _get_for_doctor_action(
    db: AsyncSession,
    appointment_id: UUID,
    user: User,
) -> Appointment:
    """Carga la cita verificando que el usuario es el doctor asignado (o admin)."""
    appointment = await _get_appointment(db, appointment_id)
    if user.role == UserRole.ADMIN:
        return appointment

    doctor = await find_doctor_by_user(db, user.id)
    if not doctor or doctor.id != appointment.doctor_id:
        raise ForbiddenException("You are not authorized to manage this appointment")
    return appointment


async def _apply_transition(
    db: AsyncSession,
    appointment: Appointment,
    new_status: AppointmentStatus,
    user: User,
) -> AppointmentResponse:
    """Aplica la transición ya validada, registra y notifica al paciente."""
    if not is_valid_transition(appointment.status, new_status):
        valid = VALID_TRANSITIONS.get(appointment.status, [])
        raise ConflictException(
            f"Cannot change status from '{appointment.status.value}' to '{new_status.value}'. "
            f"Valid transitions: {', '.join(s.value for s in valid) or 'none'}"
        )

    old_status = appointment.status
    appointment.status = new_status
    await _flush_booking(db)

    logger.info(
        f"Cita {appointment.id}: {old_status.value} → {new_status.value} "
        f"(usuario {user.id})"
    )

    appointment = await _get_appointment(db, appointment.id)
    _notify_patient_status(db, appointment)
    return _appointment_to_response(appointment)


async def approve(
    db: AsyncSession,
    appointment_id: UUID,
    user: User,
) -> AppointmentResponse:
    """pending → confirmed. Aprobar una cita ya confirmada es un conflicto."""
    appointment = await _get_for_doctor_action(db, appointment_id, user)

    if appointment.status != AppointmentStatus.PENDING:
        raise ConflictException("Only pending appointments can be approved")

    return await _apply_transition(db, appointment, AppointmentStatus.CONFIRMED, user)


async def reapprove(
    db: AsyncSession,
    appointment_id: UUID,
    user: User,
) -> AppointmentResponse:
    """
    cancelled → confirmed. La cita vuelve a ocupar cupo, así que se valida
    la fecha y el cupo como en una reserva nueva.
    """
    appointment = await _get_for_doctor_action(db, appointment_id, user)

    if appointment.status != AppointmentStatus.CANCELLED:
        raise ConflictException("Only cancelled appointments can be re-approved")

    await _validate_booking_date(
        db,
        appointment.doctor_id,
        appointment.patient_id,
        appointment.date,
        exclude_id=appointment.id,
    )

    return await _apply_transition(db, appointment, AppointmentStatus.CONFIRMED, user)


async def cancel(
    db: AsyncSession,
    appointment_id: UUID,
    user: User,
) -> AppointmentResponse:
    """
    * → cancelled. Puede cancelar el doctor asignado, un admin o el
    paciente dueño de la cita.
    """
    appointment = await _get_appointment(db, appointment_id)

    if user.role == UserRole.PATIENT:
        patient = await find_patient_by_user(db, user.id)
        if not patient or appointment.patient_id != patient.id:
            raise ForbiddenException("You are not authorized to cancel this appointment")
    else:
        appointment = await _get_for_doctor_action(db, appointment_id, user)

    if appointment.status == AppointmentStatus.CANCELLED:
        raise ConflictException("Appointment is already cancelled")
    if appointment.status == AppointmentStatus.COMPLETED:
        raise ConflictException("Completed appointments cannot be cancelled")

    return await _apply_transition(db, appointment, AppointmentStatus.CANCELLED, user)


async def complete(
    db: AsyncSession,
    appointment_id: UUID,
    user: User,
) -> AppointmentResponse:
    """confirmed → completed, después de la consulta."""
    appointment = await _get_for_doctor_action(db, appointment_id, user)

    if appointment.status == AppointmentStatus.COMPLETED:
        raise ConflictException("Appointment is already completed")
    if appointment.status != AppointmentStatus.CONFIRMED:
        raise ConflictException("Only confirmed appointments can be completed")

    return await _apply_transition(db, appointment, AppointmentStatus.COMPLETED, user)


# ── Consultas ────────────────────────────────────────

async def get_appointment(
    db: AsyncSession,
    appointment_id: UUID,
    user: User,
) -> AppointmentResponse:
    """Detalle de una cita; visible para su paciente, su doctor o un admin."""
    appointment = await _get_appointment(db, appointment_id)

    if user.role == UserRole.PATIENT:
        patient = await find_patient_by_user(db, user.id)
        if not patient or appointment.patient_id != patient.id:
            raise ForbiddenException("You are not authorized to view this appointment")
    elif user.role == UserRole.DOCTOR:
        doctor = await find_doctor_by_user(db, user.id)
        if not doctor or doctor.id != appointment.doctor_id:
            raise ForbiddenException("You are not authorized to view this appointment")

    return _appointment_to_response(appointment)


async def list_doctor_appointments(
    db: AsyncSession,
    user: User,
    *,
    status: AppointmentStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> AppointmentListResponse:
    """Citas del doctor autenticado con filtros por estado y rango de fechas."""
    doctor = await get_my_doctor(db, user)

    query = (
        select(Appointment)
        .options(*_load_options())
        .where(Appointment.doctor_id == doctor.id)
    )
    if status:
        query = query.where(Appointment.status == status)
    if date_from:
        query = query.where(Appointment.date >= date_from)
    if date_to:
        query = query.where(Appointment.date <= date_to)

    query = query.order_by(Appointment.date, Appointment.created_at)
    result = await db.execute(query)
    appointments = result.scalars().unique().all()

    return AppointmentListResponse(
        items=[_appointment_to_response(a) for a in appointments],
        total=len(appointments),
    )


async def todays_appointments(db: AsyncSession, user: User) -> AppointmentListResponse:
    current = today()
    return await list_doctor_appointments(db, user, date_from=current, date_to=current)


async def upcoming_week_appointments(db: AsyncSession, user: User) -> AppointmentListResponse:
    """Citas de los próximos siete días (sin incluir hoy)."""
    current = today()
    return await list_doctor_appointments(
        db,
        user,
        date_from=current + timedelta(days=1),
        date_to=current + timedelta(days=7),
    )


async def revenue_estimate(
    db: AsyncSession,
    user: User,
    date_from: date,
    date_to: date,
) -> RevenueResponse:
    """Ingreso estimado: tarifa de consulta × citas confirmadas o completadas."""
    doctor = await get_my_doctor(db, user)

    result = await db.execute(
        select(func.count(Appointment.id)).where(
            Appointment.doctor_id == doctor.id,
            Appointment.date >= date_from,
            Appointment.date <= date_to,
            Appointment.status.in_(BILLABLE_STATUSES),
        )
    )
    count = result.scalar() or 0
    fee = Decimal(doctor.consultation_fee)

    return RevenueResponse(
        date_from=date_from,
        date_to=date_to,
        appointments=count,
        consultation_fee=fee,
        revenue=fee * count,
    )


async def todays_revenue(db: AsyncSession, user: User) -> RevenueResponse:
    current = today()
    return await revenue_estimate(db, user, current, current)


async def this_week_revenue(db: AsyncSession, user: User) -> RevenueResponse:
    """Semana calendario actual, de lunes a domingo."""
    current = today()
    monday = current - timedelta(days=current.weekday())
    return await revenue_estimate(db, user, monday, monday + timedelta(days=6))


async def doctor_patients(db: AsyncSession, user: User) -> list[DoctorPatientSummary]:
    """Pacientes distintos que reservaron con el doctor, con número de visitas."""
    doctor = await get_my_doctor(db, user)

    result = await db.execute(
        select(
            Appointment.patient_id,
            func.count(Appointment.id),
            func.max(Appointment.date),
        )
        .where(Appointment.doctor_id == doctor.id)
        .group_by(Appointment.patient_id)
    )
    rows = result.all()
    if not rows:
        return []

    patients_result = await db.execute(
        select(Patient).where(Patient.id.in_([row[0] for row in rows]))
    )
    patients = {p.id: p for p in patients_result.scalars().all()}

    summaries = [
        DoctorPatientSummary(
            patient_id=patient_id,
            name=patients[patient_id].user.name,
            email=patients[patient_id].user.email,
            phone=patients[patient_id].user.phone,
            total_visits=visits,
            last_appointment=last_date,
        )
        for patient_id, visits, last_date in rows
        if patient_id in patients
    ]
    summaries.sort(key=lambda s: s.last_appointment, reverse=True)
    return summaries


async def list_patient_appointments(
    db: AsyncSession,
    user: User,
    status: AppointmentStatus | None = None,
) -> AppointmentListResponse:
    """Citas del paciente autenticado, más recientes primero."""
    patient = await get_my_patient(db, user)

    query = (
        select(Appointment)
        .options(*_load_options())
        .where(Appointment.patient_id == patient.id)
    )
    if status:
        query = query.where(Appointment.status == status)

    result = await db.execute(query.order_by(Appointment.date.desc()))
    appointments = result.scalars().unique().all()

    return AppointmentListResponse(
        items=[_appointment_to_response(a) for a in appointments],
        total=len(appointments),
    )


async def next_appointments(
    db: AsyncSession,
    user: User,
    limit: int = 3,
) -> list[AppointmentResponse]:
    """Próximas citas activas del paciente, desde hoy."""
    patient = await get_my_patient(db, user)

    result = await db.execute(
        select(Appointment)
        .options(*_load_options())
        .where(
            Appointment.patient_id == patient.id,
            Appointment.date >= today(),
            Appointment.status.in_(ACTIVE_STATUSES),
        )
        .order_by(Appointment.date, Appointment.created_at)
        .limit(limit)
    )
    return [_appointment_to_response(a) for a in result.scalars().unique().all()]
