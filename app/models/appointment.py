"""
Modelo Appointment: Reserva de un cupo diario con state machine de estados.

Estados válidos y transiciones:
    pending → confirmed → completed
    pending → cancelled
    confirmed → cancelled
    cancelled → confirmed   (re-aprobación por el doctor)
"""

import enum
import uuid
import datetime as dt

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class AppointmentStatus(str, enum.Enum):
    """Estados de una cita."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Estados que consumen cupo del día
ACTIVE_STATUSES: tuple[AppointmentStatus, ...] = (
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
)


# ── Transiciones válidas de la state machine ─────────
VALID_TRANSITIONS: dict[AppointmentStatus, list[AppointmentStatus]] = {
    AppointmentStatus.PENDING: [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.CONFIRMED: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.CANCELLED: [
        AppointmentStatus.CONFIRMED,
    ],
    # Estado terminal
    AppointmentStatus.COMPLETED: [],
}


def is_valid_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    """Verifica si una transición de estado es válida."""
    return new in VALID_TRANSITIONS.get(current, [])


# Condición del índice parcial; Enum guarda el nombre del miembro
_ACTIVE_WHERE = text("status IN ('PENDING', 'CONFIRMED')")


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("doctors.id"), nullable=False
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("patients.id"), nullable=False
    )

    # ── Datos de la cita ─────────────────────────────
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str | None] = mapped_column(
        String(5), comment="Copiado del bloque semanal al reservar"
    )
    end_time: Mapped[str | None] = mapped_column(String(5))
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )
    reason: Mapped[str] = mapped_column(Text, default="")

    # ── Timestamps ───────────────────────────────────
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # ── Relaciones ───────────────────────────────────
    doctor: Mapped["Doctor"] = relationship("Doctor")  # noqa: F821
    patient: Mapped["Patient"] = relationship("Patient")  # noqa: F821

    # ── Índices para consultas frecuentes ────────────
    __table_args__ = (
        Index("idx_appointment_doctor_date", "doctor_id", "date", "status"),
        Index("idx_appointment_patient", "patient_id", "date"),
        # Un paciente no puede tener dos citas activas con el mismo doctor el mismo día
        Index(
            "uq_appointment_active_booking",
            "doctor_id",
            "patient_id",
            "date",
            unique=True,
            postgresql_where=_ACTIVE_WHERE,
            sqlite_where=_ACTIVE_WHERE,
        ),
    )

    def __repr__(self) -> str:
        return f"<Appointment {self.id} [{self.status.value}] {self.date}>"
