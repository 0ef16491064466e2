"""
Modelo Doctor: Perfil profesional de un usuario con rol doctor.

Agrupa el horario semanal (`weekly_slots`), los días libres y el estado
de aprobación. Un doctor no aprobado no recibe reservas.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class DoctorStatus(str, enum.Enum):
    """Estado del onboarding del doctor."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Doctor(Base):
    __tablename__ = "doctors"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, unique=True, index=True
    )

    # ── Datos profesionales ──────────────────────────
    specialization: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    experience: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Años de experiencia"
    )
    consultation_fee: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False
    )
    clinic_address: Mapped[str] = mapped_column(String(500), nullable=False)

    # ── Aprobación ───────────────────────────────────
    is_approved: Mapped[bool] = mapped_column(default=False)
    status: Mapped[DoctorStatus] = mapped_column(
        Enum(DoctorStatus), nullable=False, default=DoctorStatus.PENDING
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # ── Relaciones ───────────────────────────────────
    user: Mapped["User"] = relationship("User", lazy="selectin")  # noqa: F821
    weekly_slots: Mapped[list["WeeklySlot"]] = relationship(  # noqa: F821
        "WeeklySlot",
        back_populates="doctor",
        order_by="WeeklySlot.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    days_off: Mapped[list["DoctorDayOff"]] = relationship(  # noqa: F821
        "DoctorDayOff",
        back_populates="doctor",
        order_by="DoctorDayOff.date",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Doctor {self.id} {self.specialization} [{self.status.value}]>"
