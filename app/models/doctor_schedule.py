"""
Modelo WeeklySlot: Ventanas de atención semanales de cada doctor.

Cada fila es un bloque recurrente (día de la semana + horario) con un
cupo máximo de pacientes por día. Un doctor puede tener varios bloques
para el mismo día; al calcular disponibilidad manda el primero según
`position`.
"""

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, Index, Integer, SmallInteger, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class WeekDay(str, enum.Enum):
    """Días de la semana, en el orden de `date.weekday()` (0=Lunes)."""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_index(cls, index: int) -> "WeekDay":
        return list(cls)[index]


class WeeklySlot(Base):
    __tablename__ = "doctor_weekly_slots"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False
    )

    day: Mapped[WeekDay] = mapped_column(Enum(WeekDay), nullable=False)

    # ── Bloque de horario (HH:MM) ────────────────────
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)

    # ── Cupo diario ──────────────────────────────────
    max_patients_per_day: Mapped[int] = mapped_column(
        Integer, nullable=False, default=20,
        comment="Máximo de citas activas (pending + confirmed) por fecha"
    )

    # ── Orden de inserción (define el primer bloque del día) ──
    position: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)

    doctor: Mapped["Doctor"] = relationship(  # noqa: F821
        "Doctor", back_populates="weekly_slots"
    )

    __table_args__ = (
        Index("idx_weekly_slot_doctor_day", "doctor_id", "day"),
    )

    def __repr__(self) -> str:
        return (
            f"<WeeklySlot {self.day.value} {self.start_time}-{self.end_time} "
            f"(max {self.max_patients_per_day})>"
        )
