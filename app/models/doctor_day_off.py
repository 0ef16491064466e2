"""
Modelo DoctorDayOff: Excepciones de fecha puntual al horario semanal.

Un día libre anula la recurrencia semanal para esa fecha: el doctor no
recibe citas aunque tenga un bloque configurado para ese día.
"""

import uuid
import datetime as dt

from sqlalchemy import Date, DateTime, ForeignKey, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class DoctorDayOff(Base):
    __tablename__ = "doctor_days_off"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500))

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    doctor: Mapped["Doctor"] = relationship(  # noqa: F821
        "Doctor", back_populates="days_off"
    )

    __table_args__ = (
        UniqueConstraint("doctor_id", "date", name="uq_doctor_day_off"),
    )

    def __repr__(self) -> str:
        return f"<DoctorDayOff {self.date}>"
