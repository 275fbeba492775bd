from __future__ import annotations

import enum
import datetime as dt

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dentalcare.models.base import AuditMixin, Base, enum_type


class AppointmentStatus(str, enum.Enum):
    scheduled = "scheduled"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"


class Appointment(Base, AuditMixin):
    __tablename__ = "appointments"
    __table_args__ = (Index("ix_appointments_date_time", "date", "time"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    treatment_type: Mapped[str | None] = mapped_column(String(120), nullable=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        enum_type(AppointmentStatus, "appointment_status"),
        default=AppointmentStatus.scheduled,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    calendar_event_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    patient = relationship("Patient", back_populates="appointments", lazy="joined")

    @property
    def scheduled_at(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.time)

    @property
    def patient_name(self) -> str | None:
        return self.patient.full_name if self.patient else None
