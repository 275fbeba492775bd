from __future__ import annotations

import enum

from sqlalchemy import Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dentalcare.models.base import AuditMixin, Base, enum_type


class PatientStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    pending = "pending"
    archived = "archived"


class Gender(str, enum.Enum):
    male = "male"
    female = "female"
    other = "other"


class Patient(Base, AuditMixin):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    status: Mapped[PatientStatus] = mapped_column(
        enum_type(PatientStatus, "patient_status"),
        default=PatientStatus.active,
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gender: Mapped[Gender | None] = mapped_column(enum_type(Gender, "gender"), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(120), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    medical_conditions: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    pregnancy_trimester: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_medications: Mapped[list | None] = mapped_column(JSON, nullable=True)
    vital_signs: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    oral_examination: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    dental_chart: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    treatment_plan: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_cost_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Appointments are never deleted; a patient with any cannot be removed.
    appointments = relationship("Appointment", back_populates="patient", passive_deletes="all")
    payments = relationship("Payment", back_populates="patient", cascade="all, delete-orphan")
    consents = relationship(
        "OrthodonticConsent", back_populates="patient", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_finalized(self) -> bool:
        return self.status == PatientStatus.archived
