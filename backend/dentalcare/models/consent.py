from __future__ import annotations

import enum

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dentalcare.models.base import AuditMixin, Base, enum_type


class ConsentStatus(str, enum.Enum):
    pending_signature = "pending_signature"
    signed = "signed"


class OrthodonticConsent(Base, AuditMixin):
    __tablename__ = "orthodontic_consents"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    patient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    treatment: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[str] = mapped_column(String(120), nullable=False)
    total_cost_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    monthly_payment_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    accepted_terms: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[ConsentStatus] = mapped_column(
        enum_type(ConsentStatus, "consent_status"),
        default=ConsentStatus.pending_signature,
        nullable=False,
    )
    storage_key: Mapped[str] = mapped_column(String(64), nullable=False)
    pdf_url: Mapped[str] = mapped_column(String(500), nullable=False)

    patient = relationship("Patient", back_populates="consents")
