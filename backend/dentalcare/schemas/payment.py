from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dentalcare.models.payment import PaymentMethod, PaymentStatus


class PaymentCreate(BaseModel):
    patient_id: int
    amount_cents: int = Field(gt=0)
    payment_method: PaymentMethod
    concept: str
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("concept")
    @classmethod
    def _concept_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: Optional[str] = None
    amount_cents: int
    payment_date: datetime
    payment_method: PaymentMethod
    concept: str
    invoice_number: str
    status: PaymentStatus
    notes: Optional[str] = None
    created_at: datetime


class PaymentSummary(BaseModel):
    year: int
    month: int
    total_paid_cents: int
    total_pending_cents: int
    payment_count: int
    by_method: dict[str, int]
