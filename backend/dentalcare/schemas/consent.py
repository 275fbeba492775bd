from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dentalcare.models.consent import ConsentStatus
from dentalcare.services.consent_pdf import PNG_DATA_URL_PREFIX


class ConsentCreate(BaseModel):
    treatment: str
    duration: str
    total_cost_cents: int = Field(gt=0)
    monthly_payment_cents: int = Field(gt=0)
    patient_signature: str
    doctor_signature: str
    accepts_terms: bool

    @field_validator("treatment", "duration")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("patient_signature", "doctor_signature")
    @classmethod
    def _png_data_url(cls, value: str) -> str:
        if not value.startswith(PNG_DATA_URL_PREFIX) or len(value) == len(PNG_DATA_URL_PREFIX):
            raise ValueError("signature is required")
        return value

    @field_validator("accepts_terms")
    @classmethod
    def _must_accept(cls, value: bool) -> bool:
        if not value:
            raise ValueError("terms must be accepted")
        return value


class ConsentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: str
    treatment: str
    duration: str
    total_cost_cents: int
    monthly_payment_cents: int
    accepted_terms: bool
    status: ConsentStatus
    pdf_url: str
    created_at: datetime
