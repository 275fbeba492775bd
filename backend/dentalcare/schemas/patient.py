from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from dentalcare.models.patient import Gender, PatientStatus
from dentalcare.schemas.actor import ActorOut
from dentalcare.services.dental_chart import DentalChart


class MedicalConditions(BaseModel):
    diabetes: bool = False
    heart_disease: bool = False
    hypertension: bool = False
    hypotension: bool = False
    seizures: bool = False
    arthritis: bool = False
    allergies: bool = False
    bleeding_disorders: bool = False
    hepatitis: bool = False
    hiv: bool = False
    tuberculosis: bool = False


class VitalSigns(BaseModel):
    blood_pressure: Optional[str] = None
    pulse: Optional[str] = None
    temperature: Optional[str] = None
    indicated_anesthesia: Optional[str] = None
    medical_diagnosis: Optional[str] = None


def _require_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _normalize_chart(value: Optional[dict]) -> Optional[dict]:
    if value is None:
        return value
    try:
        return DentalChart.from_json(value).to_json()
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"invalid dental chart: {exc}") from exc


class PatientBase(BaseModel):
    first_name: str
    last_name: str
    age: int = Field(ge=0, le=130)
    gender: Gender
    occupation: str
    phone: str
    address: str
    email: EmailStr
    medical_conditions: MedicalConditions = Field(default_factory=MedicalConditions)
    pregnancy_trimester: Optional[int] = Field(default=None, ge=1, le=3)
    current_medications: list[str] = Field(default_factory=list)
    vital_signs: VitalSigns = Field(default_factory=VitalSigns)
    oral_examination: dict = Field(default_factory=dict)
    dental_chart: dict = Field(default_factory=dict)
    treatment_plan: Optional[str] = None
    total_cost_cents: Optional[int] = Field(default=None, ge=0)

    @field_validator("first_name", "last_name", "occupation", "phone", "address")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("dental_chart")
    @classmethod
    def _valid_chart(cls, value: dict) -> dict:
        return _normalize_chart(value)


class PatientCreate(PatientBase):
    status: PatientStatus = PatientStatus.active


class PatientUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=130)
    gender: Optional[Gender] = None
    occupation: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    email: Optional[EmailStr] = None
    medical_conditions: Optional[MedicalConditions] = None
    pregnancy_trimester: Optional[int] = Field(default=None, ge=1, le=3)
    current_medications: Optional[list[str]] = None
    vital_signs: Optional[VitalSigns] = None
    oral_examination: Optional[dict] = None
    dental_chart: Optional[dict] = None
    treatment_plan: Optional[str] = None
    total_cost_cents: Optional[int] = Field(default=None, ge=0)

    @field_validator("first_name", "last_name", "occupation", "phone", "address")
    @classmethod
    def _not_blank(cls, value: Optional[str]) -> Optional[str]:
        return _require_text(value)

    @field_validator("dental_chart")
    @classmethod
    def _valid_chart(cls, value: Optional[dict]) -> Optional[dict]:
        return _normalize_chart(value)


class PatientStatusUpdate(BaseModel):
    status: PatientStatus


class PatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: PatientStatus
    first_name: str
    last_name: str
    full_name: str
    age: Optional[int] = None
    gender: Optional[Gender] = None
    occupation: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    medical_conditions: Optional[dict] = None
    pregnancy_trimester: Optional[int] = None
    current_medications: Optional[list] = None
    vital_signs: Optional[dict] = None
    oral_examination: Optional[dict] = None
    dental_chart: Optional[dict] = None
    treatment_plan: Optional[str] = None
    total_cost_cents: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    created_by: Optional[ActorOut] = None
    updated_by: Optional[ActorOut] = None


class PatientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    status: PatientStatus
    phone: Optional[str] = None
    email: Optional[str] = None
