import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dentalcare.models.appointment import AppointmentStatus
from dentalcare.services.appointment_lifecycle import status_color, status_label


class AppointmentCreate(BaseModel):
    patient_id: int
    date: dt.date
    time: dt.time
    duration: int = Field(default=30, ge=5, le=480)
    treatment_type: str
    notes: Optional[str] = None

    @field_validator("treatment_type")
    @classmethod
    def _treatment_type_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentReschedule(BaseModel):
    date: dt.date
    time: dt.time
    duration: Optional[int] = Field(default=None, ge=5, le=480)


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: Optional[str] = None
    doctor_id: Optional[int] = None
    date: dt.date
    time: dt.time
    duration: int
    treatment_type: Optional[str] = None
    status: AppointmentStatus
    notes: Optional[str] = None
    calendar_event_id: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class AppointmentBoardItem(AppointmentOut):
    status_color: str
    status_label: str

    @classmethod
    def from_row(cls, row: dict) -> "AppointmentBoardItem":
        status = AppointmentStatus(row["status"])
        return cls.model_validate(
            {**row, "status_color": status_color(status), "status_label": status_label(status)}
        )


class AppointmentSyncFailure(BaseModel):
    appointment_id: int
    target_status: AppointmentStatus


class AppointmentBoardOut(BaseModel):
    appointments: list[AppointmentBoardItem]
    sync_failures: list[AppointmentSyncFailure] = []
    patient_names_available: bool = True


class AppointmentBooked(AppointmentOut):
    calendar_event_created: bool = False
    calendar_warning: Optional[str] = None
