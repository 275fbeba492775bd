from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from dentalcare.models.user import Role as RoleEnum


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    first_name: str
    last_name: str
    full_name: str
    role: RoleEnum
    is_active: bool
    must_change_password: bool
    google_calendar_enabled: bool = False
    created_at: datetime


class UserCreate(BaseModel):
    email: EmailStr
    first_name: str = ""
    last_name: str = ""
    role: RoleEnum = RoleEnum.staff
    temp_password: str = Field(min_length=12)


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class CalendarConnect(BaseModel):
    access_token: str

    @field_validator("access_token")
    @classmethod
    def _token_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class CalendarToggle(BaseModel):
    enabled: bool


class CalendarConnectionOut(BaseModel):
    connected: bool
    enabled: bool
