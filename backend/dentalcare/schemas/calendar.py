from datetime import date

from pydantic import BaseModel

from dentalcare.schemas.appointment import AppointmentBoardItem


class CalendarDay(BaseModel):
    date: date
    appointments: list[AppointmentBoardItem]


class CalendarMonthOut(BaseModel):
    year: int
    month: int
    days: list[CalendarDay]
    patient_names_available: bool = True
