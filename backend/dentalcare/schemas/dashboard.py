from datetime import time
from typing import Optional

from pydantic import BaseModel

from dentalcare.models.appointment import AppointmentStatus
from dentalcare.models.inventory import StockStatus


class TodayAppointment(BaseModel):
    id: int
    time: time
    patient_name: str
    treatment_type: Optional[str] = None
    status: AppointmentStatus


class LowStockItem(BaseModel):
    id: int
    name: str
    quantity: int
    minimum_quantity: int
    status: StockStatus


class TreatmentCount(BaseModel):
    treatment_type: str
    count: int


class DashboardOut(BaseModel):
    total_patients: int
    patient_growth_percent: float
    today_appointment_count: int
    today_appointments: list[TodayAppointment]
    low_stock_count: int
    low_stock_items: list[LowStockItem]
    treatment_stats: list[TreatmentCount]
