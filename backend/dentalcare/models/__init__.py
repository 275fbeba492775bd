from dentalcare.models.base import Base
from dentalcare.models.user import Role, User
from dentalcare.models.audit_log import AuditLog
from dentalcare.models.patient import Gender, Patient, PatientStatus
from dentalcare.models.appointment import Appointment, AppointmentStatus
from dentalcare.models.payment import Payment, PaymentMethod, PaymentStatus
from dentalcare.models.inventory import InventoryCategory, InventoryItem, StockStatus
from dentalcare.models.consent import ConsentStatus, OrthodonticConsent

__all__ = [
    "Base",
    "Role",
    "User",
    "AuditLog",
    "Gender",
    "Patient",
    "PatientStatus",
    "Appointment",
    "AppointmentStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "InventoryCategory",
    "InventoryItem",
    "StockStatus",
    "ConsentStatus",
    "OrthodonticConsent",
]
