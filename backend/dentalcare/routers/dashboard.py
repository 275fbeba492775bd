from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from dentalcare.db.row_store import RowStore
from dentalcare.deps import get_current_user, get_row_store
from dentalcare.models.user import User
from dentalcare.schemas.dashboard import DashboardOut, LowStockItem, TodayAppointment, TreatmentCount
from dentalcare.services import appointment_lifecycle
from dentalcare.services.dashboard import DashboardUnavailable, build_dashboard

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardOut)
def get_dashboard(
    store: RowStore = Depends(get_row_store),
    _user: User = Depends(get_current_user),
):
    try:
        dashboard = build_dashboard(
            store,
            today=appointment_lifecycle.clinic_today(),
            now_utc=datetime.now(timezone.utc),
        )
    except DashboardUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return DashboardOut(
        total_patients=dashboard.total_patients,
        patient_growth_percent=dashboard.patient_growth_percent,
        today_appointment_count=dashboard.today_appointment_count,
        today_appointments=[TodayAppointment.model_validate(row) for row in dashboard.today_appointments],
        low_stock_count=dashboard.low_stock_count,
        low_stock_items=[LowStockItem.model_validate(row) for row in dashboard.low_stock_items],
        treatment_stats=[
            TreatmentCount(treatment_type=name, count=count) for name, count in dashboard.treatment_stats
        ],
    )
