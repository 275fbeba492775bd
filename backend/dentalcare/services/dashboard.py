from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from dentalcare.db.row_store import RowStore, StoreResult
from dentalcare.models.inventory import StockStatus

logger = logging.getLogger("dentalcare.dashboard")

GROWTH_WINDOW = timedelta(days=30)
STATS_WINDOW_DAYS = 30
TODAY_PREVIEW = 3
LOW_STOCK_PREVIEW = 5
UNKNOWN_PATIENT = "Unknown Patient"


class DashboardUnavailable(RuntimeError):
    pass


@dataclass
class Dashboard:
    total_patients: int = 0
    patient_growth_percent: float = 0.0
    today_appointment_count: int = 0
    today_appointments: list[dict[str, Any]] = field(default_factory=list)
    low_stock_count: int = 0
    low_stock_items: list[dict[str, Any]] = field(default_factory=list)
    treatment_stats: list[tuple[str, int]] = field(default_factory=list)


def _utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _require(result: StoreResult, what: str) -> list[dict[str, Any]]:
    if not result.ok:
        logger.error("Dashboard %s fetch failed: %s", what, result.error.message)
        raise DashboardUnavailable("Dashboard data could not be loaded. Please try again.")
    return result.data or []


def patient_growth(created: list[datetime], now_utc: datetime) -> float:
    if not created:
        return 0.0
    threshold = _utc_naive(now_utc) - GROWTH_WINDOW
    recent = sum(1 for value in created if _utc_naive(value) >= threshold)
    return round(recent * 100 / len(created), 1)


def treatment_counts(rows: list[dict[str, Any]]) -> list[tuple[str, int]]:
    counts = Counter(row["treatment_type"] for row in rows if row.get("treatment_type"))
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def build_dashboard(store: RowStore, *, today: date, now_utc: datetime) -> Dashboard:
    patients = _require(store.select("patients"), "patients")
    todays = _require(store.select("appointments", {"date": today}, order=["time"]), "appointments")
    low_stock = _require(
        store.select(
            "inventory_items",
            {"status": [StockStatus.low_stock, StockStatus.out_of_stock]},
            order=["quantity", "name"],
        ),
        "inventory",
    )
    window = [today - timedelta(days=offset) for offset in range(STATS_WINDOW_DAYS + 1)]
    recent = _require(store.select("appointments", {"date": window}), "treatment statistics")

    preview = todays[:TODAY_PREVIEW]
    names: dict[int, str] = {}
    if preview:
        lookup = store.select("patients", {"id": sorted({row["patient_id"] for row in preview})})
        if lookup.ok:
            names = {
                row["id"]: f"{row['first_name']} {row['last_name']}".strip() for row in lookup.data or []
            }
        else:
            logger.warning("Dashboard patient names unavailable: %s", lookup.error.message)

    return Dashboard(
        total_patients=len(patients),
        patient_growth_percent=patient_growth([row["created_at"] for row in patients], now_utc),
        today_appointment_count=len(todays),
        today_appointments=[
            {**row, "patient_name": names.get(row["patient_id"], UNKNOWN_PATIENT)} for row in preview
        ],
        low_stock_count=len(low_stock),
        low_stock_items=low_stock[:LOW_STOCK_PREVIEW],
        treatment_stats=treatment_counts(recent),
    )
