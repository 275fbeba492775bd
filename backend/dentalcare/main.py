import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from dentalcare.core.settings import settings, validate_settings
from dentalcare.db.session import SessionLocal, engine
from dentalcare.models import Base
from dentalcare.routers.appointments import router as appointments_router
from dentalcare.routers.audit import router as audit_router
from dentalcare.routers.auth import router as auth_router
from dentalcare.routers.calendar import router as calendar_router
from dentalcare.routers.chart import router as chart_router
from dentalcare.routers.consents import router as consents_router
from dentalcare.routers.dashboard import router as dashboard_router
from dentalcare.routers.inventory import router as inventory_router
from dentalcare.routers.patients import router as patients_router
from dentalcare.routers.payments import router as payments_router
from dentalcare.routers.users import router as users_router
from dentalcare.services.users import seed_initial_admin

app = FastAPI(title="DentalCare API", version="0.1.0")
logger = logging.getLogger("dentalcare.startup")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = request.headers.get("x-request-id")
    logger.exception("Unhandled server error", extra={"request_id": request_id})
    payload = {"detail": "Internal server error"}
    headers = {}
    if request_id:
        payload["request_id"] = request_id
        headers["x-request-id"] = request_id
    return JSONResponse(status_code=500, content=payload, headers=headers)


@app.on_event("startup")
def startup():
    validate_settings(settings)
    Base.metadata.create_all(bind=engine)

    admin_email = str(settings.admin_email)
    admin_password = settings.admin_password.strip()
    db: Session = SessionLocal()
    try:
        created = seed_initial_admin(db, email=admin_email, password=admin_password)
        if created:
            logger.info("Initial admin created for %s (must change password on first login).", admin_email)
        else:
            logger.info("Initial admin not created (users already exist).")
    finally:
        db.close()


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(patients_router)
app.include_router(chart_router)
app.include_router(appointments_router)
app.include_router(calendar_router)
app.include_router(inventory_router)
app.include_router(payments_router)
app.include_router(consents_router)
app.include_router(dashboard_router)
app.include_router(audit_router)
