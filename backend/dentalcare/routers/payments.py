import calendar
import time as time_module
from datetime import date, datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from dentalcare.db.session import get_db
from dentalcare.deps import get_current_user
from dentalcare.models.patient import Patient
from dentalcare.models.payment import Payment, PaymentMethod, PaymentStatus
from dentalcare.models.user import User
from dentalcare.schemas.payment import PaymentCreate, PaymentOut, PaymentStatusUpdate, PaymentSummary
from dentalcare.services import appointment_lifecycle
from dentalcare.services.audit import log_event, snapshot_model
from dentalcare.services.pdf import build_payment_receipt

router = APIRouter(prefix="/payments", tags=["payments"])


def new_invoice_number(db: Session) -> str:
    millis = int(time_module.time() * 1000)
    candidate = f"INV-{millis}"
    while db.scalar(select(Payment.id).where(Payment.invoice_number == candidate)):
        millis += 1
        candidate = f"INV-{millis}"
    return candidate


def date_range_bounds(range_name: str, today: date) -> tuple[datetime, datetime]:
    """Clinic-local [start, end) for the billing list's today/week/month filter."""
    if range_name == "today":
        start = today
        end = today + timedelta(days=1)
    elif range_name == "week":
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=7)
    else:
        start = today.replace(day=1)
        _, last_day = calendar.monthrange(today.year, today.month)
        end = start + timedelta(days=last_day)
    return datetime.combine(start, time.min), datetime.combine(end, time.min)


def get_payment_or_404(db: Session, payment_id: int) -> Payment:
    payment = db.get(Payment, payment_id)
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return payment


@router.get("", response_model=list[PaymentOut])
def list_payments(
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
    q: str | None = Query(default=None),
    status_filter: PaymentStatus | None = Query(default=None, alias="status"),
    method: PaymentMethod | None = Query(default=None),
    date_range: str | None = Query(default=None, pattern="^(today|week|month)$"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
):
    stmt = select(Payment).join(Patient).order_by(Payment.payment_date.desc(), Payment.id.desc())
    if q:
        like = f"%{q.strip()}%"
        stmt = stmt.where(
            or_(
                Payment.invoice_number.ilike(like),
                Payment.concept.ilike(like),
                Patient.first_name.ilike(like),
                Patient.last_name.ilike(like),
            )
        )
    if status_filter:
        stmt = stmt.where(Payment.status == status_filter)
    if method:
        stmt = stmt.where(Payment.payment_method == method)
    if date_range:
        start, end = date_range_bounds(date_range, appointment_lifecycle.clinic_today())
        stmt = stmt.where(Payment.payment_date >= start, Payment.payment_date < end)
    stmt = stmt.limit(limit).offset(offset)
    return list(db.scalars(stmt).unique())


@router.post("", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def create_payment(
    payload: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    if not db.get(Patient, payload.patient_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    payment = Payment(
        patient_id=payload.patient_id,
        amount_cents=payload.amount_cents,
        payment_date=payload.payment_date or datetime.now(timezone.utc),
        payment_method=payload.payment_method,
        concept=payload.concept,
        invoice_number=new_invoice_number(db),
        status=PaymentStatus.paid,
        notes=payload.notes,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    db.add(payment)
    db.flush()
    log_event(
        db,
        actor=user,
        action="payment.created",
        entity_type="payment",
        entity_id=str(payment.id),
        before_obj=None,
        after_obj=payment,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(payment)
    return payment


@router.get("/summary", response_model=PaymentSummary)
def monthly_summary(
    year: int = Query(ge=1900, le=9999),
    month: int = Query(ge=1, le=12),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    _, last_day = calendar.monthrange(year, month)
    start = datetime(year, month, 1)
    end = datetime(year, month, last_day, 23, 59, 59, 999999)
    payments = list(
        db.scalars(
            select(Payment).where(Payment.payment_date >= start, Payment.payment_date <= end)
        ).unique()
    )
    by_method = {method.value: 0 for method in PaymentMethod}
    total_paid = 0
    total_pending = 0
    for payment in payments:
        if payment.status == PaymentStatus.paid:
            total_paid += payment.amount_cents
            by_method[payment.payment_method.value] += payment.amount_cents
        elif payment.status == PaymentStatus.pending:
            total_pending += payment.amount_cents
    return PaymentSummary(
        year=year,
        month=month,
        total_paid_cents=total_paid,
        total_pending_cents=total_pending,
        payment_count=len(payments),
        by_method=by_method,
    )


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_payment_or_404(db, payment_id)


@router.post("/{payment_id}/status", response_model=PaymentOut)
def change_payment_status(
    payment_id: int,
    payload: PaymentStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    payment = get_payment_or_404(db, payment_id)
    before_data = snapshot_model(payment)
    payment.status = payload.status
    payment.updated_by_user_id = user.id
    db.add(payment)
    log_event(
        db,
        actor=user,
        action="payment.status_changed",
        entity_type="payment",
        entity_id=str(payment.id),
        before_data=before_data,
        after_obj=payment,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(payment)
    return payment


@router.get("/{payment_id}/receipt.pdf")
def get_payment_receipt(
    payment_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    payment = get_payment_or_404(db, payment_id)
    pdf_bytes = build_payment_receipt(payment)
    log_event(
        db,
        actor=user,
        action="payment.receipt_generated",
        entity_type="payment",
        entity_id=str(payment.id),
        before_obj=None,
        after_obj=None,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    filename = f"receipt-{payment.invoice_number}.pdf"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)
