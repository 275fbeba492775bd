import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from dentalcare.core.settings import settings
from dentalcare.db.session import get_db
from dentalcare.deps import get_current_user
from dentalcare.models.consent import ConsentStatus, OrthodonticConsent
from dentalcare.models.user import User
from dentalcare.routers.patients import get_patient_or_404
from dentalcare.schemas.consent import ConsentCreate, ConsentOut
from dentalcare.services import consent_pdf, storage
from dentalcare.services.appointment_lifecycle import clinic_today
from dentalcare.services.audit import log_event

router = APIRouter(tags=["consents"])
logger = logging.getLogger("dentalcare.consents")

DOCUMENT_FAILURE = "The consent document could not be generated. Please try again."


def consent_download_url(consent_id: int) -> str:
    return f"{settings.public_base_url.rstrip('/')}/consents/{consent_id}/document.pdf"


@router.post(
    "/patients/{patient_id}/consents",
    response_model=ConsentOut,
    status_code=status.HTTP_201_CREATED,
)
def create_consent(
    patient_id: int,
    payload: ConsentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    patient = get_patient_or_404(db, patient_id)
    document = consent_pdf.ConsentDocument(
        patient_name=patient.full_name,
        doctor_name=user.full_name or user.email,
        treatment=payload.treatment,
        duration=payload.duration,
        total_cost_cents=payload.total_cost_cents,
        monthly_payment_cents=payload.monthly_payment_cents,
        patient_signature=payload.patient_signature,
        doctor_signature=payload.doctor_signature,
        issued_on=clinic_today(),
    )
    try:
        pdf_bytes = consent_pdf.build_consent_pdf(document)
        storage_key = storage.save_bytes(pdf_bytes, suffix=".pdf")
    except consent_pdf.ConsentDocumentError as exc:
        logger.error("Consent PDF for patient %s failed: %s", patient.id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=DOCUMENT_FAILURE) from exc
    except OSError as exc:
        logger.error("Consent PDF for patient %s could not be stored: %s", patient.id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=DOCUMENT_FAILURE) from exc

    consent = OrthodonticConsent(
        patient_id=patient.id,
        patient_name=patient.full_name,
        treatment=payload.treatment,
        duration=payload.duration,
        total_cost_cents=payload.total_cost_cents,
        monthly_payment_cents=payload.monthly_payment_cents,
        accepted_terms=payload.accepts_terms,
        status=ConsentStatus.pending_signature,
        storage_key=storage_key,
        pdf_url="",
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    db.add(consent)
    db.flush()
    consent.pdf_url = consent_download_url(consent.id)
    log_event(
        db,
        actor=user,
        action="consent.created",
        entity_type="consent",
        entity_id=str(consent.id),
        before_obj=None,
        after_obj=consent,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(consent)
    return consent


@router.get("/patients/{patient_id}/consents/latest", response_model=ConsentOut)
def latest_consent(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    get_patient_or_404(db, patient_id)
    stmt = (
        select(OrthodonticConsent)
        .where(OrthodonticConsent.patient_id == patient_id)
        .order_by(OrthodonticConsent.created_at.desc(), OrthodonticConsent.id.desc())
        .limit(1)
    )
    consent = db.scalars(stmt).unique().first()
    if not consent:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No consent on file")
    return consent


@router.get("/consents/{consent_id}/document.pdf")
def download_consent(
    consent_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    consent = db.get(OrthodonticConsent, consent_id)
    if not consent:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Consent not found")
    if not storage.file_exists(consent.storage_key):
        logger.warning("Consent %s file %s is missing", consent.id, consent.storage_key)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Consent file missing")
    log_event(
        db,
        actor=user,
        action="consent.downloaded",
        entity_type="consent",
        entity_id=str(consent.id),
        after_data={"patient_id": consent.patient_id},
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    filename = f"consent-{consent.patient_id}-{consent.id}.pdf"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(
        storage.open_file(consent.storage_key), media_type="application/pdf", headers=headers
    )
