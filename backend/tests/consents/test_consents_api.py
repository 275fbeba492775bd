from datetime import date

import pytest

from dentalcare.models.consent import OrthodonticConsent
from dentalcare.services import consent_pdf, storage
from dentalcare.services.consent_pdf import (
    ConsentDocument,
    ConsentDocumentError,
    build_consent_pdf,
    decode_signature,
)


def _payload(signature, **overrides):
    payload = {
        "treatment": "Fixed metal brackets",
        "duration": "18 months",
        "total_cost_cents": 3500000,
        "monthly_payment_cents": 150000,
        "patient_signature": signature,
        "doctor_signature": signature,
        "accepts_terms": True,
    }
    payload.update(overrides)
    return payload


def test_consent_is_generated_and_downloadable(api_client, auth_headers, patient_factory, signature):
    patient = patient_factory()
    response = api_client.post(
        f"/patients/{patient['id']}/consents", json=_payload(signature), headers=auth_headers
    )
    assert response.status_code == 201, response.text
    consent = response.json()
    assert consent["status"] == "pending_signature"
    assert consent["accepted_terms"] is True
    assert consent["pdf_url"].endswith(f"/consents/{consent['id']}/document.pdf")

    latest = api_client.get(f"/patients/{patient['id']}/consents/latest", headers=auth_headers)
    assert latest.status_code == 200
    assert latest.json()["id"] == consent["id"]

    document = api_client.get(f"/consents/{consent['id']}/document.pdf", headers=auth_headers)
    assert document.status_code == 200
    assert document.headers["content-type"] == "application/pdf"
    assert document.content.startswith(b"%PDF")


@pytest.mark.parametrize(
    "overrides",
    [
        {"accepts_terms": False},
        {"treatment": "   "},
        {"duration": ""},
        {"patient_signature": ""},
        {"doctor_signature": "data:image/jpeg;base64,AAAA"},
        {"total_cost_cents": 0},
    ],
)
def test_incomplete_consent_is_rejected(api_client, auth_headers, patient_factory, signature, overrides):
    patient = patient_factory()
    response = api_client.post(
        f"/patients/{patient['id']}/consents",
        json=_payload(signature, **overrides),
        headers=auth_headers,
    )
    assert response.status_code == 422
    latest = api_client.get(f"/patients/{patient['id']}/consents/latest", headers=auth_headers)
    assert latest.status_code == 404


def test_generation_failure_returns_502(api_client, auth_headers, patient_factory, signature, monkeypatch):
    patient = patient_factory()

    def broken(document):
        raise ConsentDocumentError("renderer down")

    monkeypatch.setattr(consent_pdf, "build_consent_pdf", broken)
    response = api_client.post(
        f"/patients/{patient['id']}/consents", json=_payload(signature), headers=auth_headers
    )
    assert response.status_code == 502
    assert "could not be generated" in response.json()["detail"]
    latest = api_client.get(f"/patients/{patient['id']}/consents/latest", headers=auth_headers)
    assert latest.status_code == 404


def test_unknown_patient_and_consent(api_client, auth_headers, signature):
    response = api_client.post("/patients/999999/consents", json=_payload(signature), headers=auth_headers)
    assert response.status_code == 404
    assert api_client.get("/consents/999999/document.pdf", headers=auth_headers).status_code == 404


def test_pdf_builder_directly(signature):
    pdf = build_consent_pdf(
        ConsentDocument(
            patient_name="Ana Lopez",
            doctor_name="Dr. Ruiz",
            treatment="Clear aligners",
            duration="12 months",
            total_cost_cents=4200000,
            monthly_payment_cents=350000,
            patient_signature=signature,
            doctor_signature=signature,
            issued_on=date(2025, 1, 10),
        )
    )
    assert pdf.startswith(b"%PDF")


def test_signature_must_be_png_data_url():
    with pytest.raises(ConsentDocumentError):
        decode_signature("data:image/gif;base64,R0lGOD")
    with pytest.raises(ConsentDocumentError):
        decode_signature("data:image/png;base64,@@@")


def test_deleting_patient_removes_stored_consent(api_client, auth_headers, patient_factory, signature, db_session):
    patient = patient_factory()
    consent = api_client.post(
        f"/patients/{patient['id']}/consents", json=_payload(signature), headers=auth_headers
    ).json()
    storage_key = db_session.get(OrthodonticConsent, consent["id"]).storage_key
    assert storage.file_exists(storage_key)

    assert api_client.delete(f"/patients/{patient['id']}", headers=auth_headers).status_code == 204
    assert not storage.file_exists(storage_key)
    assert api_client.get(f"/consents/{consent['id']}/document.pdf", headers=auth_headers).status_code == 404
