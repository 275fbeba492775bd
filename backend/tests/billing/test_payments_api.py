from datetime import date

import pytest

from dentalcare.routers.payments import date_range_bounds
from dentalcare.services import appointment_lifecycle


def _pay(api_client, auth_headers, patient_id, **overrides):
    payload = {
        "patient_id": patient_id,
        "amount_cents": 150000,
        "payment_method": "cash",
        "concept": "Orthodontic adjustment",
    }
    payload.update(overrides)
    response = api_client.post("/payments", json=payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_payment_gets_unique_invoice_number(api_client, auth_headers, patient_factory):
    patient = patient_factory()
    first = _pay(api_client, auth_headers, patient["id"])
    second = _pay(api_client, auth_headers, patient["id"])

    assert first["invoice_number"].startswith("INV-")
    assert first["invoice_number"][4:].isdigit()
    assert first["invoice_number"] != second["invoice_number"]
    assert first["status"] == "paid"


def test_payment_validation(api_client, auth_headers, patient_factory):
    patient = patient_factory()
    zero = api_client.post(
        "/payments",
        json={"patient_id": patient["id"], "amount_cents": 0, "payment_method": "card", "concept": "x"},
        headers=auth_headers,
    )
    assert zero.status_code == 422

    blank = api_client.post(
        "/payments",
        json={"patient_id": patient["id"], "amount_cents": 100, "payment_method": "card", "concept": " "},
        headers=auth_headers,
    )
    assert blank.status_code == 422

    missing_patient = api_client.post(
        "/payments",
        json={"patient_id": 999999, "amount_cents": 100, "payment_method": "card", "concept": "Exam"},
        headers=auth_headers,
    )
    assert missing_patient.status_code == 404


def test_monthly_summary_counts_paid_by_method(api_client, auth_headers, patient_factory):
    patient = patient_factory()
    _pay(api_client, auth_headers, patient["id"], amount_cents=10000, payment_date="1999-03-15T10:00:00")
    card = _pay(
        api_client,
        auth_headers,
        patient["id"],
        amount_cents=5000,
        payment_method="card",
        payment_date="1999-03-20T10:00:00",
    )
    _pay(api_client, auth_headers, patient["id"], amount_cents=7000, payment_date="1999-04-01T10:00:00")

    cancelled = api_client.post(
        f"/payments/{card['id']}/status", json={"status": "cancelled"}, headers=auth_headers
    )
    assert cancelled.status_code == 200

    summary = api_client.get(
        "/payments/summary", params={"year": 1999, "month": 3}, headers=auth_headers
    ).json()
    assert summary["payment_count"] == 2
    assert summary["total_paid_cents"] == 10000
    assert summary["by_method"]["cash"] == 10000
    assert summary["by_method"]["card"] == 0


def test_filters_and_patient_history(api_client, auth_headers, patient_factory):
    patient = patient_factory(first_name="Rodrigo")
    payment = _pay(api_client, auth_headers, patient["id"], payment_method="transfer")

    by_method = api_client.get("/payments", params={"method": "transfer"}, headers=auth_headers).json()
    assert payment["id"] in {entry["id"] for entry in by_method}

    by_invoice = api_client.get(
        "/payments", params={"q": payment["invoice_number"]}, headers=auth_headers
    ).json()
    assert [entry["id"] for entry in by_invoice] == [payment["id"]]

    history = api_client.get(f"/patients/{patient['id']}/payments", headers=auth_headers).json()
    assert [entry["id"] for entry in history] == [payment["id"]]


def test_receipt_pdf(api_client, auth_headers, patient_factory):
    patient = patient_factory()
    payment = _pay(api_client, auth_headers, patient["id"], notes="Paid in full")

    response = api_client.get(f"/payments/{payment['id']}/receipt.pdf", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert payment["invoice_number"] in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


@pytest.mark.parametrize(
    ("range_name", "start", "end"),
    [
        ("today", "2033-06-15T00:00:00", "2033-06-16T00:00:00"),
        ("week", "2033-06-13T00:00:00", "2033-06-20T00:00:00"),
        ("month", "2033-06-01T00:00:00", "2033-07-01T00:00:00"),
    ],
)
def test_date_range_bounds(range_name, start, end):
    lower, upper = date_range_bounds(range_name, date(2033, 6, 15))
    assert (lower.isoformat(), upper.isoformat()) == (start, end)


def test_date_range_filter(api_client, auth_headers, patient_factory, monkeypatch):
    monkeypatch.setattr(appointment_lifecycle, "clinic_today", lambda: date(2033, 6, 15))
    patient = patient_factory()
    today = _pay(api_client, auth_headers, patient["id"], payment_date="2033-06-15T09:30:00")
    monday = _pay(api_client, auth_headers, patient["id"], payment_date="2033-06-13T12:00:00")
    early_month = _pay(api_client, auth_headers, patient["id"], payment_date="2033-06-02T12:00:00")
    _pay(api_client, auth_headers, patient["id"], payment_date="2033-05-31T12:00:00")

    def ids(range_name):
        response = api_client.get(
            "/payments", params={"date_range": range_name}, headers=auth_headers
        )
        assert response.status_code == 200, response.text
        return {row["id"] for row in response.json() if row["patient_id"] == patient["id"]}

    assert ids("today") == {today["id"]}
    assert ids("week") == {today["id"], monday["id"]}
    assert ids("month") == {today["id"], monday["id"], early_month["id"]}

    bad = api_client.get("/payments", params={"date_range": "year"}, headers=auth_headers)
    assert bad.status_code == 422
