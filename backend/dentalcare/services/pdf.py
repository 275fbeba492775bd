from __future__ import annotations

from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from dentalcare.core.settings import settings
from dentalcare.models.payment import Payment, PaymentStatus


def format_money(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def _draw_header(pdf: canvas.Canvas, title: str) -> None:
    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawString(20 * mm, 280 * mm, settings.clinic_name)
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawRightString(190 * mm, 280 * mm, title)
    pdf.setStrokeColor(colors.lightgrey)
    pdf.line(20 * mm, 270 * mm, 190 * mm, 270 * mm)


def _draw_cancelled_watermark(pdf: canvas.Canvas) -> None:
    pdf.saveState()
    pdf.setFont("Helvetica-Bold", 60)
    pdf.setFillColor(colors.lightgrey)
    pdf.translate(105 * mm, 150 * mm)
    pdf.rotate(45)
    pdf.drawCentredString(0, 0, "CANCELLED")
    pdf.restoreState()


def build_payment_receipt(payment: Payment) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    _draw_header(pdf, "Payment receipt")

    patient = payment.patient
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawString(20 * mm, 255 * mm, "Received from")
    pdf.setFont("Helvetica", 10)
    if patient is not None:
        pdf.drawString(20 * mm, 250 * mm, patient.full_name)
        if patient.address:
            pdf.drawString(20 * mm, 245 * mm, patient.address)
        if patient.email:
            pdf.drawString(20 * mm, 240 * mm, patient.email)

    pdf.drawString(120 * mm, 255 * mm, f"Invoice: {payment.invoice_number}")
    pdf.drawString(120 * mm, 250 * mm, f"Payment date: {payment.payment_date.strftime('%Y-%m-%d')}")
    pdf.drawString(120 * mm, 245 * mm, f"Method: {payment.payment_method.value}")
    pdf.drawString(120 * mm, 240 * mm, f"Status: {payment.status.value}")

    pdf.setFont("Helvetica", 11)
    pdf.drawString(20 * mm, 220 * mm, f"Concept: {payment.concept}")
    if payment.notes:
        pdf.setFont("Helvetica", 9)
        pdf.drawString(20 * mm, 213 * mm, payment.notes[:120])
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawString(20 * mm, 195 * mm, f"Amount received: {format_money(payment.amount_cents)}")

    if payment.status == PaymentStatus.cancelled:
        _draw_cancelled_watermark(pdf)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
