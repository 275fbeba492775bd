from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import date
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from dentalcare.core.settings import settings

logger = logging.getLogger("dentalcare.consents")

PNG_DATA_URL_PREFIX = "data:image/png;base64,"
SIGNATURE_WIDTH = 70 * mm
SIGNATURE_HEIGHT = 30 * mm

TERMS_SECTIONS: list[tuple[str, str]] = [
    (
        "Risks and limitations of orthodontic treatment",
        "Successful orthodontic treatment is a partnership between the orthodontist and the "
        "patient. Like every branch of the healing arts, it has limitations and potential "
        "risks. These are rarely serious enough to advise against treatment, but every patient "
        "should consider the option of no treatment and discuss alternatives with the doctor.",
    ),
    (
        "Treatment results",
        "Treatment usually proceeds as planned, but complete satisfaction with the result cannot "
        "be guaranteed and not every complication can be anticipated. Success depends on keeping "
        "appointments, good oral hygiene and following the orthodontist's instructions.",
    ),
    (
        "Treatment length",
        "Treatment time depends on the severity of the problem, growth and cooperation. It can "
        "be extended by unexpected growth, habits, dental or periodontal problems, or poor "
        "cooperation, and additional fees may apply if it runs past the original estimate.",
    ),
    (
        "Discomfort",
        "The mouth is sensitive, so a period of adjustment and some discomfort is expected after "
        "appliances are placed. Over-the-counter pain medication may be used during that time.",
    ),
    (
        "Relapse",
        "Finished treatment does not guarantee perfectly straight teeth for life. Retainers must "
        "be worn as instructed or the teeth may shift. Minor irregularities later in life may "
        "have to be accepted or may need further treatment.",
    ),
    (
        "Extractions and surgery",
        "Some cases require removing primary or permanent teeth, or orthognathic surgery. These "
        "carry additional risks that should be discussed with the oral surgeon beforehand.",
    ),
    (
        "Decalcification and decay",
        "Excellent oral hygiene is essential. Poor hygiene during treatment can cause decay, "
        "discoloured teeth, periodontal disease or decalcification.",
    ),
    (
        "Root resorption and nerve damage",
        "Roots may shorten during treatment and previously traumatised teeth may suffer nerve "
        "damage. Treatment may be paused, or root canal therapy may become necessary.",
    ),
    (
        "Jaw joint problems",
        "Temporomandibular joint problems can occur with or without orthodontic treatment. Any "
        "jaw pain, clicking or difficulty opening should be reported promptly.",
    ),
    (
        "Allergies",
        "Occasionally patients are allergic to appliance materials, which may require a change "
        "of treatment plan or ending treatment early.",
    ),
]


class ConsentDocumentError(RuntimeError):
    pass


@dataclass(frozen=True)
class ConsentDocument:
    patient_name: str
    doctor_name: str
    treatment: str
    duration: str
    total_cost_cents: int
    monthly_payment_cents: int
    patient_signature: str
    doctor_signature: str
    issued_on: date


def _format_money(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def decode_signature(data_url: str) -> bytes:
    if not data_url or not data_url.startswith(PNG_DATA_URL_PREFIX):
        raise ConsentDocumentError("Signature must be a PNG data URL")
    try:
        return base64.b64decode(data_url[len(PNG_DATA_URL_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConsentDocumentError("Signature image is not valid base64") from exc


def _draw_signature(
    pdf: canvas.Canvas, data_url: str, x: float, y: float, caption: str, name: str
) -> None:
    try:
        image = ImageReader(BytesIO(decode_signature(data_url)))
        pdf.drawImage(image, x, y, width=SIGNATURE_WIDTH, height=SIGNATURE_HEIGHT, mask="auto")
    except (OSError, ValueError) as exc:
        logger.warning("Signature image could not be drawn: %s", exc)
        raise ConsentDocumentError("Signature image could not be read") from exc
    center = x + SIGNATURE_WIDTH / 2
    pdf.setFont("Helvetica", 10)
    pdf.drawCentredString(center, y - 6 * mm, caption)
    pdf.drawCentredString(center, y - 11 * mm, name)


def _draw_terms(pdf: canvas.Canvas, page_width: float, page_height: float) -> None:
    margin = 20 * mm
    width = page_width - 2 * margin
    y = page_height - margin
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawString(margin, y, "TERMS AND CONDITIONS")
    y -= 10 * mm
    for title, body in TERMS_SECTIONS:
        lines = simpleSplit(body, "Helvetica", 10, width)
        if y - (len(lines) + 2) * 5 * mm < margin:
            pdf.showPage()
            y = page_height - margin
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(margin, y, title)
        y -= 5 * mm
        pdf.setFont("Helvetica", 10)
        for line in lines:
            pdf.drawString(margin, y, line)
            y -= 5 * mm
        y -= 3 * mm


def build_consent_pdf(document: ConsentDocument) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    page_width, page_height = A4
    margin = 20 * mm

    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawCentredString(page_width / 2, page_height - 25 * mm, settings.clinic_name)
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawCentredString(
        page_width / 2, page_height - 35 * mm, "Informed Consent - Orthodontic Treatment"
    )

    y = page_height - 50 * mm
    pdf.setFont("Helvetica", 12)
    pdf.drawString(margin, y, f"Date: {document.issued_on.isoformat()}")
    pdf.drawString(margin, y - 7 * mm, f"Patient: {document.patient_name}")

    y -= 20 * mm
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawString(margin, y, "TREATMENT DETAILS")
    pdf.setFont("Helvetica", 12)
    pdf.drawString(margin, y - 7 * mm, f"Treatment: {document.treatment}")
    pdf.drawString(margin, y - 14 * mm, f"Estimated duration: {document.duration}")
    pdf.drawString(margin, y - 21 * mm, f"Total cost: {_format_money(document.total_cost_cents)}")
    pdf.drawString(
        margin, y - 28 * mm, f"Monthly payment: {_format_money(document.monthly_payment_cents)}"
    )

    y -= 40 * mm
    pdf.setStrokeColor(colors.grey)
    pdf.line(margin, y, page_width - margin, y)

    y -= SIGNATURE_HEIGHT + 10 * mm
    _draw_signature(
        pdf,
        document.patient_signature,
        margin,
        y,
        "Patient or guardian signature",
        document.patient_name,
    )
    _draw_signature(
        pdf,
        document.doctor_signature,
        page_width - margin - SIGNATURE_WIDTH,
        y,
        "Doctor signature",
        document.doctor_name,
    )
    pdf.line(margin, y - 20 * mm, page_width - margin, y - 20 * mm)

    pdf.showPage()
    _draw_terms(pdf, page_width, page_height)
    pdf.showPage()
    try:
        pdf.save()
    except (OSError, ValueError) as exc:
        logger.error("Consent PDF rendering failed: %s", exc)
        raise ConsentDocumentError("Consent document could not be generated") from exc
    return buffer.getvalue()
