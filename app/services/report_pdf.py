"""
Monthly attendance report as a single A4 PDF.

Reads a finalized month ledger and the worker's profile; never modifies the
ledger.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image as RLImage
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.services.day_rules import AbsenceType, DayEntry, format_minutes, validate_day
from app.services.month_ledger import MonthLedger

logger = logging.getLogger(__name__)

MARGIN = 14 * mm
NAVY = colors.Color(0.12, 0.23, 0.37)
LIGHT_GRAY = colors.Color(0.95, 0.95, 0.96)
BORDER_GRAY = colors.Color(0.8, 0.8, 0.82)

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

ABSENCE_LABELS = {
    AbsenceType.VACATION: "Vacation",
    AbsenceType.NON_WORKING_DAY: "Non-working day",
    AbsenceType.MEDICAL_LEAVE: "Medical leave",
}

STYLES = {
    "title": ParagraphStyle("title", fontSize=15, fontName="Helvetica-Bold", textColor=NAVY, spaceAfter=3 * mm),
    "meta": ParagraphStyle("meta", fontSize=8.5, fontName="Helvetica", leading=11),
    "footer": ParagraphStyle("footer", fontSize=9, fontName="Helvetica-Bold", spaceBefore=4 * mm),
}


@dataclass(frozen=True)
class WorkerProfile:
    full_name: str
    email: str
    nif: Optional[str] = None
    ss_number: Optional[str] = None
    work_center: Optional[str] = None
    company_cif: Optional[str] = None
    company_ccc: Optional[str] = None


def report_filename(ledger: MonthLedger, profile: WorkerProfile) -> str:
    login = profile.email.split("@", 1)[0]
    return f"hours_{ledger.year}_{ledger.month:02d}_{login}.pdf"


def _signature_image(data_url: Optional[str]) -> Optional[RLImage]:
    if not data_url:
        return None
    payload = data_url.split(",", 1)[1] if "," in data_url else data_url
    try:
        raw = base64.b64decode(payload, validate=True)
        ImageReader(io.BytesIO(raw))
    except (binascii.Error, ValueError, OSError) as exc:
        logger.warning("Signature image could not be decoded: %s", exc)
        return None
    return RLImage(io.BytesIO(raw), width=50 * mm, height=20 * mm, kind="proportional")


def _span(start: Optional[str], end: Optional[str]) -> str:
    return f"{start or '--:--'} - {end or '--:--'}"


def _row(ledger: MonthLedger, entry: DayEntry) -> list[str]:
    weekday = WEEKDAYS[date(ledger.year, ledger.month, entry.day).weekday()]
    if entry.absence_type is not AbsenceType.NONE:
        return [str(entry.day), weekday, "", "", ABSENCE_LABELS[entry.absence_type], ""]
    minutes = validate_day(entry).total_minutes
    return [
        str(entry.day),
        weekday,
        _span(entry.morning_in, entry.morning_out) if any(entry.segment("morning")) else "",
        _span(entry.afternoon_in, entry.afternoon_out) if any(entry.segment("afternoon")) else "",
        "",
        format_minutes(minutes) if minutes else "",
    ]


def render_month_pdf(ledger: MonthLedger, profile: WorkerProfile, today: date) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=12 * mm,
        bottomMargin=10 * mm,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        title=f"Attendance record {ledger.year}-{ledger.month:02d}",
    )

    meta = [
        f"<b>Worker:</b> {profile.full_name} ({profile.email})",
        f"<b>NIF:</b> {profile.nif or '-'} &nbsp; <b>SS number:</b> {profile.ss_number or '-'}",
        f"<b>Work centre:</b> {profile.work_center or '-'}",
        f"<b>Company CIF:</b> {profile.company_cif or '-'} &nbsp; <b>CCC:</b> {profile.company_ccc or '-'}",
        f"<b>Month:</b> {ledger.month:02d} / {ledger.year}",
    ]
    elements = [Paragraph("Attendance record", STYLES["title"])]
    elements += [Paragraph(line, STYLES["meta"]) for line in meta]
    elements.append(Spacer(1, 4 * mm))

    data = [["Day", "", "Morning", "Afternoon", "Absence", "Total"]]
    data += [_row(ledger, entry) for entry in ledger]
    table = Table(data, colWidths=[12 * mm, 12 * mm, 38 * mm, 38 * mm, 40 * mm, 20 * mm], repeatRows=1)
    style = [
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 7.5),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("BACKGROUND", (0, 0), (-1, 0), NAVY),
        ("GRID", (0, 0), (-1, -1), 0.3, BORDER_GRAY),
        ("TOPPADDING", (0, 0), (-1, -1), 1.2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 1.2),
        ("ALIGN", (-1, 0), (-1, -1), "RIGHT"),
    ]
    for entry in ledger:
        if ledger.is_weekend(entry.day):
            style.append(("BACKGROUND", (0, entry.day), (-1, entry.day), LIGHT_GRAY))
    table.setStyle(TableStyle(style))
    elements.append(table)

    summary = ledger.summary(today)
    elements.append(
        Paragraph(
            f"Total: {summary.total_formatted} h &nbsp; "
            f"Days with hours: {summary.days_with_hours} / {summary.working_days}",
            STYLES["footer"],
        )
    )
    elements.append(Spacer(1, 4 * mm))
    elements.append(Paragraph("Worker signature:", STYLES["meta"]))
    signature = _signature_image(ledger.signature)
    if signature is not None:
        elements.append(signature)

    doc.build(elements)
    return buffer.getvalue()
