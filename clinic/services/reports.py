"""
Paginated PDF reports.

Rendering happens in two steps.  :func:`layout` walks ordered sections of
text lines and assigns every line a page number and a vertical position
using a greedy row packing: before each line, if the cursor has reached the
bottom margin a new page is started and the cursor goes back to the top
margin.  There is no look-ahead, so a heading may end up as the last line
of a page.  :func:`render_pdf` then draws the placements with reportlab.

All geometry is in millimetres, measured from the top of the page.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional, Sequence, Union

from django.conf import settings
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from clinic.exceptions import BackendUnavailable

logger = logging.getLogger(__name__)

NA = 'N/A'
_BARE = object()

TITLE = 'title'
SUBTITLE = 'subtitle'
HEADING = 'heading'
TEXT = 'text'

_FONTS = {
    TITLE: ('Helvetica-Bold', 20),
    SUBTITLE: ('Helvetica', 12),
    HEADING: ('Helvetica-Bold', 14),
    TEXT: ('Helvetica', 12),
}


class ReportRenderError(BackendUnavailable):
    default_detail = 'report rendering failed'


@dataclass(frozen=True)
class PageGeometry:
    width: float = A4[0] / mm
    height: float = A4[1] / mm
    top_margin: float = 20.0
    bottom_margin: float = 20.0
    left_margin: float = 20.0
    line_height: float = 10.0
    section_gap: float = 5.0

    @property
    def limit(self) -> float:
        return self.height - self.bottom_margin


@dataclass(frozen=True)
class Line:
    label: str
    value: object = _BARE

    @property
    def text(self) -> str:
        if self.value is _BARE:
            return self.label
        return f"{self.label}: {_fmt(self.value)}"


@dataclass
class Section:
    heading: str
    lines: list[Union[Line, str]] = field(default_factory=list)


@dataclass(frozen=True)
class Placement:
    page: int
    y: float
    text: str
    style: str = TEXT


def _fmt(value) -> str:
    if value is None or value == '':
        return NA
    if isinstance(value, datetime):
        return value.strftime('%b %d, %Y %H:%M')
    if isinstance(value, date):
        return value.strftime('%b %d, %Y')
    return str(value)


def _text(line: Union[Line, str]) -> str:
    return line.text if isinstance(line, Line) else str(line)


def layout(sections: Iterable[Section], geometry: Optional[PageGeometry] = None,
           title: Optional[str] = None, subtitles: Sequence[str] = ()) -> list[Placement]:
    """Assign a page and a y position to every line of ``sections``.

    Deterministic: the same sections and geometry always give the same
    page breaks, and no placement ever sits at or below the bottom margin.
    """
    g = geometry or PageGeometry()
    placements: list[Placement] = []
    page = 1
    y = g.top_margin

    def place(text: str, style: str) -> None:
        nonlocal page, y
        if y >= g.limit:
            page += 1
            y = g.top_margin
        placements.append(Placement(page, y, text, style))
        y += g.line_height

    if title:
        place(title, TITLE)
    for sub in subtitles:
        place(sub, SUBTITLE)
    for section in sections:
        if placements:
            y += g.section_gap
        place(section.heading, HEADING)
        for line in section.lines:
            place(_text(line), TEXT)
    return placements


def render_pdf(placements: Sequence[Placement], geometry: Optional[PageGeometry] = None) -> bytes:
    """Draw placements onto a PDF; raises ``ReportRenderError`` on any failure."""
    g = geometry or PageGeometry()
    buf = io.BytesIO()
    try:
        c = canvas.Canvas(buf, pagesize=(g.width * mm, g.height * mm))
        page = 1
        for p in placements:
            while p.page > page:
                c.showPage()
                page += 1
            font, size = _FONTS.get(p.style, _FONTS[TEXT])
            c.setFont(font, size)
            # reportlab measures y from the bottom edge
            baseline = (g.height - p.y) * mm
            if p.style in (TITLE, SUBTITLE):
                c.drawCentredString(g.width / 2 * mm, baseline, p.text)
            else:
                c.drawString(g.left_margin * mm, baseline, p.text)
        c.showPage()
        c.save()
    except Exception as e:
        logger.exception("PDF rendering failed")
        raise ReportRenderError() from e
    return buf.getvalue()


def build_pdf(sections: Iterable[Section], title: Optional[str] = None,
              subtitles: Sequence[str] = (), geometry: Optional[PageGeometry] = None) -> bytes:
    g = geometry or PageGeometry()
    return render_pdf(layout(sections, g, title=title, subtitles=subtitles), g)


# ---------------------------------------------------------------------------
# Section builders
# ---------------------------------------------------------------------------

def _parse_dt(value):
    if isinstance(value, str) and value:
        try:
            if len(value) == 10:
                return date.fromisoformat(value)
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


def _with_unit(value, unit: str) -> str:
    return f"{value}{unit}" if value not in (None, '') else NA


def profile_section(profile: dict) -> Section:
    return Section('Patient Information', [
        Line('Name', profile.get('name')),
        Line('Gender', profile.get('gender')),
        Line('Blood Group', profile.get('bloodGroup')),
        Line('Date of Birth', _parse_dt(profile.get('birthDate'))),
        Line('Contact', profile.get('mobile')),
        Line('Email', profile.get('email')),
        Line('Address', profile.get('address')),
        Line('Emergency Contact', profile.get('emergencyContact')),
    ])


def vitals_lines(records: Sequence[dict]) -> list[Line]:
    lines: list[Line] = []
    for i, v in enumerate(records, start=1):
        lines.append(Line(f"Record {i}", _parse_dt(v.get('recordedAt'))))
        lines.append(Line('Heart Rate', _with_unit(v.get('heartRate'), ' bpm')))
        systolic = v.get('bloodPressureSystolic')
        diastolic = v.get('bloodPressureDiastolic')
        lines.append(Line('Blood Pressure', f"{_fmt(systolic)}/{_fmt(diastolic)} mmHg"))
        lines.append(Line('Weight', _with_unit(v.get('weight'), ' kg')))
        lines.append(Line('Height', _with_unit(v.get('height'), ' cm')))
        lines.append(Line('Temperature', _with_unit(v.get('temperature'), ' °C')))
        lines.append(Line('Oxygen Saturation', _with_unit(v.get('oxygenSaturation'), '%')))
        if v.get('bmi') is not None:
            lines.append(Line('BMI', v['bmi']))
        if v.get('notes'):
            lines.append(Line('Notes', v['notes']))
    return lines


def patient_report_sections(snapshot) -> list[Section]:
    """Sections of the full medical report for one composite snapshot."""
    sections = [profile_section(snapshot.profile)]
    if snapshot.profile.get('medicalHistory'):
        sections.append(Section('Medical History', [snapshot.profile['medicalHistory']]))
    sections.append(Section('Health Records', vitals_lines(snapshot.vitals) or ['No health records']))

    rx_lines: list[Union[Line, str]] = []
    for rx in snapshot.prescriptions:
        rx_lines.append(Line('Date', _parse_dt(rx.get('prescriptionDate'))))
        rx_lines.append(Line('Doctor', rx.get('doctorName')))
        rx_lines.append(Line('Diagnosis', rx.get('diagnosis')))
        for n, med in enumerate(rx.get('medicines') or [], start=1):
            rx_lines.append(f"  {n}. {med.get('name', '')} - {med.get('dosage', '')}")
    sections.append(Section('Prescriptions', rx_lines or ['No prescriptions']))

    lab_lines: list[Union[Line, str]] = []
    for t in snapshot.lab_tests:
        lab_lines.append(Line('Test', t.get('testName')))
        lab_lines.append(Line('Date', _parse_dt(t.get('testDate'))))
        lab_lines.append(Line('Status', t.get('status')))
        if t.get('notes'):
            lab_lines.append(Line('Notes', t['notes']))
    sections.append(Section('Lab Tests', lab_lines or ['No lab tests']))

    currency = settings.CURRENCY_SYMBOL
    bill_lines: list[Union[Line, str]] = []
    for p in snapshot.billing:
        amount = f"{currency}{p['amount']:.2f}" if p.get('amount') is not None else NA
        bill_lines.append(Line(_fmt(_parse_dt(p.get('paymentDate'))), f"{amount} ({p.get('paymentMethod')}, {p.get('status')})"))
    sections.append(Section('Billing History', bill_lines or ['No payments']))
    return sections


def vitals_report_sections(profile: dict, records: Sequence[dict]) -> list[Section]:
    return [
        profile_section(profile),
        Section('Health Records History', vitals_lines(records) or ['No health records']),
    ]


def prescription_sections(rx: dict, profile: dict) -> list[Section]:
    medicines: list[Union[Line, str]] = []
    for n, med in enumerate(rx.get('medicines') or [], start=1):
        medicines.append(f"{n}. {med.get('name', '')} - {med.get('dosage', '')}")
        details = ', '.join(
            str(med[k]) for k in ('frequency', 'duration') if med.get(k)
        )
        if details:
            medicines.append(f"    {details}")
        if med.get('instructions'):
            medicines.append(f"    {med['instructions']}")
    sections = [
        Section('Patient', [
            Line('Name', profile.get('name')),
            Line('Gender', profile.get('gender')),
            Line('Contact', profile.get('mobile')),
        ]),
        Section('Prescription', [
            Line('Date', _parse_dt(rx.get('prescriptionDate'))),
            Line('Doctor', rx.get('doctorName')),
            Line('Specialization', rx.get('doctorSpecialization')),
            Line('Diagnosis', rx.get('diagnosis')),
            Line('Symptoms', rx.get('symptoms')),
        ]),
        Section('Medicines', medicines or ['None']),
    ]
    follow = [Line('Notes', rx.get('notes'))] if rx.get('notes') else []
    if rx.get('followUpDate'):
        follow.append(Line('Follow-up Date', _parse_dt(rx['followUpDate'])))
    if follow:
        sections.append(Section('Follow-up', follow))
    return sections


def invoice_sections(payment, invoice_number: str) -> list[Section]:
    """Sections of an invoice for a ``Payment`` instance."""
    currency = settings.CURRENCY_SYMBOL
    amount = f"{currency}{payment.amount:.2f}"
    details = [
        Line('Medical Services', amount),
        Line('Total Amount', amount),
        Line('Payment Method', (payment.payment_method or '').upper()),
        Line('Status', (payment.status or '').upper()),
    ]
    if payment.payment_reference:
        details.append(Line('Reference', payment.payment_reference))
    return [
        Section('INVOICE', [
            Line('Invoice Number', invoice_number),
            Line('Date', payment.payment_date),
        ]),
        Section('Bill To', [payment.patient.name if payment.patient_id else 'Patient Name Not Available']),
        Section('Payment Details', details),
        Section(f"Thank you for choosing {settings.HOSPITAL_NAME}"),
    ]


def hospital_letterhead() -> tuple[str, list[str]]:
    return settings.HOSPITAL_NAME, [settings.HOSPITAL_ADDRESS, settings.HOSPITAL_CONTACT]
