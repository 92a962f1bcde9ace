"""
PDF Generator for inspection reports and LBP complaints.

Builds documents in memory with ReportLab platypus.

Report structure:
1. Cover - report number, property, client, inspector, status
2. Inspection Details - date, type, conditions, access, limitations
3. Executive Summary and findings narrative
4. Roof Elements
5. Defect Register - colour-coded by severity
6. Compliance Assessment - one summary row per checklist
7. Photo Schedule - caption, type, capture time, GPS and SHA-256
8. Evidence Certificate - integrity summary of the photo set
9. Inspector Declaration and signature

Complaint structure: particulars, complainant, subject practitioner, work,
grounds for discipline, conduct, evidence, witnesses, declaration.
"""

from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List
from xml.sax.saxutils import escape

from PIL import Image as PILImage, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    Image,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from config import ORGANISATION_NAME, BPB_NAME
from checklists import summarise_checklist
from evidence import integrity_report
import storage

# =============================================================================
# STYLING CONSTANTS
# =============================================================================

RANZ_NAVY = colors.HexColor("#1b2a41")
RANZ_LIGHT = colors.HexColor("#eef2f7")
ROW_ALT = colors.HexColor("#f8f9fa")

SEVERITY_COLOURS = {
    "CRITICAL": colors.HexColor("#dc3545"),
    "HIGH": colors.HexColor("#fd7e14"),
    "MEDIUM": colors.HexColor("#ffc107"),
    "LOW": colors.HexColor("#28a745"),
}

COMPLIANCE_COLOURS = {
    "COMPLIANT": "green",
    "PARTIALLY_COMPLIANT": "orange",
    "NON_COMPLIANT": "red",
    "NOT_ASSESSED": "gray",
    "INCOMPLETE": "gray",
}


def _get_styles() -> Dict[str, ParagraphStyle]:
    """Create consistent paragraph styles for the PDF."""
    base = getSampleStyleSheet()

    return {
        "title": ParagraphStyle(
            "Title",
            parent=base["Heading1"],
            fontSize=22,
            textColor=RANZ_NAVY,
            spaceAfter=16,
            alignment=TA_CENTER,
        ),
        "subtitle": ParagraphStyle(
            "Subtitle",
            parent=base["Normal"],
            fontSize=12,
            textColor=colors.gray,
            spaceAfter=20,
            alignment=TA_CENTER,
        ),
        "section_header": ParagraphStyle(
            "SectionHeader",
            parent=base["Heading2"],
            fontSize=15,
            textColor=RANZ_NAVY,
            spaceBefore=18,
            spaceAfter=10,
        ),
        "subsection": ParagraphStyle(
            "Subsection",
            parent=base["Heading3"],
            fontSize=11,
            textColor=RANZ_NAVY,
            spaceBefore=10,
            spaceAfter=6,
        ),
        "body": ParagraphStyle(
            "Body",
            parent=base["Normal"],
            fontSize=10,
            spaceAfter=8,
            leading=14,
        ),
        "table_cell": ParagraphStyle(
            "TableCell",
            parent=base["Normal"],
            fontSize=8,
            leading=10,
        ),
        "footer": ParagraphStyle(
            "Footer",
            parent=base["Normal"],
            fontSize=8,
            textColor=colors.gray,
            alignment=TA_CENTER,
        ),
    }


def _text(value, default: str = "N/A") -> str:
    """Escape a value for use in a Paragraph."""
    if value is None or value == "":
        return default
    return escape(str(value))


def _date(value) -> str:
    if not value:
        return "N/A"
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return escape(value)
    return value.strftime("%d %B %Y")


def _narrative(value) -> List[str]:
    """Paragraph texts for a narrative section stored as text, list or dict."""
    if not value:
        return []
    if isinstance(value, str):
        return [escape(value)]
    if isinstance(value, list):
        return [escape(str(item)) for item in value if item]
    if isinstance(value, dict):
        if value.get("content") or value.get("text"):
            return [escape(str(value.get("content") or value.get("text")))]
        return [f"<b>{escape(str(k).replace('_', ' ').title())}:</b> {escape(str(v))}"
                for k, v in value.items() if v]
    return [escape(str(value))]


def _header_table_style(header_colour=RANZ_NAVY) -> List:
    return [
        ("BACKGROUND", (0, 0), (-1, 0), header_colour),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.gray),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, ROW_ALT]),
    ]


def _meta_table(rows: List[List[str]], styles: Dict) -> Table:
    data = [[label, Paragraph(value, styles["table_cell"])] for label, value in rows]
    table = Table(data, colWidths=[1.8*inch, 4.6*inch])
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
    ]))
    return table


def _signature_image(url: str):
    """Flowable for a stored signature image, or None if it cannot be read."""
    key = storage.key_from_url(url)
    if not key:
        return None
    try:
        data = storage.read(key)
        with PILImage.open(BytesIO(data)) as img:
            width, height = img.size
    except (FileNotFoundError, UnidentifiedImageError, OSError):
        return None
    scale = min(2.5*inch / width, 0.9*inch / height)
    return Image(BytesIO(data), width=width * scale, height=height * scale)


# =============================================================================
# REPORT SECTIONS
# =============================================================================

def _build_cover(report: Dict[str, Any], styles: Dict) -> List:
    elements = []
    inspector = report.get("inspector") or {}

    elements.append(Spacer(1, 60))
    elements.append(Paragraph("Roof Inspection Report", styles["title"]))
    elements.append(Paragraph(_text(report.get("report_number")), styles["subtitle"]))

    address = ", ".join(
        part for part in (report.get("property_address"), report.get("property_city"),
                          report.get("property_region"), report.get("property_postcode")) if part
    )
    elements.append(_meta_table([
        ["Property:", _text(address)],
        ["Property Type:", _text(report.get("property_type"))],
        ["Client:", _text(report.get("client_name"))],
        ["Inspection Date:", _date(report.get("inspection_date"))],
        ["Inspection Type:", _text(report.get("inspection_type"))],
        ["Inspector:", _text(inspector.get("name"))],
        ["LBP Number:", _text(inspector.get("lbp_number"))],
        ["Status:", _text(report.get("status"))],
        ["Revision:", str(report.get("revision_round") or 0)],
    ], styles))

    elements.append(Spacer(1, 40))
    elements.append(Paragraph(f"Prepared for {escape(ORGANISATION_NAME)}", styles["footer"]))
    elements.append(PageBreak())
    return elements


def _build_inspection_details(report: Dict[str, Any], styles: Dict) -> List:
    elements = [Paragraph("1. Inspection Details", styles["section_header"])]

    temperature = report.get("temperature")
    elements.append(_meta_table([
        ["Weather:", _text(report.get("weather_conditions"))],
        ["Temperature:", f"{temperature}°C" if temperature is not None else "N/A"],
        ["Access Method:", _text(report.get("access_method"))],
        ["Limitations:", _text(report.get("limitations"))],
        ["Building Age:", _text(report.get("building_age"))],
        ["Consent Number:", _text(report.get("consent_number"))],
        ["Engaging Party:", _text(report.get("engaging_party"))],
    ], styles))

    for title, key in (("Scope of Works", "scope_of_works"), ("Methodology", "methodology")):
        paragraphs = _narrative(report.get(key))
        if paragraphs:
            elements.append(Paragraph(title, styles["subsection"]))
            elements.extend(Paragraph(p, styles["body"]) for p in paragraphs)
    return elements


def _build_summary(report: Dict[str, Any], styles: Dict) -> List:
    elements = [Paragraph("2. Executive Summary", styles["section_header"])]
    summary = _narrative(report.get("executive_summary"))
    if not summary:
        elements.append(Paragraph("No executive summary provided.", styles["body"]))
    elements.extend(Paragraph(p, styles["body"]) for p in summary)

    for title, key in (("Findings", "findings"), ("Conclusions", "conclusions"),
                       ("Recommendations", "recommendations")):
        paragraphs = _narrative(report.get(key))
        if paragraphs:
            elements.append(Paragraph(title, styles["subsection"]))
            elements.extend(Paragraph(p, styles["body"]) for p in paragraphs)
    return elements


def _build_roof_elements(report: Dict[str, Any], styles: Dict) -> List:
    elements = [Paragraph("3. Roof Elements", styles["section_header"])]
    roof_elements = report.get("roof_elements") or []
    if not roof_elements:
        elements.append(Paragraph("No roof elements recorded.", styles["body"]))
        return elements

    cell = styles["table_cell"]
    table_data = [["Element", "Location", "Material / Cladding", "Pitch", "Condition", "Notes"]]
    for element in roof_elements:
        material = " / ".join(p for p in (element.get("material"), element.get("cladding_type")) if p)
        pitch = element.get("pitch")
        table_data.append([
            Paragraph(_text(element.get("element_type")), cell),
            Paragraph(_text(element.get("location")), cell),
            Paragraph(_text(material), cell),
            f"{pitch}°" if pitch is not None else "",
            _text(element.get("condition_rating"), ""),
            Paragraph(_text(element.get("condition_notes"), ""), cell),
        ])

    table = Table(table_data, colWidths=[1.1*inch, 1.2*inch, 1.2*inch, 0.5*inch, 0.8*inch, 1.8*inch],
                  repeatRows=1)
    table.setStyle(TableStyle(_header_table_style()))
    elements.append(table)
    return elements


def _build_defect_register(report: Dict[str, Any], styles: Dict) -> List:
    elements = [Paragraph("4. Defect Register", styles["section_header"])]
    defects = report.get("defects") or []
    if not defects:
        elements.append(Paragraph("No defects were identified during the inspection.", styles["body"]))
        return elements

    cell = styles["table_cell"]
    table_data = [["#", "Defect", "Location", "Severity", "Class", "Recommendation"]]
    style_commands = _header_table_style()
    for row, defect in enumerate(defects, start=1):
        table_data.append([
            str(defect.get("defect_number")),
            Paragraph(f"<b>{_text(defect.get('title'))}</b><br/>{_text(defect.get('observation'), '')}", cell),
            Paragraph(_text(defect.get("location")), cell),
            _text(defect.get("severity"), ""),
            Paragraph(_text(defect.get("classification"), ""), cell),
            Paragraph(_text(defect.get("recommendation"), ""), cell),
        ])
        colour = SEVERITY_COLOURS.get(defect.get("severity"))
        if colour:
            style_commands.append(("BACKGROUND", (3, row), (3, row), colour))
            style_commands.append(("TEXTCOLOR", (3, row), (3, row), colors.white))

    table = Table(table_data, colWidths=[0.3*inch, 2.0*inch, 1.1*inch, 0.8*inch, 0.9*inch, 1.5*inch],
                  repeatRows=1)
    table.setStyle(TableStyle(style_commands))
    elements.append(table)

    for defect in defects:
        analysis = [("Analysis", defect.get("analysis")), ("Opinion", defect.get("opinion")),
                    ("Probable Cause", defect.get("probable_cause")),
                    ("Code Reference", defect.get("code_reference")),
                    ("COP Reference", defect.get("cop_reference"))]
        analysis = [(label, value) for label, value in analysis if value]
        if analysis:
            elements.append(Paragraph(
                f"Defect {defect.get('defect_number')}: {_text(defect.get('title'))}", styles["subsection"]
            ))
            for label, value in analysis:
                elements.append(Paragraph(f"<b>{label}:</b> {_text(value)}", styles["body"]))
    return elements


def _build_compliance(report: Dict[str, Any], styles: Dict) -> List:
    elements = [Paragraph("5. Compliance Assessment", styles["section_header"])]
    assessment = report.get("compliance_assessment")
    if not assessment:
        elements.append(Paragraph("No compliance assessment recorded.", styles["body"]))
        return elements

    status = assessment.get("overall_status") or "INCOMPLETE"
    elements.append(Paragraph(
        f"<b>Overall:</b> <font color='{COMPLIANCE_COLOURS.get(status, 'black')}'>"
        f"{status.replace('_', ' ')}</font>",
        styles["body"]
    ))

    table_data = [["Checklist", "Pass", "Fail", "Partial", "N/A", "Unanswered"]]
    for key, results in (assessment.get("checklist_results") or {}).items():
        summary = summarise_checklist(key, results)
        table_data.append([
            summary["name"], str(summary["passed"]), str(summary["failed"]), str(summary["partial"]),
            str(summary["not_applicable"]), str(summary["unanswered"]),
        ])
    table = Table(table_data, colWidths=[2.6*inch, 0.7*inch, 0.7*inch, 0.7*inch, 0.7*inch, 0.9*inch])
    table.setStyle(TableStyle(_header_table_style() + [("ALIGN", (1, 0), (-1, -1), "CENTER")]))
    elements.append(table)

    if assessment.get("non_compliance_summary"):
        elements.append(Spacer(1, 8))
        elements.append(Paragraph(
            f"<b>Non-compliance summary:</b> {_text(assessment['non_compliance_summary'])}", styles["body"]
        ))
    return elements


def _build_photo_schedule(report: Dict[str, Any], styles: Dict) -> List:
    elements = [PageBreak(), Paragraph("6. Photo Schedule", styles["section_header"])]
    photos = report.get("photos") or []
    if not photos:
        elements.append(Paragraph("No photos attached.", styles["body"]))
        return elements

    cell = styles["table_cell"]
    table_data = [["#", "Caption", "Type", "Captured", "GPS", "SHA-256"]]
    for index, photo in enumerate(photos, start=1):
        gps = ""
        if photo.get("gps_lat") is not None and photo.get("gps_lng") is not None:
            gps = f"{photo['gps_lat']:.6f}, {photo['gps_lng']:.6f}"
        table_data.append([
            str(index),
            Paragraph(_text(photo.get("caption"), ""), cell),
            _text(photo.get("photo_type"), ""),
            Paragraph(_text(photo.get("captured_at"), "Not recorded"), cell),
            Paragraph(gps or "Not recorded", cell),
            Paragraph(_text(photo.get("original_hash"), "Not recorded"), cell),
        ])

    table = Table(table_data, colWidths=[0.3*inch, 1.6*inch, 0.9*inch, 1.1*inch, 1.1*inch, 1.6*inch],
                  repeatRows=1)
    table.setStyle(TableStyle(_header_table_style()))
    elements.append(table)
    return elements


def _build_evidence_certificate(report: Dict[str, Any], styles: Dict) -> List:
    elements = [Paragraph("7. Evidence Certificate", styles["section_header"])]
    integrity = integrity_report(report.get("photos") or [], [], {})
    summary = integrity["summary"]

    elements.append(Paragraph(
        "Each photograph was hashed with SHA-256 at the moment of upload, before any processing. "
        "The hashes above allow any copy of a photograph to be checked against the original.",
        styles["body"]
    ))
    stats_data = [
        ["Metric", "Value"],
        ["Total photos", str(summary["total_photos"])],
        ["With original hash", str(summary["with_hash"])],
        ["Hash verified", str(summary["hash_verified"])],
        ["With EXIF metadata", str(summary["with_exif"])],
        ["With GPS location", str(summary["with_gps"])],
        ["With capture timestamp", str(summary["with_timestamp"])],
        ["Integrity score", f"{summary['integrity_score']}%"],
    ]
    table = Table(stats_data, colWidths=[2.5*inch, 1.5*inch])
    table.setStyle(TableStyle(_header_table_style() + [("ALIGN", (1, 0), (1, -1), "CENTER")]))
    elements.append(table)
    return elements


def _build_declaration(report: Dict[str, Any], styles: Dict) -> List:
    elements = [Paragraph("8. Inspector Declaration", styles["section_header"])]
    inspector = report.get("inspector") or {}

    elements.append(Paragraph(
        "I declare that this report was prepared by me following a personal inspection of the "
        "property, that it records my honest professional opinion, and that I have no conflict "
        "of interest in the matters reported.",
        styles["body"]
    ))
    elements.append(Spacer(1, 12))

    if report.get("declaration_signed"):
        signature = _signature_image(report.get("signature_url")) if report.get("signature_url") else None
        if signature:
            elements.append(signature)
        elements.append(Paragraph(
            f"Signed by {_text(inspector.get('name'))} on {_date(report.get('signed_at'))}", styles["body"]
        ))
    else:
        elements.append(Paragraph("Signature: " + "_" * 30 + "    Date: " + "_" * 15, styles["body"]))

    elements.append(_meta_table([
        ["Inspector:", _text(inspector.get("name"))],
        ["Qualifications:", _text(inspector.get("qualifications"))],
        ["LBP Number:", _text(inspector.get("lbp_number"))],
    ], styles))
    return elements


# =============================================================================
# COMPLAINT SECTIONS
# =============================================================================

def _build_complaint(complaint: Dict[str, Any], report: Dict[str, Any], styles: Dict) -> List:
    elements = []
    complainant = complaint.get("complainant") or {}

    elements.append(Paragraph("Complaint about a Licensed Building Practitioner", styles["title"]))
    elements.append(Paragraph(
        f"{escape(BPB_NAME)} - Building Act 2004, Section 317", styles["subtitle"]
    ))
    elements.append(_meta_table([
        ["Complaint Number:", _text(complaint.get("complaint_number"))],
        ["Source Report:", _text(report.get("report_number"))],
        ["Date:", _date(complaint.get("submitted_at") or datetime.utcnow())],
    ], styles))

    elements.append(Paragraph("1. Complainant", styles["section_header"]))
    elements.append(_meta_table([
        ["Name:", _text(complainant.get("name"))],
        ["Address:", _text(complainant.get("address"))],
        ["Phone:", _text(complainant.get("phone"))],
        ["Email:", _text(complainant.get("email"))],
        ["Relationship:", _text(complainant.get("relation"))],
    ], styles))

    elements.append(Paragraph("2. Licensed Building Practitioner", styles["section_header"]))
    elements.append(_meta_table([
        ["Name:", _text(complaint.get("subject_lbp_name"))],
        ["LBP Number:", _text(complaint.get("subject_lbp_number"))],
        ["Company:", _text(complaint.get("subject_lbp_company"))],
        ["Licence Classes:", _text(", ".join(complaint.get("subject_lbp_license_types") or []))],
        ["Phone / Email:", _text(" / ".join(
            v for v in (complaint.get("subject_lbp_phone"), complaint.get("subject_lbp_email")) if v
        ))],
    ], styles))

    elements.append(Paragraph("3. Building Work", styles["section_header"]))
    elements.append(_meta_table([
        ["Address:", _text(", ".join(
            v for v in (complaint.get("work_address"), complaint.get("work_suburb"),
                        complaint.get("work_city")) if v
        ))],
        ["Work Type:", _text(complaint.get("subject_work_type"))],
        ["Dates:", f"{_date(complaint.get('work_start_date'))} to {_date(complaint.get('work_end_date'))}"],
        ["Building Consent:", _text(complaint.get("building_consent_number"))],
    ], styles))
    elements.append(Paragraph(_text(complaint.get("work_description")), styles["body"]))

    elements.append(Paragraph("4. Grounds for Discipline", styles["section_header"]))
    elements.append(Paragraph(
        "Under Section 317 of the Building Act 2004, the following grounds for discipline apply:",
        styles["body"]
    ))
    from complaints import GROUNDS_FOR_DISCIPLINE
    for code in complaint.get("grounds_for_discipline") or []:
        ground = GROUNDS_FOR_DISCIPLINE.get(code, {"label": code, "section": ""})
        elements.append(Paragraph(
            f"• <b>s{ground['section']}</b> {escape(ground['label'])}", styles["body"]
        ))

    elements.append(Paragraph("5. Conduct", styles["section_header"]))
    elements.append(Paragraph(_text(complaint.get("conduct_description")), styles["body"]))
    if complaint.get("steps_to_resolve"):
        elements.append(Paragraph("Steps taken to resolve", styles["subsection"]))
        elements.append(Paragraph(_text(complaint["steps_to_resolve"]), styles["body"]))

    elements.append(Paragraph("6. Evidence", styles["section_header"]))
    elements.append(Paragraph(_text(complaint.get("evidence_summary")), styles["body"]))

    photo_ids = set(complaint.get("attached_photo_ids") or [])
    defect_ids = set(complaint.get("attached_defect_ids") or [])
    photos = [p for p in report.get("photos") or [] if p.get("id") in photo_ids]
    defects = [d for d in report.get("defects") or [] if d.get("id") in defect_ids]

    if defects:
        elements.append(Paragraph("Defects", styles["subsection"]))
        cell = styles["table_cell"]
        table_data = [["#", "Defect", "Severity", "Location"]]
        for defect in defects:
            table_data.append([
                str(defect.get("defect_number")),
                Paragraph(_text(defect.get("title")), cell),
                _text(defect.get("severity"), ""),
                Paragraph(_text(defect.get("location"), ""), cell),
            ])
        table = Table(table_data, colWidths=[0.3*inch, 3.2*inch, 0.9*inch, 2.0*inch], repeatRows=1)
        table.setStyle(TableStyle(_header_table_style()))
        elements.append(table)

    if photos:
        elements.append(Paragraph(f"Photographs ({len(photos)})", styles["subsection"]))
        cell = styles["table_cell"]
        table_data = [["Caption", "Captured", "SHA-256"]]
        for photo in photos:
            table_data.append([
                Paragraph(_text(photo.get("caption"), ""), cell),
                Paragraph(_text(photo.get("captured_at"), "Not recorded"), cell),
                Paragraph(_text(photo.get("original_hash"), "Not recorded"), cell),
            ])
        table = Table(table_data, colWidths=[2.4*inch, 1.4*inch, 2.6*inch], repeatRows=1)
        table.setStyle(TableStyle(_header_table_style()))
        elements.append(table)

    witnesses = complaint.get("witnesses") or []
    if witnesses:
        elements.append(Paragraph("7. Witnesses", styles["section_header"]))
        for witness in witnesses:
            elements.append(Paragraph(
                f"<b>{_text(witness.get('name'))}</b> ({_text(witness.get('role'), 'witness')}): "
                f"{_text(witness.get('details'))}",
                styles["body"]
            ))

    elements.append(Paragraph("Declaration", styles["section_header"]))
    elements.append(Paragraph(
        f"I declare on behalf of {escape(ORGANISATION_NAME)} that the information in this complaint "
        "is true and correct to the best of my knowledge.",
        styles["body"]
    ))
    if complaint.get("signed_at"):
        signature = _signature_image(complaint.get("signature_url")) if complaint.get("signature_url") else None
        if signature:
            elements.append(signature)
        elements.append(Paragraph(f"Signed on {_date(complaint.get('signed_at'))}", styles["body"]))
    else:
        elements.append(Paragraph("Signature: " + "_" * 30 + "    Date: " + "_" * 15, styles["body"]))
    return elements


# =============================================================================
# MAIN GENERATORS
# =============================================================================

def _add_page_number(canvas, doc):
    """Add page numbers to each page."""
    page_num = canvas.getPageNumber()
    text = f"Page {page_num}"
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(colors.gray)
    canvas.drawCentredString(A4[0] / 2, 0.5 * inch, text)
    canvas.restoreState()


def _render(elements: List, title: str) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.7*inch,
        leftMargin=0.7*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=title,
        author=ORGANISATION_NAME,
    )
    doc.build(elements, onFirstPage=_add_page_number, onLaterPages=_add_page_number)
    buffer.seek(0)
    return buffer.read()


def generate_report_pdf(report: Dict[str, Any]) -> bytes:
    """
    Generate the inspection report PDF.

    Args:
        report: Full report dictionary (with photos, defects, roof elements
                and compliance assessment)

    Returns:
        PDF file contents as bytes
    """
    styles = _get_styles()

    elements = []
    elements.extend(_build_cover(report, styles))
    elements.extend(_build_inspection_details(report, styles))
    elements.extend(_build_summary(report, styles))
    elements.extend(_build_roof_elements(report, styles))
    elements.extend(_build_defect_register(report, styles))
    elements.extend(_build_compliance(report, styles))
    elements.extend(_build_photo_schedule(report, styles))
    elements.extend(_build_evidence_certificate(report, styles))
    elements.extend(_build_declaration(report, styles))

    return _render(elements, f"Roof Inspection Report - {report.get('report_number')}")


def generate_complaint_pdf(complaint: Dict[str, Any], report: Dict[str, Any]) -> bytes:
    """
    Generate the LBP complaint form PDF.

    Args:
        complaint: Complaint dictionary
        report: Source report dictionary (for attached photos and defects)

    Returns:
        PDF file contents as bytes
    """
    styles = _get_styles()
    elements = _build_complaint(complaint, report, styles)
    return _render(elements, f"LBP Complaint - {complaint.get('complaint_number')}")
