"""
Export of report registers.
Supports CSV and Excel formats.
"""

import csv
import io
from typing import List, Dict, Any

REPORT_COLUMNS = [
    ('Report_Number', 'report_number'),
    ('Status', 'status'),
    ('Inspection_Type', 'inspection_type'),
    ('Inspection_Date', 'inspection_date'),
    ('Property_Address', 'property_address'),
    ('Property_City', 'property_city'),
    ('Property_Region', 'property_region'),
    ('Client_Name', 'client_name'),
    ('Inspector', 'inspector_name'),
    ('Revision_Round', 'revision_round'),
    ('Photos', 'photo_count'),
    ('Defects', 'defect_count'),
    ('Compliance', 'compliance_status'),
    ('Submitted_At', 'submitted_at'),
    ('Approved_At', 'approved_at'),
]

DEFECT_COLUMNS = [
    ('Report_Number', 'report_number'),
    ('Defect_Number', 'defect_number'),
    ('Title', 'title'),
    ('Location', 'location'),
    ('Classification', 'classification'),
    ('Severity', 'severity'),
    ('Priority', 'priority_level'),
    ('Observation', 'observation'),
    ('Recommendation', 'recommendation'),
    ('Estimated_Cost', 'estimated_cost'),
]


def _report_row(report: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a report dictionary into export values keyed by column name."""
    inspector = report.get('inspector') or {}
    assessment = report.get('compliance_assessment') or {}
    flat = dict(report)
    flat.update({
        'inspector_name': inspector.get('name', ''),
        'photo_count': len(report.get('photos') or []),
        'defect_count': len(report.get('defects') or []),
        'compliance_status': assessment.get('overall_status', ''),
    })
    return {header: flat.get(key) if flat.get(key) is not None else '' for header, key in REPORT_COLUMNS}


def _defect_rows(reports: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    rows = []
    for report in reports:
        for defect in report.get('defects') or []:
            flat = dict(defect, report_number=report.get('report_number'))
            rows.append({header: flat.get(key) if flat.get(key) is not None else ''
                         for header, key in DEFECT_COLUMNS})
    return rows


def export_reports_to_csv(reports: List[Dict[str, Any]]) -> str:
    """
    Export reports to CSV format, one row per report.

    Args:
        reports: List of full report dictionaries

    Returns:
        CSV string
    """
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=[header for header, _ in REPORT_COLUMNS], extrasaction='ignore')
    writer.writeheader()
    for report in reports:
        writer.writerow(_report_row(report))
    return output.getvalue()


def _write_sheet(ws, headers: List[str], rows: List[Dict[str, Any]], widths: List[int]) -> None:
    from openpyxl.styles import Font, PatternFill
    from openpyxl.utils import get_column_letter

    header_font = Font(bold=True)
    header_fill = PatternFill(start_color="CCCCCC", end_color="CCCCCC", fill_type="solid")

    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill

    for row_idx, row in enumerate(rows, 2):
        for col, header in enumerate(headers, 1):
            ws.cell(row=row_idx, column=col, value=row[header])

    for col, width in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.freeze_panes = "A2"


def export_reports_to_xlsx(reports: List[Dict[str, Any]]) -> bytes:
    """
    Export reports to Excel format.

    The first sheet lists reports; the second lists every defect with its
    report number.

    Args:
        reports: List of full report dictionaries

    Returns:
        Excel file bytes
    """
    try:
        import openpyxl
    except ImportError:
        raise ImportError("openpyxl is required for Excel export. Install with: pip install openpyxl")

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Reports"
    _write_sheet(
        ws,
        [header for header, _ in REPORT_COLUMNS],
        [_report_row(r) for r in reports],
        [18, 18, 20, 20, 40, 16, 16, 24, 24, 10, 8, 8, 20, 22, 22],
    )

    defects_ws = wb.create_sheet(title="Defects")
    _write_sheet(
        defects_ws,
        [header for header, _ in DEFECT_COLUMNS],
        _defect_rows(reports),
        [18, 8, 40, 24, 22, 12, 14, 60, 60, 16],
    )

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()
