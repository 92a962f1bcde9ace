"""Tests for report register export."""

import csv
import io

import openpyxl

from exporter import export_reports_to_csv, export_reports_to_xlsx

REPORTS = [
    {
        "report_number": "RANZ-2025-00001",
        "status": "APPROVED",
        "inspection_type": "FULL_INSPECTION",
        "property_address": "12 Kauri Street",
        "client_name": "Jane Client",
        "inspector": {"name": "Ivan Inspector"},
        "revision_round": 1,
        "photos": [{}, {}, {}],
        "defects": [
            {"defect_number": 1, "title": "Corroded ridge", "severity": "HIGH", "estimated_cost": None},
            {"defect_number": 2, "title": "Blocked gutter", "severity": "LOW"},
        ],
        "compliance_assessment": {"overall_status": "NON_COMPLIANT"},
    },
    {
        "report_number": "RANZ-2025-00002",
        "status": "DRAFT",
        "inspector": None,
        "compliance_assessment": None,
    },
]


def test_csv_has_one_row_per_report():
    rows = list(csv.DictReader(io.StringIO(export_reports_to_csv(REPORTS))))

    assert len(rows) == 2
    assert rows[0]["Report_Number"] == "RANZ-2025-00001"
    assert rows[0]["Inspector"] == "Ivan Inspector"
    assert rows[0]["Photos"] == "3"
    assert rows[0]["Defects"] == "2"
    assert rows[0]["Compliance"] == "NON_COMPLIANT"
    assert rows[1]["Inspector"] == ""
    assert rows[1]["Property_Address"] == ""


def test_xlsx_has_reports_and_defects_sheets():
    workbook = openpyxl.load_workbook(io.BytesIO(export_reports_to_xlsx(REPORTS)))

    assert workbook.sheetnames == ["Reports", "Defects"]
    reports = workbook["Reports"]
    assert reports.cell(row=1, column=1).value == "Report_Number"
    assert reports.max_row == 3

    defects = workbook["Defects"]
    assert defects.max_row == 3
    assert defects.cell(row=2, column=1).value == "RANZ-2025-00001"
    assert defects.cell(row=3, column=3).value == "Blocked gutter"
