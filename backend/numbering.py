"""
Human-readable numbers for reports, complaints and inspection requests.
"""

from datetime import datetime

REPORT_PREFIX = "RANZ"
COMPLAINT_PREFIX = "RANZ-LBP"


def format_report_number(year: int, sequence: int) -> str:
    """RANZ-YYYY-NNNNN"""
    return f"{REPORT_PREFIX}-{year}-{sequence:05d}"


def format_complaint_number(year: int, sequence: int) -> str:
    """RANZ-LBP-YYYY-NNNNN"""
    return f"{COMPLAINT_PREFIX}-{year}-{sequence:05d}"


def next_sequence(existing_numbers, prefix: str) -> int:
    """
    Next sequence after the highest existing number sharing a prefix.

    Args:
        existing_numbers: Iterable of numbers such as "RANZ-2025-00012"
        prefix: Year prefix including the trailing dash, e.g. "RANZ-2025-"
    """
    highest = 0
    for number in existing_numbers:
        if not number or not number.startswith(prefix):
            continue
        tail = number[len(prefix):]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return highest + 1


def next_report_number(session, now: datetime = None) -> str:
    """Allocate the next report number for the current year."""
    from models import Report

    year = (now or datetime.utcnow()).year
    prefix = f"{REPORT_PREFIX}-{year}-"
    numbers = [row[0] for row in session.query(Report.report_number)
               .filter(Report.report_number.like(f"{prefix}%")).all()]
    return format_report_number(year, next_sequence(numbers, prefix))


def next_complaint_number(session, now: datetime = None) -> str:
    """Allocate the next LBP complaint number for the current year."""
    from models import LBPComplaint

    year = (now or datetime.utcnow()).year
    prefix = f"{COMPLAINT_PREFIX}-{year}-"
    numbers = [row[0] for row in session.query(LBPComplaint.complaint_number)
               .filter(LBPComplaint.complaint_number.like(f"{prefix}%")).all()]
    return format_complaint_number(year, next_sequence(numbers, prefix))


def assignment_reference(assignment_id: str, year: int = None) -> str:
    """REQ-YYYY-<last six characters of the id, upper-cased>"""
    year = year or datetime.utcnow().year
    return f"REQ-{year}-{assignment_id[-6:].upper()}"
