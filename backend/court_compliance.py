"""
Expert witness compliance checks.

Scores a report against the High Court Rules Schedule 4 expert witness code
of conduct and the evidential requirements of the Evidence Act 2006. Most
checks are required for every report; the evidence and court-direction
checks are only required for reports that may go before a court.
"""

from typing import Dict, List, Any
from dataclasses import dataclass, asdict

COURT_REPORT_TYPES = {"DISPUTE_RESOLUTION", "WARRANTY_CLAIM"}

# Share of photos that must carry metadata on reports not bound for court
EXIF_THRESHOLD = 0.8
GPS_THRESHOLD = 0.5


@dataclass
class ComplianceCheck:
    id: str
    label: str
    description: str
    required: bool
    passed: bool
    details: str
    reference: str


@dataclass
class CourtComplianceResult:
    is_compliant: bool
    score: int
    required_checks: int
    passed_checks: int
    checks: List[ComplianceCheck]
    inspection_type: str
    is_court_report: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def is_court_report(inspection_type: str) -> bool:
    return inspection_type in COURT_REPORT_TYPES


def _has_gps(photo: Dict[str, Any]) -> bool:
    return photo.get("gps_lat") is not None and photo.get("gps_lng") is not None


def _has_exif(photo: Dict[str, Any]) -> bool:
    return bool(photo.get("captured_at") or photo.get("camera_make") or photo.get("camera_model"))


def _enough(count: int, total: int, court: bool, threshold: float) -> bool:
    if court:
        return count == total
    return count >= total * threshold


def _declared(declaration: Dict[str, Any], item: str, yes: str, no: str):
    confirmed = bool(declaration.get(item))
    return confirmed, yes if confirmed else no


def check_court_compliance(report: Dict[str, Any]) -> CourtComplianceResult:
    """
    Run the expert witness checks over a report dictionary.

    Args:
        report: Report dictionary including inspector and photos

    Returns:
        CourtComplianceResult; the score is the percentage of required
        checks passed, or 100 when nothing is required
    """
    inspection_type = report.get("inspection_type")
    court = is_court_report(inspection_type)
    inspector = report.get("inspector") or {}
    declaration = report.get("expert_declaration") or {}
    photos = report.get("photos") or []
    checks = []

    def add(check_id, label, description, required, passed, details, reference):
        checks.append(ComplianceCheck(check_id, label, description, required, passed, details, reference))

    add("qualifications", "Expert Qualifications",
        "Expert's qualifications and experience documented",
        True,
        bool(inspector.get("qualifications") and inspector.get("lbp_number")),
        (f"LBP #{inspector.get('lbp_number')}, {inspector.get('years_experience') or 'N/A'} years experience"
         if inspector.get("qualifications") else "Qualifications not documented"),
        "Schedule 4, Part 1, Clause 3")

    add("cv", "Curriculum Vitae", "Expert's CV available in appendix",
        court, bool(inspector.get("cv_url")),
        "CV attached" if inspector.get("cv_url") else "CV not attached",
        "Schedule 4, Part 3, Clause 9")

    passed, details = _declared(declaration, "code_of_conduct_accepted",
                                "Code of conduct accepted", "Code of conduct not accepted")
    add("code_of_conduct", "Code of Conduct", "Agreement to Expert Witness Code of Conduct",
        True, passed, details, "Schedule 4, Part 2")

    passed, details = _declared(declaration, "impartiality_confirmed",
                                "Impartiality confirmed", "Impartiality not confirmed")
    add("impartiality", "Impartiality Declaration", "Confirmation of independent, impartial opinion",
        True, passed, details, "Schedule 4, Part 2, Clause 4")

    has_conflict = report.get("has_conflict")
    disclosed = has_conflict is True and bool(report.get("conflict_disclosure"))
    if has_conflict is False:
        details = "No conflict declared"
    elif disclosed:
        details = "Conflict disclosed"
    else:
        details = "Conflict status not addressed"
    add("conflict_disclosure", "Conflict Disclosure", "Any conflicts of interest properly disclosed",
        True, has_conflict is False or disclosed, details, "Schedule 4, Part 3, Clause 8")

    add("methodology", "Methodology Documented", "Inspection methodology and scope clearly stated",
        True, bool(report.get("scope_of_works") or report.get("methodology")),
        "Methodology documented" if report.get("methodology") else "Methodology not documented",
        "Schedule 4, Part 3, Clause 6")

    hashed = sum(1 for p in photos if p.get("original_hash"))
    add("evidence_integrity", "Evidence Integrity", "Photo evidence hashes for chain of custody",
        court, hashed == len(photos),
        f"{hashed}/{len(photos)} photos have integrity hashes",
        "Evidence Act 2006, s.137")

    with_exif = sum(1 for p in photos if _has_exif(p))
    add("exif_metadata", "EXIF Metadata", "Photo timestamp and device metadata preserved",
        court, _enough(with_exif, len(photos), court, EXIF_THRESHOLD),
        f"{with_exif}/{len(photos)} photos have EXIF data",
        "Evidence Act 2006, s.25")

    with_gps = sum(1 for p in photos if _has_gps(p))
    add("gps_location", "GPS Location Data", "Photo GPS coordinates to prove location",
        court, _enough(with_gps, len(photos), court, GPS_THRESHOLD),
        f"{with_gps}/{len(photos)} photos have GPS coordinates",
        "Evidence Act 2006, s.25")

    signed_at = report.get("signed_at")
    add("declaration_signed", "Declaration Signed", "Expert declaration signed and dated",
        True, bool(report.get("declaration_signed") and signed_at),
        f"Signed on {signed_at[:10]}" if signed_at else "Not signed",
        "Schedule 4, Part 3, Clause 10")

    passed, details = _declared(declaration, "court_compliance_accepted",
                                "Court compliance accepted", "Court compliance not accepted")
    add("court_compliance", "Court Compliance", "Agreement to comply with court directions",
        court, passed, details, "Schedule 4, Part 2, Clause 5")

    passed, details = _declared(declaration, "false_evidence_understood",
                                "Perjury warning acknowledged", "Perjury warning not acknowledged")
    add("perjury_understanding", "Perjury Acknowledgment", "Understanding of consequences of false evidence",
        court, passed, details, "Crimes Act 1961, s.108")

    required = [c for c in checks if c.required]
    passed_required = [c for c in required if c.passed]
    score = round(len(passed_required) / len(required) * 100) if required else 100

    return CourtComplianceResult(
        is_compliant=len(passed_required) == len(required),
        score=score,
        required_checks=len(required),
        passed_checks=len(passed_required),
        checks=checks,
        inspection_type=inspection_type,
        is_court_report=court,
    )
