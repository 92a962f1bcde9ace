"""
Licensed Building Practitioner complaints.

A complaint is prepared by an administrator from a dispute-resolution
report, reviewed by a super administrator, signed, rendered to PDF and
emailed to the Building Practitioners Board. Every step is written to the
source report's audit log as an UPDATED entry carrying details.lbp_action.
"""

import re
import logging
from datetime import datetime
from typing import Dict, List, Any

from config import (
    ORGANISATION_NAME,
    ORGANISATION_ADDRESS,
    ORGANISATION_PHONE,
    ORGANISATION_EMAIL,
    ORGANISATION_RELATION,
    BPB_COMPLAINTS_EMAIL,
)
from constants import ADMIN_ROLES, AuditAction
from errors import NotFoundError, PermissionDeniedError, WorkflowError
from evidence import sha256_hex
from models import LBPComplaint, Report
import database as db
import numbering
import notifications
import pdf_generator
import storage

logger = logging.getLogger(__name__)

# Building Act 2004, section 317
GROUNDS_FOR_DISCIPLINE = {
    "NEGLIGENT_OR_INCOMPETENT_WORK": {
        "label": "Carried out or supervised building work negligently or incompetently",
        "section": "317(1)(b)",
    },
    "NON_COMPLIANT_WITH_CONSENT": {
        "label": "Carried out or supervised building work that does not comply with a building consent",
        "section": "317(1)(c)",
    },
    "MISREPRESENTED_LICENSE": {
        "label": "Held themselves out to be licensed when not licensed for that type of work",
        "section": "317(1)(d)",
    },
    "CONVICTION_AFFECTING_FITNESS": {
        "label": "Convicted of an offence that affects fitness to do building work",
        "section": "317(1)(da)",
    },
    "FALSE_INFO_FOR_LICENSE": {
        "label": "Provided false information in order to become licensed",
        "section": "317(1)(e)",
    },
    "FAILED_PROVIDE_DESIGN_CERTIFICATE": {
        "label": "Failed to provide certificate of design work for building consent",
        "section": "317(1)(f)",
    },
    "FAILED_PROVIDE_RECORD_OF_WORK": {
        "label": "Failed to provide record of work on completion of restricted building work",
        "section": "317(1)(g)",
    },
    "MISREPRESENTED_COMPETENCE": {
        "label": "Misrepresented their competence",
        "section": "317(1)(h)",
    },
    "WORKED_OUTSIDE_COMPETENCE": {
        "label": "Carried out or supervised building work outside their competence",
        "section": "317(1)(h)",
    },
    "FAILED_PRODUCE_LICENSE": {
        "label": "Failed to produce licence or notify change in licence status",
        "section": "317(1)(i)",
    },
    "DISREPUTABLE_CONDUCT": {
        "label": "Conducted themselves in a manner that brings the LBP scheme into disrepute",
        "section": "317(1)(j)",
    },
}
MAX_GROUNDS = 5

LBP_NUMBER_PATTERN = re.compile(r'^[A-Z]{2}\d{6}$')

REQUIRED_FIELDS_FOR_SUBMISSION = [
    "subject_lbp_number",
    "subject_lbp_name",
    "work_address",
    "work_description",
    "conduct_description",
    "evidence_summary",
    "grounds_for_discipline",
    "attached_photo_ids",
]

EDITABLE_STATUSES = {"DRAFT", "PENDING_REVIEW"}
CLOSED_STATUSES = {"WITHDRAWN", "CLOSED"}
NON_WITHDRAWABLE_STATUSES = {"SUBMITTING", "DECIDED", "CLOSED", "WITHDRAWN"}
NOT_SUBMITTED_STATUSES = {"DRAFT", "PENDING_REVIEW", "READY_TO_SUBMIT", "SUBMITTING", "WITHDRAWN"}


def _check_admin(user: dict) -> None:
    if user["role"] not in ADMIN_ROLES:
        raise PermissionDeniedError("Only administrators can manage LBP complaints")


def _log(session, complaint: LBPComplaint, user_id: str, lbp_action: str, **details) -> None:
    details.update({"lbp_action": lbp_action, "complaint_id": complaint.id,
                    "complaint_number": complaint.complaint_number})
    db.record_audit(session, complaint.report_id, user_id, AuditAction.UPDATED, details)


def _get_complaint(session, complaint_id: str) -> LBPComplaint:
    complaint = session.query(LBPComplaint).filter(LBPComplaint.id == complaint_id).first()
    if not complaint:
        raise NotFoundError("Complaint not found")
    return complaint


def missing_required_fields(complaint: Dict[str, Any]) -> List[str]:
    """Required fields that are None, empty strings or empty lists."""
    missing = []
    for field in REQUIRED_FIELDS_FOR_SUBMISSION:
        value = complaint.get(field)
        if value is None or value == "" or (isinstance(value, list) and not value):
            missing.append(field)
    return missing


def validate_grounds(grounds: List[str]) -> None:
    unknown = [g for g in grounds if g not in GROUNDS_FOR_DISCIPLINE]
    if unknown:
        raise ValueError(f"Unknown grounds for discipline: {', '.join(unknown)}")
    if len(grounds) > MAX_GROUNDS:
        raise ValueError(f"At most {MAX_GROUNDS} grounds for discipline may be selected")


# =============================================================================
# LIFECYCLE
# =============================================================================

def create_from_report(report_id: str, user: dict) -> Dict[str, Any]:
    """
    Start a complaint from a dispute-resolution report.

    Returns:
        Complaint dictionary
    """
    _check_admin(user)
    with db.get_session() as session:
        report = session.query(Report).filter(Report.id == report_id).first()
        if not report:
            raise NotFoundError("Report not found")
        if report.inspection_type != "DISPUTE_RESOLUTION":
            raise WorkflowError("Can only create complaints from dispute resolution reports")

        active = session.query(LBPComplaint)\
            .filter(LBPComplaint.report_id == report.id, ~LBPComplaint.status.in_(CLOSED_STATUSES))\
            .first()
        if active:
            raise WorkflowError(f"An active complaint ({active.complaint_number}) already exists for this report")

        complaint = LBPComplaint(
            complaint_number=numbering.next_complaint_number(session),
            report_id=report.id,
            status="DRAFT",
            complainant_name=ORGANISATION_NAME,
            complainant_address=ORGANISATION_ADDRESS,
            complainant_phone=ORGANISATION_PHONE,
            complainant_email=ORGANISATION_EMAIL,
            complainant_relation=ORGANISATION_RELATION,
            work_address=report.property_address,
            work_city=report.property_city,
            work_start_date=report.inspection_date,
            building_consent_number=report.consent_number,
            attached_photo_ids=[p.id for p in report.photos],
            attached_defect_ids=[d.id for d in report.defects],
            prepared_by_id=user["id"],
        )
        session.add(complaint)
        session.flush()
        _log(session, complaint, user["id"], "COMPLAINT_CREATED")
        logger.info(f"Complaint {complaint.complaint_number} created from report {report.report_number}")
        return complaint.to_dict()


def get_complaint(complaint_id: str, user: dict) -> Dict[str, Any]:
    _check_admin(user)
    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        data = complaint.to_dict()
        data["report"] = complaint.report.to_dict() if complaint.report else None
        return data


def update_complaint(complaint_id: str, user: dict, changes: Dict[str, Any]) -> Dict[str, Any]:
    _check_admin(user)
    if changes.get("grounds_for_discipline") is not None:
        validate_grounds(changes["grounds_for_discipline"])

    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        if complaint.status not in EDITABLE_STATUSES:
            raise WorkflowError("Cannot edit complaint after approval")

        for field, value in changes.items():
            setattr(complaint, field, value)
        _log(session, complaint, user["id"], "COMPLAINT_UPDATED", fields=sorted(changes.keys()))
        session.flush()
        return complaint.to_dict()


def submit_for_review(complaint_id: str, user: dict) -> Dict[str, Any]:
    _check_admin(user)
    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        if complaint.status != "DRAFT":
            raise WorkflowError("Complaint must be in draft status to submit for review")

        data = complaint.to_dict()
        missing = missing_required_fields(data)
        if missing:
            raise ValueError(f"Missing required fields for submission: {', '.join(missing)}")
        if not LBP_NUMBER_PATTERN.match(complaint.subject_lbp_number):
            raise ValueError("LBP number must be 2 letters followed by 6 digits (e.g., BP123456)")
        validate_grounds(complaint.grounds_for_discipline)

        complaint.status = "PENDING_REVIEW"
        _log(session, complaint, user["id"], "COMPLAINT_SUBMITTED_FOR_REVIEW")
        session.flush()
        return complaint.to_dict()


def review_complaint(complaint_id: str, user: dict, approved: bool, review_notes: str = None) -> Dict[str, Any]:
    """Approve (READY_TO_SUBMIT) or send back to DRAFT."""
    if user["role"] != "SUPER_ADMIN":
        raise PermissionDeniedError("Only super administrators can review complaints")
    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        if complaint.status != "PENDING_REVIEW":
            raise WorkflowError("Complaint must be pending review")

        complaint.status = "READY_TO_SUBMIT" if approved else "DRAFT"
        complaint.reviewed_by_id = user["id"]
        complaint.reviewed_at = datetime.utcnow()
        complaint.review_notes = review_notes
        _log(session, complaint, user["id"],
             "COMPLAINT_APPROVED" if approved else "COMPLAINT_REJECTED",
             review_notes=review_notes)
        session.flush()
        return complaint.to_dict()


def sign_complaint(complaint_id: str, user: dict, signature_data: str, declaration_accepted: bool) -> Dict[str, Any]:
    _check_admin(user)
    if not declaration_accepted:
        raise ValueError("Declaration must be accepted to sign the complaint")
    signature_bytes, content_type = storage.decode_data_url(signature_data)

    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        if complaint.status != "READY_TO_SUBMIT":
            raise WorkflowError("Complaint must be approved before signing")

        extension = content_type.split('/')[-1]
        complaint.signature_url = storage.upload(
            signature_bytes,
            f"complaints/{complaint.complaint_number}/signature.{extension}",
            content_type,
        )
        complaint.signed_by_id = user["id"]
        complaint.signed_at = datetime.utcnow()
        complaint.declaration_accepted = True
        _log(session, complaint, user["id"], "COMPLAINT_SIGNED")
        session.flush()
        return complaint.to_dict()


def render_complaint_pdf(complaint_id: str, user: dict) -> Dict[str, Any]:
    """
    Render a complaint PDF without submitting it.

    Returns:
        {"filename", "content"}
    """
    _check_admin(user)
    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        complaint_data = complaint.to_dict()
        report_data = complaint.report.to_dict()
        content = pdf_generator.generate_complaint_pdf(complaint_data, report_data)
        _log(session, complaint, user["id"], "PDF_GENERATED", pdf_hash=sha256_hex(content))
    return {"filename": f"{complaint_data['complaint_number']}_Complaint.pdf", "content": content}


def submit_complaint(complaint_id: str, user: dict) -> Dict[str, Any]:
    """
    Render, store and email the complaint to the Building Practitioners Board.

    The complaint is held in SUBMITTING while the PDF is rendered and
    emailed, so a concurrent second submission is refused. A failed render,
    upload or email returns it to READY_TO_SUBMIT, logs the failure on the
    report and re-raises.

    Returns:
        Complaint dictionary
    """
    _check_admin(user)
    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        if complaint.status == "SUBMITTING":
            raise WorkflowError("Complaint is already being submitted")
        if complaint.status != "READY_TO_SUBMIT":
            raise WorkflowError("Complaint must be approved before submission")
        if not complaint.declaration_accepted or not complaint.signed_at:
            raise WorkflowError("Complaint must be signed before submission")

        claimed = session.query(LBPComplaint)\
            .filter(LBPComplaint.id == complaint.id, LBPComplaint.status == "READY_TO_SUBMIT")\
            .update({LBPComplaint.status: "SUBMITTING"}, synchronize_session=False)
        if not claimed:
            raise WorkflowError("Complaint is already being submitted")
        complaint_data = complaint.to_dict()
        report_data = complaint.report.to_dict()

    number = complaint_data["complaint_number"]
    try:
        pdf_bytes = pdf_generator.generate_complaint_pdf(complaint_data, report_data)
        pdf_hash = sha256_hex(pdf_bytes)
        pdf_url = storage.upload(pdf_bytes, f"complaints/{number}/complaint.pdf", "application/pdf")
        message_id = notifications.complaint_submission_email(complaint_data, pdf_bytes, user)
    except Exception as e:
        logger.error(f"Submission of complaint {number} failed: {e}", exc_info=True)
        with db.get_session() as session:
            complaint = _get_complaint(session, complaint_id)
            complaint.status = "READY_TO_SUBMIT"
            _log(session, complaint, user["id"], "COMPLAINT_SUBMISSION_FAILED", error=str(e))
        raise

    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        complaint.status = "SUBMITTED"
        complaint.submitted_by_id = user["id"]
        complaint.submitted_at = datetime.utcnow()
        complaint.submission_method = "EMAIL"
        complaint.submission_email = BPB_COMPLAINTS_EMAIL
        complaint.submission_confirmation = message_id
        complaint.pdf_url = pdf_url
        complaint.pdf_hash = pdf_hash
        _log(session, complaint, user["id"], "COMPLAINT_SUBMITTED_TO_BPB",
             submission_email=BPB_COMPLAINTS_EMAIL, message_id=message_id, pdf_hash=pdf_hash)
        session.flush()
        logger.info(f"Complaint {number} submitted to {BPB_COMPLAINTS_EMAIL}")
        return complaint.to_dict()


def withdraw_complaint(complaint_id: str, user: dict, reason: str) -> Dict[str, Any]:
    _check_admin(user)
    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        if complaint.status in NON_WITHDRAWABLE_STATUSES:
            raise WorkflowError(f"Cannot withdraw complaint in {complaint.status} status")
        complaint.status = "WITHDRAWN"
        complaint.withdrawn_at = datetime.utcnow()
        complaint.withdrawal_reason = reason
        _log(session, complaint, user["id"], "COMPLAINT_WITHDRAWN", reason=reason)
        session.flush()
        return complaint.to_dict()


def record_board_response(complaint_id: str, user: dict, response: Dict[str, Any]) -> Dict[str, Any]:
    """
    Record correspondence from the Board.

    An acknowledgement moves a SUBMITTED complaint to ACKNOWLEDGED and a
    decision moves it to DECIDED; an explicit status overrides both. A
    DECIDED complaint can only be closed, and a CLOSED one takes no further
    responses.
    """
    _check_admin(user)
    response = dict(response)
    explicit_status = response.pop("status", None)

    with db.get_session() as session:
        complaint = _get_complaint(session, complaint_id)
        if complaint.status in NOT_SUBMITTED_STATUSES:
            raise WorkflowError("Board responses can only be recorded for submitted complaints")
        if complaint.status == "CLOSED":
            raise WorkflowError("Complaint is closed")
        if complaint.status == "DECIDED" and explicit_status not in (None, "CLOSED"):
            raise WorkflowError("A decided complaint can only be closed")

        for field, value in response.items():
            setattr(complaint, field, value)

        if explicit_status:
            complaint.status = explicit_status
        elif response.get("bpb_decision"):
            complaint.status = "DECIDED"
        elif response.get("bpb_acknowledged_at") and complaint.status == "SUBMITTED":
            complaint.status = "ACKNOWLEDGED"

        _log(session, complaint, user["id"], "BPB_RESPONSE_RECEIVED",
             fields=sorted(response.keys()), status=complaint.status)
        session.flush()
        return complaint.to_dict()


# =============================================================================
# QUERIES
# =============================================================================

def list_complaints(user: dict, status: str = None, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
    _check_admin(user)
    with db.get_session() as session:
        query = session.query(LBPComplaint)
        if status:
            query = query.filter(LBPComplaint.status == status)
        complaints, pagination = db._paginate(query.order_by(LBPComplaint.created_at.desc()), page, per_page)
        return {"complaints": [c.to_dict() for c in complaints], "pagination": pagination}


def get_stats(user: dict) -> Dict[str, int]:
    _check_admin(user)
    with db.get_session() as session:
        counts = {}
        for status, in session.query(LBPComplaint.status).all():
            counts[status] = counts.get(status, 0) + 1
        return {
            "total": sum(counts.values()),
            "draft": counts.get("DRAFT", 0),
            "pending_review": counts.get("PENDING_REVIEW", 0),
            "submitted": counts.get("SUBMITTING", 0) + counts.get("SUBMITTED", 0) + counts.get("ACKNOWLEDGED", 0),
            "active": counts.get("UNDER_INVESTIGATION", 0) + counts.get("HEARING_SCHEDULED", 0),
            "closed": counts.get("CLOSED", 0) + counts.get("WITHDRAWN", 0),
        }
