"""Tests for LBP complaint preparation and submission."""

import base64
import io
from datetime import datetime

import pytest
from PIL import Image

import complaints
import database as db
import notifications
from errors import PermissionDeniedError, WorkflowError
from conftest import report_fields, stored_photo


def signature_data_url():
    buffer = io.BytesIO()
    Image.new("RGB", (120, 40), (255, 255, 255)).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


COMPLAINT_DETAILS = {
    "subject_lbp_number": "BP654321",
    "subject_lbp_name": "Bob Builder",
    "work_description": "Re-roof of dwelling in long-run corrugated steel",
    "conduct_description": "Flashings installed without required cover",
    "evidence_summary": "Photos 1-3 show inadequate apron flashing cover",
    "grounds_for_discipline": ["NEGLIGENT_OR_INCOMPETENT_WORK"],
}


@pytest.fixture
def dispute_report(inspector):
    report = db.create_report(inspector, report_fields(inspection_type="DISPUTE_RESOLUTION"))
    db.add_photo(report["id"], inspector, {"photo_type": "DETAIL"}, stored_photo(1))
    return report


@pytest.fixture
def draft_complaint(dispute_report, admin):
    return complaints.create_from_report(dispute_report["id"], admin)


@pytest.fixture
def ready_complaint(draft_complaint, admin, super_admin):
    complaints.update_complaint(draft_complaint["id"], admin, dict(COMPLAINT_DETAILS))
    complaints.submit_for_review(draft_complaint["id"], admin)
    return complaints.review_complaint(draft_complaint["id"], super_admin, approved=True)


def test_complaint_is_prefilled_from_the_report(draft_complaint, dispute_report):
    assert draft_complaint["status"] == "DRAFT"
    assert draft_complaint["complaint_number"].startswith("RANZ-LBP-")
    assert draft_complaint["work_address"] == dispute_report["property_address"]
    assert len(draft_complaint["attached_photo_ids"]) == 1


def test_only_dispute_reports_can_become_complaints(report, admin):
    with pytest.raises(WorkflowError, match="dispute resolution"):
        complaints.create_from_report(report["id"], admin)


def test_one_active_complaint_per_report(draft_complaint, dispute_report, admin):
    with pytest.raises(WorkflowError, match="already exists"):
        complaints.create_from_report(dispute_report["id"], admin)

    complaints.withdraw_complaint(draft_complaint["id"], admin, "Resolved with builder")
    again = complaints.create_from_report(dispute_report["id"], admin)
    assert again["complaint_number"] != draft_complaint["complaint_number"]


def test_inspectors_cannot_manage_complaints(dispute_report, inspector):
    with pytest.raises(PermissionDeniedError):
        complaints.create_from_report(dispute_report["id"], inspector)


def test_review_requires_complete_fields(draft_complaint, admin):
    with pytest.raises(ValueError, match="subject_lbp_number"):
        complaints.submit_for_review(draft_complaint["id"], admin)


def test_lbp_number_format_is_checked(draft_complaint, admin):
    complaints.update_complaint(draft_complaint["id"], admin,
                                dict(COMPLAINT_DETAILS, subject_lbp_number="12345"))
    with pytest.raises(ValueError, match="2 letters followed by 6 digits"):
        complaints.submit_for_review(draft_complaint["id"], admin)


def test_grounds_are_validated(draft_complaint, admin):
    with pytest.raises(ValueError, match="Unknown grounds"):
        complaints.update_complaint(draft_complaint["id"], admin, {"grounds_for_discipline": ["BAD_VIBES"]})

    too_many = list(complaints.GROUNDS_FOR_DISCIPLINE)[:6]
    with pytest.raises(ValueError, match="At most 5"):
        complaints.update_complaint(draft_complaint["id"], admin, {"grounds_for_discipline": too_many})


def test_only_super_admin_reviews(draft_complaint, admin):
    complaints.update_complaint(draft_complaint["id"], admin, dict(COMPLAINT_DETAILS))
    complaints.submit_for_review(draft_complaint["id"], admin)

    with pytest.raises(PermissionDeniedError):
        complaints.review_complaint(draft_complaint["id"], admin, approved=True)


def test_rejected_review_returns_to_draft(draft_complaint, admin, super_admin):
    complaints.update_complaint(draft_complaint["id"], admin, dict(COMPLAINT_DETAILS))
    complaints.submit_for_review(draft_complaint["id"], admin)

    result = complaints.review_complaint(draft_complaint["id"], super_admin, approved=False,
                                         review_notes="Add more on the gutters")

    assert result["status"] == "DRAFT"
    assert result["review_notes"] == "Add more on the gutters"


def test_approved_complaint_is_locked(ready_complaint, admin):
    assert ready_complaint["status"] == "READY_TO_SUBMIT"
    with pytest.raises(WorkflowError, match="after approval"):
        complaints.update_complaint(ready_complaint["id"], admin, {"subject_lbp_name": "Other"})


def test_submission_requires_signature(ready_complaint, admin):
    with pytest.raises(WorkflowError, match="signed"):
        complaints.submit_complaint(ready_complaint["id"], admin)


def test_sign_and_submit(ready_complaint, admin, dispute_report, inspector):
    signed = complaints.sign_complaint(ready_complaint["id"], admin, signature_data_url(), True)
    assert signed["signature_url"].endswith("/signature.png")

    submitted = complaints.submit_complaint(ready_complaint["id"], admin)

    assert submitted["status"] == "SUBMITTED"
    assert submitted["submission_confirmation"].startswith("sim_")
    assert len(submitted["pdf_hash"]) == 64

    lbp_actions = [log["details"].get("lbp_action")
                   for log in db.get_report_audit_log(dispute_report["id"], inspector)
                   if log["action"] == "UPDATED"]
    assert lbp_actions == [
        "COMPLAINT_CREATED", "COMPLAINT_UPDATED", "COMPLAINT_SUBMITTED_FOR_REVIEW",
        "COMPLAINT_APPROVED", "COMPLAINT_SIGNED", "COMPLAINT_SUBMITTED_TO_BPB",
    ]


def test_failed_email_is_logged_and_raised(ready_complaint, admin, dispute_report, inspector, monkeypatch):
    complaints.sign_complaint(ready_complaint["id"], admin, signature_data_url(), True)

    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("SMTP unavailable")
    monkeypatch.setattr(notifications, "complaint_submission_email", refuse)

    with pytest.raises(ConnectionRefusedError):
        complaints.submit_complaint(ready_complaint["id"], admin)

    assert complaints.get_complaint(ready_complaint["id"], admin)["status"] == "READY_TO_SUBMIT"
    last = db.get_report_audit_log(dispute_report["id"], inspector)[-1]
    assert last["details"]["lbp_action"] == "COMPLAINT_SUBMISSION_FAILED"
    assert last["details"]["error"] == "SMTP unavailable"


def test_signing_requires_declaration(ready_complaint, admin):
    with pytest.raises(ValueError, match="Declaration"):
        complaints.sign_complaint(ready_complaint["id"], admin, signature_data_url(), False)


def test_board_response_moves_status(ready_complaint, admin):
    complaints.sign_complaint(ready_complaint["id"], admin, signature_data_url(), True)
    complaints.submit_complaint(ready_complaint["id"], admin)

    acknowledged = complaints.record_board_response(ready_complaint["id"], admin, {
        "bpb_reference": "CB26001",
        "bpb_acknowledged_at": datetime(2025, 4, 1),
    })
    assert acknowledged["status"] == "ACKNOWLEDGED"

    decided = complaints.record_board_response(ready_complaint["id"], admin, {"bpb_decision": "Upheld"})
    assert decided["status"] == "DECIDED"

    with pytest.raises(WorkflowError):
        complaints.withdraw_complaint(ready_complaint["id"], admin, "Too late")


def test_render_pdf_without_submitting(draft_complaint, admin):
    result = complaints.render_complaint_pdf(draft_complaint["id"], admin)

    assert result["filename"] == f"{draft_complaint['complaint_number']}_Complaint.pdf"
    assert result["content"].startswith(b"%PDF")
    assert complaints.get_complaint(draft_complaint["id"], admin)["status"] == "DRAFT"


def test_stats_and_listing(draft_complaint, admin):
    stats = complaints.get_stats(admin)
    assert stats["total"] == 1
    assert stats["draft"] == 1

    listing = complaints.list_complaints(admin, status="DRAFT")
    assert listing["pagination"]["total"] == 1
    assert listing["complaints"][0]["id"] == draft_complaint["id"]


def test_second_submission_during_send_is_refused(ready_complaint, admin, monkeypatch):
    complaints.sign_complaint(ready_complaint["id"], admin, signature_data_url(), True)
    sent = []
    refused = []

    def send_once(complaint, pdf_bytes, user):
        sent.append(complaint["complaint_number"])
        assert complaints.get_complaint(ready_complaint["id"], admin)["status"] == "SUBMITTING"
        with pytest.raises(WorkflowError, match="already being submitted") as error:
            complaints.submit_complaint(ready_complaint["id"], admin)
        refused.append(str(error.value))
        return "msg_1"
    monkeypatch.setattr(notifications, "complaint_submission_email", send_once)

    submitted = complaints.submit_complaint(ready_complaint["id"], admin)

    assert submitted["status"] == "SUBMITTED"
    assert len(sent) == 1
    assert len(refused) == 1
    with pytest.raises(WorkflowError):
        complaints.submit_complaint(ready_complaint["id"], admin)
    assert len(sent) == 1


def test_closed_complaint_takes_no_further_responses(ready_complaint, admin):
    complaints.sign_complaint(ready_complaint["id"], admin, signature_data_url(), True)
    complaints.submit_complaint(ready_complaint["id"], admin)
    complaints.record_board_response(ready_complaint["id"], admin, {"bpb_decision": "Upheld"})

    with pytest.raises(WorkflowError, match="only be closed"):
        complaints.record_board_response(ready_complaint["id"], admin, {"status": "UNDER_INVESTIGATION"})

    closed = complaints.record_board_response(ready_complaint["id"], admin, {"status": "CLOSED"})
    assert closed["status"] == "CLOSED"

    with pytest.raises(WorkflowError, match="closed"):
        complaints.record_board_response(ready_complaint["id"], admin, {"status": "HEARING_SCHEDULED"})
    with pytest.raises(WorkflowError, match="closed"):
        complaints.record_board_response(ready_complaint["id"], admin, {"bpb_notes": "Late letter"})
    assert complaints.get_complaint(ready_complaint["id"], admin)["status"] == "CLOSED"


def test_report_with_complaint_cannot_be_deleted(draft_complaint, dispute_report, admin):
    with pytest.raises(WorkflowError, match=draft_complaint["complaint_number"]):
        db.delete_report(dispute_report["id"], admin)

    assert complaints.render_complaint_pdf(draft_complaint["id"], admin)["content"].startswith(b"%PDF")
