"""Tests for the report review workflow."""

import pytest

import database as db
import notifications
import workflow
from errors import PermissionDeniedError, WorkflowError
from conftest import make_submittable


@pytest.fixture(autouse=True)
def quiet_notifications(monkeypatch):
    sent = []
    monkeypatch.setattr(notifications, "send_async", lambda to, subject, body: sent.append((to, subject)))
    return sent


@pytest.fixture
def submitted(report, inspector):
    make_submittable(report, inspector)
    result = workflow.submit_report(report["id"], inspector)
    assert result["success"], result["validation"]["errors"]
    return report


def actions(report_id, user):
    return [log["action"] for log in db.get_report_audit_log(report_id, user)]


def test_incomplete_report_is_not_submitted(report, inspector):
    result = workflow.submit_report(report["id"], inspector)

    assert result["success"] is False
    assert result["new_status"] == "DRAFT"
    assert "Compliance assessment is required" in result["validation"]["errors"]
    assert "SUBMITTED" not in actions(report["id"], inspector)


def test_submission_check_is_a_dry_run(report, inspector):
    check = workflow.get_submission_check(report["id"], inspector)

    assert check["current_status"] == "DRAFT"
    assert check["validation"]["is_valid"] is False
    assert db.get_report(report["id"], inspector)["status"] == "DRAFT"


def test_only_the_inspector_submits(report, reviewer):
    with pytest.raises(PermissionDeniedError):
        workflow.submit_report(report["id"], reviewer)


def test_submit_moves_to_pending_review(submitted, inspector, quiet_notifications):
    current = db.get_report(submitted["id"], inspector)

    assert current["status"] == "PENDING_REVIEW"
    assert current["revision_round"] == 1
    assert current["submitted_at"] is not None
    logs = db.get_report_audit_log(submitted["id"], inspector)
    submitted_log = [log for log in logs if log["action"] == "SUBMITTED"][-1]
    assert submitted_log["details"]["photos_count"] == 10
    assert submitted_log["details"]["revision_round"] == 1


def test_submitted_report_is_locked_for_the_inspector(submitted, inspector):
    with pytest.raises(WorkflowError, match="cannot be edited"):
        db.update_report(submitted["id"], inspector, {"client_name": "Someone Else"})


def test_inspector_cannot_review(submitted, inspector):
    with pytest.raises(PermissionDeniedError):
        workflow.start_review(submitted["id"], inspector)


def test_review_then_reject_then_resubmit(submitted, inspector, reviewer):
    under_review = workflow.start_review(submitted["id"], reviewer)
    assert under_review["status"] == "UNDER_REVIEW"
    assert under_review["reviewer_id"] == reviewer["id"]

    db.add_comment(submitted["id"], reviewer, {"comment": "Ridge photo is blurred", "severity": "ISSUE"})
    rejected = workflow.reject_report(submitted["id"], reviewer, "Please retake the ridge photos",
                                      ["Retake ridge photo"], "HIGH")
    assert rejected["status"] == "REVISION_REQUIRED"

    status = workflow.review_status(submitted["id"], inspector)
    assert status["latest_feedback"]["reason"] == "Please retake the ridge photos"
    assert status["latest_feedback"]["revision_items"] == ["Retake ridge photo"]
    assert status["comment_counts"]["ISSUE"] == 1
    assert status["permissions"]["can_submit"] is True

    db.update_report(submitted["id"], inspector, {"weather_conditions": "Overcast"})
    result = workflow.submit_report(submitted["id"], inspector)
    assert result["success"] is True
    assert db.get_report(submitted["id"], inspector)["revision_round"] == 2


def test_approve_and_finalise(submitted, reviewer, admin, inspector):
    approved = workflow.approve_report(submitted["id"], reviewer, comments="Good work")
    assert approved["status"] == "APPROVED"
    assert approved["approved_at"] is not None

    with pytest.raises(PermissionDeniedError):
        workflow.finalise_report(submitted["id"], reviewer)

    finalised = workflow.finalise_report(submitted["id"], admin)
    assert finalised["status"] == "FINALISED"

    with pytest.raises(WorkflowError, match="already finalised"):
        workflow.submit_report(submitted["id"], inspector)

    archived = workflow.archive_report(submitted["id"], admin)
    assert archived["status"] == "ARCHIVED"


def test_approve_with_finalise_flag(submitted, reviewer, inspector):
    result = workflow.approve_report(submitted["id"], reviewer, finalise=True)

    assert result["status"] == "FINALISED"
    assert actions(submitted["id"], inspector)[-2:] == ["APPROVED", "STATUS_CHANGED"]


def test_cannot_approve_a_draft(report, reviewer):
    with pytest.raises(WorkflowError):
        workflow.approve_report(report["id"], reviewer)


def test_rejection_notifies_the_inspector(submitted, reviewer, inspector, quiet_notifications):
    workflow.reject_report(submitted["id"], reviewer, "Needs more detail on flashings")

    recipients = [to for to, _ in quiet_notifications]
    assert inspector["email"] in recipients
