"""
Report status transitions: submission, review, approval and rejection.

Each transition checks the caller's role or ownership and the current status,
mutates the report, writes audit log entries in the same transaction and then
sends a best-effort notification.
"""

import logging
from datetime import datetime
from typing import Dict, Any

from constants import (
    ADMIN_ROLES,
    EDITABLE_STATUSES,
    REVIEWABLE_STATUSES,
    AuditAction,
    CommentSeverity,
)
from errors import PermissionDeniedError, WorkflowError
from models import AuditLog, ReviewComment
from submission import validate_report
import database as db
import notifications

logger = logging.getLogger(__name__)

REVIEW_HISTORY_ACTIONS = [
    AuditAction.SUBMITTED.value,
    AuditAction.REVIEWED.value,
    AuditAction.APPROVED.value,
    AuditAction.STATUS_CHANGED.value,
]


def _status_change(session, report, user_id, new_status, reason=None):
    old_status = report.status
    report.status = new_status
    details = {"from": old_status, "to": new_status}
    if reason:
        details["reason"] = reason
    db.record_audit(session, report.id, user_id, AuditAction.STATUS_CHANGED, details)


def _check_reviewer(user):
    if not db.is_reviewer(user):
        raise PermissionDeniedError("Only reviewers can review reports")


def _unresolved_comment_counts(session, report_id) -> Dict[str, int]:
    counts = {severity.value: 0 for severity in CommentSeverity}
    comments = session.query(ReviewComment)\
        .filter(ReviewComment.report_id == report_id, ReviewComment.resolved.is_(False))\
        .all()
    for comment in comments:
        counts[comment.severity] = counts.get(comment.severity, 0) + 1
    return counts


def get_submission_check(report_id: str, user: dict) -> Dict[str, Any]:
    """Dry-run validation for the submit screen."""
    with db.get_session() as session:
        report = db._get_report(session, report_id)
        if report.inspector_id != user["id"]:
            raise PermissionDeniedError("Only the report's inspector can submit this report")
        validation = validate_report(report.to_dict())
        return {
            "success": True,
            "validation": validation.to_dict(),
            "current_status": report.status,
        }


def submit_report(report_id: str, user: dict) -> Dict[str, Any]:
    """
    Submit a report for review.

    Validation failures are returned, not raised, so the caller can show the
    errors and warnings.

    Returns:
        {"success", "message", "validation", "new_status"}
    """
    with db.get_session() as session:
        report = db._get_report(session, report_id)
        if report.inspector_id != user["id"]:
            raise PermissionDeniedError("Only the report's inspector can submit this report")
        if report.status == "FINALISED":
            raise WorkflowError("Report is already finalised and cannot be resubmitted")
        if report.status not in EDITABLE_STATUSES:
            raise WorkflowError(f"Report cannot be submitted while {report.status}")

        report_data = report.to_dict()
        validation = validate_report(report_data)
        if not validation.is_valid:
            return {
                "success": False,
                "message": "Report validation failed. Please address the errors before submitting.",
                "validation": validation.to_dict(),
                "new_status": report.status,
            }

        if report.status == "REVISION_REQUIRED":
            report.revision_round = (report.revision_round or 0) + 1
        elif not report.revision_round:
            report.revision_round = 1

        old_status = report.status
        report.status = "PENDING_REVIEW"
        report.submitted_at = datetime.utcnow()

        db.record_audit(session, report.id, user["id"], AuditAction.SUBMITTED, {
            "from": old_status,
            "completion_percentage": validation.completion_percentage,
            "photos_count": len(report_data["photos"]),
            "defects_count": len(report_data["defects"]),
            "elements_count": len(report_data["roof_elements"]),
            "revision_round": report.revision_round,
            "warnings": len(validation.warnings),
        })
        session.flush()
        submitted = report.to_dict(include_children=False)

    logger.info(f"Report {submitted['report_number']} submitted (round {submitted['revision_round']})")
    notifications.notify_report_submitted(submitted, user)

    return {
        "success": True,
        "message": "Report submitted for review",
        "validation": validation.to_dict(),
        "new_status": submitted["status"],
    }


def start_review(report_id: str, user: dict) -> Dict[str, Any]:
    """PENDING_REVIEW -> UNDER_REVIEW, assigning the reviewer."""
    _check_reviewer(user)
    with db.get_session() as session:
        report = db._get_report(session, report_id)
        if report.status != "PENDING_REVIEW":
            raise WorkflowError(f"Cannot start review of a report in {report.status} status")
        report.reviewer_id = user["id"]
        _status_change(session, report, user["id"], "UNDER_REVIEW")
        session.flush()
        return report.to_dict(include_children=False)


def approve_report(report_id: str, user: dict, comments: str = None, finalise: bool = False) -> Dict[str, Any]:
    """
    Approve a report under review, optionally finalising it at once.

    Returns:
        Report dictionary
    """
    _check_reviewer(user)
    with db.get_session() as session:
        report = db._get_report(session, report_id)
        if report.status not in REVIEWABLE_STATUSES:
            raise WorkflowError(f"Cannot approve a report in {report.status} status")

        old_status = report.status
        report.status = "APPROVED"
        report.reviewer_id = report.reviewer_id or user["id"]
        report.approved_at = datetime.utcnow()
        db.record_audit(session, report.id, user["id"], AuditAction.APPROVED, {
            "from": old_status,
            "comments": comments,
            "revision_round": report.revision_round,
        })
        if finalise:
            _status_change(session, report, user["id"], "FINALISED")

        session.flush()
        approved = report.to_dict(include_children=False)
        inspector = report.inspector.to_dict()

    logger.info(f"Report {approved['report_number']} approved by {user['id']}")
    notifications.notify_report_approved(approved, inspector, user, comments)
    return approved


def reject_report(report_id: str, user: dict, reason: str, revision_items: list = None,
                  priority: str = "MEDIUM") -> Dict[str, Any]:
    """
    Return a report to its inspector for revision.

    Returns:
        Report dictionary
    """
    _check_reviewer(user)
    with db.get_session() as session:
        report = db._get_report(session, report_id)
        if report.status not in REVIEWABLE_STATUSES:
            raise WorkflowError(f"Cannot request revision of a report in {report.status} status")

        report.reviewer_id = report.reviewer_id or user["id"]
        db.record_audit(session, report.id, user["id"], AuditAction.REVIEWED, {
            "outcome": "REVISION_REQUIRED",
            "reason": reason,
            "revision_items": revision_items or [],
            "priority": priority,
            "revision_round": report.revision_round,
        })
        _status_change(session, report, user["id"], "REVISION_REQUIRED", reason)

        comment_counts = _unresolved_comment_counts(session, report.id)
        session.flush()
        rejected = report.to_dict(include_children=False)
        inspector = report.inspector.to_dict()

    logger.info(f"Report {rejected['report_number']} returned for revision by {user['id']}")
    notifications.notify_revision_required(rejected, inspector, user, reason, comment_counts)
    return rejected


def finalise_report(report_id: str, user: dict) -> Dict[str, Any]:
    if user["role"] not in ADMIN_ROLES:
        raise PermissionDeniedError("Only administrators can finalise reports")
    with db.get_session() as session:
        report = db._get_report(session, report_id)
        if report.status != "APPROVED":
            raise WorkflowError("Only approved reports can be finalised")
        _status_change(session, report, user["id"], "FINALISED")
        session.flush()
        return report.to_dict(include_children=False)


def archive_report(report_id: str, user: dict) -> Dict[str, Any]:
    if user["role"] not in ADMIN_ROLES:
        raise PermissionDeniedError("Only administrators can archive reports")
    with db.get_session() as session:
        report = db._get_report(session, report_id)
        if report.status not in ("APPROVED", "FINALISED"):
            raise WorkflowError("Only approved or finalised reports can be archived")
        _status_change(session, report, user["id"], "ARCHIVED")
        session.flush()
        return report.to_dict(include_children=False)


def review_status(report_id: str, user: dict) -> Dict[str, Any]:
    """
    Review history and what the caller may do next.

    Returns:
        Dictionary with report, review_history, latest_feedback (when the
        report needs revision), unresolved_comments and permissions
    """
    with db.get_session() as session:
        report = db._get_report(session, report_id)
        is_owner = report.inspector_id == user["id"]
        is_assigned = report.reviewer_id == user["id"]
        is_admin = user["role"] in ADMIN_ROLES
        if not (is_owner or is_assigned or is_admin or db.is_reviewer(user)):
            raise PermissionDeniedError("You do not have access to this report's review")

        logs = session.query(AuditLog)\
            .filter(AuditLog.report_id == report.id, AuditLog.action.in_(REVIEW_HISTORY_ACTIONS))\
            .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())\
            .all()
        history = [log.to_dict() for log in logs]

        latest_feedback = None
        if report.status == "REVISION_REQUIRED":
            reviews = [h for h in history if h["action"] == AuditAction.REVIEWED.value]
            if reviews:
                latest = reviews[-1]
                latest_feedback = {
                    "reason": latest["details"].get("reason"),
                    "revision_items": latest["details"].get("revision_items", []),
                    "priority": latest["details"].get("priority"),
                    "reviewer_name": latest["user_name"],
                    "created_at": latest["created_at"],
                }

        unresolved = session.query(ReviewComment)\
            .filter(ReviewComment.report_id == report.id, ReviewComment.resolved.is_(False))\
            .order_by(ReviewComment.created_at.asc())\
            .all()

        return {
            "report": report.to_summary(),
            "status": report.status,
            "revision_round": report.revision_round or 0,
            "reviewer": report.reviewer.to_summary() if report.reviewer else None,
            "review_history": history,
            "latest_feedback": latest_feedback,
            "unresolved_comments": [c.to_dict() for c in unresolved],
            "comment_counts": _unresolved_comment_counts(session, report.id),
            "permissions": {
                "can_edit": is_owner and report.status in EDITABLE_STATUSES,
                "can_submit": is_owner and report.status in EDITABLE_STATUSES,
                "can_review": db.is_reviewer(user) and report.status in REVIEWABLE_STATUSES,
                "can_approve": db.is_reviewer(user) and report.status in REVIEWABLE_STATUSES,
            },
        }
