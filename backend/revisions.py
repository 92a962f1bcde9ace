"""
Revision history reconstruction.

A report's audit log is append-only. Each SUBMITTED entry closes one
revision round and opens the next, so grouping the log by submission
times recovers what changed between submissions.
"""

from typing import Dict, List, Any, Optional
from datetime import datetime


GROUPED_ACTIONS = {
    "UPDATED": "updates",
    "PHOTO_ADDED": "photos_added",
    "PHOTO_DELETED": "photos_deleted",
    "DEFECT_ADDED": "defects_added",
    "DEFECT_UPDATED": "defects_updated",
    "STATUS_CHANGED": "status_changes",
}


def _as_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _text_or_none(value) -> Optional[str]:
    return str(value) if value else None


def _submission_boundaries(report: Dict[str, Any], logs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Revision rounds as {round, start, end}; end is None for the open round."""
    submissions = sorted(
        (log for log in logs if log.get("action") == "SUBMITTED"),
        key=lambda log: log["created_at"],
    )
    created_at = _as_datetime(report.get("created_at"))

    if not submissions:
        return [{"round": 0, "start": created_at, "end": None}]

    boundaries = [{"round": 0, "start": created_at, "end": submissions[0]["created_at"]}]
    for index, log in enumerate(submissions):
        details = log.get("details") or {}
        next_log = submissions[index + 1] if index + 1 < len(submissions) else None
        boundaries.append({
            "round": details.get("revision_round") or index + 1,
            "start": log["created_at"],
            "end": next_log["created_at"] if next_log else None,
        })
    return boundaries


def _field_changes(log: Dict[str, Any], changed_by: str) -> List[Dict[str, Any]]:
    """Field-level changes recorded on one UPDATED log."""
    details = log.get("details") or {}
    changed_at = _iso(log["created_at"])
    changes = []

    if details.get("field"):
        changes.append({
            "field": str(details["field"]),
            "from": _text_or_none(details.get("from")),
            "to": _text_or_none(details.get("to")),
            "changed_at": changed_at,
            "changed_by": changed_by,
        })

    if isinstance(details.get("changes"), list):
        for change in details["changes"]:
            changes.append({
                "field": change.get("field"),
                "from": _text_or_none(change.get("from")),
                "to": _text_or_none(change.get("to")),
                "changed_at": changed_at,
                "changed_by": changed_by,
            })

    return changes


def build_revision_history(
    report: Dict[str, Any],
    logs: List[Dict[str, Any]],
    comments: List[Dict[str, Any]],
    users: Dict[str, Dict[str, Any]],
    now: datetime = None
) -> Dict[str, Any]:
    """
    Group a report's audit log into revision rounds.

    Args:
        report: Report dictionary (id, report_number, status, created_at, revision_round)
        logs: All audit log dictionaries for the report
        comments: Review comment dictionaries for the report
        users: Map of user id to user dictionary (for names)
        now: End of the open round (defaults to the current time)

    Returns:
        Dictionary with report_number, status, current_round, total_revisions
        and revisions ordered most recent first
    """
    now = now or datetime.utcnow()
    logs = [dict(log, created_at=_as_datetime(log.get("created_at"))) for log in logs]
    logs.sort(key=lambda log: log["created_at"])

    revisions = []
    for boundary in _submission_boundaries(report, logs):
        start = boundary["start"]
        end = boundary["end"] or now
        round_logs = [log for log in logs if start <= log["created_at"] < end]

        grouped = {name: [] for name in GROUPED_ACTIONS.values()}
        grouped["other"] = []
        for log in round_logs:
            action = log.get("action")
            if action in GROUPED_ACTIONS:
                grouped[GROUPED_ACTIONS[action]].append(log)
            elif action != "SUBMITTED":
                grouped["other"].append(log)

        field_changes = []
        for log in grouped["updates"]:
            user = users.get(log.get("user_id")) or {}
            field_changes.extend(_field_changes(log, user.get("name") or "Unknown"))

        round_comments = [c for c in comments if c.get("revision_round") == boundary["round"]]

        revisions.append({
            "round": boundary["round"],
            "label": "Initial Draft" if boundary["round"] == 0 else f"Revision {boundary['round']}",
            "started_at": _iso(start),
            "ended_at": _iso(boundary["end"]),
            "is_active": boundary["end"] is None,
            "summary": {
                "total_changes": len(round_logs),
                "field_changes": len(field_changes),
                "photos_added": len(grouped["photos_added"]),
                "photos_deleted": len(grouped["photos_deleted"]),
                "defects_added": len(grouped["defects_added"]),
                "defects_updated": len(grouped["defects_updated"]),
                "status_changes": len(grouped["status_changes"]),
                "other_changes": len(grouped["other"]),
                "comments_received": len(round_comments),
                "comments_resolved": len([c for c in round_comments if c.get("resolved")]),
            },
            "field_changes": field_changes,
            "comments": [
                {
                    "id": c.get("id"),
                    "comment": c.get("comment"),
                    "severity": c.get("severity"),
                    "resolved": c.get("resolved"),
                    "section": c.get("section"),
                    "reviewer_name": c.get("reviewer_name"),
                    "created_at": c.get("created_at"),
                }
                for c in round_comments
            ],
            "logs": [
                {
                    "id": log.get("id"),
                    "action": log.get("action"),
                    "details": log.get("details") or {},
                    "created_at": _iso(log["created_at"]),
                    "user": users.get(log.get("user_id")) or {
                        "id": log.get("user_id"), "name": "Unknown", "email": ""
                    },
                }
                for log in round_logs
            ],
        })

    revisions.reverse()
    return {
        "report_number": report.get("report_number"),
        "status": report.get("status"),
        "current_round": report.get("revision_round") or 0,
        "total_revisions": len(revisions),
        "revisions": revisions,
    }
