"""Tests for revision history reconstruction."""

from datetime import datetime

from revisions import build_revision_history


REPORT = {
    "id": "r1",
    "report_number": "RANZ-2025-00001",
    "status": "PENDING_REVIEW",
    "created_at": "2025-03-01T08:00:00",
    "revision_round": 2,
}
USERS = {"u1": {"id": "u1", "name": "Ivan Inspector", "email": "ivan@example.co.nz"}}


def log(action, at, details=None, user_id="u1"):
    return {"id": at, "action": action, "created_at": at, "details": details or {}, "user_id": user_id}


def test_no_submissions_gives_a_single_open_draft_round():
    history = build_revision_history(
        dict(REPORT, revision_round=0),
        [log("CREATED", "2025-03-01T08:00:01")],
        [],
        USERS,
        now=datetime(2025, 3, 2),
    )

    assert history["total_revisions"] == 1
    only = history["revisions"][0]
    assert only["label"] == "Initial Draft"
    assert only["is_active"] is True
    assert only["ended_at"] is None
    assert only["summary"]["other_changes"] == 1


def test_rounds_are_split_on_submission_and_ordered_newest_first():
    logs = [
        log("CREATED", "2025-03-01T08:00:01"),
        log("UPDATED", "2025-03-01T09:00:00", {"changes": [
            {"field": "client_name", "from": "Jane", "to": "Jane Client"},
        ]}),
        log("PHOTO_ADDED", "2025-03-01T09:30:00", {"filename": "roof.jpg"}),
        log("SUBMITTED", "2025-03-01T10:00:00", {"revision_round": 1}),
        log("STATUS_CHANGED", "2025-03-02T10:00:00", {"from": "UNDER_REVIEW", "to": "REVISION_REQUIRED"}),
        log("UPDATED", "2025-03-03T10:00:00", {"field": "declaration_signed", "from": False, "to": True}),
        log("SUBMITTED", "2025-03-04T10:00:00", {"revision_round": 2}),
    ]
    comments = [
        {"id": "c1", "comment": "Add ridge photo", "severity": "ISSUE", "revision_round": 1, "resolved": True},
        {"id": "c2", "comment": "Check gutter", "severity": "NOTE", "revision_round": 1, "resolved": False},
    ]

    history = build_revision_history(REPORT, logs, comments, USERS, now=datetime(2025, 3, 5))

    assert history["current_round"] == 2
    assert [r["round"] for r in history["revisions"]] == [2, 1, 0]

    draft = history["revisions"][2]
    assert draft["summary"]["field_changes"] == 1
    assert draft["summary"]["photos_added"] == 1
    assert draft["field_changes"][0] == {
        "field": "client_name",
        "from": "Jane",
        "to": "Jane Client",
        "changed_at": "2025-03-01T09:00:00",
        "changed_by": "Ivan Inspector",
    }
    assert draft["ended_at"] == "2025-03-01T10:00:00"

    first = history["revisions"][1]
    assert first["label"] == "Revision 1"
    assert first["summary"]["status_changes"] == 1
    assert first["summary"]["comments_received"] == 2
    assert first["summary"]["comments_resolved"] == 1
    assert first["field_changes"][0]["field"] == "declaration_signed"
    assert first["field_changes"][0]["from"] is None
    assert first["field_changes"][0]["to"] == "True"

    latest = history["revisions"][0]
    assert latest["is_active"] is True
    assert latest["summary"]["total_changes"] == 1


def test_unknown_user_is_reported_as_unknown():
    logs = [log("UPDATED", "2025-03-01T09:00:00", {"field": "status", "from": "DRAFT", "to": "IN_PROGRESS"},
                user_id="gone")]

    history = build_revision_history(REPORT, logs, [], USERS, now=datetime(2025, 3, 2))

    revision = history["revisions"][0]
    assert revision["field_changes"][0]["changed_by"] == "Unknown"
    assert revision["logs"][0]["user"]["name"] == "Unknown"
