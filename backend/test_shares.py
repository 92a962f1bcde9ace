"""Tests for tokenised report sharing."""

from datetime import datetime, timedelta

import pytest

import database as db
import shares
from errors import NotFoundError, ShareAccessError, PermissionDeniedError


NOW = datetime(2025, 6, 1, 12, 0)


def test_open_share_passes():
    shares.check_access({"is_active": True}, now=NOW)


def test_revoked_share_is_forbidden():
    with pytest.raises(ShareAccessError) as excinfo:
        shares.check_access({"is_active": False}, now=NOW)
    assert excinfo.value.status_code == 403
    assert str(excinfo.value) == "This share link has been revoked"


def test_expiry_accepts_iso_strings():
    with pytest.raises(ShareAccessError, match="expired"):
        shares.check_access({"expires_at": (NOW - timedelta(seconds=1)).isoformat()}, now=NOW)
    shares.check_access({"expires_at": (NOW + timedelta(days=1)).isoformat()}, now=NOW)


def test_password_required_then_checked():
    share = {"password_hash": shares.hash_password("s3cret")}

    with pytest.raises(ShareAccessError) as missing:
        shares.check_access(share, now=NOW)
    assert missing.value.status_code == 401
    assert missing.value.requires_password is True

    with pytest.raises(ShareAccessError, match="Invalid password"):
        shares.check_access(share, "wrong", now=NOW)

    shares.check_access(share, "s3cret", now=NOW)


def test_expiry_from_days():
    assert shares.expiry_from_days(None) is None
    assert shares.expiry_from_days(7, now=NOW) == NOW + timedelta(days=7)


def test_public_payload_hides_pdf_for_view_only():
    report = {"report_number": "RANZ-2025-00001", "pdf_url": "/media/x.pdf",
              "inspector": {"name": "Ivan", "email": "ivan@example.co.nz"}}

    view_only = shares.public_payload({"access_level": "VIEW_ONLY"}, report)
    assert "pdf_url" not in view_only
    assert view_only["report"]["inspector"] == {"name": "Ivan", "lbp_number": None, "qualifications": None}

    download = shares.public_payload({"access_level": "VIEW_DOWNLOAD"}, report)
    assert download["pdf_url"] == "/media/x.pdf"


def test_share_lifecycle(inspector, report):
    share = db.create_share(report["id"], inspector, {
        "recipient_email": "Lawyer@Example.co.nz",
        "access_level": "VIEW_DOWNLOAD",
        "password": "letmein",
        "expires_in_days": 30,
    })
    assert share["recipient_email"] == "lawyer@example.co.nz"

    with pytest.raises(ShareAccessError):
        db.access_share(share["token"])

    payload = db.access_share(share["token"], "letmein")
    assert payload["report"]["report_number"] == report["report_number"]
    assert db.list_shares(report["id"], inspector)[0]["view_count"] == 1

    db.revoke_share(report["id"], share["id"], inspector)
    with pytest.raises(ShareAccessError, match="revoked"):
        db.access_share(share["token"], "letmein")


def test_unknown_token_is_not_found():
    with pytest.raises(NotFoundError):
        db.access_share("no-such-token")


def test_only_owner_or_admin_can_share(report, reviewer, admin):
    with pytest.raises(PermissionDeniedError):
        db.create_share(report["id"], reviewer, {"recipient_email": "a@b.co"})

    share = db.create_share(report["id"], admin, {"recipient_email": "a@b.co"})
    assert share["access_level"] == "VIEW_ONLY"
