"""
Tokenised external sharing of reports.
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Dict, Any

from errors import ShareAccessError

TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def expiry_from_days(days, now: datetime = None):
    if not days:
        return None
    return (now or datetime.utcnow()) + timedelta(days=int(days))


def check_access(share: Dict[str, Any], password: str = None, now: datetime = None) -> None:
    """
    Verify a share link may be used.

    Args:
        share: Share dictionary including password_hash, is_active,
               revoked_at and expires_at (datetime or ISO string)
        password: Password supplied by the viewer, if any
        now: Current time (defaults to utcnow)

    Raises:
        ShareAccessError: 403 when revoked or expired, 401 when a password
                          is required or wrong
    """
    now = now or datetime.utcnow()

    if not share.get("is_active", True) or share.get("revoked_at"):
        raise ShareAccessError("This share link has been revoked", 403)

    expires_at = share.get("expires_at")
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at)
    if expires_at and expires_at < now:
        raise ShareAccessError("This share link has expired", 403)

    if share.get("password_hash"):
        if not password:
            raise ShareAccessError("Password required", 401, requires_password=True)
        if not secrets.compare_digest(hash_password(password), share["password_hash"]):
            raise ShareAccessError("Invalid password", 401, requires_password=True)


def public_payload(share: Dict[str, Any], report: Dict[str, Any]) -> Dict[str, Any]:
    """
    Report content visible through a share link.

    Internal ids and inspector contact details are left out; the PDF link is
    only included for VIEW_DOWNLOAD shares.
    """
    inspector = report.get("inspector") or {}
    payload = {
        "report": {
            "report_number": report.get("report_number"),
            "status": report.get("status"),
            "property_address": report.get("property_address"),
            "property_city": report.get("property_city"),
            "property_region": report.get("property_region"),
            "property_type": report.get("property_type"),
            "inspection_date": report.get("inspection_date"),
            "inspection_type": report.get("inspection_type"),
            "client_name": report.get("client_name"),
            "executive_summary": report.get("executive_summary"),
            "conclusions": report.get("conclusions"),
            "recommendations": report.get("recommendations"),
            "inspector": {
                "name": inspector.get("name"),
                "lbp_number": inspector.get("lbp_number"),
                "qualifications": inspector.get("qualifications"),
            },
            "defects": [
                {
                    "defect_number": d.get("defect_number"),
                    "title": d.get("title"),
                    "location": d.get("location"),
                    "severity": d.get("severity"),
                    "classification": d.get("classification"),
                    "description": d.get("description"),
                    "recommendation": d.get("recommendation"),
                }
                for d in report.get("defects") or []
            ],
            "photos": [
                {
                    "url": p.get("url"),
                    "thumbnail_url": p.get("thumbnail_url"),
                    "caption": p.get("caption"),
                    "photo_type": p.get("photo_type"),
                }
                for p in report.get("photos") or []
            ],
        },
        "access_level": share.get("access_level"),
        "recipient_name": share.get("recipient_name"),
        "expires_at": share.get("expires_at"),
    }
    if share.get("access_level") == "VIEW_DOWNLOAD":
        payload["pdf_url"] = report.get("pdf_url")
    return payload
