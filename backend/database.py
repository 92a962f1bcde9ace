"""
Database connection, session management and data access for the Roofing
Reports application.

Public functions open their own session and return plain dictionaries.
Helpers prefixed with an underscore, and record_audit, take the caller's
session so a whole operation commits (or rolls back) together.
"""

import time
import logging
from contextlib import contextmanager
from datetime import datetime, timezone

from flask import has_request_context, request
from sqlalchemy import create_engine, func, or_, text
from sqlalchemy.orm import sessionmaker, scoped_session

from config import DATABASE_URL
from constants import (
    ADMIN_ROLES,
    REVIEWER_ROLES,
    EDITABLE_STATUSES,
    ASSIGNMENT_TRANSITIONS,
    AuditAction,
)
from errors import NotFoundError, PermissionDeniedError, WorkflowError
from models import (
    Base,
    User,
    Report,
    Photo,
    Defect,
    RoofElement,
    ComplianceAssessment,
    AuditLog,
    ReviewComment,
    ReportShare,
    Assignment,
    LBPComplaint,
)
import checklists
import numbering
import shares

logger = logging.getLogger(__name__)

# Create engine
engine = create_engine(DATABASE_URL, echo=False)

# Create session factory
session_factory = sessionmaker(bind=engine, expire_on_commit=False)
Session = scoped_session(session_factory)


def init_db():
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(engine)
    logger.info(f"Database initialized at {DATABASE_URL}")


def drop_db():
    """Drop all tables (use with caution!)."""
    Base.metadata.drop_all(engine)
    logger.info("All tables dropped")


@contextmanager
def get_session():
    """
    Context manager for database sessions.

    Usage:
        with get_session() as session:
            session.query(Report).all()
    """
    session = Session()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def check_database() -> dict:
    """
    Run a trivial query and time it.

    Returns:
        {"status": "connected", "latency_ms": float}
    """
    started = time.perf_counter()
    with get_session() as session:
        session.execute(text("SELECT 1"))
    return {
        "status": "connected",
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
    }


def _paginate(query, page: int, per_page: int):
    page = max(page or 1, 1)
    per_page = min(max(per_page or 20, 1), 100)
    total = query.count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    pagination = {
        "page": page,
        "per_page": per_page,
        "total": total,
        "pages": (total + per_page - 1) // per_page,
    }
    return items, pagination


def _naive_utc(value):
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _plain(value):
    """JSON-safe form of a column value for change records."""
    value = _naive_utc(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _apply_changes(record, changes: dict) -> list:
    """
    Set attributes on a record, returning [{field, from, to}] for the
    fields whose value actually changed.
    """
    changed = []
    for field, new_value in changes.items():
        new_value = _naive_utc(new_value)
        old_value = getattr(record, field)
        if _plain(old_value) == _plain(new_value):
            continue
        setattr(record, field, new_value)
        changed.append({"field": field, "from": _plain(old_value), "to": _plain(new_value)})
    return changed


# =============================================================================
# AUDIT LOG
# =============================================================================

def record_audit(session, report_id, user_id, action, details: dict = None) -> AuditLog:
    """
    Append an audit log entry within the caller's session.

    Args:
        session: Active session
        report_id: Report the action applies to (None for report deletions)
        user_id: Acting user
        action: AuditAction or its string value
        details: JSON details
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
        user_agent = request.headers.get('User-Agent')

    log = AuditLog(
        report_id=report_id,
        user_id=user_id,
        action=action.value if isinstance(action, AuditAction) else action,
        details=details or {},
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent else None,
    )
    session.add(log)
    return log


def get_report_audit_log(report_id: str, user: dict) -> list:
    """Audit log entries for a report, oldest first."""
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        logs = session.query(AuditLog)\
            .filter(AuditLog.report_id == report_id)\
            .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())\
            .all()
        return [log.to_dict() for log in logs]


def list_audit_logs(action: str = None, user_id: str = None, report_id: str = None,
                    page: int = 1, per_page: int = 50) -> dict:
    """
    All audit logs across reports (admin view), newest first.

    Returns:
        Dictionary with logs and pagination info
    """
    with get_session() as session:
        query = session.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action == action)
        if user_id:
            query = query.filter(AuditLog.user_id == user_id)
        if report_id:
            query = query.filter(AuditLog.report_id == report_id)

        logs, pagination = _paginate(
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()), page, per_page
        )
        return {"logs": [log.to_dict() for log in logs], "pagination": pagination}


# =============================================================================
# PERMISSIONS
# =============================================================================

def is_reviewer(user: dict) -> bool:
    return user.get("role") in REVIEWER_ROLES


def is_admin(user: dict) -> bool:
    return user.get("role") in ADMIN_ROLES


def _get_report(session, report_id: str) -> Report:
    report = session.query(Report).filter(Report.id == report_id).first()
    if not report:
        raise NotFoundError("Report not found")
    return report


def _check_can_view(user: dict, report: Report) -> None:
    """Inspectors see their own reports; reviewer roles see all."""
    if report.inspector_id != user["id"] and not is_reviewer(user):
        raise NotFoundError("Report not found")


def _check_can_edit(user: dict, report: Report) -> None:
    _check_can_view(user, report)
    if report.inspector_id != user["id"] and not is_admin(user):
        raise PermissionDeniedError("Only the report's inspector can edit this report")
    if report.status not in EDITABLE_STATUSES:
        raise WorkflowError(f"Report cannot be edited while {report.status}")


def _user_map(session, user_ids) -> dict:
    ids = [uid for uid in set(user_ids) if uid]
    if not ids:
        return {}
    users = session.query(User).filter(User.id.in_(ids)).all()
    return {u.id: {"id": u.id, "name": u.name, "email": u.email} for u in users}


# =============================================================================
# USERS
# =============================================================================

def get_user(user_id: str) -> dict:
    with get_session() as session:
        user = session.query(User).filter(User.id == user_id).first()
        return user.to_dict() if user else None


def get_user_by_external_id(external_id: str) -> dict:
    """
    Get a user by identity-provider id.

    Returns:
        Dictionary representation of the user, or None if not found
    """
    with get_session() as session:
        user = session.query(User).filter(User.external_id == external_id).first()
        return user.to_dict() if user else None


def create_user(external_id: str, email: str, name: str, role: str = "INSPECTOR",
                status: str = "ACTIVE", **profile) -> dict:
    """Create a user record (used by identity sync and seeding)."""
    with get_session() as session:
        user = User(external_id=external_id, email=email, name=name, role=role,
                    status=status, **profile)
        session.add(user)
        session.flush()
        return user.to_dict()


def upsert_user_from_identity(external_id: str, email: str, name: str) -> dict:
    """
    Create or refresh a user from an identity-provider event.

    New users start PENDING_ACTIVATION with the INSPECTOR role until an
    administrator activates them.
    """
    with get_session() as session:
        user = session.query(User).filter(User.external_id == external_id).first()
        if user:
            user.email = email or user.email
            user.name = name or user.name
        else:
            user = User(
                external_id=external_id,
                email=email,
                name=name or email,
                role="INSPECTOR",
                status="PENDING_ACTIVATION",
            )
            session.add(user)
        session.flush()
        return user.to_dict()


def deactivate_user_by_external_id(external_id: str) -> bool:
    with get_session() as session:
        user = session.query(User).filter(User.external_id == external_id).first()
        if not user:
            return False
        user.status = "DEACTIVATED"
        return True


def update_profile(user_id: str, changes: dict) -> dict:
    with get_session() as session:
        user = session.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        _apply_changes(user, changes)
        session.flush()
        return user.to_dict()


def list_users(role: str = None, status: str = None, search: str = None,
               page: int = 1, per_page: int = 20) -> dict:
    """
    List users with optional filters.

    Returns:
        Dictionary with users and pagination info
    """
    with get_session() as session:
        query = session.query(User)
        if role:
            query = query.filter(User.role == role)
        if status:
            query = query.filter(User.status == status)
        if search:
            query = query.filter(or_(User.name.ilike(f"%{search}%"), User.email.ilike(f"%{search}%")))

        users, pagination = _paginate(query.order_by(User.created_at.desc()), page, per_page)
        return {"users": [u.to_dict() for u in users], "pagination": pagination}


def admin_update_user(admin: dict, user_id: str, changes: dict) -> dict:
    """
    Change a user's role or status.

    Raises:
        PermissionDeniedError: Changing your own role/status, or granting an
                               admin role without being SUPER_ADMIN
    """
    with get_session() as session:
        user = session.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        if user.id == admin["id"]:
            raise PermissionDeniedError("You cannot change your own role or status")
        if changes.get("role") in ADMIN_ROLES and admin["role"] != "SUPER_ADMIN":
            raise PermissionDeniedError("Only super administrators can grant administrator roles")
        if user.role == "SUPER_ADMIN" and admin["role"] != "SUPER_ADMIN":
            raise PermissionDeniedError("Only super administrators can modify super administrators")

        changed = _apply_changes(user, changes)
        session.flush()
        if changed:
            logger.info(f"User {user.id} updated by {admin['id']}: {changed}")
        return user.to_dict()


def list_public_inspectors(region: str = None) -> list:
    """Active, publicly listed inspectors, optionally serving a region."""
    with get_session() as session:
        inspectors = session.query(User)\
            .filter(User.role == "INSPECTOR", User.status == "ACTIVE", User.is_public_listed.is_(True))\
            .order_by(User.name.asc())\
            .all()
        if region:
            inspectors = [u for u in inspectors if region in (u.service_areas or [])]
        return [
            {
                "id": u.id,
                "name": u.name,
                "company": u.company,
                "qualifications": u.qualifications,
                "lbp_number": u.lbp_number,
                "years_experience": u.years_experience,
                "specialisations": u.specialisations or [],
                "service_areas": u.service_areas or [],
                "availability_status": u.availability_status,
            }
            for u in inspectors
        ]


# =============================================================================
# REPORTS
# =============================================================================

def _new_report(session, user: dict, data: dict, **details) -> Report:
    report = Report(
        report_number=numbering.next_report_number(session),
        status="DRAFT",
        inspector_id=user["id"],
        **data
    )
    session.add(report)
    session.flush()
    details["report_number"] = report.report_number
    record_audit(session, report.id, user["id"], AuditAction.CREATED, details)
    return report


def create_report(user: dict, data: dict) -> dict:
    """
    Create a draft report owned by the user.

    Args:
        user: Acting user dictionary
        data: Validated report fields

    Returns:
        Report dictionary
    """
    with get_session() as session:
        report = _new_report(session, user, data)
        logger.info(f"Report {report.report_number} created by {user['id']}")
        return report.to_dict()


DUPLICATED_REPORT_FIELDS = [
    "property_address", "property_city", "property_region", "property_postcode", "property_type",
    "building_age", "inspection_type", "access_method", "limitations",
    "client_name", "client_email", "client_phone", "client_company",
    "engaging_party", "scope_of_works", "methodology",
]
DUPLICATED_ELEMENT_FIELDS = [
    "element_type", "location", "cladding_type", "cladding_profile", "material",
    "manufacturer", "colour", "pitch", "area", "age_years",
]
DUPLICATED_DEFECT_FIELDS = [
    "title", "description", "location", "classification", "severity",
    "code_reference", "cop_reference", "recommendation", "priority_level",
]
DUPLICATE_OPTIONS = ["include_defects", "include_roof_elements", "include_compliance_assessment"]


def duplicate_report(report_id: str, user: dict, options: dict) -> dict:
    """
    Start a new draft from an existing report.

    Property, client and scope fields are copied, with any overrides in
    `options` applied. Roof elements are copied without their condition
    assessment; defects are copied as templates without observations or
    photos; the compliance assessment is copied as an empty checklist.
    Photos, weather, declaration and workflow state are never copied.

    Returns:
        Dictionary with the new report and the source report
    """
    with get_session() as session:
        source = _get_report(session, report_id)
        _check_can_view(user, source)
        if source.inspector_id != user["id"] and not is_admin(user):
            raise PermissionDeniedError("Only the report's inspector can duplicate this report")

        data = {field: getattr(source, field) for field in DUPLICATED_REPORT_FIELDS}
        for field, value in options.items():
            if field not in DUPLICATE_OPTIONS and value is not None:
                data[field] = value
        data["inspection_date"] = options.get("inspection_date") or datetime.utcnow()

        flags = {key: options.get(key) for key in DUPLICATE_OPTIONS}
        report = _new_report(session, user, data, type="duplicate", source_report_id=source.id,
                             source_report_number=source.report_number, options=flags)

        if flags["include_roof_elements"]:
            for element in source.roof_elements:
                session.add(RoofElement(
                    report_id=report.id,
                    **{field: getattr(element, field) for field in DUPLICATED_ELEMENT_FIELDS}
                ))
        if flags["include_defects"]:
            for number, defect in enumerate(source.defects, start=1):
                session.add(Defect(
                    report_id=report.id,
                    defect_number=number,
                    observation="",
                    **{field: getattr(defect, field) for field in DUPLICATED_DEFECT_FIELDS}
                ))
        if flags["include_compliance_assessment"] and source.compliance_assessment:
            session.add(ComplianceAssessment(
                report_id=report.id,
                checklist_results={},
                overall_status=checklists.derive_compliance_status({}),
            ))
        session.flush()
        session.refresh(report)

        logger.info(f"Report {source.report_number} duplicated as {report.report_number} by {user['id']}")
        return {
            "report": report.to_dict(),
            "source_report": {"id": source.id, "report_number": source.report_number},
        }


def get_report(report_id: str, user: dict) -> dict:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        return report.to_dict()


def list_reports(user: dict, status: str = None, search: str = None, inspector_id: str = None,
                 page: int = 1, per_page: int = 20) -> dict:
    """
    List reports visible to the user.

    Returns:
        Dictionary with reports and pagination info
    """
    with get_session() as session:
        query = session.query(Report)
        if not is_reviewer(user):
            query = query.filter(Report.inspector_id == user["id"])
        elif inspector_id:
            query = query.filter(Report.inspector_id == inspector_id)
        if status:
            query = query.filter(Report.status.in_(status.split(',')))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Report.report_number.ilike(pattern),
                Report.property_address.ilike(pattern),
                Report.client_name.ilike(pattern),
            ))

        reports, pagination = _paginate(query.order_by(Report.updated_at.desc()), page, per_page)
        return {"reports": [r.to_summary() for r in reports], "pagination": pagination}


def get_reports_for_export(user: dict, status: str = None, report_ids: list = None) -> list:
    with get_session() as session:
        query = session.query(Report)
        if not is_reviewer(user):
            query = query.filter(Report.inspector_id == user["id"])
        if status:
            query = query.filter(Report.status == status)
        if report_ids:
            query = query.filter(Report.id.in_(report_ids))
        return [r.to_dict() for r in query.order_by(Report.created_at.asc()).all()]


def update_report(report_id: str, user: dict, changes: dict) -> dict:
    """
    Update report fields, logging the field-level differences.

    Returns:
        Report dictionary
    """
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_edit(user, report)

        changed = _apply_changes(report, changes)
        if changed:
            record_audit(session, report.id, user["id"], AuditAction.UPDATED, {"changes": changed})
        session.flush()
        return report.to_dict()


def sign_declaration(report_id: str, user: dict, signature_url: str = None, expert_declaration: dict = None,
                     has_conflict: bool = False, conflict_disclosure: str = None) -> dict:
    """Record the inspector's signed declaration, with the expert witness items when given."""
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_edit(user, report)
        if report.inspector_id != user["id"]:
            raise PermissionDeniedError("Only the report's inspector can sign the declaration")

        report.declaration_signed = True
        report.signed_at = datetime.utcnow()
        if signature_url:
            report.signature_url = signature_url
        report.expert_declaration = expert_declaration
        report.has_conflict = has_conflict
        report.conflict_disclosure = conflict_disclosure if has_conflict else None
        record_audit(session, report.id, user["id"], AuditAction.UPDATED, {
            "field": "declaration_signed", "from": False, "to": True,
        })
        session.flush()
        return report.to_dict()


def delete_report(report_id: str, user: dict) -> dict:
    """
    Delete a report and its children.

    Admins may delete any report; an inspector may delete their own draft.

    Returns:
        Dictionary with the deleted report number and the storage URLs that
        belonged to it
    """
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)

        is_owner_draft = report.inspector_id == user["id"] and report.status == "DRAFT"
        if not is_admin(user) and not is_owner_draft:
            raise PermissionDeniedError("Only draft reports can be deleted by their inspector")

        complaint = session.query(LBPComplaint).filter(LBPComplaint.report_id == report.id).first()
        if complaint:
            raise WorkflowError(
                f"Report is referenced by LBP complaint {complaint.complaint_number} and cannot be deleted"
            )

        urls = [report.pdf_url, report.signature_url]
        for photo in report.photos:
            urls.extend([photo.url, photo.thumbnail_url])

        report_number = report.report_number
        session.query(Assignment).filter(Assignment.report_id == report.id)\
            .update({Assignment.report_id: None}, synchronize_session=False)
        session.delete(report)
        record_audit(session, None, user["id"], AuditAction.DELETED, {
            "report_id": report_id,
            "report_number": report_number,
        })
        logger.info(f"Report {report_number} deleted by {user['id']}")
        return {"report_number": report_number, "urls": [u for u in urls if u]}


def record_report_pdf(report_id: str, user: dict, pdf_url: str, pdf_hash: str) -> dict:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        report.pdf_url = pdf_url
        report.pdf_hash = pdf_hash
        report.pdf_generated_at = datetime.utcnow()
        record_audit(session, report.id, user["id"], AuditAction.PDF_GENERATED, {
            "pdf_url": pdf_url,
            "pdf_hash": pdf_hash,
        })
        session.flush()
        return report.to_dict(include_children=False)


def record_evidence_export(report_id: str, user: dict, filename: str, url: str, package_hash: str) -> None:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        record_audit(session, report.id, user["id"], AuditAction.EVIDENCE_EXPORTED, {
            "filename": filename,
            "url": url,
            "hash": package_hash,
        })


# =============================================================================
# PHOTOS
# =============================================================================

def _check_child_link(session, report: Report, defect_id=None, roof_element_id=None):
    if defect_id:
        defect = session.query(Defect).filter(Defect.id == defect_id).first()
        if not defect or defect.report_id != report.id:
            raise ValueError("Defect does not belong to this report")
    if roof_element_id:
        element = session.query(RoofElement).filter(RoofElement.id == roof_element_id).first()
        if not element or element.report_id != report.id:
            raise ValueError("Roof element does not belong to this report")


def add_photo(report_id: str, user: dict, meta: dict, stored: dict) -> dict:
    """
    Record an uploaded photo.

    Args:
        report_id: Report the photo belongs to
        user: Uploading user
        meta: Validated form fields (photo_type, caption, links, sort order)
        stored: Storage and evidence data: filename, original_filename,
                mime_type, file_size, url, thumbnail_url, original_hash, exif

    Returns:
        Photo dictionary
    """
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_edit(user, report)
        _check_child_link(session, report, meta.get("defect_id"), meta.get("roof_element_id"))

        sort_order = meta.get("sort_order")
        if sort_order is None:
            sort_order = session.query(Photo).filter(Photo.report_id == report.id).count()

        photo = Photo(
            report_id=report.id,
            uploaded_by_id=user["id"],
            photo_type=meta.get("photo_type") or "GENERAL",
            caption=meta.get("caption"),
            defect_id=meta.get("defect_id"),
            roof_element_id=meta.get("roof_element_id"),
            scale_reference=meta.get("scale_reference"),
            sort_order=sort_order,
            filename=stored["filename"],
            original_filename=stored.get("original_filename"),
            mime_type=stored.get("mime_type"),
            file_size=stored.get("file_size", 0),
            url=stored["url"],
            thumbnail_url=stored.get("thumbnail_url"),
            original_hash=stored.get("original_hash"),
            **(stored.get("exif") or {})
        )
        session.add(photo)
        session.flush()
        record_audit(session, report.id, user["id"], AuditAction.PHOTO_ADDED, {
            "photo_id": photo.id,
            "filename": photo.original_filename,
            "original_hash": photo.original_hash,
        })
        return photo.to_dict()


def list_photos(report_id: str, user: dict) -> list:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        return [p.to_dict() for p in report.photos]


def _get_photo(session, photo_id: str) -> Photo:
    photo = session.query(Photo).filter(Photo.id == photo_id).first()
    if not photo:
        raise NotFoundError("Photo not found")
    return photo


def update_photo(photo_id: str, user: dict, changes: dict) -> dict:
    with get_session() as session:
        photo = _get_photo(session, photo_id)
        _check_can_edit(user, photo.report)
        _check_child_link(session, photo.report, changes.get("defect_id"), changes.get("roof_element_id"))

        changed = _apply_changes(photo, changes)
        if changed:
            record_audit(session, photo.report_id, user["id"], AuditAction.UPDATED, {
                "photo_id": photo.id,
                "changes": [dict(c, field=f"photo.{c['field']}") for c in changed],
            })
        session.flush()
        return photo.to_dict()


def delete_photo(photo_id: str, user: dict) -> dict:
    """Delete a photo record; returns it so the caller can remove stored files."""
    with get_session() as session:
        photo = _get_photo(session, photo_id)
        _check_can_edit(user, photo.report)
        data = photo.to_dict()
        record_audit(session, photo.report_id, user["id"], AuditAction.PHOTO_DELETED, {
            "photo_id": photo.id,
            "filename": photo.original_filename,
        })
        session.delete(photo)
        return data


def get_photo(photo_id: str, user: dict) -> dict:
    with get_session() as session:
        photo = _get_photo(session, photo_id)
        _check_can_view(user, photo.report)
        return photo.to_dict()


def mark_photo_verification(photo_id: str, user: dict, computed_hash: str) -> dict:
    """
    Compare a freshly computed hash of the stored original with the hash
    recorded at upload.

    Returns:
        {"photo_id", "verified", "original_hash", "computed_hash"}
    """
    with get_session() as session:
        photo = _get_photo(session, photo_id)
        _check_can_view(user, photo.report)
        verified = bool(photo.original_hash) and photo.original_hash == computed_hash
        photo.hash_verified = verified
        if not verified:
            logger.warning(f"Hash mismatch for photo {photo.id}")
        return {
            "photo_id": photo.id,
            "verified": verified,
            "original_hash": photo.original_hash,
            "computed_hash": computed_hash,
        }


# =============================================================================
# DEFECTS
# =============================================================================

def _link_defect_photos(session, report: Report, defect: Defect, photo_ids) -> None:
    if photo_ids is None:
        return
    photos = session.query(Photo).filter(Photo.id.in_(photo_ids)).all() if photo_ids else []
    if any(p.report_id != report.id for p in photos) or len(photos) != len(set(photo_ids)):
        raise ValueError("Photos must belong to this report")
    for photo in list(defect.photos):
        if photo.id not in photo_ids:
            photo.defect_id = None
    for photo in photos:
        photo.defect_id = defect.id


def add_defect(report_id: str, user: dict, data: dict) -> dict:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_edit(user, report)
        _check_child_link(session, report, roof_element_id=data.get("roof_element_id"))

        photo_ids = data.pop("photo_ids", None)
        highest = session.query(func.max(Defect.defect_number))\
            .filter(Defect.report_id == report.id).scalar() or 0
        defect = Defect(report_id=report.id, defect_number=highest + 1, **data)
        session.add(defect)
        session.flush()
        _link_defect_photos(session, report, defect, photo_ids)
        record_audit(session, report.id, user["id"], AuditAction.DEFECT_ADDED, {
            "defect_id": defect.id,
            "defect_number": defect.defect_number,
            "title": defect.title,
            "severity": defect.severity,
        })
        session.flush()
        session.refresh(defect)
        return defect.to_dict()


def list_defects(report_id: str, user: dict) -> list:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        return [d.to_dict() for d in report.defects]


def _get_defect(session, defect_id: str) -> Defect:
    defect = session.query(Defect).filter(Defect.id == defect_id).first()
    if not defect:
        raise NotFoundError("Defect not found")
    return defect


def update_defect(defect_id: str, user: dict, changes: dict) -> dict:
    with get_session() as session:
        defect = _get_defect(session, defect_id)
        _check_can_edit(user, defect.report)
        _check_child_link(session, defect.report, roof_element_id=changes.get("roof_element_id"))

        photo_ids = changes.pop("photo_ids", None)
        changed = _apply_changes(defect, changes)
        _link_defect_photos(session, defect.report, defect, photo_ids)
        if changed or photo_ids is not None:
            record_audit(session, defect.report_id, user["id"], AuditAction.DEFECT_UPDATED, {
                "defect_id": defect.id,
                "defect_number": defect.defect_number,
                "changes": changed,
            })
        session.flush()
        session.refresh(defect)
        return defect.to_dict()


def delete_defect(defect_id: str, user: dict) -> bool:
    with get_session() as session:
        defect = _get_defect(session, defect_id)
        _check_can_edit(user, defect.report)
        record_audit(session, defect.report_id, user["id"], AuditAction.DEFECT_DELETED, {
            "defect_id": defect.id,
            "defect_number": defect.defect_number,
            "title": defect.title,
        })
        for photo in list(defect.photos):
            photo.defect_id = None
        session.delete(defect)
        return True


# =============================================================================
# ROOF ELEMENTS
# =============================================================================

def add_roof_elements(report_id: str, user: dict, elements: list) -> list:
    """Create one or more roof elements in a single transaction."""
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_edit(user, report)

        created = []
        for data in elements:
            element = RoofElement(report_id=report.id, **data)
            session.add(element)
            session.flush()
            record_audit(session, report.id, user["id"], AuditAction.ELEMENT_ADDED, {
                "element_id": element.id,
                "element_type": element.element_type,
                "location": element.location,
            })
            created.append(element.to_dict())
        return created


def list_roof_elements(report_id: str, user: dict) -> list:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        return [e.to_dict() for e in report.roof_elements]


def _get_element(session, element_id: str) -> RoofElement:
    element = session.query(RoofElement).filter(RoofElement.id == element_id).first()
    if not element:
        raise NotFoundError("Roof element not found")
    return element


def update_roof_element(element_id: str, user: dict, changes: dict) -> dict:
    with get_session() as session:
        element = _get_element(session, element_id)
        _check_can_edit(user, element.report)
        changed = _apply_changes(element, changes)
        if changed:
            record_audit(session, element.report_id, user["id"], AuditAction.ELEMENT_UPDATED, {
                "element_id": element.id,
                "changes": changed,
            })
        session.flush()
        return element.to_dict()


def delete_roof_element(element_id: str, user: dict) -> bool:
    with get_session() as session:
        element = _get_element(session, element_id)
        _check_can_edit(user, element.report)
        session.query(Defect).filter(Defect.roof_element_id == element.id)\
            .update({Defect.roof_element_id: None}, synchronize_session=False)
        session.query(Photo).filter(Photo.roof_element_id == element.id)\
            .update({Photo.roof_element_id: None}, synchronize_session=False)
        record_audit(session, element.report_id, user["id"], AuditAction.ELEMENT_DELETED, {
            "element_id": element.id,
            "element_type": element.element_type,
        })
        session.delete(element)
        return True


# =============================================================================
# COMPLIANCE
# =============================================================================

def get_compliance(report_id: str, user: dict) -> dict:
    """
    Compliance assessment with a per-checklist summary.

    Returns:
        Dictionary with assessment (or None) and summaries
    """
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        assessment = report.compliance_assessment
        results = assessment.checklist_results if assessment else {}
        return {
            "assessment": assessment.to_dict() if assessment else None,
            "summaries": [checklists.summarise_checklist(key, items) for key, items in (results or {}).items()],
        }


def save_compliance(report_id: str, user: dict, data: dict) -> dict:
    """
    Store checklist results. Checklists in the payload replace the stored
    results for the same checklist; others are kept.
    """
    results = data.get("checklist_results") or {}
    results = checklists.validate_checklist_results(results)

    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_edit(user, report)

        assessment = report.compliance_assessment
        if not assessment:
            assessment = ComplianceAssessment(report_id=report.id, checklist_results={})
            session.add(assessment)

        merged = dict(assessment.checklist_results or {})
        merged.update(results)
        assessment.checklist_results = merged
        if "non_compliance_summary" in data:
            assessment.non_compliance_summary = data["non_compliance_summary"]
        assessment.overall_status = checklists.derive_compliance_status(merged)

        record_audit(session, report.id, user["id"], AuditAction.COMPLIANCE_UPDATED, {
            "checklists": sorted(results.keys()),
            "overall_status": assessment.overall_status,
        })
        session.flush()
        return assessment.to_dict()


# =============================================================================
# REVIEW COMMENTS
# =============================================================================

def add_comment(report_id: str, user: dict, data: dict) -> dict:
    with get_session() as session:
        report = _get_report(session, report_id)
        if not is_reviewer(user):
            raise PermissionDeniedError("Only reviewers can add review comments")

        comment = ReviewComment(
            report_id=report.id,
            reviewer_id=user["id"],
            revision_round=report.revision_round or 1,
            **data
        )
        session.add(comment)
        session.flush()
        record_audit(session, report.id, user["id"], AuditAction.COMMENT_ADDED, {
            "comment_id": comment.id,
            "severity": comment.severity,
            "section": comment.section,
        })
        return comment.to_dict()


def list_comments(report_id: str, user: dict, unresolved_only: bool = False) -> list:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        query = session.query(ReviewComment).filter(ReviewComment.report_id == report.id)
        if unresolved_only:
            query = query.filter(ReviewComment.resolved.is_(False))
        return [c.to_dict() for c in query.order_by(ReviewComment.created_at.asc()).all()]


def resolve_comment(report_id: str, comment_id: str, user: dict) -> dict:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        comment = session.query(ReviewComment)\
            .filter(ReviewComment.id == comment_id, ReviewComment.report_id == report.id)\
            .first()
        if not comment:
            raise NotFoundError("Comment not found")
        comment.resolved = True
        comment.resolved_at = datetime.utcnow()
        session.flush()
        return comment.to_dict()


# =============================================================================
# REVISIONS AND EVIDENCE INPUTS
# =============================================================================

def get_revision_data(report_id: str, user: dict) -> dict:
    """
    Everything needed to rebuild a report's revision history.

    Returns:
        Dictionary with report, logs, comments and users
    """
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        logs = session.query(AuditLog)\
            .filter(AuditLog.report_id == report.id)\
            .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())\
            .all()
        comments = session.query(ReviewComment)\
            .filter(ReviewComment.report_id == report.id)\
            .order_by(ReviewComment.created_at.asc())\
            .all()
        return {
            "report": report.to_dict(include_children=False),
            "logs": [log.to_dict() for log in logs],
            "comments": [c.to_dict() for c in comments],
            "users": _user_map(session, [log.user_id for log in logs]),
        }


def get_evidence_data(report_id: str, user: dict) -> dict:
    """Photos and upload/delete logs for the integrity summary."""
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        photos = session.query(Photo)\
            .filter(Photo.report_id == report.id)\
            .order_by(Photo.uploaded_at.asc())\
            .all()
        logs = session.query(AuditLog)\
            .filter(AuditLog.report_id == report.id,
                    AuditLog.action.in_([AuditAction.PHOTO_ADDED.value, AuditAction.PHOTO_DELETED.value]))\
            .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())\
            .all()
        return {
            "photos": [p.to_dict() for p in photos],
            "upload_logs": [log.to_dict() for log in logs],
            "users": _user_map(session, [log.user_id for log in logs]),
        }


# =============================================================================
# SHARES
# =============================================================================

def create_share(report_id: str, user: dict, data: dict) -> dict:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        if report.inspector_id != user["id"] and not is_admin(user):
            raise PermissionDeniedError("Only the report's inspector can share this report")

        share = ReportShare(
            report_id=report.id,
            token=shares.generate_token(),
            recipient_email=data["recipient_email"].lower(),
            recipient_name=data.get("recipient_name"),
            access_level=data.get("access_level") or "VIEW_ONLY",
            password_hash=shares.hash_password(data["password"]) if data.get("password") else None,
            expires_at=shares.expiry_from_days(data.get("expires_in_days")),
            created_by_id=user["id"],
        )
        session.add(share)
        session.flush()
        record_audit(session, report.id, user["id"], AuditAction.SHARED, {
            "share_id": share.id,
            "recipient_email": share.recipient_email,
            "access_level": share.access_level,
            "expires_at": _plain(share.expires_at),
        })
        return share.to_dict()


def list_shares(report_id: str, user: dict) -> list:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        return [s.to_dict() for s in sorted(report.shares, key=lambda s: s.created_at, reverse=True)]


def revoke_share(report_id: str, share_id: str, user: dict) -> dict:
    with get_session() as session:
        report = _get_report(session, report_id)
        _check_can_view(user, report)
        if report.inspector_id != user["id"] and not is_admin(user):
            raise PermissionDeniedError("Only the report's inspector can revoke shares")
        share = session.query(ReportShare)\
            .filter(ReportShare.id == share_id, ReportShare.report_id == report.id)\
            .first()
        if not share:
            raise NotFoundError("Share not found")
        share.is_active = False
        share.revoked_at = datetime.utcnow()
        session.flush()
        return share.to_dict()


def access_share(token: str, password: str = None) -> dict:
    """
    Open a shared report by token.

    Raises:
        NotFoundError: Unknown token
        ShareAccessError: Revoked, expired or password problems
    """
    with get_session() as session:
        share = session.query(ReportShare).filter(ReportShare.token == token).first()
        if not share:
            raise NotFoundError("Share link not found")

        share_data = {
            "is_active": share.is_active,
            "revoked_at": share.revoked_at,
            "expires_at": share.expires_at,
            "password_hash": share.password_hash,
        }
        shares.check_access(share_data, password)

        share.view_count = (share.view_count or 0) + 1
        share.last_viewed_at = datetime.utcnow()
        session.flush()
        return shares.public_payload(share.to_dict(), share.report.to_dict())


# =============================================================================
# ASSIGNMENTS AND INSPECTION REQUESTS
# =============================================================================

def _select_inspector(session, region: str = None):
    """
    Pick an inspector for a public request: an available, publicly listed
    inspector serving the region (most experienced first), else any active
    inspector.
    """
    candidates = session.query(User)\
        .filter(User.role == "INSPECTOR", User.status == "ACTIVE",
                User.is_public_listed.is_(True), User.availability_status == "AVAILABLE")\
        .order_by(User.created_at.asc())\
        .all()
    if region:
        candidates = [u for u in candidates if region in (u.service_areas or [])]
    if candidates:
        return sorted(candidates, key=lambda u: -(u.years_experience or 0))[0]

    return session.query(User)\
        .filter(User.role == "INSPECTOR", User.status == "ACTIVE")\
        .order_by(User.created_at.asc())\
        .first()


def create_inspection_request(data: dict) -> dict:
    """
    Create an assignment from a public inspection request.

    `data` is a validated InspectionRequestCreate dump.

    Raises:
        ValueError: Preferred inspector is not an inspector
        LookupError: No inspector available
    """
    with get_session() as session:
        inspector = None
        if data.get("preferred_inspector_id"):
            inspector = session.query(User).filter(User.id == data["preferred_inspector_id"]).first()
            if not inspector or inspector.role != "INSPECTOR":
                raise ValueError("Invalid inspector selected")
        else:
            inspector = _select_inspector(session, data.get("property_region"))
        if not inspector:
            raise LookupError("No inspectors available. Please try again later.")

        assignment = Assignment(
            inspector_id=inspector.id,
            client_name=data["client_name"],
            client_email=data["client_email"].lower(),
            client_phone=data.get("client_phone") or None,
            property_address=data["property_address"],
            property_region=data.get("property_region"),
            request_type=data["request_type"],
            urgency=data.get("urgency") or "STANDARD",
            notes=data.get("notes") or None,
            status="PENDING",
        )
        session.add(assignment)
        session.flush()

        reference = numbering.assignment_reference(assignment.id)
        logger.info(f"Inspection request {reference} assigned to {inspector.id}")
        return {
            "id": assignment.id,
            "reference_number": reference,
            "assignment": assignment.to_dict(),
            "inspector": {"id": inspector.id, "name": inspector.name, "email": inspector.email},
        }


def list_assignments(user: dict, status: str = None, page: int = 1, per_page: int = 20) -> dict:
    with get_session() as session:
        query = session.query(Assignment)
        if not is_admin(user):
            query = query.filter(Assignment.inspector_id == user["id"])
        if status:
            query = query.filter(Assignment.status == status)
        assignments, pagination = _paginate(query.order_by(Assignment.created_at.desc()), page, per_page)
        return {"assignments": [a.to_dict() for a in assignments], "pagination": pagination}


def _get_assignment(session, assignment_id: str, user: dict) -> Assignment:
    assignment = session.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment or (assignment.inspector_id != user["id"] and not is_admin(user)):
        raise NotFoundError("Assignment not found")
    return assignment


def update_assignment(assignment_id: str, user: dict, changes: dict) -> dict:
    """Update an assignment, enforcing the status transition table."""
    with get_session() as session:
        assignment = _get_assignment(session, assignment_id, user)

        new_status = changes.get("status")
        if new_status and new_status != assignment.status:
            if new_status not in ASSIGNMENT_TRANSITIONS.get(assignment.status, set()):
                raise WorkflowError(f"Cannot change assignment from {assignment.status} to {new_status}")
            if new_status == "COMPLETED":
                assignment.completed_at = datetime.utcnow()

        _apply_changes(assignment, changes)
        session.flush()
        return assignment.to_dict()


def start_report_from_assignment(assignment_id: str, user: dict) -> dict:
    """
    Create a draft report pre-filled from an accepted assignment.

    Returns:
        Report dictionary
    """
    with get_session() as session:
        assignment = _get_assignment(session, assignment_id, user)
        if assignment.inspector_id != user["id"]:
            raise PermissionDeniedError("Only the assigned inspector can start this inspection")
        if assignment.status not in ("ACCEPTED", "SCHEDULED", "IN_PROGRESS"):
            raise WorkflowError("Assignment must be accepted before starting a report")
        if assignment.report_id:
            raise WorkflowError("A report already exists for this assignment")

        report = _new_report(session, user, {
            "property_address": assignment.property_address,
            "property_city": assignment.property_city,
            "property_region": assignment.property_region,
            "property_postcode": assignment.property_postcode,
            "property_type": assignment.property_type,
            "inspection_type": assignment.request_type,
            "inspection_date": assignment.scheduled_date,
            "client_name": assignment.client_name,
            "client_email": assignment.client_email,
            "client_phone": assignment.client_phone,
            "assignment_id": assignment.id,
        })
        assignment.report_id = report.id
        assignment.status = "IN_PROGRESS"
        session.flush()
        return report.to_dict()


# =============================================================================
# DASHBOARD
# =============================================================================

def get_dashboard_stats(user: dict) -> dict:
    """Report and workload counts for the user's dashboard."""
    with get_session() as session:
        reports = session.query(Report)
        if not is_reviewer(user):
            reports = reports.filter(Report.inspector_id == user["id"])

        by_status = dict(
            reports.with_entities(Report.status, func.count(Report.id)).group_by(Report.status).all()
        )
        report_ids = [r.id for r in reports.with_entities(Report.id).all()]

        defects_by_severity = {}
        if report_ids:
            defects_by_severity = dict(
                session.query(Defect.severity, func.count(Defect.id))
                .filter(Defect.report_id.in_(report_ids))
                .group_by(Defect.severity)
                .all()
            )

        assignments = session.query(Assignment)
        if not is_admin(user):
            assignments = assignments.filter(Assignment.inspector_id == user["id"])
        pending_assignments = assignments.filter(Assignment.status == "PENDING").count()

        recent = reports.order_by(Report.updated_at.desc()).limit(5).all()

        return {
            "total_reports": sum(by_status.values()),
            "by_status": by_status,
            "drafts": by_status.get("DRAFT", 0) + by_status.get("IN_PROGRESS", 0),
            "pending_review": by_status.get("PENDING_REVIEW", 0) + by_status.get("UNDER_REVIEW", 0),
            "revision_required": by_status.get("REVISION_REQUIRED", 0),
            "completed": by_status.get("APPROVED", 0) + by_status.get("FINALISED", 0),
            "defects_by_severity": defects_by_severity,
            "pending_assignments": pending_assignments,
            "recent_reports": [r.to_summary() for r in recent],
        }


# Initialize database on module import
init_db()
