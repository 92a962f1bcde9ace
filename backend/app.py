"""
Roofing Reports Application - Backend API

Flask application for roofing inspection reports: data entry, photo
evidence, review workflow, PDF generation, external sharing and LBP
complaints.
"""

import os
import uuid
import logging
from datetime import datetime
from flask import Flask, request, jsonify, send_file, g
from flask_cors import CORS
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import (
    LOG_LEVEL,
    MAX_CONTENT_LENGTH,
    MAX_PHOTO_SIZE,
    ALLOWED_PHOTO_EXTENSIONS,
    AUTH_SIGNATURE_HEADER,
)
from constants import ADMIN_ROLES
from errors import (
    NotFoundError,
    AuthenticationError,
    PermissionDeniedError,
    WorkflowError,
    ShareAccessError,
)
from auth import login_required, roles_required
import auth
import database as db
import schemas
import storage
import workflow

# Configure logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
CORS(app)  # Enable CORS for frontend


def allowed_photo(filename):
    """Check if photo extension is allowed."""
    if not filename or '.' not in filename:
        return False
    extension = filename.rsplit('.', 1)[1].lower()
    return extension in ALLOWED_PHOTO_EXTENSIONS


def _json_body():
    return request.get_json(silent=True) or {}


def _page_args():
    return request.args.get('page', 1, type=int), request.args.get('per_page', 20, type=int)


def _remove_stored(urls):
    for url in urls:
        key = storage.key_from_url(url)
        if key:
            storage.delete(key)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.errorhandler(NotFoundError)
@app.errorhandler(AuthenticationError)
@app.errorhandler(PermissionDeniedError)
@app.errorhandler(WorkflowError)
def handle_domain_error(e):
    return jsonify({"error": str(e)}), e.status_code


@app.errorhandler(ShareAccessError)
def handle_share_error(e):
    return jsonify({"error": str(e), "requires_password": e.requires_password}), e.status_code


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({
        "error": "Validation failed",
        "details": e.errors(include_url=False, include_context=False, include_input=False)
    }), 400


@app.errorhandler(ValueError)
def handle_value_error(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(HTTPException)
def handle_http_error(e):
    return jsonify({"error": e.description}), e.code


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
    return jsonify({"error": "Internal server error", "message": str(e)}), 500


# =============================================================================
# PUBLIC ENDPOINTS
# =============================================================================

@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    try:
        database = db.check_database()
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return jsonify({
            "status": "unhealthy",
            "database": {"status": "disconnected", "error": str(e)},
            "timestamp": datetime.utcnow().isoformat()
        }), 503

    return jsonify({
        "status": "healthy",
        "database": database,
        "timestamp": datetime.utcnow().isoformat()
    }), 200


@app.route('/api/inspection-requests', methods=['POST'])
def create_inspection_request():
    """Public intake of an inspection request; assigns an inspector."""
    import notifications

    try:
        data = schemas.InspectionRequestCreate.model_validate(_json_body())
        result = db.create_inspection_request(data.model_dump())
    except LookupError as e:
        return jsonify({"error": str(e)}), 503

    notifications.notify_inspection_request(result["assignment"], result["inspector"], result["reference_number"])

    return jsonify({
        "id": result["id"],
        "reference_number": result["reference_number"],
        "message": "Inspection request submitted successfully"
    }), 201


@app.route('/api/inspectors', methods=['GET'])
def list_inspectors():
    """Publicly listed inspectors, optionally filtered by region."""
    inspectors = db.list_public_inspectors(request.args.get('region'))
    return jsonify({"inspectors": inspectors, "total": len(inspectors)}), 200


@app.route('/api/shared/<token>', methods=['GET'])
def get_shared_report(token):
    """Open a shared report. Password-protected shares answer 401."""
    return jsonify(db.access_share(token)), 200


@app.route('/api/shared/<token>/verify', methods=['POST'])
def verify_shared_report(token):
    body = schemas.ShareVerify.model_validate(_json_body())
    return jsonify(db.access_share(token, body.password)), 200


@app.route('/api/webhooks/identity', methods=['POST'])
def identity_webhook():
    """User sync events from the identity provider, signed over the raw body."""
    if not auth.verify_signature(request.get_data(), request.headers.get(AUTH_SIGNATURE_HEADER)):
        return jsonify({"error": "Invalid signature"}), 401

    result = auth.handle_identity_event(_json_body())
    return jsonify(result), 200


@app.route('/media/<path:key>', methods=['GET'])
def get_media(key):
    """Serve a stored object."""
    if not storage.exists(key):
        return jsonify({"error": "File not found"}), 404
    return send_file(storage.local_path(key))


# =============================================================================
# PROFILE
# =============================================================================

@app.route('/api/profile', methods=['GET'])
@login_required
def get_profile():
    return jsonify(g.user), 200


@app.route('/api/profile', methods=['PUT'])
@login_required
def update_profile():
    body = schemas.ProfileUpdate.model_validate(_json_body())
    return jsonify(db.update_profile(g.user["id"], body.changes())), 200


@app.route('/api/dashboard/stats', methods=['GET'])
@login_required
def dashboard_stats():
    return jsonify(db.get_dashboard_stats(g.user)), 200


# =============================================================================
# REPORTS
# =============================================================================

@app.route('/api/reports', methods=['GET'])
@login_required
def list_reports():
    """List reports visible to the caller."""
    page, per_page = _page_args()
    result = db.list_reports(
        g.user,
        status=request.args.get('status'),
        search=request.args.get('search'),
        inspector_id=request.args.get('inspector_id'),
        page=page,
        per_page=per_page,
    )
    return jsonify(result), 200


@app.route('/api/reports', methods=['POST'])
@login_required
def create_report():
    body = schemas.ReportCreate.model_validate(_json_body())
    report = db.create_report(g.user, body.model_dump())
    return jsonify(report), 201


@app.route('/api/reports/export', methods=['GET'])
@login_required
def export_reports():
    """Export the report register as json, csv or xlsx."""
    from flask import Response
    import exporter

    format_type = request.args.get('format', 'json')
    report_ids = request.args.get('report_ids', '').split(',') if request.args.get('report_ids') else None

    reports = db.get_reports_for_export(g.user, status=request.args.get('status'), report_ids=report_ids)
    if not reports:
        return jsonify({"error": "No reports found"}), 404

    if format_type == 'json':
        return jsonify({"reports": reports}), 200

    elif format_type == 'csv':
        csv_data = exporter.export_reports_to_csv(reports)
        return Response(
            csv_data,
            mimetype='text/csv',
            headers={'Content-Disposition': 'attachment; filename=roofing_reports_export.csv'}
        )

    elif format_type == 'xlsx':
        try:
            xlsx_data = exporter.export_reports_to_xlsx(reports)
            return Response(
                xlsx_data,
                mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
                headers={'Content-Disposition': 'attachment; filename=roofing_reports_export.xlsx'}
            )
        except ImportError as e:
            return jsonify({"error": str(e)}), 400

    else:
        return jsonify({"error": f"Export format '{format_type}' not supported. Use 'json', 'csv', or 'xlsx'."}), 400


@app.route('/api/reports/<report_id>', methods=['GET'])
@login_required
def get_report(report_id):
    return jsonify(db.get_report(report_id, g.user)), 200


@app.route('/api/reports/<report_id>', methods=['PUT'])
@login_required
def update_report(report_id):
    body = schemas.ReportUpdate.model_validate(_json_body())
    return jsonify(db.update_report(report_id, g.user, body.changes())), 200


@app.route('/api/reports/<report_id>/duplicate', methods=['POST'])
@login_required
def duplicate_report(report_id):
    """Start a new draft from an existing report."""
    body = schemas.ReportDuplicate.model_validate(_json_body())
    result = db.duplicate_report(report_id, g.user, body.model_dump())
    report = result["report"]
    return jsonify({
        "success": True,
        "message": "Report duplicated successfully",
        "report": {
            "id": report["id"],
            "report_number": report["report_number"],
            "status": report["status"],
            "property_address": report["property_address"],
        },
        "source_report": result["source_report"],
    }), 201


@app.route('/api/reports/<report_id>', methods=['DELETE'])
@login_required
def delete_report(report_id):
    """Delete a report and its stored files."""
    result = db.delete_report(report_id, g.user)
    _remove_stored(result["urls"])
    return jsonify({"message": f"Report {result['report_number']} deleted successfully"}), 200


@app.route('/api/reports/<report_id>/declaration', methods=['POST'])
@login_required
def sign_declaration(report_id):
    body = schemas.DeclarationSign.model_validate(_json_body())
    signature_url = None
    if body.signature_data:
        data, content_type = storage.decode_data_url(body.signature_data)
        extension = content_type.split('/')[-1]
        signature_url = storage.upload(data, f"reports/{report_id}/signature.{extension}", content_type)
    expert_declaration = body.expert_declaration.model_dump() if body.expert_declaration else None
    return jsonify(db.sign_declaration(
        report_id, g.user, signature_url,
        expert_declaration=expert_declaration,
        has_conflict=body.has_conflict,
        conflict_disclosure=body.conflict_disclosure,
    )), 200


@app.route('/api/reports/<report_id>/pdf', methods=['GET'])
@login_required
def report_pdf(report_id):
    """
    Render the report PDF, store it and record its hash.

    The stored URL and SHA-256 are written to the report and a PDF_GENERATED
    audit entry is added before the bytes are returned.
    """
    from flask import Response
    import pdf_generator
    from evidence import sha256_hex

    report = db.get_report(report_id, g.user)

    try:
        pdf_bytes = pdf_generator.generate_report_pdf(report)
    except Exception as e:
        logger.error(f"Error generating PDF for report {report_id}: {e}", exc_info=True)
        return jsonify({
            "error": "Failed to generate PDF",
            "message": str(e)
        }), 500

    pdf_hash = sha256_hex(pdf_bytes)
    filename = f"{report['report_number']}.pdf"
    pdf_url = storage.upload(pdf_bytes, f"reports/{report_id}/pdf/{filename}", 'application/pdf')
    db.record_report_pdf(report_id, g.user, pdf_url, pdf_hash)

    return Response(
        pdf_bytes,
        mimetype='application/pdf',
        headers={
            'Content-Disposition': f'attachment; filename="{filename}"',
            'X-PDF-Hash': pdf_hash,
        }
    )


@app.route('/api/reports/<report_id>/evidence-package', methods=['GET'])
@login_required
def evidence_package(report_id):
    """
    Build, store and hash the evidence ZIP for court or tribunal submission.

    A PDF that fails to render is replaced by an error note inside the
    package; photos missing from storage are left out.
    """
    import pdf_generator
    from evidence import integrity_report, sha256_hex
    from evidence_package import build_evidence_package

    report = db.get_report(report_id, g.user)
    evidence = db.get_evidence_data(report_id, g.user)
    upload_events = integrity_report(
        evidence["photos"], evidence["upload_logs"], evidence["users"]
    )["chain_of_custody"]["upload_events"]

    pdf_bytes, pdf_error = None, None
    try:
        pdf_bytes = pdf_generator.generate_report_pdf(report)
    except Exception as e:
        logger.error(f"Error generating PDF for evidence package {report_id}: {e}", exc_info=True)
        pdf_error = str(e)

    def read_photo(photo):
        key = storage.key_from_url(photo.get("url"))
        if not key or not storage.exists(key):
            return None
        return storage.read(key)

    package = build_evidence_package(report, read_photo, pdf_bytes, pdf_error, upload_events)
    package_hash = sha256_hex(package)
    filename = f"{report['report_number']}_evidence_package.zip"
    url = storage.upload(package, f"exports/{report['report_number']}.zip", 'application/zip')
    db.record_evidence_export(report_id, g.user, filename, url, package_hash)

    return jsonify({"url": url, "hash": package_hash, "filename": filename}), 200


# =============================================================================
# WORKFLOW
# =============================================================================

@app.route('/api/reports/<report_id>/submit', methods=['GET'])
@login_required
def submission_check(report_id):
    return jsonify(workflow.get_submission_check(report_id, g.user)), 200


@app.route('/api/reports/<report_id>/submit', methods=['POST'])
@login_required
def submit_report(report_id):
    return jsonify(workflow.submit_report(report_id, g.user)), 200


@app.route('/api/reports/<report_id>/review', methods=['GET'])
@login_required
def review_status(report_id):
    return jsonify(workflow.review_status(report_id, g.user)), 200


@app.route('/api/reports/<report_id>/review', methods=['POST'])
@login_required
def start_review(report_id):
    return jsonify(workflow.start_review(report_id, g.user)), 200


@app.route('/api/reports/<report_id>/approve', methods=['POST'])
@login_required
def approve_report(report_id):
    body = schemas.ApproveRequest.model_validate(_json_body())
    return jsonify(workflow.approve_report(report_id, g.user, body.comments, body.finalise)), 200


@app.route('/api/reports/<report_id>/reject', methods=['POST'])
@login_required
def reject_report(report_id):
    body = schemas.RejectRequest.model_validate(_json_body())
    report = workflow.reject_report(report_id, g.user, body.reason, body.revision_items, body.priority)
    return jsonify(report), 200


@app.route('/api/reports/<report_id>/finalise', methods=['POST'])
@login_required
def finalise_report(report_id):
    return jsonify(workflow.finalise_report(report_id, g.user)), 200


@app.route('/api/reports/<report_id>/archive', methods=['POST'])
@login_required
def archive_report(report_id):
    return jsonify(workflow.archive_report(report_id, g.user)), 200


# =============================================================================
# AUDIT TRAIL
# =============================================================================

@app.route('/api/reports/<report_id>/revisions', methods=['GET'])
@login_required
def report_revisions(report_id):
    """Revision rounds rebuilt from the audit log, most recent first."""
    from revisions import build_revision_history

    data = db.get_revision_data(report_id, g.user)
    history = build_revision_history(data["report"], data["logs"], data["comments"], data["users"])
    return jsonify(history), 200


@app.route('/api/reports/<report_id>/audit-log', methods=['GET'])
@login_required
def report_audit_log(report_id):
    logs = db.get_report_audit_log(report_id, g.user)
    return jsonify({"logs": logs, "total": len(logs)}), 200


@app.route('/api/reports/<report_id>/evidence-integrity', methods=['GET'])
@login_required
def evidence_integrity(report_id):
    from evidence import integrity_report

    data = db.get_evidence_data(report_id, g.user)
    return jsonify(integrity_report(data["photos"], data["upload_logs"], data["users"])), 200


@app.route('/api/reports/<report_id>/court-compliance', methods=['GET'])
@login_required
def court_compliance(report_id):
    """Expert witness code of conduct checks for the report."""
    from court_compliance import check_court_compliance

    report = db.get_report(report_id, g.user)
    return jsonify(check_court_compliance(report).to_dict()), 200


# =============================================================================
# REVIEW COMMENTS
# =============================================================================

@app.route('/api/reports/<report_id>/comments', methods=['GET'])
@login_required
def list_comments(report_id):
    unresolved_only = request.args.get('unresolved', 'false').lower() == 'true'
    comments = db.list_comments(report_id, g.user, unresolved_only=unresolved_only)
    return jsonify({"comments": comments}), 200


@app.route('/api/reports/<report_id>/comments', methods=['POST'])
@login_required
def add_comment(report_id):
    body = schemas.CommentCreate.model_validate(_json_body())
    return jsonify(db.add_comment(report_id, g.user, body.model_dump())), 201


@app.route('/api/reports/<report_id>/comments/<comment_id>/resolve', methods=['POST'])
@login_required
def resolve_comment(report_id, comment_id):
    return jsonify(db.resolve_comment(report_id, comment_id, g.user)), 200


# =============================================================================
# PHOTOS
# =============================================================================

@app.route('/api/reports/<report_id>/photos', methods=['GET'])
@login_required
def list_photos(report_id):
    return jsonify({"photos": db.list_photos(report_id, g.user)}), 200


@app.route('/api/reports/<report_id>/photos', methods=['POST'])
@login_required
def upload_photo(report_id):
    """
    Upload a photo.

    The SHA-256 of the original bytes is taken before any processing; EXIF
    metadata and a thumbnail are derived from the same bytes.
    """
    from evidence import process_photo

    if 'file' not in request.files:
        return jsonify({"error": "No file provided"}), 400

    file = request.files['file']

    if file.filename == '' or not file.filename:
        return jsonify({"error": "No file selected"}), 400

    # Check file extension (case-insensitive)
    if not allowed_photo(file.filename):
        return jsonify({
            "error": f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_PHOTO_EXTENSIONS))}",
            "received": file.filename
        }), 400

    data = file.read()
    if len(data) > MAX_PHOTO_SIZE:
        return jsonify({
            "error": f"File size exceeds maximum allowed size of {MAX_PHOTO_SIZE / (1024*1024)}MB"
        }), 400

    meta = schemas.PhotoUpload.model_validate(request.form.to_dict()).model_dump()
    processed = process_photo(data)

    extension = file.filename.rsplit('.', 1)[1].lower()
    stored_name = f"{uuid.uuid4()}.{extension}"
    url = storage.upload(data, f"reports/{report_id}/photos/{stored_name}", file.mimetype)
    thumbnail_url = None
    if processed["thumbnail"]:
        thumbnail_url = storage.upload(
            processed["thumbnail"], f"reports/{report_id}/thumbnails/{stored_name}.jpg", 'image/jpeg'
        )

    try:
        photo = db.add_photo(report_id, g.user, meta, {
            "filename": stored_name,
            "original_filename": file.filename,
            "mime_type": file.mimetype,
            "file_size": processed["file_size"],
            "url": url,
            "thumbnail_url": thumbnail_url,
            "original_hash": processed["original_hash"],
            "exif": processed["exif"],
        })
    except Exception:
        _remove_stored([url, thumbnail_url])
        raise

    logger.info(f"Photo {photo['id']} uploaded to report {report_id} ({photo['original_hash']})")
    return jsonify(photo), 201


@app.route('/api/photos/<photo_id>', methods=['PUT'])
@login_required
def update_photo(photo_id):
    body = schemas.PhotoUpdate.model_validate(_json_body())
    return jsonify(db.update_photo(photo_id, g.user, body.changes())), 200


@app.route('/api/photos/<photo_id>', methods=['DELETE'])
@login_required
def delete_photo(photo_id):
    photo = db.delete_photo(photo_id, g.user)
    _remove_stored([photo["url"], photo["thumbnail_url"]])
    return jsonify({"message": "Photo deleted successfully"}), 200


@app.route('/api/photos/<photo_id>/verify', methods=['POST'])
@login_required
def verify_photo(photo_id):
    """Re-hash the stored original and compare with the upload hash."""
    from evidence import sha256_hex

    photo = db.get_photo(photo_id, g.user)
    key = storage.key_from_url(photo["url"])
    try:
        data = storage.read(key) if key else None
    except FileNotFoundError:
        data = None
    if data is None:
        return jsonify({"error": "Original photo file not found"}), 404

    return jsonify(db.mark_photo_verification(photo_id, g.user, sha256_hex(data))), 200


# =============================================================================
# DEFECTS
# =============================================================================

@app.route('/api/reports/<report_id>/defects', methods=['GET'])
@login_required
def list_defects(report_id):
    return jsonify({"defects": db.list_defects(report_id, g.user)}), 200


@app.route('/api/reports/<report_id>/defects', methods=['POST'])
@login_required
def add_defect(report_id):
    body = schemas.DefectCreate.model_validate(_json_body())
    return jsonify(db.add_defect(report_id, g.user, body.model_dump())), 201


@app.route('/api/defects/<defect_id>', methods=['PUT'])
@login_required
def update_defect(defect_id):
    body = schemas.DefectUpdate.model_validate(_json_body())
    return jsonify(db.update_defect(defect_id, g.user, body.changes())), 200


@app.route('/api/defects/<defect_id>', methods=['DELETE'])
@login_required
def delete_defect(defect_id):
    db.delete_defect(defect_id, g.user)
    return jsonify({"message": "Defect deleted successfully"}), 200


# =============================================================================
# ROOF ELEMENTS
# =============================================================================

@app.route('/api/reports/<report_id>/elements', methods=['GET'])
@login_required
def list_elements(report_id):
    return jsonify({"elements": db.list_roof_elements(report_id, g.user)}), 200


@app.route('/api/reports/<report_id>/elements', methods=['POST'])
@login_required
def add_elements(report_id):
    """Create one element, or several when the body has an 'elements' list."""
    data = _json_body()
    if 'elements' in data:
        body = schemas.RoofElementBulkCreate.model_validate(data)
        elements = [element.model_dump() for element in body.elements]
        created = db.add_roof_elements(report_id, g.user, elements)
        return jsonify({"elements": created, "count": len(created)}), 201

    body = schemas.RoofElementCreate.model_validate(data)
    created = db.add_roof_elements(report_id, g.user, [body.model_dump()])
    return jsonify(created[0]), 201


@app.route('/api/elements/<element_id>', methods=['PUT'])
@login_required
def update_element(element_id):
    body = schemas.RoofElementUpdate.model_validate(_json_body())
    return jsonify(db.update_roof_element(element_id, g.user, body.changes())), 200


@app.route('/api/elements/<element_id>', methods=['DELETE'])
@login_required
def delete_element(element_id):
    db.delete_roof_element(element_id, g.user)
    return jsonify({"message": "Roof element deleted successfully"}), 200


# =============================================================================
# COMPLIANCE
# =============================================================================

@app.route('/api/reports/<report_id>/compliance', methods=['GET'])
@login_required
def get_compliance(report_id):
    return jsonify(db.get_compliance(report_id, g.user)), 200


@app.route('/api/reports/<report_id>/compliance', methods=['PUT'])
@login_required
def save_compliance(report_id):
    body = schemas.ComplianceUpdate.model_validate(_json_body())
    return jsonify(db.save_compliance(report_id, g.user, body.changes())), 200


# =============================================================================
# SHARES
# =============================================================================

@app.route('/api/reports/<report_id>/shares', methods=['GET'])
@login_required
def list_shares(report_id):
    return jsonify({"shares": db.list_shares(report_id, g.user)}), 200


@app.route('/api/reports/<report_id>/shares', methods=['POST'])
@login_required
def create_share(report_id):
    body = schemas.ShareCreate.model_validate(_json_body())
    return jsonify(db.create_share(report_id, g.user, body.model_dump())), 201


@app.route('/api/reports/<report_id>/shares/<share_id>', methods=['DELETE'])
@login_required
def revoke_share(report_id, share_id):
    return jsonify(db.revoke_share(report_id, share_id, g.user)), 200


# =============================================================================
# ASSIGNMENTS
# =============================================================================

@app.route('/api/assignments', methods=['GET'])
@login_required
def list_assignments():
    page, per_page = _page_args()
    return jsonify(db.list_assignments(g.user, request.args.get('status'), page, per_page)), 200


@app.route('/api/assignments/<assignment_id>', methods=['PATCH'])
@login_required
def update_assignment(assignment_id):
    body = schemas.AssignmentUpdate.model_validate(_json_body())
    return jsonify(db.update_assignment(assignment_id, g.user, body.changes())), 200


@app.route('/api/assignments/<assignment_id>/report', methods=['POST'])
@login_required
def start_assignment_report(assignment_id):
    return jsonify(db.start_report_from_assignment(assignment_id, g.user)), 201


# =============================================================================
# ADMIN
# =============================================================================

@app.route('/api/admin/users', methods=['GET'])
@roles_required(*ADMIN_ROLES)
def admin_list_users():
    page, per_page = _page_args()
    result = db.list_users(
        role=request.args.get('role'),
        status=request.args.get('status'),
        search=request.args.get('search'),
        page=page,
        per_page=per_page,
    )
    return jsonify(result), 200


@app.route('/api/admin/users/<user_id>', methods=['PATCH'])
@roles_required(*ADMIN_ROLES)
def admin_update_user(user_id):
    body = schemas.AdminUserUpdate.model_validate(_json_body())
    return jsonify(db.admin_update_user(g.user, user_id, body.changes())), 200


@app.route('/api/admin/audit-logs', methods=['GET'])
@roles_required(*ADMIN_ROLES)
def admin_audit_logs():
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 50, type=int)
    result = db.list_audit_logs(
        action=request.args.get('action'),
        user_id=request.args.get('user_id'),
        report_id=request.args.get('report_id'),
        page=page,
        per_page=per_page,
    )
    return jsonify(result), 200


# =============================================================================
# LBP COMPLAINTS
# =============================================================================

@app.route('/api/admin/complaints', methods=['GET'])
@roles_required(*ADMIN_ROLES)
def list_complaints():
    import complaints

    page, per_page = _page_args()
    return jsonify(complaints.list_complaints(g.user, request.args.get('status'), page, per_page)), 200


@app.route('/api/admin/complaints/stats', methods=['GET'])
@roles_required(*ADMIN_ROLES)
def complaint_stats():
    import complaints

    return jsonify(complaints.get_stats(g.user)), 200


@app.route('/api/admin/complaints/grounds', methods=['GET'])
@roles_required(*ADMIN_ROLES)
def complaint_grounds():
    """Grounds for discipline under section 317 of the Building Act."""
    import complaints

    grounds = [dict(code=code, **ground) for code, ground in complaints.GROUNDS_FOR_DISCIPLINE.items()]
    return jsonify({"grounds": grounds, "max_selected": complaints.MAX_GROUNDS}), 200


@app.route('/api/admin/complaints', methods=['POST'])
@roles_required(*ADMIN_ROLES)
def create_complaint():
    import complaints

    body = schemas.ComplaintCreate.model_validate(_json_body())
    return jsonify(complaints.create_from_report(body.report_id, g.user)), 201


@app.route('/api/admin/complaints/<complaint_id>', methods=['GET'])
@roles_required(*ADMIN_ROLES)
def get_complaint(complaint_id):
    import complaints

    return jsonify(complaints.get_complaint(complaint_id, g.user)), 200


@app.route('/api/admin/complaints/<complaint_id>', methods=['PUT'])
@roles_required(*ADMIN_ROLES)
def update_complaint(complaint_id):
    import complaints

    body = schemas.ComplaintUpdate.model_validate(_json_body())
    return jsonify(complaints.update_complaint(complaint_id, g.user, body.changes())), 200


@app.route('/api/admin/complaints/<complaint_id>/submit-for-review', methods=['POST'])
@roles_required(*ADMIN_ROLES)
def submit_complaint_for_review(complaint_id):
    import complaints

    return jsonify(complaints.submit_for_review(complaint_id, g.user)), 200


@app.route('/api/admin/complaints/<complaint_id>/review', methods=['POST'])
@roles_required(*ADMIN_ROLES)
def review_complaint(complaint_id):
    import complaints

    body = schemas.ComplaintReview.model_validate(_json_body())
    return jsonify(complaints.review_complaint(complaint_id, g.user, body.approved, body.review_notes)), 200


@app.route('/api/admin/complaints/<complaint_id>/sign', methods=['POST'])
@roles_required(*ADMIN_ROLES)
def sign_complaint(complaint_id):
    import complaints

    body = schemas.ComplaintSign.model_validate(_json_body())
    complaint = complaints.sign_complaint(complaint_id, g.user, body.signature_data, body.declaration_accepted)
    return jsonify(complaint), 200


@app.route('/api/admin/complaints/<complaint_id>/submit', methods=['POST'])
@roles_required(*ADMIN_ROLES)
def submit_complaint(complaint_id):
    """Send the complaint to the Building Practitioners Board."""
    import complaints

    try:
        complaint = complaints.submit_complaint(complaint_id, g.user)
    except (NotFoundError, PermissionDeniedError, WorkflowError):
        raise
    except Exception as e:
        return jsonify({
            "error": "Failed to submit complaint",
            "message": str(e)
        }), 500

    return jsonify({
        "success": True,
        "message": "Complaint submitted to the Building Practitioners Board",
        "complaint": complaint
    }), 200


@app.route('/api/admin/complaints/<complaint_id>/withdraw', methods=['POST'])
@roles_required(*ADMIN_ROLES)
def withdraw_complaint(complaint_id):
    import complaints

    body = schemas.ComplaintWithdraw.model_validate(_json_body())
    return jsonify(complaints.withdraw_complaint(complaint_id, g.user, body.reason)), 200


@app.route('/api/admin/complaints/<complaint_id>/response', methods=['POST'])
@roles_required(*ADMIN_ROLES)
def record_board_response(complaint_id):
    import complaints

    body = schemas.BoardResponse.model_validate(_json_body())
    return jsonify(complaints.record_board_response(complaint_id, g.user, body.changes())), 200


@app.route('/api/admin/complaints/<complaint_id>/pdf', methods=['GET'])
@roles_required(*ADMIN_ROLES)
def complaint_pdf(complaint_id):
    from flask import Response
    import complaints

    result = complaints.render_complaint_pdf(complaint_id, g.user)
    return Response(
        result["content"],
        mimetype='application/pdf',
        headers={'Content-Disposition': f'attachment; filename="{result["filename"]}"'}
    )


if __name__ == '__main__':
    print("Starting Roofing Reports Application...")
    port = int(os.getenv("BACKEND_PORT", "5000"))
    print(f"Backend API running on http://localhost:{port}")
    print(f"Health check: http://localhost:{port}/api/health")
    print(f"Database: {db.DATABASE_URL}")
    app.run(debug=True, host='0.0.0.0', port=port)
