"""HTTP tests for the Flask API."""

import base64
import io
import json

import pytest

import auth
import database as db
import notifications
from conftest import make_user, auth_headers, jpeg_bytes, make_submittable, report_fields

REPORT_BODY = {
    "property_address": "12 Kauri Street",
    "property_city": "Auckland",
    "property_region": "Auckland",
    "property_postcode": "1010",
    "property_type": "RESIDENTIAL_1",
    "inspection_date": "2025-03-14T09:30:00",
    "inspection_type": "VISUAL_ONLY",
    "client_name": "Jane Client",
}


@pytest.fixture(autouse=True)
def quiet_notifications(monkeypatch):
    sent = []
    monkeypatch.setattr(notifications, "send_async", lambda to, subject, body: sent.append((to, subject)))
    return sent


@pytest.fixture
def created(client, inspector):
    response = client.post('/api/reports', json=REPORT_BODY, headers=auth_headers(inspector))
    assert response.status_code == 201
    return response.get_json()


def upload(client, report_id, user, filename="roof.jpg", data=None, **form):
    form["file"] = (io.BytesIO(data or jpeg_bytes()), filename)
    return client.post(f'/api/reports/{report_id}/photos', data=form,
                       content_type='multipart/form-data', headers=auth_headers(user))


# =============================================================================
# HEALTH AND AUTH
# =============================================================================

def test_health(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "healthy"
    assert body["database"]["status"] == "connected"


def test_missing_identity_is_unauthorized(client):
    response = client.get('/api/reports')
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}


def test_unknown_identity_is_not_found(client):
    response = client.get('/api/reports', headers={"X-Identity-User": "ext_nobody"})
    assert response.status_code == 404


def test_pending_account_is_forbidden(client):
    pending = make_user("INSPECTOR", status="PENDING_ACTIVATION")
    response = client.get('/api/reports', headers=auth_headers(pending))
    assert response.status_code == 403


def test_signed_identity_header(client, inspector, monkeypatch):
    monkeypatch.setattr(auth, "AUTH_SHARED_SECRET", "top-secret")

    unsigned = client.get('/api/profile', headers=auth_headers(inspector))
    assert unsigned.status_code == 401

    headers = dict(auth_headers(inspector))
    headers["X-Identity-Signature"] = auth.sign(inspector["external_id"], "top-secret")
    signed = client.get('/api/profile', headers=headers)
    assert signed.status_code == 200
    assert signed.get_json()["id"] == inspector["id"]


def test_unknown_route_is_json_404(client):
    response = client.get('/api/does-not-exist')
    assert response.status_code == 404
    assert "error" in response.get_json()


# =============================================================================
# REPORTS
# =============================================================================

def test_create_report_validates_body(client, inspector):
    response = client.post('/api/reports', json=dict(REPORT_BODY, property_type="CASTLE"),
                           headers=auth_headers(inspector))

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "Validation failed"
    assert body["details"][0]["loc"] == ["property_type"]


def test_create_and_fetch_report(client, inspector, created):
    assert created["status"] == "DRAFT"
    assert created["report_number"].startswith("RANZ-")
    assert created["inspector"]["name"] == "Ivan Inspector"

    response = client.get(f'/api/reports/{created["id"]}', headers=auth_headers(inspector))
    assert response.status_code == 200
    assert response.get_json()["client_name"] == "Jane Client"


def test_other_inspectors_cannot_see_a_report(client, created):
    other = make_user("INSPECTOR")
    response = client.get(f'/api/reports/{created["id"]}', headers=auth_headers(other))
    assert response.status_code == 404


def test_list_reports_is_scoped_to_the_inspector(client, inspector, reviewer, created):
    make_user("INSPECTOR")

    mine = client.get('/api/reports?per_page=5', headers=auth_headers(inspector)).get_json()
    assert mine["pagination"] == {"page": 1, "per_page": 5, "total": 1, "pages": 1}
    assert mine["reports"][0]["id"] == created["id"]

    filtered = client.get('/api/reports?status=APPROVED,FINALISED', headers=auth_headers(reviewer)).get_json()
    assert filtered["reports"] == []


def test_update_report_logs_field_changes(client, inspector, created):
    response = client.put(f'/api/reports/{created["id"]}', json={"client_name": "John Client"},
                          headers=auth_headers(inspector))
    assert response.status_code == 200

    logs = client.get(f'/api/reports/{created["id"]}/audit-log', headers=auth_headers(inspector)).get_json()
    update = [log for log in logs["logs"] if log["action"] == "UPDATED"][0]
    assert update["details"]["changes"] == [{"field": "client_name", "from": "Jane Client", "to": "John Client"}]


def test_update_with_utc_timestamps_logs_no_spurious_changes(client, inspector, created):
    url = f'/api/reports/{created["id"]}'
    for inspection_date in ["2025-03-14T09:30:00Z", "2025-03-14T09:30:00Z", "2025-03-14T22:30:00+13:00"]:
        response = client.put(url, json={"inspection_date": inspection_date}, headers=auth_headers(inspector))
        assert response.status_code == 200
        assert response.get_json()["inspection_date"] == "2025-03-14T09:30:00"

    def updates():
        logs = client.get(f'{url}/audit-log', headers=auth_headers(inspector)).get_json()["logs"]
        return [log for log in logs if log["action"] == "UPDATED"]
    assert updates() == []

    client.put(url, json={"inspection_date": "2025-03-15T09:30:00Z"}, headers=auth_headers(inspector))
    assert [u["details"]["changes"] for u in updates()] == [[{
        "field": "inspection_date", "from": "2025-03-14T09:30:00", "to": "2025-03-15T09:30:00",
    }]]


def test_declaration_with_signature(client, inspector, created):
    signature = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode("ascii")

    response = client.post(f'/api/reports/{created["id"]}/declaration',
                           json={"declaration_signed": True, "signature_data": signature},
                           headers=auth_headers(inspector))

    assert response.status_code == 200
    body = response.get_json()
    assert body["declaration_signed"] is True
    assert body["signature_url"].endswith("/signature.png")


EXPERT_DECLARATION = {
    "expertise_confirmed": True,
    "code_of_conduct_accepted": True,
    "court_compliance_accepted": True,
    "false_evidence_understood": True,
    "impartiality_confirmed": True,
    "inspection_conducted": True,
    "evidence_integrity": True,
}


def test_expert_declaration_requires_every_item(client, inspector, created):
    url = f'/api/reports/{created["id"]}/declaration'
    partial = client.post(url, json={
        "declaration_signed": True,
        "expert_declaration": dict(EXPERT_DECLARATION, false_evidence_understood=False),
    }, headers=auth_headers(inspector))
    assert partial.status_code == 400
    assert partial.get_json()["details"][0]["loc"] == ["expert_declaration", "false_evidence_understood"]

    undisclosed = client.post(url, json={
        "declaration_signed": True, "expert_declaration": EXPERT_DECLARATION, "has_conflict": True,
    }, headers=auth_headers(inspector))
    assert undisclosed.status_code == 400


def test_court_compliance_follows_the_declaration(client, inspector, created):
    url = f'/api/reports/{created["id"]}/court-compliance'
    before = client.get(url, headers=auth_headers(inspector)).get_json()
    assert before["is_court_report"] is False
    assert before["is_compliant"] is False

    client.put(f'/api/reports/{created["id"]}', json={"methodology": {"text": "Walked the roof"}},
               headers=auth_headers(inspector))
    client.post(f'/api/reports/{created["id"]}/declaration', json={
        "declaration_signed": True, "expert_declaration": EXPERT_DECLARATION,
        "has_conflict": True, "conflict_disclosure": "Previously engaged by the owner",
    }, headers=auth_headers(inspector))

    after = client.get(url, headers=auth_headers(inspector)).get_json()
    assert after["is_compliant"] is True
    assert after["score"] == 100
    checks = {check["id"]: check for check in after["checks"]}
    assert checks["conflict_disclosure"]["details"] == "Conflict disclosed"
    assert checks["qualifications"]["passed"] is True

    stranger = make_user("INSPECTOR")
    assert client.get(url, headers=auth_headers(stranger)).status_code == 404


def test_delete_draft_report(client, inspector, created):
    response = client.delete(f'/api/reports/{created["id"]}', headers=auth_headers(inspector))
    assert response.status_code == 200

    missing = client.get(f'/api/reports/{created["id"]}', headers=auth_headers(inspector))
    assert missing.status_code == 404
    deleted = db.list_audit_logs(action="DELETED")["logs"][0]
    assert deleted["details"]["report_number"] == created["report_number"]


def test_duplicate_report_copies_templates_only(client, inspector, created):
    db.add_roof_elements(created["id"], inspector, [{
        "element_type": "ROOF_CLADDING", "location": "Main roof", "material": "Colorsteel",
        "condition_rating": "POOR", "condition_notes": "Rusted laps", "meets_cop": False,
    }])
    db.add_defect(created["id"], inspector, {
        "title": "Rusted laps", "description": "Corrosion at end laps", "location": "Main roof",
        "classification": "MAJOR_DEFECT", "severity": "HIGH", "observation": "Red rust at three laps",
    })
    db.add_photo(created["id"], inspector, {"photo_type": "OVERVIEW"}, {
        "filename": "photo-1.jpg", "url": "/media/test/photo-1.jpg", "original_hash": "a" * 64,
    })
    db.save_compliance(created["id"], inspector, {"checklist_results": {"e2_as1": {"e2_3_1": "FAIL"}}})

    response = client.post(f'/api/reports/{created["id"]}/duplicate', json={
        "include_defects": True, "include_compliance_assessment": True,
        "property_address": "14 Kauri Street", "inspection_date": "2025-06-01T08:00:00Z",
    }, headers=auth_headers(inspector))

    assert response.status_code == 201
    body = response.get_json()
    assert body["source_report"] == {"id": created["id"], "report_number": created["report_number"]}
    assert body["report"]["status"] == "DRAFT"
    assert body["report"]["report_number"] != created["report_number"]
    assert body["report"]["property_address"] == "14 Kauri Street"

    copy = client.get(f'/api/reports/{body["report"]["id"]}', headers=auth_headers(inspector)).get_json()
    assert copy["client_name"] == "Jane Client"
    assert copy["inspection_date"] == "2025-06-01T08:00:00"
    assert copy["declaration_signed"] is False
    assert copy["photos"] == []
    assert copy["roof_elements"][0]["material"] == "Colorsteel"
    assert copy["roof_elements"][0]["condition_rating"] is None
    assert copy["roof_elements"][0]["meets_cop"] is None
    assert [(d["defect_number"], d["title"], d["observation"]) for d in copy["defects"]] == [(1, "Rusted laps", "")]
    assert copy["compliance_assessment"]["checklist_results"] == {}

    created_log = [log for log in db.get_report_audit_log(copy["id"], inspector) if log["action"] == "CREATED"][0]
    assert created_log["details"]["type"] == "duplicate"
    assert created_log["details"]["source_report_number"] == created["report_number"]


def test_duplicate_report_defaults_and_permissions(client, inspector, reviewer, created):
    db.add_roof_elements(created["id"], inspector, [{"element_type": "GUTTER", "location": "North"}])

    copy = client.post(f'/api/reports/{created["id"]}/duplicate', headers=auth_headers(inspector)).get_json()
    copied = db.get_report(copy["report"]["id"], inspector)
    assert len(copied["roof_elements"]) == 1
    assert copied["defects"] == []
    assert copied["compliance_assessment"] is None

    assert client.post(f'/api/reports/{created["id"]}/duplicate',
                       headers=auth_headers(reviewer)).status_code == 403
    other = make_user("INSPECTOR")
    assert client.post(f'/api/reports/{created["id"]}/duplicate',
                       headers=auth_headers(other)).status_code == 404


def test_report_with_complaint_is_kept(client, inspector, admin):
    import complaints
    report = db.create_report(inspector, report_fields(inspection_type="DISPUTE_RESOLUTION"))
    complaint = complaints.create_from_report(report["id"], admin)

    response = client.delete(f'/api/reports/{report["id"]}', headers=auth_headers(admin))
    assert response.status_code == 400
    assert complaint["complaint_number"] in response.get_json()["error"]

    pdf = client.get(f'/api/admin/complaints/{complaint["id"]}/pdf', headers=auth_headers(admin))
    assert pdf.status_code == 200


# =============================================================================
# PHOTOS
# =============================================================================

def test_photo_upload_verify_and_delete(client, inspector, created):
    data = jpeg_bytes()
    response = upload(client, created["id"], inspector, data=data, photo_type="OVERVIEW", caption="North face")
    assert response.status_code == 201
    photo = response.get_json()
    assert photo["photo_type"] == "OVERVIEW"
    assert photo["file_size"] == len(data)
    assert photo["thumbnail_url"]

    media = client.get(photo["url"])
    assert media.status_code == 200
    assert media.data == data

    verify = client.post(f'/api/photos/{photo["id"]}/verify', headers=auth_headers(inspector))
    assert verify.get_json()["verified"] is True

    evidence = client.get(f'/api/reports/{created["id"]}/evidence-integrity', headers=auth_headers(inspector))
    assert evidence.get_json()["summary"]["hash_verified"] == 1

    deleted = client.delete(f'/api/photos/{photo["id"]}', headers=auth_headers(inspector))
    assert deleted.status_code == 200
    assert client.get(photo["url"]).status_code == 404


def test_photo_upload_rejects_other_types(client, inspector, created):
    response = upload(client, created["id"], inspector, filename="notes.pdf")
    assert response.status_code == 400
    assert response.get_json()["error"].startswith("Invalid file type")


def test_photo_upload_requires_a_file(client, inspector, created):
    response = client.post(f'/api/reports/{created["id"]}/photos', data={},
                           content_type='multipart/form-data', headers=auth_headers(inspector))
    assert response.status_code == 400
    assert response.get_json()["error"] == "No file provided"


# =============================================================================
# DEFECTS, ELEMENTS AND COMPLIANCE
# =============================================================================

def test_defects_are_numbered_per_report(client, inspector, created):
    body = {
        "title": "Corroded ridge capping",
        "description": "Ridge capping shows red rust along the full length",
        "location": "Main ridge",
        "classification": "MAJOR_DEFECT",
        "severity": "HIGH",
        "observation": "Red rust visible on all ridge capping sheets",
    }
    first = client.post(f'/api/reports/{created["id"]}/defects', json=body, headers=auth_headers(inspector))
    second = client.post(f'/api/reports/{created["id"]}/defects', json=body, headers=auth_headers(inspector))

    assert first.status_code == 201
    assert [first.get_json()["defect_number"], second.get_json()["defect_number"]] == [1, 2]


def test_bulk_roof_elements(client, inspector, created):
    response = client.post(f'/api/reports/{created["id"]}/elements', json={"elements": [
        {"element_type": "ROOF_CLADDING", "location": "Main roof"},
        {"element_type": "GUTTER", "location": "North"},
    ]}, headers=auth_headers(inspector))

    assert response.status_code == 201
    assert response.get_json()["count"] == 2


def test_compliance_merges_checklists(client, inspector, created):
    url = f'/api/reports/{created["id"]}/compliance'
    client.put(url, json={"checklist_results": {"e2_as1": {"e2_3_1": "PASS"}}}, headers=auth_headers(inspector))
    response = client.put(url, json={"checklist_results": {"b2_durability": {"b2_fastener": "FAIL"}}},
                          headers=auth_headers(inspector))

    assert response.status_code == 200
    assert response.get_json()["overall_status"] == "NON_COMPLIANT"
    summaries = client.get(url, headers=auth_headers(inspector)).get_json()["summaries"]
    assert {s["key"] for s in summaries} == {"e2_as1", "b2_durability"}


def test_compliance_rejects_unknown_items(client, inspector, created):
    response = client.put(f'/api/reports/{created["id"]}/compliance',
                          json={"checklist_results": {"e2_as1": {"nope": "PASS"}}},
                          headers=auth_headers(inspector))
    assert response.status_code == 400


def test_compliance_stores_canonical_results(client, inspector, created):
    url = f'/api/reports/{created["id"]}/compliance'
    response = client.put(url, json={"checklist_results": {"e2_as1": {"e2_3_1": "na", "e2_3_2": "n/a"}}},
                          headers=auth_headers(inspector))

    assert response.status_code == 200
    assert response.get_json()["overall_status"] == "NOT_ASSESSED"
    assert response.get_json()["checklist_results"]["e2_as1"] == {
        "e2_3_1": "NOT_APPLICABLE", "e2_3_2": "NOT_APPLICABLE",
    }

    summaries = client.get(url, headers=auth_headers(inspector)).get_json()["summaries"]
    assert summaries[0]["not_applicable"] == 2


# =============================================================================
# WORKFLOW AND REVISIONS
# =============================================================================

def test_submit_review_cycle(client, inspector, reviewer, created):
    incomplete = client.post(f'/api/reports/{created["id"]}/submit', headers=auth_headers(inspector))
    assert incomplete.status_code == 200
    assert incomplete.get_json()["success"] is False

    make_submittable(created, inspector)
    submitted = client.post(f'/api/reports/{created["id"]}/submit', headers=auth_headers(inspector)).get_json()
    assert submitted["success"] is True
    assert submitted["message"] == "Report submitted for review"
    assert submitted["new_status"] == "PENDING_REVIEW"

    forbidden = client.post(f'/api/reports/{created["id"]}/review', headers=auth_headers(inspector))
    assert forbidden.status_code == 403

    client.post(f'/api/reports/{created["id"]}/review', headers=auth_headers(reviewer))
    too_short = client.post(f'/api/reports/{created["id"]}/reject', json={"reason": "No"},
                            headers=auth_headers(reviewer))
    assert too_short.status_code == 400

    rejected = client.post(f'/api/reports/{created["id"]}/reject',
                           json={"reason": "Ridge photos are out of focus"}, headers=auth_headers(reviewer))
    assert rejected.get_json()["status"] == "REVISION_REQUIRED"

    client.post(f'/api/reports/{created["id"]}/submit', headers=auth_headers(inspector))
    history = client.get(f'/api/reports/{created["id"]}/revisions', headers=auth_headers(inspector)).get_json()
    assert history["current_round"] == 2
    assert [r["round"] for r in history["revisions"]] == [2, 1, 0]

    approved = client.post(f'/api/reports/{created["id"]}/approve', json={"comments": "Thanks"},
                           headers=auth_headers(reviewer))
    assert approved.get_json()["status"] == "APPROVED"


def test_invalid_transition_is_a_bad_request(client, reviewer, created):
    response = client.post(f'/api/reports/{created["id"]}/approve', json={}, headers=auth_headers(reviewer))
    assert response.status_code == 400
    assert "DRAFT" in response.get_json()["error"]


def test_review_comments(client, inspector, reviewer, created):
    added = client.post(f'/api/reports/{created["id"]}/comments',
                        json={"comment": "Missing gutter photo", "severity": "ISSUE", "section": "photos"},
                        headers=auth_headers(reviewer))
    assert added.status_code == 201

    denied = client.post(f'/api/reports/{created["id"]}/comments', json={"comment": "Self review"},
                         headers=auth_headers(inspector))
    assert denied.status_code == 403

    comment_id = added.get_json()["id"]
    client.post(f'/api/reports/{created["id"]}/comments/{comment_id}/resolve', headers=auth_headers(inspector))
    unresolved = client.get(f'/api/reports/{created["id"]}/comments?unresolved=true',
                            headers=auth_headers(inspector)).get_json()
    assert unresolved["comments"] == []


# =============================================================================
# PDF AND EXPORT
# =============================================================================

def test_report_pdf_is_stored_and_hashed(client, inspector, created):
    make_submittable(created, inspector)

    response = client.get(f'/api/reports/{created["id"]}/pdf', headers=auth_headers(inspector))

    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b"%PDF")
    report = client.get(f'/api/reports/{created["id"]}', headers=auth_headers(inspector)).get_json()
    assert report["pdf_hash"] == response.headers["X-PDF-Hash"]
    assert client.get(report["pdf_url"]).status_code == 200


def test_evidence_package_is_stored_hashed_and_logged(client, inspector, reviewer, created):
    import hashlib
    import zipfile

    photo_bytes = jpeg_bytes()
    upload(client, created["id"], inspector, data=photo_bytes, photo_type="OVERVIEW", caption="North face")

    response = client.get(f'/api/reports/{created["id"]}/evidence-package', headers=auth_headers(reviewer))

    assert response.status_code == 200
    body = response.get_json()
    assert body["filename"] == f'{created["report_number"]}_evidence_package.zip'

    package = client.get(body["url"]).data
    assert hashlib.sha256(package).hexdigest() == body["hash"]
    with zipfile.ZipFile(io.BytesIO(package)) as archive:
        assert archive.read("photos/001_OVERVIEW_North_face.jpeg") == photo_bytes
        assert archive.read(f'{created["report_number"]}.pdf').startswith(b"%PDF")
        assert json.loads(archive.read("manifest.json"))["evidence"]["photo_count"] == 1

    exported = db.list_audit_logs(action="EVIDENCE_EXPORTED")["logs"][0]
    assert exported["details"]["hash"] == body["hash"]
    assert exported["user_id"] == reviewer["id"]

    other = make_user("INSPECTOR")
    assert client.get(f'/api/reports/{created["id"]}/evidence-package',
                      headers=auth_headers(other)).status_code == 404


def test_export_csv(client, inspector, created):
    response = client.get('/api/reports/export?format=csv', headers=auth_headers(inspector))

    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    assert created["report_number"] in response.get_data(as_text=True)


def test_export_unknown_format(client, inspector, created):
    response = client.get('/api/reports/export?format=docx', headers=auth_headers(inspector))
    assert response.status_code == 400


# =============================================================================
# SHARING
# =============================================================================

def test_password_protected_share(client, inspector, created):
    share = client.post(f'/api/reports/{created["id"]}/shares',
                        json={"recipient_email": "lawyer@example.co.nz", "password": "letmein"},
                        headers=auth_headers(inspector)).get_json()

    locked = client.get(f'/api/shared/{share["token"]}')
    assert locked.status_code == 401
    assert locked.get_json() == {"error": "Password required", "requires_password": True}

    wrong = client.post(f'/api/shared/{share["token"]}/verify', json={"password": "guess"})
    assert wrong.status_code == 401

    opened = client.post(f'/api/shared/{share["token"]}/verify', json={"password": "letmein"})
    assert opened.status_code == 200
    assert opened.get_json()["report"]["report_number"] == created["report_number"]
    assert "pdf_url" not in opened.get_json()

    client.delete(f'/api/reports/{created["id"]}/shares/{share["id"]}', headers=auth_headers(inspector))
    assert client.get(f'/api/shared/{share["token"]}').status_code == 403


# =============================================================================
# INSPECTION REQUESTS AND ASSIGNMENTS
# =============================================================================

def test_inspection_request_without_inspectors(client):
    response = client.post('/api/inspection-requests', json={
        "client_name": "Jane", "client_email": "jane@example.co.nz",
        "property_address": "1 Queen Street", "request_type": "PRE_PURCHASE",
    })
    assert response.status_code == 503


def test_inspection_request_validation(client, inspector):
    response = client.post('/api/inspection-requests', json={
        "client_name": "Jane", "client_email": "not-an-email",
        "property_address": "1 Queen Street", "request_type": "PRE_PURCHASE",
    })
    assert response.status_code == 400
    assert response.get_json()["error"] == "Validation failed"
    assert [d["loc"] for d in response.get_json()["details"]] == [["client_email"]]


def test_inspection_request_rejects_wrong_types(client, inspector):
    response = client.post('/api/inspection-requests', json={
        "client_name": 5, "client_email": "jane@example.co.nz",
        "property_address": "1 Queen Street", "request_type": "PRE_PURCHASE",
    })
    assert response.status_code == 400
    assert response.get_json()["details"][0]["loc"] == ["client_name"]

    unknown_type = client.post('/api/inspection-requests', json={
        "client_name": "Jane", "client_email": "jane@example.co.nz",
        "property_address": "1 Queen Street", "request_type": "ROOF_PARTY",
    })
    assert unknown_type.status_code == 400

    not_an_object = client.post('/api/inspection-requests', json=["Jane"])
    assert not_an_object.status_code == 400


def test_inspection_request_to_report(client, quiet_notifications):
    listed = make_user("INSPECTOR", name="Listed Inspector", is_public_listed=True,
                       service_areas=["Wellington"], years_experience=12)

    response = client.post('/api/inspection-requests', json={
        "client_name": "Jane", "client_email": "Jane@Example.co.nz",
        "property_address": "1 Lambton Quay", "property_region": "Wellington",
        "request_type": "PRE_PURCHASE", "urgency": "URGENT",
    })
    assert response.status_code == 201
    assert response.get_json()["reference_number"].startswith("REQ-")
    assert {to for to, _ in quiet_notifications} == {"jane@example.co.nz", listed["email"]}

    assignments = client.get('/api/assignments', headers=auth_headers(listed)).get_json()["assignments"]
    assignment_id = assignments[0]["id"]

    early = client.post(f'/api/assignments/{assignment_id}/report', headers=auth_headers(listed))
    assert early.status_code == 400

    bad = client.patch(f'/api/assignments/{assignment_id}', json={"status": "COMPLETED"},
                       headers=auth_headers(listed))
    assert bad.status_code == 400

    client.patch(f'/api/assignments/{assignment_id}', json={"status": "ACCEPTED"}, headers=auth_headers(listed))
    started = client.post(f'/api/assignments/{assignment_id}/report', headers=auth_headers(listed))
    assert started.status_code == 201
    assert started.get_json()["property_address"] == "1 Lambton Quay"
    assert started.get_json()["inspection_type"] == "PRE_PURCHASE"


def test_public_inspector_directory(client):
    make_user("INSPECTOR", name="Listed Inspector", is_public_listed=True, service_areas=["Otago"])
    make_user("INSPECTOR", name="Private Inspector")

    everyone = client.get('/api/inspectors').get_json()
    assert [i["name"] for i in everyone["inspectors"]] == ["Listed Inspector"]
    assert client.get('/api/inspectors?region=Canterbury').get_json()["total"] == 0


# =============================================================================
# IDENTITY WEBHOOK AND ADMIN
# =============================================================================

def test_identity_webhook_creates_pending_user(client, monkeypatch):
    monkeypatch.setattr(auth, "AUTH_SHARED_SECRET", "whsec")
    body = json.dumps({"type": "user.created",
                       "data": {"id": "ext_new", "email": "new@example.co.nz", "first_name": "New", "last_name": "User"}})

    rejected = client.post('/api/webhooks/identity', data=body, content_type='application/json',
                           headers={"X-Identity-Signature": "bad"})
    assert rejected.status_code == 401

    accepted = client.post('/api/webhooks/identity', data=body, content_type='application/json',
                           headers={"X-Identity-Signature": auth.sign(body.encode("utf-8"), "whsec")})
    assert accepted.get_json() == {"handled": True, "type": "user.created"}

    user = db.get_user_by_external_id("ext_new")
    assert user["name"] == "New User"
    assert user["status"] == "PENDING_ACTIVATION"


def test_admin_endpoints_require_admin(client, inspector, admin):
    assert client.get('/api/admin/users', headers=auth_headers(inspector)).status_code == 403
    assert client.get('/api/admin/users', headers=auth_headers(admin)).status_code == 200


def test_admin_role_changes(client, inspector, admin, super_admin):
    promote = client.patch(f'/api/admin/users/{inspector["id"]}', json={"role": "ADMIN"},
                           headers=auth_headers(admin))
    assert promote.status_code == 403

    self_edit = client.patch(f'/api/admin/users/{admin["id"]}', json={"status": "SUSPENDED"},
                             headers=auth_headers(admin))
    assert self_edit.status_code == 403

    reviewer = client.patch(f'/api/admin/users/{inspector["id"]}', json={"role": "REVIEWER"},
                            headers=auth_headers(admin))
    assert reviewer.get_json()["role"] == "REVIEWER"

    promoted = client.patch(f'/api/admin/users/{inspector["id"]}', json={"role": "ADMIN"},
                            headers=auth_headers(super_admin))
    assert promoted.get_json()["role"] == "ADMIN"


def test_complaint_grounds(client, admin):
    body = client.get('/api/admin/complaints/grounds', headers=auth_headers(admin)).get_json()

    assert body["max_selected"] == 5
    codes = [g["code"] for g in body["grounds"]]
    assert "NEGLIGENT_OR_INCOMPETENT_WORK" in codes
    assert len(codes) == 11


def test_dashboard_stats(client, inspector, created):
    stats = client.get('/api/dashboard/stats', headers=auth_headers(inspector)).get_json()

    assert stats["total_reports"] == 1
    assert stats["drafts"] == 1
    assert stats["recent_reports"][0]["id"] == created["id"]
