"""
Shared pytest fixtures.

The database and object storage point at a temporary directory before any
application module is imported.
"""

import io
import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="roofing-reports-tests-")
os.environ["DATABASE_PATH"] = os.path.join(_TEST_DIR, "test.db")
os.environ["STORAGE_FOLDER"] = os.path.join(_TEST_DIR, "storage")
os.environ["AUTH_SHARED_SECRET"] = ""
os.environ["EMAIL_ENABLED"] = "false"

import pytest
from datetime import datetime
from PIL import Image

import database as db


@pytest.fixture(autouse=True)
def fresh_database():
    db.drop_db()
    db.init_db()
    yield
    db.Session.remove()


@pytest.fixture
def client():
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as test_client:
        yield test_client


def make_user(role="INSPECTOR", name=None, **profile):
    count = len(db.list_users(per_page=100)["users"])
    name = name or f"{role.title()} {count + 1}"
    return db.create_user(
        external_id=f"ext_{role.lower()}_{count + 1}",
        email=f"{role.lower()}{count + 1}@example.co.nz",
        name=name,
        role=role,
        **profile
    )


def auth_headers(user):
    return {"X-Identity-User": user["external_id"]}


def report_fields(**overrides):
    fields = {
        "property_address": "12 Kauri Street",
        "property_city": "Auckland",
        "property_region": "Auckland",
        "property_postcode": "1010",
        "property_type": "RESIDENTIAL_1",
        "inspection_date": datetime(2025, 3, 14, 9, 30),
        "inspection_type": "VISUAL_ONLY",
        "client_name": "Jane Client",
        "weather_conditions": "Fine",
        "access_method": "Ladder",
    }
    fields.update(overrides)
    return fields


def jpeg_bytes(color=(200, 60, 60), size=(64, 48), exif=None):
    buffer = io.BytesIO()
    image = Image.new("RGB", size, color)
    if exif is not None:
        image.save(buffer, format="JPEG", exif=exif)
    else:
        image.save(buffer, format="JPEG")
    return buffer.getvalue()


def stored_photo(index=0):
    return {
        "filename": f"photo-{index}.jpg",
        "original_filename": f"IMG_{index:04d}.jpg",
        "mime_type": "image/jpeg",
        "file_size": 1024,
        "url": f"/media/test/photo-{index}.jpg",
        "thumbnail_url": None,
        "original_hash": f"{index:064x}",
        "exif": {"captured_at": datetime(2025, 3, 14, 9, index % 60), "camera_make": "Canon"},
    }


def make_submittable(report, user):
    """Add the elements, photos and checklist a VISUAL_ONLY report needs."""
    db.add_roof_elements(report["id"], user, [
        {"element_type": "ROOF_CLADDING", "location": "Main roof"},
        {"element_type": "RIDGE", "location": "Main ridge"},
        {"element_type": "GUTTER", "location": "North elevation"},
    ])
    for index in range(10):
        db.add_photo(report["id"], user, {"photo_type": "OVERVIEW"}, stored_photo(index))
    db.save_compliance(report["id"], user, {"checklist_results": {"e2_as1": {"e2_3_1": "PASS"}}})
    return db.get_report(report["id"], user)


@pytest.fixture
def inspector():
    return make_user("INSPECTOR", name="Ivan Inspector", lbp_number="BP123456",
                     qualifications="NZCB Roofing")


@pytest.fixture
def reviewer():
    return make_user("REVIEWER", name="Rita Reviewer")


@pytest.fixture
def admin():
    return make_user("ADMIN", name="Alan Admin")


@pytest.fixture
def super_admin():
    return make_user("SUPER_ADMIN", name="Sue Super")


@pytest.fixture
def report(inspector):
    return db.create_report(inspector, report_fields())
