"""Tests for report submission validation."""

from submission import validate_report, minimum_photos_for, required_checklists_for


def complete_report(inspection_type="VISUAL_ONLY", photos=10, elements=3):
    return {
        "property_address": "12 Kauri Street",
        "property_city": "Auckland",
        "property_region": "Auckland",
        "property_postcode": "1010",
        "property_type": "RESIDENTIAL_1",
        "inspection_date": "2025-03-14T09:30:00",
        "inspection_type": inspection_type,
        "client_name": "Jane Client",
        "weather_conditions": "Fine",
        "access_method": "Ladder",
        "inspector": {"name": "Ivan Inspector", "lbp_number": "BP123456", "qualifications": "NZCB"},
        "roof_elements": [{"id": f"e{i}"} for i in range(elements)],
        "defects": [],
        "photos": [{"id": f"p{i}", "captured_at": "2025-03-14T09:31:00"} for i in range(photos)],
        "compliance_assessment": {
            "checklist_results": {key: {} for key in required_checklists_for(inspection_type)}
        },
    }


def test_complete_report_is_valid():
    result = validate_report(complete_report())

    assert result.is_valid
    assert result.errors == []
    assert result.completion_percentage == 100
    assert result.missing_required_items == []


def test_missing_property_details_are_listed_together():
    report = complete_report()
    report["property_city"] = ""
    report["property_postcode"] = None

    result = validate_report(report)

    assert not result.is_valid
    assert "Missing property details: Property city, Property postcode" in result.errors
    assert "Property city" in result.missing_required_items
    assert result.validation_details["property_details"]["complete"] is False


def test_photo_minimum_depends_on_inspection_type():
    assert minimum_photos_for("DISPUTE_RESOLUTION") == 30
    assert minimum_photos_for("SOMETHING_ELSE") == 10

    result = validate_report(complete_report("FULL_INSPECTION", photos=19, elements=5))

    assert "Insufficient photos. Required: 20, Found: 19" in result.errors
    assert "Photos (need 1 more)" in result.missing_required_items


def test_insufficient_roof_elements():
    result = validate_report(complete_report(elements=1))

    assert "Insufficient roof elements documented. Required: 3, Found: 1" in result.errors
    assert result.validation_details["roof_elements"] == {"complete": False, "count": 1, "minimum": 3}


def test_missing_compliance_assessment_is_an_error():
    report = complete_report()
    report["compliance_assessment"] = None

    result = validate_report(report)

    assert "Compliance assessment is required" in result.errors
    assert result.validation_details["compliance"]["complete"] is False


def test_missing_required_checklist_uses_display_name():
    report = complete_report("FULL_INSPECTION", photos=20, elements=5)
    del report["compliance_assessment"]["checklist_results"]["metal_roof_cop"]

    result = validate_report(report)

    assert "Missing required compliance checklists: Metal Roof COP" in result.errors
    assert result.validation_details["compliance"]["coverage"] == 67


def test_warnings_do_not_block_submission():
    report = complete_report()
    report["weather_conditions"] = None
    report["inspector"]["lbp_number"] = None
    report["photos"][0] = {"id": "p0"}
    report["defects"] = [{"id": "d1", "description": "Rust on ridge", "photos": []}]

    result = validate_report(report)

    assert result.is_valid
    assert "Weather conditions not documented" in result.warnings
    assert "Inspector LBP number not provided" in result.warnings
    assert "1 defect(s) have no supporting photos" in result.warnings
    assert any("1 photo(s) missing EXIF metadata" in w for w in result.warnings)


def test_unanswered_checklist_items_warn():
    report = complete_report()
    report["compliance_assessment"]["checklist_results"]["e2_as1"] = {"e2_3_1": "PASS", "e2_3_2": None}

    result = validate_report(report)

    assert "e2_as1 checklist has 1 unanswered item(s)" in result.warnings


def test_executive_summary_recommended_for_full_inspection():
    result = validate_report(complete_report("FULL_INSPECTION", photos=20, elements=5))
    assert "Executive summary is recommended for this inspection type" in result.warnings

    result = validate_report(complete_report())
    assert "Executive summary is recommended for this inspection type" not in result.warnings


def test_completion_percentage_counts_passed_sections():
    report = complete_report(photos=0, elements=0)
    report["compliance_assessment"] = None

    result = validate_report(report)

    # property, inspection, inspector and defects pass: 4 of 7
    assert result.completion_percentage == 57


def test_to_dict_is_json_friendly():
    data = validate_report(complete_report()).to_dict()
    assert set(data) == {
        "is_valid", "errors", "warnings", "completion_percentage",
        "missing_required_items", "validation_details",
    }
