"""Tests for the compliance checklist catalogue."""

import pytest

from checklists import (
    CHECKLISTS,
    checklist_name,
    validate_checklist_results,
    summarise_checklist,
    derive_compliance_status,
)


def test_catalogue_has_the_three_checklists():
    assert set(CHECKLISTS) == {"e2_as1", "metal_roof_cop", "b2_durability"}
    assert checklist_name("b2_durability") == "B2 Durability"
    assert checklist_name("unknown") == "unknown"


def test_validate_accepts_known_results_and_blanks():
    validate_checklist_results({"e2_as1": {"e2_3_1": "PASS", "e2_3_2": "NOT_APPLICABLE", "e2_pitch": None}})


def test_validate_accepts_lowercase_and_short_forms():
    results = validate_checklist_results({
        "e2_as1": {"e2_3_1": "pass", "e2_3_2": "na", "e2_pitch": "N/A", "e2_gutters": " Partial ", "e2_sealants": ""},
        "b2_durability": {"b2_fastener": "fail"},
    })

    assert results == {
        "e2_as1": {
            "e2_3_1": "PASS",
            "e2_3_2": "NOT_APPLICABLE",
            "e2_pitch": "NOT_APPLICABLE",
            "e2_gutters": "PARTIAL",
            "e2_sealants": "",
        },
        "b2_durability": {"b2_fastener": "FAIL"},
    }


@pytest.mark.parametrize("results, message", [
    ({"nzs_3604": {}}, "Unknown compliance checklist: nzs_3604"),
    ({"e2_as1": {"cop_3_1": "PASS"}}, "Unknown item 'cop_3_1' in e2_as1 checklist"),
    ({"e2_as1": {"e2_3_1": "MAYBE"}}, "Invalid result 'MAYBE' for e2_as1.e2_3_1"),
    ({"e2_as1": ["PASS"]}, "Results for e2_as1 must be an object"),
])
def test_validate_rejects_bad_payloads(results, message):
    with pytest.raises(ValueError, match=message):
        validate_checklist_results(results)


def test_summary_counts_catalogue_items_without_answers_as_unanswered():
    summary = summarise_checklist("e2_as1", {"e2_3_1": "PASS", "e2_3_2": "FAIL", "e2_pitch": "PARTIAL"})

    assert summary["name"] == "E2/AS1 External Moisture"
    assert summary["total_items"] == 11
    assert summary["passed"] == 1
    assert summary["failed"] == 1
    assert summary["partial"] == 1
    assert summary["unanswered"] == 8


@pytest.mark.parametrize("results, status", [
    ({}, "INCOMPLETE"),
    ({"e2_as1": {"e2_3_1": None}}, "INCOMPLETE"),
    ({"e2_as1": {"e2_3_1": "PASS"}, "b2_durability": {"b2_fastener": "FAIL"}}, "NON_COMPLIANT"),
    ({"e2_as1": {"e2_3_1": "PASS", "e2_3_2": "PARTIAL"}}, "PARTIALLY_COMPLIANT"),
    ({"e2_as1": {"e2_3_1": "PASS", "e2_3_2": "NOT_APPLICABLE"}}, "COMPLIANT"),
    ({"e2_as1": {"e2_3_1": "NOT_APPLICABLE", "e2_3_2": "NOT_APPLICABLE"}}, "NOT_ASSESSED"),
    ({"e2_as1": {"e2_3_1": "NOT_APPLICABLE", "e2_3_2": None}}, "NOT_ASSESSED"),
    ({"e2_as1": {"e2_3_1": "NOT_APPLICABLE", "e2_3_2": "FAIL"}}, "NON_COMPLIANT"),
    ({"e2_as1": {"e2_3_1": "pass", "e2_3_2": "partial"}}, "PARTIALLY_COMPLIANT"),
])
def test_derive_compliance_status(results, status):
    assert derive_compliance_status(results) == status
