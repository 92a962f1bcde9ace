"""
Compliance checklist catalogue for roofing inspections.

Each checklist is keyed by a short id and lists the items an inspector
answers. Results are stored on the report's compliance assessment as
{checklist_key: {item_id: result}}.
"""

from typing import Dict, List, Any


PASS = "PASS"
FAIL = "FAIL"
PARTIAL = "PARTIAL"
NOT_APPLICABLE = "NOT_APPLICABLE"

VALID_RESULTS = {PASS, FAIL, PARTIAL, NOT_APPLICABLE}

# Short forms sent by the inspection app
RESULT_ALIASES = {"NA": NOT_APPLICABLE, "N/A": NOT_APPLICABLE}


CHECKLISTS: Dict[str, Dict[str, Any]] = {
    "e2_as1": {
        "name": "E2/AS1 External Moisture",
        "standard": "E2/AS1 4th Edition",
        "items": [
            {"id": "e2_3_1", "section": "E2.3.1", "item": "Precipitation Shedding"},
            {"id": "e2_3_2", "section": "E2.3.2", "item": "Water Penetration Prevention"},
            {"id": "e2_pitch", "section": "E2/AS1 Table 1", "item": "Roof Pitch Adequacy"},
            {"id": "e2_flashing_junctions", "section": "E2/AS1 9.1", "item": "Flashing at Junctions"},
            {"id": "e2_flashing_penetrations", "section": "E2/AS1 9.2", "item": "Penetration Flashings"},
            {"id": "e2_underlay", "section": "E2/AS1 8.5", "item": "Underlay Installation"},
            {"id": "e2_gutters", "section": "E2/AS1 10.1", "item": "Gutter and Drainage"},
            {"id": "e2_clearances", "section": "E2/AS1 6.1", "item": "Ground Clearances"},
            {"id": "e2_ventilation", "section": "E2/AS1 8.6", "item": "Roof Cavity Ventilation"},
            {"id": "e2_compatibility", "section": "E2/AS1 4.1", "item": "Material Compatibility"},
            {"id": "e2_sealants", "section": "E2/AS1 9.4", "item": "Sealant Condition"},
        ],
    },
    "metal_roof_cop": {
        "name": "Metal Roof COP",
        "standard": "Metal Roof and Wall Cladding Code of Practice v25.12",
        "items": [
            {"id": "cop_3_1", "section": "Section 3.1", "item": "Structure/B1 Compliance - Support"},
            {"id": "cop_3_2", "section": "Section 3.2", "item": "Fastening Patterns"},
            {"id": "cop_4_1", "section": "Section 4.1", "item": "Durability/B2 - Environmental Category"},
            {"id": "cop_4_2", "section": "Section 4.2", "item": "Material Expected Life"},
            {"id": "cop_5_1", "section": "Section 5.1", "item": "Roof Drainage/E1 Compliance"},
            {"id": "cop_6_1", "section": "Section 6.1", "item": "External Moisture/E2 - General"},
            {"id": "cop_7_1", "section": "Section 7.1", "item": "Minimum Roof Pitch"},
            {"id": "cop_7_2", "section": "Section 7.2", "item": "End Lap Requirements"},
            {"id": "cop_7_3", "section": "Section 7.3", "item": "Side Lap Requirements"},
            {"id": "cop_8_1", "section": "Section 8.1", "item": "Flashing Design"},
            {"id": "cop_8_2", "section": "Section 8.2", "item": "Sealant Application"},
            {"id": "cop_9_1", "section": "Section 9.1", "item": "Fastener Type"},
            {"id": "cop_9_2", "section": "Section 9.2", "item": "Fastener Spacing"},
            {"id": "cop_10_1", "section": "Section 10.1", "item": "Internal Moisture/E3 - Condensation"},
            {"id": "cop_10_2", "section": "Section 10.2", "item": "Underlay Specification"},
            {"id": "cop_11_1", "section": "Section 11.1", "item": "Expansion Allowances"},
        ],
    },
    "b2_durability": {
        "name": "B2 Durability",
        "standard": "NZBC B2 Durability",
        "items": [
            {"id": "b2_cladding_15", "section": "B2.3.1(a)", "item": "Roof Cladding Durability"},
            {"id": "b2_flashing_15", "section": "B2.3.1(a)", "item": "Flashing Durability"},
            {"id": "b2_fastener", "section": "B2.3.1", "item": "Fastener Durability"},
            {"id": "b2_sealant_5", "section": "B2.3.1(b)", "item": "Sealant Durability"},
            {"id": "b2_coating", "section": "B2.3.1(a)", "item": "Paint/Coating Durability"},
            {"id": "b2_structure_50", "section": "B2.3.1(c)", "item": "Structural Element Durability"},
            {"id": "b2_condition_age", "section": "B2 General", "item": "Condition vs Expected Life"},
            {"id": "b2_accelerated_wear", "section": "B2 General", "item": "Signs of Accelerated Wear"},
            {"id": "b2_maintenance", "section": "B2.3.2", "item": "Maintenance Requirements"},
            {"id": "b2_environmental", "section": "B2.3.1", "item": "Environmental Exposure Assessment"},
        ],
    },
}


def checklist_name(key: str) -> str:
    """Display name for a checklist key (the key itself when unknown)."""
    checklist = CHECKLISTS.get(key)
    return checklist["name"] if checklist else key


def checklist_item_ids(key: str) -> List[str]:
    return [item["id"] for item in CHECKLISTS.get(key, {}).get("items", [])]


def is_unanswered(value) -> bool:
    return value is None or value == ""


def normalise_result(value):
    """Canonical form of one item result; unrecognised values are returned unchanged."""
    if is_unanswered(value) or not isinstance(value, str):
        return value
    upper = value.strip().upper()
    return RESULT_ALIASES.get(upper, upper) if upper else None


def validate_checklist_results(results: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Check a checklist_results payload before it is stored.

    Results are matched case-insensitively, and "na" / "n/a" mean
    NOT_APPLICABLE.

    Args:
        results: Mapping of checklist key to {item_id: result}

    Returns:
        The payload with every result in canonical upper-case form

    Raises:
        ValueError: On unknown checklists, unknown items or invalid results
    """
    if not isinstance(results, dict):
        raise ValueError("checklist_results must be an object")

    normalised = {}
    for key, items in results.items():
        if key not in CHECKLISTS:
            raise ValueError(f"Unknown compliance checklist: {key}")
        if not isinstance(items, dict):
            raise ValueError(f"Results for {key} must be an object")

        known_items = set(checklist_item_ids(key))
        normalised[key] = {}
        for item_id, value in items.items():
            if item_id not in known_items:
                raise ValueError(f"Unknown item '{item_id}' in {key} checklist")
            result = normalise_result(value)
            if not is_unanswered(result) and result not in VALID_RESULTS:
                raise ValueError(
                    f"Invalid result '{value}' for {key}.{item_id}. "
                    f"Use one of: {', '.join(sorted(VALID_RESULTS))}"
                )
            normalised[key][item_id] = result
    return normalised


def summarise_checklist(key: str, results: Dict[str, Any]) -> Dict[str, Any]:
    """
    Count results for one checklist.

    Items in the catalogue with no stored answer count as unanswered.
    """
    results = results or {}
    item_ids = checklist_item_ids(key) or list(results.keys())

    counts = {PASS: 0, FAIL: 0, PARTIAL: 0, NOT_APPLICABLE: 0}
    unanswered = 0
    for item_id in item_ids:
        value = results.get(item_id)
        if is_unanswered(value):
            unanswered += 1
        elif value in counts:
            counts[value] += 1

    return {
        "key": key,
        "name": checklist_name(key),
        "total_items": len(item_ids),
        "passed": counts[PASS],
        "failed": counts[FAIL],
        "partial": counts[PARTIAL],
        "not_applicable": counts[NOT_APPLICABLE],
        "unanswered": unanswered,
    }


def derive_compliance_status(results: Dict[str, Any]) -> str:
    """
    Overall compliance status across all stored checklists.

    NOT_APPLICABLE answers take no part in the verdict.

    Returns:
        INCOMPLETE when nothing has been answered, NOT_ASSESSED when every
        answer is NOT_APPLICABLE, NON_COMPLIANT when any item failed,
        PARTIALLY_COMPLIANT when any item is partial, else COMPLIANT.
    """
    answered = [
        normalise_result(value)
        for items in (results or {}).values()
        for value in (items or {}).values()
        if not is_unanswered(value)
    ]
    if not answered:
        return "INCOMPLETE"
    assessed = [value for value in answered if value != NOT_APPLICABLE]
    if not assessed:
        return "NOT_ASSESSED"
    if FAIL in assessed:
        return "NON_COMPLIANT"
    if PARTIAL in assessed:
        return "PARTIALLY_COMPLIANT"
    return "COMPLIANT"
