"""
Report submission validation.

Checks an assembled report against the minimum documentation required for
its inspection type. Problems that block submission are errors; gaps that
weaken the report without blocking it are warnings.
"""

from typing import Dict, List, Any
from dataclasses import dataclass, asdict, field

from checklists import checklist_name, is_unanswered


REQUIRED_CHECKLISTS = {
    "FULL_INSPECTION": ["e2_as1", "metal_roof_cop", "b2_durability"],
    "VISUAL_ONLY": ["e2_as1"],
    "NON_INVASIVE": ["e2_as1", "b2_durability"],
    "INVASIVE": ["e2_as1", "metal_roof_cop", "b2_durability"],
    "DISPUTE_RESOLUTION": ["e2_as1", "metal_roof_cop", "b2_durability"],
    "PRE_PURCHASE": ["e2_as1", "b2_durability"],
    "MAINTENANCE_REVIEW": ["e2_as1"],
    "WARRANTY_CLAIM": ["e2_as1", "metal_roof_cop", "b2_durability"],
}
DEFAULT_REQUIRED_CHECKLISTS = ["e2_as1"]

MINIMUM_PHOTOS = {
    "FULL_INSPECTION": 20,
    "VISUAL_ONLY": 10,
    "NON_INVASIVE": 15,
    "INVASIVE": 25,
    "DISPUTE_RESOLUTION": 30,
    "PRE_PURCHASE": 15,
    "MAINTENANCE_REVIEW": 10,
    "WARRANTY_CLAIM": 25,
}
DEFAULT_MINIMUM_PHOTOS = 10

MINIMUM_ELEMENTS = {
    "FULL_INSPECTION": 5,
    "VISUAL_ONLY": 3,
    "NON_INVASIVE": 4,
    "INVASIVE": 5,
    "DISPUTE_RESOLUTION": 5,
    "PRE_PURCHASE": 4,
    "MAINTENANCE_REVIEW": 3,
    "WARRANTY_CLAIM": 5,
}
DEFAULT_MINIMUM_ELEMENTS = 3

# Inspection types where an executive summary is expected
SUMMARY_RECOMMENDED_TYPES = {"FULL_INSPECTION", "PRE_PURCHASE"}

TOTAL_CHECKS = 7  # property, inspection, inspector, elements, defects, photos, compliance


@dataclass
class ValidationResult:
    """Outcome of validating a report for submission."""
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    completion_percentage: int
    missing_required_items: List[str]
    validation_details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def minimum_photos_for(inspection_type: str) -> int:
    return MINIMUM_PHOTOS.get(inspection_type, DEFAULT_MINIMUM_PHOTOS)


def minimum_elements_for(inspection_type: str) -> int:
    return MINIMUM_ELEMENTS.get(inspection_type, DEFAULT_MINIMUM_ELEMENTS)


def required_checklists_for(inspection_type: str) -> List[str]:
    return list(REQUIRED_CHECKLISTS.get(inspection_type, DEFAULT_REQUIRED_CHECKLISTS))


def _has_exif(photo: Dict[str, Any]) -> bool:
    return bool(photo.get("captured_at") or photo.get("camera_make") or photo.get("camera_model"))


def validate_report(report: Dict[str, Any]) -> ValidationResult:
    """
    Validate a report for submission.

    Args:
        report: Report dictionary including 'inspector', 'roof_elements',
                'defects' (each with 'photos'), 'photos' and
                'compliance_assessment'

    Returns:
        ValidationResult with errors, warnings and completion percentage
    """
    errors: List[str] = []
    warnings: List[str] = []
    missing_items: List[str] = []
    inspection_type = report.get("inspection_type")

    # Property details
    property_missing = []
    if not report.get("property_address"):
        property_missing.append("Property address")
    if not report.get("property_city"):
        property_missing.append("Property city")
    if not report.get("property_region"):
        property_missing.append("Property region")
    if not report.get("property_postcode"):
        property_missing.append("Property postcode")
    if not report.get("property_type"):
        property_missing.append("Property type")

    if property_missing:
        errors.append(f"Missing property details: {', '.join(property_missing)}")
        missing_items.extend(property_missing)

    # Inspection details
    inspection_missing = []
    if not report.get("inspection_date"):
        inspection_missing.append("Inspection date")
    if not inspection_type:
        inspection_missing.append("Inspection type")
    if not report.get("client_name"):
        inspection_missing.append("Client name")

    if inspection_missing:
        errors.append(f"Missing inspection details: {', '.join(inspection_missing)}")
        missing_items.extend(inspection_missing)

    if not report.get("weather_conditions"):
        warnings.append("Weather conditions not documented")
    if not report.get("access_method"):
        warnings.append("Access method not documented")

    # Inspector
    inspector = report.get("inspector") or {}
    if not inspector.get("name"):
        errors.append("Inspector name is required")
        missing_items.append("Inspector name")
    if not inspector.get("lbp_number"):
        warnings.append("Inspector LBP number not provided")
    if not inspector.get("qualifications"):
        warnings.append("Inspector qualifications not documented")

    # Roof elements
    minimum_elements = minimum_elements_for(inspection_type)
    element_count = len(report.get("roof_elements") or [])
    if element_count < minimum_elements:
        errors.append(
            f"Insufficient roof elements documented. Required: {minimum_elements}, Found: {element_count}"
        )
        missing_items.append(f"Roof elements (need {minimum_elements - element_count} more)")

    # Defects (zero defects is a valid outcome)
    defects = report.get("defects") or []
    without_photos = len([d for d in defects if not d.get("photos")])
    if without_photos:
        warnings.append(f"{without_photos} defect(s) have no supporting photos")
    without_description = len([d for d in defects if not d.get("description")])
    if without_description:
        warnings.append(f"{without_description} defect(s) have no description")

    # Photos
    minimum_photos = minimum_photos_for(inspection_type)
    photos = report.get("photos") or []
    photo_count = len(photos)
    with_exif = len([p for p in photos if _has_exif(p)])
    if photo_count < minimum_photos:
        errors.append(f"Insufficient photos. Required: {minimum_photos}, Found: {photo_count}")
        missing_items.append(f"Photos (need {minimum_photos - photo_count} more)")
    if photo_count - with_exif > 0:
        warnings.append(
            f"{photo_count - with_exif} photo(s) missing EXIF metadata. "
            f"This may affect evidentiary value."
        )

    # Compliance
    required = required_checklists_for(inspection_type)
    assessment = report.get("compliance_assessment")
    coverage = 0
    if not assessment:
        errors.append("Compliance assessment is required")
        missing_items.append("Compliance assessment")
    else:
        results = assessment.get("checklist_results") or {}
        missing_checklists = [c for c in required if c not in results]
        if missing_checklists:
            names = [checklist_name(c) for c in missing_checklists]
            errors.append(f"Missing required compliance checklists: {', '.join(names)}")
            missing_items.extend(f"{name} checklist" for name in names)

        coverage = round((len(required) - len(missing_checklists)) / len(required) * 100)

        for key, items in results.items():
            unanswered = len([v for v in (items or {}).values() if is_unanswered(v)])
            if unanswered:
                warnings.append(f"{key} checklist has {unanswered} unanswered item(s)")

    if inspection_type in SUMMARY_RECOMMENDED_TYPES and not report.get("executive_summary"):
        warnings.append("Executive summary is recommended for this inspection type")

    compliance_complete = bool(assessment) and coverage == 100
    passed = sum([
        not property_missing,
        not inspection_missing,
        bool(inspector.get("name")),
        element_count >= minimum_elements,
        True,  # defects
        photo_count >= minimum_photos,
        compliance_complete,
    ])

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        completion_percentage=round(passed / TOTAL_CHECKS * 100),
        missing_required_items=missing_items,
        validation_details={
            "property_details": {"complete": not property_missing, "missing": property_missing},
            "inspection_details": {"complete": not inspection_missing, "missing": inspection_missing},
            "roof_elements": {
                "complete": element_count >= minimum_elements,
                "count": element_count,
                "minimum": minimum_elements,
            },
            "defects": {"documented": True, "count": len(defects)},
            "photos": {
                "sufficient": photo_count >= minimum_photos,
                "count": photo_count,
                "minimum": minimum_photos,
                "with_exif": with_exif,
            },
            "compliance": {
                "complete": compliance_complete,
                "coverage": coverage,
                "required": len(required),
            },
        },
    )
