"""
Request body schemas.

Handlers validate JSON bodies with Model.model_validate(...); a failure
raises pydantic.ValidationError, which app.py turns into a 400 response.
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from constants import (
    PropertyType,
    InspectionType,
    DefectClass,
    DefectSeverity,
    PriorityLevel,
    ElementType,
    ConditionRating,
    PhotoType,
    CommentSeverity,
    ShareAccessLevel,
    AssignmentStatus,
    AssignmentUrgency,
    Role,
    UserStatus,
)

EMAIL_PATTERN = r'^[^\s@]+@[^\s@]+\.[^\s@]+$'
OPTIONAL_EMAIL_PATTERN = r'^(|[^\s@]+@[^\s@]+\.[^\s@]+)$'
LBP_NUMBER_PATTERN = r'^[A-Z]{2}\d{6}$'


class RequestModel(BaseModel):
    """Base for request bodies: enum fields are stored as their string values."""
    model_config = ConfigDict(use_enum_values=True, str_strip_whitespace=True)

    @field_validator('*', mode='after')
    @classmethod
    def naive_utc(cls, value):
        """Stored datetimes are naive UTC; offsets are converted away."""
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def changes(self) -> Dict[str, Any]:
        """Only the fields present in the request."""
        return self.model_dump(exclude_unset=True)


# =============================================================================
# REPORTS
# =============================================================================

class ReportCreate(RequestModel):
    property_address: str = Field(..., min_length=1, max_length=200)
    property_city: str = Field(..., min_length=1, max_length=100)
    property_region: str = Field(..., min_length=1, max_length=100)
    property_postcode: str = Field(..., min_length=1, max_length=10)
    property_type: PropertyType
    building_age: Optional[int] = Field(None, ge=0, le=200)
    inspection_date: datetime
    inspection_type: InspectionType
    weather_conditions: Optional[str] = Field(None, max_length=500)
    access_method: Optional[str] = Field(None, max_length=200)
    limitations: Optional[str] = Field(None, max_length=2000)
    client_name: str = Field(..., min_length=1, max_length=100)
    client_email: Optional[str] = Field(None, pattern=OPTIONAL_EMAIL_PATTERN)
    client_phone: Optional[str] = Field(None, max_length=20)
    client_company: Optional[str] = Field(None, max_length=100)
    gps_lat: Optional[float] = Field(None, ge=-90, le=90)
    gps_lng: Optional[float] = Field(None, ge=-180, le=180)


class ReportUpdate(RequestModel):
    property_address: Optional[str] = Field(None, min_length=1, max_length=200)
    property_city: Optional[str] = Field(None, min_length=1, max_length=100)
    property_region: Optional[str] = Field(None, min_length=1, max_length=100)
    property_postcode: Optional[str] = Field(None, min_length=1, max_length=10)
    property_type: Optional[PropertyType] = None
    building_age: Optional[int] = Field(None, ge=0, le=200)
    inspection_date: Optional[datetime] = None
    inspection_type: Optional[InspectionType] = None
    weather_conditions: Optional[str] = Field(None, max_length=500)
    temperature: Optional[float] = Field(None, ge=-50, le=60)
    access_method: Optional[str] = Field(None, max_length=200)
    limitations: Optional[str] = Field(None, max_length=2000)
    client_name: Optional[str] = Field(None, min_length=1, max_length=100)
    client_email: Optional[str] = Field(None, pattern=OPTIONAL_EMAIL_PATTERN)
    client_phone: Optional[str] = Field(None, max_length=20)
    client_company: Optional[str] = Field(None, max_length=100)
    consent_number: Optional[str] = Field(None, max_length=50)
    consent_date: Optional[datetime] = None
    code_of_compliance_date: Optional[datetime] = None
    engaging_party: Optional[str] = Field(None, max_length=200)
    scope_of_works: Optional[Any] = None
    methodology: Optional[Any] = None
    executive_summary: Optional[Any] = None
    findings: Optional[Any] = None
    conclusions: Optional[Any] = None
    recommendations: Optional[Any] = None
    gps_lat: Optional[float] = Field(None, ge=-90, le=90)
    gps_lng: Optional[float] = Field(None, ge=-180, le=180)


class ReportDuplicate(RequestModel):
    include_defects: bool = False
    include_roof_elements: bool = True
    include_compliance_assessment: bool = False
    property_address: Optional[str] = Field(None, min_length=1, max_length=200)
    property_city: Optional[str] = Field(None, min_length=1, max_length=100)
    property_region: Optional[str] = Field(None, min_length=1, max_length=100)
    property_postcode: Optional[str] = Field(None, min_length=1, max_length=10)
    client_name: Optional[str] = Field(None, min_length=1, max_length=100)
    client_email: Optional[str] = Field(None, pattern=OPTIONAL_EMAIL_PATTERN)
    client_phone: Optional[str] = Field(None, max_length=20)
    inspection_date: Optional[datetime] = None


class ExpertDeclaration(RequestModel):
    """Expert witness declaration items; every item must be confirmed."""
    expertise_confirmed: Literal[True]
    code_of_conduct_accepted: Literal[True]
    court_compliance_accepted: Literal[True]
    false_evidence_understood: Literal[True]
    impartiality_confirmed: Literal[True]
    inspection_conducted: Literal[True]
    evidence_integrity: Literal[True]


class DeclarationSign(RequestModel):
    declaration_signed: Literal[True]
    signature_data: Optional[str] = None  # base64 PNG
    expert_declaration: Optional[ExpertDeclaration] = None
    has_conflict: bool = False
    conflict_disclosure: Optional[str] = Field(None, max_length=5000)

    @model_validator(mode="after")
    def disclosure_for_conflict(self):
        if self.has_conflict and not self.conflict_disclosure:
            raise ValueError("Conflict disclosure is required when a conflict is declared")
        return self


# =============================================================================
# CHILD RECORDS
# =============================================================================

class DefectCreate(RequestModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=5000)
    location: str = Field(..., min_length=2, max_length=200)
    classification: DefectClass
    severity: DefectSeverity
    observation: str = Field(..., min_length=10, max_length=5000)
    analysis: Optional[str] = Field(None, max_length=5000)
    opinion: Optional[str] = Field(None, max_length=5000)
    code_reference: Optional[str] = Field(None, max_length=200)
    cop_reference: Optional[str] = Field(None, max_length=200)
    probable_cause: Optional[str] = Field(None, max_length=2000)
    contributing_factors: Optional[str] = Field(None, max_length=2000)
    recommendation: Optional[str] = Field(None, max_length=2000)
    priority_level: Optional[PriorityLevel] = None
    estimated_cost: Optional[str] = Field(None, max_length=100)
    roof_element_id: Optional[str] = None
    photo_ids: Optional[List[str]] = None
    measurements: Optional[Dict[str, Any]] = None


class DefectUpdate(RequestModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=5000)
    location: Optional[str] = Field(None, min_length=2, max_length=200)
    classification: Optional[DefectClass] = None
    severity: Optional[DefectSeverity] = None
    observation: Optional[str] = Field(None, min_length=10, max_length=5000)
    analysis: Optional[str] = Field(None, max_length=5000)
    opinion: Optional[str] = Field(None, max_length=5000)
    code_reference: Optional[str] = Field(None, max_length=200)
    cop_reference: Optional[str] = Field(None, max_length=200)
    probable_cause: Optional[str] = Field(None, max_length=2000)
    contributing_factors: Optional[str] = Field(None, max_length=2000)
    recommendation: Optional[str] = Field(None, max_length=2000)
    priority_level: Optional[PriorityLevel] = None
    estimated_cost: Optional[str] = Field(None, max_length=100)
    roof_element_id: Optional[str] = None
    photo_ids: Optional[List[str]] = None
    measurements: Optional[Dict[str, Any]] = None


class RoofElementCreate(RequestModel):
    element_type: ElementType
    location: str = Field(..., min_length=2, max_length=200)
    cladding_type: Optional[str] = Field(None, max_length=100)
    cladding_profile: Optional[str] = Field(None, max_length=100)
    material: Optional[str] = Field(None, max_length=100)
    manufacturer: Optional[str] = Field(None, max_length=100)
    colour: Optional[str] = Field(None, max_length=50)
    pitch: Optional[float] = Field(None, ge=0, le=90)
    area: Optional[float] = Field(None, ge=0, le=100000)
    age_years: Optional[int] = Field(None, ge=0, le=200)
    condition_rating: Optional[ConditionRating] = None
    condition_notes: Optional[str] = Field(None, max_length=2000)
    meets_cop: Optional[bool] = None
    meets_e2: Optional[bool] = None


class RoofElementUpdate(RequestModel):
    element_type: Optional[ElementType] = None
    location: Optional[str] = Field(None, min_length=2, max_length=200)
    cladding_type: Optional[str] = Field(None, max_length=100)
    cladding_profile: Optional[str] = Field(None, max_length=100)
    material: Optional[str] = Field(None, max_length=100)
    manufacturer: Optional[str] = Field(None, max_length=100)
    colour: Optional[str] = Field(None, max_length=50)
    pitch: Optional[float] = Field(None, ge=0, le=90)
    area: Optional[float] = Field(None, ge=0, le=100000)
    age_years: Optional[int] = Field(None, ge=0, le=200)
    condition_rating: Optional[ConditionRating] = None
    condition_notes: Optional[str] = Field(None, max_length=2000)
    meets_cop: Optional[bool] = None
    meets_e2: Optional[bool] = None


class RoofElementBulkCreate(RequestModel):
    elements: List[RoofElementCreate] = Field(..., min_length=1, max_length=50)


class PhotoUpload(RequestModel):
    """Form fields sent alongside an uploaded photo."""
    photo_type: PhotoType = PhotoType.GENERAL.value
    caption: Optional[str] = Field(None, max_length=500)
    defect_id: Optional[str] = None
    roof_element_id: Optional[str] = None
    scale_reference: Optional[str] = Field(None, max_length=100)
    sort_order: Optional[int] = Field(None, ge=0)


class PhotoUpdate(RequestModel):
    photo_type: Optional[PhotoType] = None
    caption: Optional[str] = Field(None, max_length=500)
    defect_id: Optional[str] = None
    roof_element_id: Optional[str] = None
    scale_reference: Optional[str] = Field(None, max_length=100)
    sort_order: Optional[int] = Field(None, ge=0)
    annotations: Optional[Dict[str, Any]] = None


class ComplianceUpdate(RequestModel):
    checklist_results: Dict[str, Dict[str, Optional[str]]] = Field(default_factory=dict)
    non_compliance_summary: Optional[str] = Field(None, max_length=5000)


# =============================================================================
# REVIEW
# =============================================================================

class CommentCreate(RequestModel):
    comment: str = Field(..., min_length=1, max_length=5000)
    section: Optional[str] = Field(None, max_length=100)
    field: Optional[str] = Field(None, max_length=100)
    severity: CommentSeverity = CommentSeverity.NOTE.value


class ApproveRequest(RequestModel):
    comments: Optional[str] = Field(None, max_length=5000)
    finalise: bool = False


class RejectRequest(RequestModel):
    reason: str = Field(..., min_length=10, max_length=5000)
    revision_items: List[str] = Field(default_factory=list)
    priority: Literal["LOW", "MEDIUM", "HIGH"] = "MEDIUM"


# =============================================================================
# SHARING
# =============================================================================

class ShareCreate(RequestModel):
    recipient_email: str = Field(..., pattern=EMAIL_PATTERN)
    recipient_name: Optional[str] = Field(None, max_length=255)
    access_level: ShareAccessLevel = ShareAccessLevel.VIEW_ONLY.value
    expires_in_days: Optional[int] = Field(None, ge=1, le=365)
    password: Optional[str] = Field(None, min_length=4, max_length=128)


class ShareVerify(RequestModel):
    password: str = Field(..., min_length=1)


# =============================================================================
# USERS AND ASSIGNMENTS
# =============================================================================

class ProfileUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    qualifications: Optional[str] = Field(None, max_length=2000)
    lbp_number: Optional[str] = Field(None, max_length=20)
    years_experience: Optional[int] = Field(None, ge=0, le=80)
    specialisations: Optional[List[str]] = None
    service_areas: Optional[List[str]] = None
    is_public_listed: Optional[bool] = None
    availability_status: Optional[Literal["AVAILABLE", "BUSY", "ON_LEAVE", "UNAVAILABLE"]] = None
    cv_url: Optional[str] = Field(None, max_length=500)


class AdminUserUpdate(RequestModel):
    role: Optional[Role] = None
    status: Optional[UserStatus] = None


class InspectionRequestCreate(RequestModel):
    """Public request for an inspection."""
    client_name: str = Field(..., min_length=1, max_length=255)
    client_email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    client_phone: Optional[str] = Field(None, max_length=50)
    property_address: str = Field(..., min_length=1, max_length=500)
    property_region: Optional[str] = Field(None, max_length=100)
    request_type: InspectionType
    urgency: AssignmentUrgency = AssignmentUrgency.STANDARD.value
    notes: Optional[str] = Field(None, max_length=5000)
    preferred_inspector_id: Optional[str] = None


class AssignmentUpdate(RequestModel):
    status: Optional[AssignmentStatus] = None
    scheduled_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=5000)


# =============================================================================
# LBP COMPLAINTS
# =============================================================================

class Witness(RequestModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    role: Optional[str] = None
    details: str = Field(..., min_length=1)


class ComplaintCreate(RequestModel):
    report_id: str = Field(..., min_length=1)


class ComplaintUpdate(RequestModel):
    subject_lbp_number: Optional[str] = None
    subject_lbp_name: Optional[str] = None
    subject_lbp_email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    subject_lbp_phone: Optional[str] = None
    subject_lbp_company: Optional[str] = None
    subject_lbp_address: Optional[str] = None
    subject_lbp_license_types: Optional[List[str]] = None
    subject_work_type: Optional[str] = None
    work_address: Optional[str] = None
    work_suburb: Optional[str] = None
    work_city: Optional[str] = None
    work_start_date: Optional[datetime] = None
    work_end_date: Optional[datetime] = None
    work_description: Optional[str] = Field(None, max_length=10000)
    building_consent_number: Optional[str] = None
    grounds_for_discipline: Optional[List[str]] = None
    conduct_description: Optional[str] = Field(None, max_length=10000)
    evidence_summary: Optional[str] = Field(None, max_length=5000)
    steps_to_resolve: Optional[str] = None
    attached_photo_ids: Optional[List[str]] = None
    attached_defect_ids: Optional[List[str]] = None
    witnesses: Optional[List[Witness]] = Field(None, max_length=10)
    complainant_name: Optional[str] = None
    complainant_address: Optional[str] = None
    complainant_phone: Optional[str] = None
    complainant_email: Optional[str] = None


class ComplaintReview(RequestModel):
    approved: bool
    review_notes: Optional[str] = None


class ComplaintSign(RequestModel):
    signature_data: str = Field(..., min_length=1)
    declaration_accepted: bool


class ComplaintWithdraw(RequestModel):
    reason: str = Field(..., min_length=1)


class BoardResponse(RequestModel):
    bpb_reference: Optional[str] = None
    bpb_acknowledged_at: Optional[datetime] = None
    bpb_decision: Optional[str] = None
    bpb_decision_date: Optional[datetime] = None
    bpb_outcome: Optional[str] = None
    bpb_notes: Optional[str] = None
    status: Optional[Literal["UNDER_INVESTIGATION", "HEARING_SCHEDULED", "CLOSED"]] = None
