"""
SQLAlchemy models for the Roofing Reports application.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey, Boolean, Float
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class User(Base):
    """
    Represents an application user, mirrored from the identity provider.
    """
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=new_id)
    external_id = Column(String(255), unique=True, nullable=False)  # Identity provider id
    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), default='INSPECTOR')
    status = Column(String(30), default='ACTIVE')

    # Inspector profile
    company = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    qualifications = Column(Text, nullable=True)
    lbp_number = Column(String(20), nullable=True)
    cv_url = Column(String(500), nullable=True)
    years_experience = Column(Integer, nullable=True)
    specialisations = Column(JSON, default=list)
    service_areas = Column(JSON, default=list)  # Regions served
    is_public_listed = Column(Boolean, default=False)
    availability_status = Column(String(20), default='AVAILABLE')

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)

    def to_summary(self):
        """Short form embedded in reports and logs."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "lbp_number": self.lbp_number,
            "qualifications": self.qualifications,
            "cv_url": self.cv_url,
            "years_experience": self.years_experience,
        }

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "external_id": self.external_id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "role": self.role,
            "status": self.status,
            "company": self.company,
            "address": self.address,
            "qualifications": self.qualifications,
            "lbp_number": self.lbp_number,
            "cv_url": self.cv_url,
            "years_experience": self.years_experience,
            "specialisations": self.specialisations or [],
            "service_areas": self.service_areas or [],
            "is_public_listed": self.is_public_listed,
            "availability_status": self.availability_status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "last_login_at": _iso(self.last_login_at),
        }


class Report(Base):
    """
    Represents a roofing inspection report.
    """
    __tablename__ = 'reports'

    id = Column(String(36), primary_key=True, default=new_id)
    report_number = Column(String(30), unique=True, nullable=False)  # RANZ-YYYY-NNNNN
    status = Column(String(30), default='DRAFT')
    inspector_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    reviewer_id = Column(String(36), ForeignKey('users.id'), nullable=True)

    # Property
    property_address = Column(String(200), nullable=True)
    property_city = Column(String(100), nullable=True)
    property_region = Column(String(100), nullable=True)
    property_postcode = Column(String(10), nullable=True)
    property_type = Column(String(30), nullable=True)
    building_age = Column(Integer, nullable=True)
    gps_lat = Column(Float, nullable=True)
    gps_lng = Column(Float, nullable=True)

    # Inspection
    inspection_date = Column(DateTime, nullable=True)
    inspection_type = Column(String(30), nullable=True)
    weather_conditions = Column(String(500), nullable=True)
    temperature = Column(Float, nullable=True)
    access_method = Column(String(200), nullable=True)
    limitations = Column(Text, nullable=True)

    # Client
    client_name = Column(String(100), nullable=True)
    client_email = Column(String(255), nullable=True)
    client_phone = Column(String(20), nullable=True)
    client_company = Column(String(100), nullable=True)

    # Consent and engagement
    consent_number = Column(String(50), nullable=True)
    consent_date = Column(DateTime, nullable=True)
    code_of_compliance_date = Column(DateTime, nullable=True)
    engaging_party = Column(String(200), nullable=True)

    # Narrative sections (structured JSON)
    scope_of_works = Column(JSON, nullable=True)
    methodology = Column(JSON, nullable=True)
    executive_summary = Column(JSON, nullable=True)
    findings = Column(JSON, nullable=True)
    conclusions = Column(JSON, nullable=True)
    recommendations = Column(JSON, nullable=True)

    # Declaration
    declaration_signed = Column(Boolean, default=False)
    signature_url = Column(String(500), nullable=True)
    signed_at = Column(DateTime, nullable=True)
    expert_declaration = Column(JSON, nullable=True)
    has_conflict = Column(Boolean, nullable=True)
    conflict_disclosure = Column(Text, nullable=True)

    # Workflow
    revision_round = Column(Integer, default=0)
    submitted_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    assignment_id = Column(String(36), nullable=True)

    # Generated PDF
    pdf_url = Column(String(500), nullable=True)
    pdf_hash = Column(String(64), nullable=True)
    pdf_generated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    inspector = relationship("User", foreign_keys=[inspector_id])
    reviewer = relationship("User", foreign_keys=[reviewer_id])
    photos = relationship("Photo", back_populates="report", cascade="all, delete-orphan",
                          order_by="Photo.sort_order")
    defects = relationship("Defect", back_populates="report", cascade="all, delete-orphan",
                           order_by="Defect.defect_number")
    roof_elements = relationship("RoofElement", back_populates="report", cascade="all, delete-orphan",
                                 order_by="RoofElement.created_at")
    compliance_assessment = relationship("ComplianceAssessment", back_populates="report",
                                         uselist=False, cascade="all, delete-orphan")
    comments = relationship("ReviewComment", back_populates="report", cascade="all, delete-orphan")
    shares = relationship("ReportShare", back_populates="report", cascade="all, delete-orphan")
    audit_logs = relationship("AuditLog", back_populates="report", cascade="all, delete-orphan")

    def to_summary(self):
        """Short form used in listings."""
        return {
            "id": self.id,
            "report_number": self.report_number,
            "status": self.status,
            "property_address": self.property_address,
            "property_city": self.property_city,
            "inspection_type": self.inspection_type,
            "inspection_date": _iso(self.inspection_date),
            "client_name": self.client_name,
            "inspector": self.inspector.to_summary() if self.inspector else None,
            "photo_count": len(self.photos),
            "defect_count": len(self.defects),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def to_dict(self, include_children=True):
        """Convert to dictionary for JSON serialization."""
        data = {
            "id": self.id,
            "report_number": self.report_number,
            "status": self.status,
            "inspector_id": self.inspector_id,
            "reviewer_id": self.reviewer_id,
            "inspector": self.inspector.to_summary() if self.inspector else None,
            "reviewer": self.reviewer.to_summary() if self.reviewer else None,
            "property_address": self.property_address,
            "property_city": self.property_city,
            "property_region": self.property_region,
            "property_postcode": self.property_postcode,
            "property_type": self.property_type,
            "building_age": self.building_age,
            "gps_lat": self.gps_lat,
            "gps_lng": self.gps_lng,
            "inspection_date": _iso(self.inspection_date),
            "inspection_type": self.inspection_type,
            "weather_conditions": self.weather_conditions,
            "temperature": self.temperature,
            "access_method": self.access_method,
            "limitations": self.limitations,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_phone": self.client_phone,
            "client_company": self.client_company,
            "consent_number": self.consent_number,
            "consent_date": _iso(self.consent_date),
            "code_of_compliance_date": _iso(self.code_of_compliance_date),
            "engaging_party": self.engaging_party,
            "scope_of_works": self.scope_of_works,
            "methodology": self.methodology,
            "executive_summary": self.executive_summary,
            "findings": self.findings,
            "conclusions": self.conclusions,
            "recommendations": self.recommendations,
            "declaration_signed": self.declaration_signed,
            "signature_url": self.signature_url,
            "signed_at": _iso(self.signed_at),
            "expert_declaration": self.expert_declaration,
            "has_conflict": self.has_conflict,
            "conflict_disclosure": self.conflict_disclosure,
            "revision_round": self.revision_round or 0,
            "submitted_at": _iso(self.submitted_at),
            "approved_at": _iso(self.approved_at),
            "assignment_id": self.assignment_id,
            "pdf_url": self.pdf_url,
            "pdf_hash": self.pdf_hash,
            "pdf_generated_at": _iso(self.pdf_generated_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_children:
            data["photos"] = [p.to_dict() for p in self.photos]
            data["defects"] = [d.to_dict() for d in self.defects]
            data["roof_elements"] = [e.to_dict() for e in self.roof_elements]
            data["compliance_assessment"] = (
                self.compliance_assessment.to_dict() if self.compliance_assessment else None
            )
        return data


class Photo(Base):
    """
    Represents an inspection photo and its evidentiary metadata.
    """
    __tablename__ = 'photos'

    id = Column(String(36), primary_key=True, default=new_id)
    report_id = Column(String(36), ForeignKey('reports.id'), nullable=False)
    defect_id = Column(String(36), ForeignKey('defects.id'), nullable=True)
    roof_element_id = Column(String(36), ForeignKey('roof_elements.id'), nullable=True)
    uploaded_by_id = Column(String(36), ForeignKey('users.id'), nullable=True)

    photo_type = Column(String(30), default='GENERAL')
    filename = Column(String(255), nullable=False)
    original_filename = Column(String(255), nullable=True)
    mime_type = Column(String(100), nullable=True)
    file_size = Column(Integer, default=0)
    url = Column(String(500), nullable=False)
    thumbnail_url = Column(String(500), nullable=True)
    caption = Column(String(500), nullable=True)
    scale_reference = Column(String(100), nullable=True)
    sort_order = Column(Integer, default=0)
    annotations = Column(JSON, nullable=True)

    # EXIF
    captured_at = Column(DateTime, nullable=True)
    camera_make = Column(String(100), nullable=True)
    camera_model = Column(String(100), nullable=True)
    camera_serial = Column(String(100), nullable=True)
    exposure_time = Column(String(50), nullable=True)
    f_number = Column(Float, nullable=True)
    iso = Column(Integer, nullable=True)
    gps_lat = Column(Float, nullable=True)
    gps_lng = Column(Float, nullable=True)
    gps_altitude = Column(Float, nullable=True)

    # Chain of custody
    original_hash = Column(String(64), nullable=True)  # SHA-256 of the uploaded bytes
    hash_verified = Column(Boolean, default=False)
    is_edited = Column(Boolean, default=False)

    uploaded_at = Column(DateTime, default=datetime.utcnow)

    report = relationship("Report", back_populates="photos")
    defect = relationship("Defect", back_populates="photos")

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "report_id": self.report_id,
            "defect_id": self.defect_id,
            "roof_element_id": self.roof_element_id,
            "uploaded_by_id": self.uploaded_by_id,
            "photo_type": self.photo_type,
            "filename": self.filename,
            "original_filename": self.original_filename,
            "mime_type": self.mime_type,
            "file_size": self.file_size,
            "url": self.url,
            "thumbnail_url": self.thumbnail_url,
            "caption": self.caption,
            "scale_reference": self.scale_reference,
            "sort_order": self.sort_order,
            "annotations": self.annotations,
            "captured_at": _iso(self.captured_at),
            "camera_make": self.camera_make,
            "camera_model": self.camera_model,
            "camera_serial": self.camera_serial,
            "exposure_time": self.exposure_time,
            "f_number": self.f_number,
            "iso": self.iso,
            "gps_lat": self.gps_lat,
            "gps_lng": self.gps_lng,
            "gps_altitude": self.gps_altitude,
            "original_hash": self.original_hash,
            "hash_verified": self.hash_verified,
            "is_edited": self.is_edited,
            "uploaded_at": _iso(self.uploaded_at),
        }


class Defect(Base):
    """
    Represents a documented defect within a report.
    """
    __tablename__ = 'defects'

    id = Column(String(36), primary_key=True, default=new_id)
    report_id = Column(String(36), ForeignKey('reports.id'), nullable=False)
    roof_element_id = Column(String(36), ForeignKey('roof_elements.id'), nullable=True)
    defect_number = Column(Integer, default=1)  # Sequential within the report

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(200), nullable=True)
    classification = Column(String(30), nullable=True)
    severity = Column(String(20), nullable=True)

    # Observation / analysis / opinion
    observation = Column(Text, nullable=True)
    analysis = Column(Text, nullable=True)
    opinion = Column(Text, nullable=True)

    code_reference = Column(String(200), nullable=True)
    cop_reference = Column(String(200), nullable=True)
    probable_cause = Column(Text, nullable=True)
    contributing_factors = Column(Text, nullable=True)
    recommendation = Column(Text, nullable=True)
    priority_level = Column(String(20), nullable=True)
    estimated_cost = Column(String(100), nullable=True)
    measurements = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    report = relationship("Report", back_populates="defects")
    photos = relationship("Photo", back_populates="defect")

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "report_id": self.report_id,
            "roof_element_id": self.roof_element_id,
            "defect_number": self.defect_number,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "classification": self.classification,
            "severity": self.severity,
            "observation": self.observation,
            "analysis": self.analysis,
            "opinion": self.opinion,
            "code_reference": self.code_reference,
            "cop_reference": self.cop_reference,
            "probable_cause": self.probable_cause,
            "contributing_factors": self.contributing_factors,
            "recommendation": self.recommendation,
            "priority_level": self.priority_level,
            "estimated_cost": self.estimated_cost,
            "measurements": self.measurements,
            "photos": [{"id": p.id, "url": p.url, "thumbnail_url": p.thumbnail_url} for p in self.photos],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class RoofElement(Base):
    """
    Represents an inspected roof component.
    """
    __tablename__ = 'roof_elements'

    id = Column(String(36), primary_key=True, default=new_id)
    report_id = Column(String(36), ForeignKey('reports.id'), nullable=False)

    element_type = Column(String(30), nullable=False)
    location = Column(String(200), nullable=False)
    cladding_type = Column(String(100), nullable=True)
    cladding_profile = Column(String(100), nullable=True)
    material = Column(String(100), nullable=True)
    manufacturer = Column(String(100), nullable=True)
    colour = Column(String(50), nullable=True)
    pitch = Column(Float, nullable=True)  # Degrees
    area = Column(Float, nullable=True)  # Square metres
    age_years = Column(Integer, nullable=True)
    condition_rating = Column(String(20), nullable=True)
    condition_notes = Column(Text, nullable=True)
    meets_cop = Column(Boolean, nullable=True)
    meets_e2 = Column(Boolean, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    report = relationship("Report", back_populates="roof_elements")

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "report_id": self.report_id,
            "element_type": self.element_type,
            "location": self.location,
            "cladding_type": self.cladding_type,
            "cladding_profile": self.cladding_profile,
            "material": self.material,
            "manufacturer": self.manufacturer,
            "colour": self.colour,
            "pitch": self.pitch,
            "area": self.area,
            "age_years": self.age_years,
            "condition_rating": self.condition_rating,
            "condition_notes": self.condition_notes,
            "meets_cop": self.meets_cop,
            "meets_e2": self.meets_e2,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ComplianceAssessment(Base):
    """
    Compliance checklist results for a report (one per report).
    """
    __tablename__ = 'compliance_assessments'

    id = Column(String(36), primary_key=True, default=new_id)
    report_id = Column(String(36), ForeignKey('reports.id'), nullable=False, unique=True)

    # {"e2_as1": {"item_id": "PASS", ...}, ...}
    checklist_results = Column(JSON, default=dict)
    non_compliance_summary = Column(Text, nullable=True)
    overall_status = Column(String(30), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    report = relationship("Report", back_populates="compliance_assessment")

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "report_id": self.report_id,
            "checklist_results": self.checklist_results or {},
            "non_compliance_summary": self.non_compliance_summary,
            "overall_status": self.overall_status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class AuditLog(Base):
    """
    Append-only record of actions taken on a report.
    """
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(String(36), ForeignKey('reports.id'), nullable=True)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=True)
    action = Column(String(30), nullable=False)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    report = relationship("Report", back_populates="audit_logs")
    user = relationship("User")

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "report_id": self.report_id,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "action": self.action,
            "details": self.details or {},
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": _iso(self.created_at),
        }


class ReviewComment(Base):
    """
    Reviewer comment attached to a report section during review.
    """
    __tablename__ = 'review_comments'

    id = Column(String(36), primary_key=True, default=new_id)
    report_id = Column(String(36), ForeignKey('reports.id'), nullable=False)
    reviewer_id = Column(String(36), ForeignKey('users.id'), nullable=False)

    section = Column(String(100), nullable=True)
    field = Column(String(100), nullable=True)
    comment = Column(Text, nullable=False)
    severity = Column(String(20), default='NOTE')
    revision_round = Column(Integer, default=1)
    resolved = Column(Boolean, default=False)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    report = relationship("Report", back_populates="comments")
    reviewer = relationship("User")

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "report_id": self.report_id,
            "reviewer_id": self.reviewer_id,
            "reviewer_name": self.reviewer.name if self.reviewer else None,
            "section": self.section,
            "field": self.field,
            "comment": self.comment,
            "severity": self.severity,
            "revision_round": self.revision_round,
            "resolved": self.resolved,
            "resolved_at": _iso(self.resolved_at),
            "created_at": _iso(self.created_at),
        }


class ReportShare(Base):
    """
    Tokenised external link to a report.
    """
    __tablename__ = 'report_shares'

    id = Column(String(36), primary_key=True, default=new_id)
    report_id = Column(String(36), ForeignKey('reports.id'), nullable=False)
    token = Column(String(64), unique=True, nullable=False)
    recipient_email = Column(String(255), nullable=False)
    recipient_name = Column(String(255), nullable=True)
    access_level = Column(String(20), default='VIEW_ONLY')
    password_hash = Column(String(64), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True)
    revoked_at = Column(DateTime, nullable=True)
    view_count = Column(Integer, default=0)
    last_viewed_at = Column(DateTime, nullable=True)
    created_by_id = Column(String(36), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    report = relationship("Report", back_populates="shares")

    def to_dict(self):
        """Convert to dictionary for JSON serialization (owner view)."""
        return {
            "id": self.id,
            "report_id": self.report_id,
            "token": self.token,
            "recipient_email": self.recipient_email,
            "recipient_name": self.recipient_name,
            "access_level": self.access_level,
            "password_protected": bool(self.password_hash),
            "expires_at": _iso(self.expires_at),
            "is_active": self.is_active,
            "revoked_at": _iso(self.revoked_at),
            "view_count": self.view_count or 0,
            "last_viewed_at": _iso(self.last_viewed_at),
            "created_at": _iso(self.created_at),
        }


class Assignment(Base):
    """
    Inspection job assigned to an inspector, usually from a public request.
    """
    __tablename__ = 'assignments'

    id = Column(String(36), primary_key=True, default=new_id)
    inspector_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    status = Column(String(20), default='PENDING')
    urgency = Column(String(20), default='STANDARD')
    request_type = Column(String(30), nullable=True)  # Inspection type requested

    client_name = Column(String(100), nullable=False)
    client_email = Column(String(255), nullable=False)
    client_phone = Column(String(50), nullable=True)

    property_address = Column(String(200), nullable=False)
    property_city = Column(String(100), nullable=True)
    property_region = Column(String(100), nullable=True)
    property_postcode = Column(String(10), nullable=True)
    property_type = Column(String(30), nullable=True)

    notes = Column(Text, nullable=True)
    scheduled_date = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    report_id = Column(String(36), ForeignKey('reports.id'), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    inspector = relationship("User")

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "inspector_id": self.inspector_id,
            "inspector": self.inspector.to_summary() if self.inspector else None,
            "status": self.status,
            "urgency": self.urgency,
            "request_type": self.request_type,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_phone": self.client_phone,
            "property_address": self.property_address,
            "property_city": self.property_city,
            "property_region": self.property_region,
            "property_postcode": self.property_postcode,
            "property_type": self.property_type,
            "notes": self.notes,
            "scheduled_date": _iso(self.scheduled_date),
            "completed_at": _iso(self.completed_at),
            "report_id": self.report_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class LBPComplaint(Base):
    """
    Complaint to the Building Practitioners Board about a Licensed Building
    Practitioner, prepared from a dispute-resolution report.
    """
    __tablename__ = 'lbp_complaints'

    id = Column(String(36), primary_key=True, default=new_id)
    complaint_number = Column(String(30), unique=True, nullable=False)  # RANZ-LBP-YYYY-NNNNN
    report_id = Column(String(36), ForeignKey('reports.id'), nullable=False)
    status = Column(String(30), default='DRAFT')

    # Complainant
    complainant_name = Column(String(255), nullable=True)
    complainant_address = Column(String(500), nullable=True)
    complainant_phone = Column(String(50), nullable=True)
    complainant_email = Column(String(255), nullable=True)
    complainant_relation = Column(String(100), nullable=True)

    # Subject LBP
    subject_lbp_number = Column(String(20), default='')
    subject_lbp_name = Column(String(255), default='')
    subject_lbp_email = Column(String(255), nullable=True)
    subject_lbp_phone = Column(String(50), nullable=True)
    subject_lbp_company = Column(String(255), nullable=True)
    subject_lbp_address = Column(String(500), nullable=True)
    subject_lbp_license_types = Column(JSON, default=list)
    subject_work_type = Column(String(50), nullable=True)

    # Work
    work_address = Column(String(500), nullable=True)
    work_suburb = Column(String(100), nullable=True)
    work_city = Column(String(100), nullable=True)
    work_start_date = Column(DateTime, nullable=True)
    work_end_date = Column(DateTime, nullable=True)
    work_description = Column(Text, default='')
    building_consent_number = Column(String(50), nullable=True)

    # Complaint
    grounds_for_discipline = Column(JSON, default=list)
    conduct_description = Column(Text, default='')
    evidence_summary = Column(Text, default='')
    steps_to_resolve = Column(Text, nullable=True)
    attached_photo_ids = Column(JSON, default=list)
    attached_defect_ids = Column(JSON, default=list)
    witnesses = Column(JSON, default=list)

    # Preparation and review
    prepared_by_id = Column(String(36), ForeignKey('users.id'), nullable=True)
    reviewed_by_id = Column(String(36), ForeignKey('users.id'), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_notes = Column(Text, nullable=True)

    # Signature
    signature_url = Column(String(500), nullable=True)
    signed_by_id = Column(String(36), ForeignKey('users.id'), nullable=True)
    signed_at = Column(DateTime, nullable=True)
    declaration_accepted = Column(Boolean, default=False)

    # Submission
    submitted_by_id = Column(String(36), ForeignKey('users.id'), nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    submission_method = Column(String(20), nullable=True)
    submission_email = Column(String(255), nullable=True)
    submission_confirmation = Column(String(64), nullable=True)
    pdf_url = Column(String(500), nullable=True)
    pdf_hash = Column(String(64), nullable=True)

    # Board response
    bpb_reference = Column(String(100), nullable=True)
    bpb_acknowledged_at = Column(DateTime, nullable=True)
    bpb_decision = Column(String(100), nullable=True)
    bpb_decision_date = Column(DateTime, nullable=True)
    bpb_outcome = Column(String(100), nullable=True)
    bpb_notes = Column(Text, nullable=True)

    withdrawn_at = Column(DateTime, nullable=True)
    withdrawal_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    report = relationship("Report")

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "complaint_number": self.complaint_number,
            "report_id": self.report_id,
            "report_number": self.report.report_number if self.report else None,
            "status": self.status,
            "complainant": {
                "name": self.complainant_name,
                "address": self.complainant_address,
                "phone": self.complainant_phone,
                "email": self.complainant_email,
                "relation": self.complainant_relation,
            },
            "subject_lbp_number": self.subject_lbp_number,
            "subject_lbp_name": self.subject_lbp_name,
            "subject_lbp_email": self.subject_lbp_email,
            "subject_lbp_phone": self.subject_lbp_phone,
            "subject_lbp_company": self.subject_lbp_company,
            "subject_lbp_address": self.subject_lbp_address,
            "subject_lbp_license_types": self.subject_lbp_license_types or [],
            "subject_work_type": self.subject_work_type,
            "work_address": self.work_address,
            "work_suburb": self.work_suburb,
            "work_city": self.work_city,
            "work_start_date": _iso(self.work_start_date),
            "work_end_date": _iso(self.work_end_date),
            "work_description": self.work_description,
            "building_consent_number": self.building_consent_number,
            "grounds_for_discipline": self.grounds_for_discipline or [],
            "conduct_description": self.conduct_description,
            "evidence_summary": self.evidence_summary,
            "steps_to_resolve": self.steps_to_resolve,
            "attached_photo_ids": self.attached_photo_ids or [],
            "attached_defect_ids": self.attached_defect_ids or [],
            "witnesses": self.witnesses or [],
            "prepared_by_id": self.prepared_by_id,
            "reviewed_by_id": self.reviewed_by_id,
            "reviewed_at": _iso(self.reviewed_at),
            "review_notes": self.review_notes,
            "signature_url": self.signature_url,
            "signed_by_id": self.signed_by_id,
            "signed_at": _iso(self.signed_at),
            "declaration_accepted": self.declaration_accepted,
            "submitted_by_id": self.submitted_by_id,
            "submitted_at": _iso(self.submitted_at),
            "submission_method": self.submission_method,
            "submission_email": self.submission_email,
            "submission_confirmation": self.submission_confirmation,
            "pdf_url": self.pdf_url,
            "pdf_hash": self.pdf_hash,
            "bpb_reference": self.bpb_reference,
            "bpb_acknowledged_at": _iso(self.bpb_acknowledged_at),
            "bpb_decision": self.bpb_decision,
            "bpb_decision_date": _iso(self.bpb_decision_date),
            "bpb_outcome": self.bpb_outcome,
            "bpb_notes": self.bpb_notes,
            "withdrawn_at": _iso(self.withdrawn_at),
            "withdrawal_reason": self.withdrawal_reason,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
