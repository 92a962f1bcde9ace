"""
Status and type enumerations shared by the models, schemas and workflows.
"""

from enum import Enum


class Role(Enum):
    INSPECTOR = "INSPECTOR"
    REVIEWER = "REVIEWER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


REVIEWER_ROLES = {Role.REVIEWER.value, Role.ADMIN.value, Role.SUPER_ADMIN.value}
ADMIN_ROLES = {Role.ADMIN.value, Role.SUPER_ADMIN.value}


class UserStatus(Enum):
    ACTIVE = "ACTIVE"
    PENDING_ACTIVATION = "PENDING_ACTIVATION"
    SUSPENDED = "SUSPENDED"
    DEACTIVATED = "DEACTIVATED"


class ReportStatus(Enum):
    """Report lifecycle."""
    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING_REVIEW = "PENDING_REVIEW"
    UNDER_REVIEW = "UNDER_REVIEW"
    REVISION_REQUIRED = "REVISION_REQUIRED"
    APPROVED = "APPROVED"
    FINALISED = "FINALISED"
    ARCHIVED = "ARCHIVED"


EDITABLE_STATUSES = {
    ReportStatus.DRAFT.value,
    ReportStatus.IN_PROGRESS.value,
    ReportStatus.REVISION_REQUIRED.value,
}
REVIEWABLE_STATUSES = {
    ReportStatus.PENDING_REVIEW.value,
    ReportStatus.UNDER_REVIEW.value,
}


class InspectionType(Enum):
    FULL_INSPECTION = "FULL_INSPECTION"
    VISUAL_ONLY = "VISUAL_ONLY"
    NON_INVASIVE = "NON_INVASIVE"
    INVASIVE = "INVASIVE"
    DISPUTE_RESOLUTION = "DISPUTE_RESOLUTION"
    PRE_PURCHASE = "PRE_PURCHASE"
    MAINTENANCE_REVIEW = "MAINTENANCE_REVIEW"
    WARRANTY_CLAIM = "WARRANTY_CLAIM"


class PropertyType(Enum):
    RESIDENTIAL_1 = "RESIDENTIAL_1"
    RESIDENTIAL_2 = "RESIDENTIAL_2"
    RESIDENTIAL_3 = "RESIDENTIAL_3"
    COMMERCIAL_LOW = "COMMERCIAL_LOW"
    COMMERCIAL_HIGH = "COMMERCIAL_HIGH"
    INDUSTRIAL = "INDUSTRIAL"


class DefectClass(Enum):
    MAJOR_DEFECT = "MAJOR_DEFECT"
    MINOR_DEFECT = "MINOR_DEFECT"
    SAFETY_HAZARD = "SAFETY_HAZARD"
    MAINTENANCE_ITEM = "MAINTENANCE_ITEM"
    WORKMANSHIP_ISSUE = "WORKMANSHIP_ISSUE"


class DefectSeverity(Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class PriorityLevel(Enum):
    IMMEDIATE = "IMMEDIATE"
    SHORT_TERM = "SHORT_TERM"
    MEDIUM_TERM = "MEDIUM_TERM"
    LONG_TERM = "LONG_TERM"


class ElementType(Enum):
    ROOF_CLADDING = "ROOF_CLADDING"
    RIDGE = "RIDGE"
    VALLEY = "VALLEY"
    HIP = "HIP"
    BARGE = "BARGE"
    FASCIA = "FASCIA"
    GUTTER = "GUTTER"
    DOWNPIPE = "DOWNPIPE"
    FLASHING_WALL = "FLASHING_WALL"
    FLASHING_PENETRATION = "FLASHING_PENETRATION"
    FLASHING_PARAPET = "FLASHING_PARAPET"
    SKYLIGHT = "SKYLIGHT"
    VENT = "VENT"
    ANTENNA_MOUNT = "ANTENNA_MOUNT"
    SOLAR_PANEL = "SOLAR_PANEL"
    UNDERLAY = "UNDERLAY"
    INSULATION = "INSULATION"
    ROOF_STRUCTURE = "ROOF_STRUCTURE"
    OTHER = "OTHER"


class ConditionRating(Enum):
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    CRITICAL = "CRITICAL"
    NOT_INSPECTED = "NOT_INSPECTED"


class PhotoType(Enum):
    OVERVIEW = "OVERVIEW"
    CONTEXT = "CONTEXT"
    DETAIL = "DETAIL"
    SCALE_REFERENCE = "SCALE_REFERENCE"
    INACCESSIBLE = "INACCESSIBLE"
    EQUIPMENT = "EQUIPMENT"
    GENERAL = "GENERAL"


class AuditAction(Enum):
    """Actions recorded in the append-only report audit log."""
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    SUBMITTED = "SUBMITTED"
    REVIEWED = "REVIEWED"
    APPROVED = "APPROVED"
    PHOTO_ADDED = "PHOTO_ADDED"
    PHOTO_DELETED = "PHOTO_DELETED"
    DEFECT_ADDED = "DEFECT_ADDED"
    DEFECT_UPDATED = "DEFECT_UPDATED"
    DEFECT_DELETED = "DEFECT_DELETED"
    ELEMENT_ADDED = "ELEMENT_ADDED"
    ELEMENT_UPDATED = "ELEMENT_UPDATED"
    ELEMENT_DELETED = "ELEMENT_DELETED"
    COMPLIANCE_UPDATED = "COMPLIANCE_UPDATED"
    COMMENT_ADDED = "COMMENT_ADDED"
    SHARED = "SHARED"
    PDF_GENERATED = "PDF_GENERATED"
    EVIDENCE_EXPORTED = "EVIDENCE_EXPORTED"
    DELETED = "DELETED"


class CommentSeverity(Enum):
    CRITICAL = "CRITICAL"
    ISSUE = "ISSUE"
    NOTE = "NOTE"
    SUGGESTION = "SUGGESTION"


class AssignmentStatus(Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


ASSIGNMENT_TRANSITIONS = {
    "PENDING": {"ACCEPTED", "CANCELLED"},
    "ACCEPTED": {"SCHEDULED", "IN_PROGRESS", "CANCELLED"},
    "SCHEDULED": {"IN_PROGRESS", "CANCELLED"},
    "IN_PROGRESS": {"COMPLETED", "CANCELLED"},
    "COMPLETED": set(),
    "CANCELLED": set(),
}


class AssignmentUrgency(Enum):
    STANDARD = "STANDARD"
    PRIORITY = "PRIORITY"
    URGENT = "URGENT"
    EMERGENCY = "EMERGENCY"


class ShareAccessLevel(Enum):
    VIEW_ONLY = "VIEW_ONLY"
    VIEW_DOWNLOAD = "VIEW_DOWNLOAD"


class ComplaintStatus(Enum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    READY_TO_SUBMIT = "READY_TO_SUBMIT"
    SUBMITTING = "SUBMITTING"
    SUBMITTED = "SUBMITTED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    UNDER_INVESTIGATION = "UNDER_INVESTIGATION"
    HEARING_SCHEDULED = "HEARING_SCHEDULED"
    DECIDED = "DECIDED"
    CLOSED = "CLOSED"
    WITHDRAWN = "WITHDRAWN"


def values(enum_cls) -> list:
    """List the string values of an enumeration."""
    return [member.value for member in enum_cls]
