from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles inside a tenant database."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    EMPLOYEE = "employee"


class TenantStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ModuleCategory(str, Enum):
    CORE = "core_system"
    SELF_SERVICE = "self_service"
    HUMAN_RESOURCES = "human_resources"
    PROJECT_MANAGEMENT = "project_management"
    EVENT_MANAGEMENT = "event_management"
    ADMINISTRATION = "administration"


class ComponentType(str, Enum):
    PAGE = "page"
    SECTION = "section"
    WIDGET = "widget"
    ACTION = "action"
    API = "api"


class RequirementType(str, Enum):
    """How a set of permission requirements is combined.

    REQUIRED: every permission must be held.
    ANY: at least one permission per requirement group.
    ALL: every permission per requirement group.
    """

    REQUIRED = "required"
    ANY = "any"
    ALL = "all"


class DailyWorkType(str, Enum):
    EMBANKMENT = "Embankment"
    STRUCTURE = "Structure"
    PAVEMENT = "Pavement"


class DailyWorkStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    REJECTED = "rejected"
    RESUBMISSION = "resubmission"
    EMERGENCY = "emergency"
    PENDING = "pending"


class InspectionResult(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    CONDITIONAL = "conditional"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WorkSide(str, Enum):
    TR_L = "TR-L"
    TR_R = "TR-R"
    SR_L = "SR-L"
    SR_R = "SR-R"


class ObjectionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    REJECTED = "rejected"

    @property
    def label(self) -> str:
        return _OBJECTION_STATUS_LABELS[self]


_OBJECTION_STATUS_LABELS = {
    ObjectionStatus.DRAFT: "Draft",
    ObjectionStatus.SUBMITTED: "Submitted",
    ObjectionStatus.UNDER_REVIEW: "Under Review",
    ObjectionStatus.RESOLVED: "Resolved",
    ObjectionStatus.REJECTED: "Rejected",
}

ACTIVE_OBJECTION_STATUSES = frozenset(
    {ObjectionStatus.DRAFT, ObjectionStatus.SUBMITTED, ObjectionStatus.UNDER_REVIEW}
)


class ObjectionCategory(str, Enum):
    DESIGN_CONFLICT = "design_conflict"
    SITE_MISMATCH = "site_mismatch"
    MATERIAL_CHANGE = "material_change"
    SAFETY_CONCERN = "safety_concern"
    SPECIFICATION_ERROR = "specification_error"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _OBJECTION_CATEGORY_LABELS[self]


_OBJECTION_CATEGORY_LABELS = {
    ObjectionCategory.DESIGN_CONFLICT: "Design Conflict",
    ObjectionCategory.SITE_MISMATCH: "Site Condition Mismatch",
    ObjectionCategory.MATERIAL_CHANGE: "Material Change",
    ObjectionCategory.SAFETY_CONCERN: "Safety Concern",
    ObjectionCategory.SPECIFICATION_ERROR: "Specification Error",
    ObjectionCategory.OTHER: "Other",
}


class ChainageEntryType(str, Enum):
    SPECIFIC = "specific"
    RANGE_START = "range_start"
    RANGE_END = "range_end"


class LeaveStatus(str, Enum):
    NEW = "New"
    PENDING = "Pending"
    APPROVED = "Approved"
    DECLINED = "Declined"
    REJECTED = "Rejected"


class AccrualType(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"
    JOINING = "joining"
    ADJUSTMENT = "adjustment"


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class CustomFieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    EMAIL = "email"
    PHONE = "phone"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    FILE = "file"


class AttendanceTypeSlug(str, Enum):
    GEO_POLYGON = "geo_polygon"
    WIFI_IP = "wifi_ip"
    ROUTE_WAYPOINT = "route_waypoint"
    QR_CODE = "qr_code"
