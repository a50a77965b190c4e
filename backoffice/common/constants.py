"""Enums and constants for the back-office — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Users / Roles ───────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "admin"
    hr = "hr"
    manager = "manager"
    executive = "executive"
    employee = "employee"
    applicant = "applicant"


class UserStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"
    retired = "retired"


class RetirementReason(str, enum.Enum):
    voluntary = "voluntary"
    company = "company"
    contract_end = "contract_end"
    retirement_age = "retirement_age"
    other = "other"


class OrgUnitType(str, enum.Enum):
    company = "company"
    division = "division"
    department = "department"
    team = "team"


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    holiday = "holiday"
    leave = "leave"
    late = "late"
    early = "early"


class WorkLocation(str, enum.Enum):
    office = "office"
    home = "home"
    client = "client"
    other = "other"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    paid = "paid"
    sick = "sick"
    special = "special"
    compensatory = "compensatory"
    half_day_am = "half_day_am"
    half_day_pm = "half_day_pm"


class LeaveCategory(str, enum.Enum):
    """Balance bucket a leave type draws from."""

    paid = "paid"
    sick = "sick"
    special = "special"
    compensatory = "compensatory"


class LeaveStatus(str, enum.Enum):
    draft = "draft"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# ── Announcements ───────────────────────────────────────────────────

class AnnouncementType(str, enum.Enum):
    general = "general"
    deadline = "deadline"
    system = "system"
    event = "event"
    policy = "policy"
    emergency = "emergency"


class AnnouncementPriority(str, enum.Enum):
    urgent = "urgent"
    high = "high"
    normal = "normal"
    low = "low"


class AnnouncementTarget(str, enum.Enum):
    all = "all"
    employee = "employee"
    manager = "manager"
    hr = "hr"
    executive = "executive"
    custom = "custom"


class AnnouncementReadStatus(str, enum.Enum):
    unread = "unread"
    read = "read"
    completed = "completed"


# ── Assets ──────────────────────────────────────────────────────────

class OwnershipType(str, enum.Enum):
    owned = "owned"
    leased = "leased"
    rental = "rental"


class AssetStatus(str, enum.Enum):
    active = "active"
    maintenance = "maintenance"
    retired = "retired"


class TireType(str, enum.Enum):
    summer = "summer"
    winter = "winter"


class MaintenanceType(str, enum.Enum):
    oil_change = "oil_change"
    tire_change = "tire_change"
    inspection = "inspection"
    shaken = "shaken"
    repair = "repair"
    other = "other"


class GeneralAssetType(str, enum.Enum):
    mobile = "mobile"
    tablet = "tablet"
    equipment = "equipment"
    other = "other"


class WarningLevel(str, enum.Enum):
    critical = "critical"
    warning = "warning"


# ── SaaS ────────────────────────────────────────────────────────────

class SaaSCategory(str, enum.Enum):
    communication = "communication"
    productivity = "productivity"
    development = "development"
    design = "design"
    hr = "hr"
    finance = "finance"
    marketing = "marketing"
    sales = "sales"
    security = "security"
    storage = "storage"
    other = "other"


class LicenseType(str, enum.Enum):
    user_based = "user-based"
    fixed = "fixed"
    usage_based = "usage-based"


class SecurityRating(str, enum.Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class BillingCycle(str, enum.Enum):
    monthly = "monthly"
    yearly = "yearly"


class PaymentMethod(str, enum.Enum):
    credit_card = "credit_card"
    invoice = "invoice"
    bank_transfer = "bank_transfer"


class Currency(str, enum.Enum):
    JPY = "JPY"
    USD = "USD"


class LicenseStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    pending = "pending"


# ── Workflow ────────────────────────────────────────────────────────

class WorkflowType(str, enum.Enum):
    leave_request = "leave_request"
    overtime_request = "overtime_request"
    expense_claim = "expense_claim"
    business_trip = "business_trip"
    purchase_request = "purchase_request"
    document_approval = "document_approval"
    shift_change = "shift_change"
    remote_work = "remote_work"


class WorkflowStatus(str, enum.Enum):
    draft = "draft"
    pending = "pending"
    in_review = "in_review"
    partially_approved = "partially_approved"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class WorkflowPriority(str, enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class ApprovalStepStatus(str, enum.Enum):
    waiting = "waiting"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    skipped = "skipped"


class TimelineAction(str, enum.Enum):
    created = "created"
    submitted = "submitted"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"
    delegated = "delegated"
    commented = "commented"
    completed = "completed"


# ── Payroll ─────────────────────────────────────────────────────────

class PaymentType(str, enum.Enum):
    monthly = "monthly"
    daily = "daily"
    hourly = "hourly"


class PayItemKind(str, enum.Enum):
    allowance = "allowance"
    deduction = "deduction"


class PaySlipStatus(str, enum.Enum):
    draft = "draft"
    confirmed = "confirmed"
    paid = "paid"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    info = "info"
    action_required = "action_required"
    approval = "approval"
    reminder = "reminder"
    alert = "alert"


# ── CSV import ──────────────────────────────────────────────────────

class LeaveUsageType(str, enum.Enum):
    full = "full"
    am = "am"
    pm = "pm"
    hourly = "hourly"


# ── Role-based permissions ──────────────────────────────────────────

_EMPLOYEE_PERMISSIONS = [
    "profile:read_own",
    "attendance:record_own",
    "attendance:read_own",
    "leave:request",
    "leave:read_own",
    "announcement:read",
    "workflow:request",
    "notification:read_own",
    "payroll:read_own",
]

_MANAGER_PERMISSIONS = _EMPLOYEE_PERMISSIONS + [
    "profile:read_all",
    "attendance:read_all",
    "leave:read_all",
    "leave:approve",
    "workflow:approve",
]

_HR_PERMISSIONS = _MANAGER_PERMISSIONS + [
    "profile:create",
    "profile:update",
    "attendance:manage",
    "leave:configure",
    "announcement:manage",
    "asset:read",
    "saas:read",
    "csv:import",
    "csv:export",
    "payroll:manage",
    "audit:read",
]

PERMISSIONS: dict[UserRole, list[str]] = {
    UserRole.applicant: ["profile:read_own", "announcement:read"],
    UserRole.employee: _EMPLOYEE_PERMISSIONS,
    UserRole.manager: _MANAGER_PERMISSIONS,
    UserRole.executive: _MANAGER_PERMISSIONS + ["asset:read", "saas:read"],
    UserRole.hr: _HR_PERMISSIONS,
    UserRole.admin: _HR_PERMISSIONS + [
        "profile:delete",
        "asset:manage",
        "saas:manage",
        "tenant:configure",
    ],
}

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
