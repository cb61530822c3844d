"""
API request and response models for Audit Monitor REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
tracker/models.py, which own the internal domain representation.

Envelope:
  Every success response is Envelope[T]:
      {"success": true, "data": T, "message": str | null, "pagination": {...} | null}
  Every error response is ErrorResponse:
      {"success": false, "error": {"code": str, "message": str, "details": any}}

  Route handlers return ok(...) -- a plain dict holding domain dataclasses.
  FastAPI converts the dataclasses and validates the result against the
  route's response_model, which also drops fields the API must not expose
  (password_hash is never part of UserOut).

Request models strip surrounding whitespace from every string. Update models
make every field optional; routes pass model_dump(exclude_unset=True) so only
the fields the client actually sent are written. Columns listed in an update
model's NOT_NULL may be omitted but never sent as an explicit null. Dates are
accepted as YYYY-MM-DD and stored as the same string.
"""

from datetime import date
from enum import Enum
from typing import Any, ClassVar, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

T = TypeVar("T")

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def ok(data: Any = None, message: Optional[str] = None, pagination: Any = None) -> dict:
    """Build a success envelope. Dataclass payloads are converted by FastAPI."""
    return {"success": True, "data": data, "message": message, "pagination": pagination}


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class VesselStatus(str, Enum):
    active = "Active"
    inactive = "Inactive"


class AuditStatus(str, Enum):
    planned = "Planned"
    ongoing = "Ongoing"
    completed = "Completed"
    closed = "Closed"


class FindingCategory(str, Enum):
    major = "Major"
    minor = "Minor"
    observation = "Observation"


class FindingStatus(str, Enum):
    open = "Open"
    closed = "Closed"


# ---------------------------------------------------------------------------
# Envelope and errors
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: ErrorDetail


class PaginationInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    page: int
    limit: int
    total_pages: int


class Envelope(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    pagination: Optional[PaginationInfo] = None


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: str


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class _Update(_Request):
    NOT_NULL: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_explicit_null(self):
        nulls = [name for name in self.NOT_NULL if name in self.model_fields_set and getattr(self, name) is None]
        if nulls:
            raise ValueError(f"{', '.join(nulls)} must not be null")
        return self


# ---------------------------------------------------------------------------
# Auth and users
# ---------------------------------------------------------------------------


class LoginRequest(_Request):
    email: str = Field(pattern=_EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=6, max_length=128)


class UserOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role_id: int
    role_name: Optional[str] = None
    is_active: bool
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None


class LoginData(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    user: UserOut


class UserCreate(_Request):
    name: str = Field(min_length=2, max_length=100)
    email: str = Field(pattern=_EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=6, max_length=128)
    role_id: int
    is_active: bool = True


class UserUpdate(_Update):
    NOT_NULL = ("name", "email", "password", "role_id", "is_active")

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)
    role_id: Optional[int] = None
    is_active: Optional[bool] = None


class ChangePasswordRequest(_Request):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=6, max_length=128)


# ---------------------------------------------------------------------------
# Roles, pages, permissions
# ---------------------------------------------------------------------------


class RolePermissionOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    role_id: int
    page_id: int
    permission_id: int
    role_name: Optional[str] = None
    page_name: Optional[str] = None
    page_path: Optional[str] = None
    permission_name: Optional[str] = None


class RoleOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    permissions: list[RolePermissionOut] = []


class RoleCreate(_Request):
    name: str = Field(min_length=2, max_length=50)
    description: Optional[str] = None
    is_active: bool = True


class RoleUpdate(_Update):
    NOT_NULL = ("name", "is_active")

    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class Grant(_Request):
    page_id: int
    permission_id: int


class AssignPermissionsRequest(_Request):
    """Full replacement set of grants for one role. An empty list revokes everything."""

    permissions: list[Grant]


class PageOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    path: str
    description: Optional[str] = None
    icon: Optional[str] = None
    display_order: int
    is_active: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PageCreate(_Request):
    name: str = Field(min_length=1, max_length=100)
    path: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=50)
    display_order: int = 0
    is_active: bool = True


class PageUpdate(_Update):
    NOT_NULL = ("name", "path", "display_order", "is_active")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    path: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=50)
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class PermissionOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PermissionCreate(_Request):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = None


class PermissionUpdate(_Update):
    NOT_NULL = ("name",)

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = None


# ---------------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------------


class _SoftDeleteOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None


class VesselOut(_SoftDeleteOut):
    vessel_name: str
    vessel_code: str
    registration_number: Optional[str] = None
    status: str


class VesselCreate(_Request):
    vessel_name: str = Field(min_length=1, max_length=100)
    vessel_code: str = Field(min_length=1, max_length=50)
    registration_number: Optional[str] = Field(default=None, max_length=100)
    status: VesselStatus = VesselStatus.active


class VesselUpdate(_Update):
    NOT_NULL = ("vessel_name", "vessel_code", "status")

    vessel_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    vessel_code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    registration_number: Optional[str] = Field(default=None, max_length=100)
    status: Optional[VesselStatus] = None


class AuditTypeOut(_SoftDeleteOut):
    type_name: str
    description: Optional[str] = None
    is_active: bool


class AuditTypeCreate(_Request):
    type_name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True


class AuditTypeUpdate(_Update):
    NOT_NULL = ("type_name", "is_active")

    type_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class AuditPartyOut(_SoftDeleteOut):
    party_name: str
    is_active: bool


class AuditPartyCreate(_Request):
    party_name: str = Field(min_length=1, max_length=100)
    is_active: bool = True


class AuditPartyUpdate(_Update):
    NOT_NULL = ("party_name", "is_active")

    party_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_active: Optional[bool] = None


class AuditCompanyOut(_SoftDeleteOut):
    company_name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool


class AuditCompanyCreate(_Request):
    company_name: str = Field(min_length=1, max_length=150)
    contact_person: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    is_active: bool = True


class AuditCompanyUpdate(_Update):
    NOT_NULL = ("company_name", "is_active")

    company_name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    contact_person: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    is_active: Optional[bool] = None


class AuditorOut(_SoftDeleteOut):
    audit_company_id: int
    company_name: Optional[str] = None
    auditor_name: str
    certification: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    is_active: bool


class AuditorCreate(_Request):
    audit_company_id: int
    auditor_name: str = Field(min_length=1, max_length=100)
    certification: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    specialization: Optional[str] = Field(default=None, max_length=255)
    is_active: bool = True


class AuditorUpdate(_Update):
    NOT_NULL = ("audit_company_id", "auditor_name", "is_active")

    audit_company_id: Optional[int] = None
    auditor_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    certification: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    specialization: Optional[str] = Field(default=None, max_length=255)
    is_active: Optional[bool] = None


class AuditResultOut(_SoftDeleteOut):
    result_name: str
    description: Optional[str] = None
    is_active: bool


class AuditResultCreate(_Request):
    result_name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True


class AuditResultUpdate(_Update):
    NOT_NULL = ("result_name", "is_active")

    result_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


# ---------------------------------------------------------------------------
# Attachments, findings, audits
# ---------------------------------------------------------------------------


class AttachmentOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    entity_type: str
    entity_id: int
    file_name: str
    file_path: str
    file_type: Optional[str] = None
    file_size: int
    uploaded_by: Optional[int] = None
    created_at: Optional[str] = None


class FindingOut(_SoftDeleteOut):
    audit_id: int
    audit_reference: Optional[str] = None
    vessel_name: Optional[str] = None
    category: str
    description: str
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    responsible_person: Optional[str] = None
    target_date: Optional[str] = None
    status: str
    closure_date: Optional[str] = None
    is_overdue: bool = False
    created_by: Optional[int] = None
    evidence: list[AttachmentOut] = []


class FindingCreate(_Request):
    audit_id: int
    category: FindingCategory
    description: str = Field(min_length=10)
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    responsible_person: Optional[str] = Field(default=None, max_length=100)
    target_date: Optional[date] = None


class FindingUpdate(_Update):
    """Status is deliberately absent: it changes only via close/reopen."""

    NOT_NULL = ("audit_id", "category", "description")

    audit_id: Optional[int] = None
    category: Optional[FindingCategory] = None
    description: Optional[str] = Field(default=None, min_length=10)
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    responsible_person: Optional[str] = Field(default=None, max_length=100)
    target_date: Optional[date] = None


class AuditOut(_SoftDeleteOut):
    audit_reference: Optional[str] = None
    vessel_id: int
    vessel_name: Optional[str] = None
    audit_type_id: int
    type_name: Optional[str] = None
    audit_party_id: int
    party_name: Optional[str] = None
    audit_company_id: Optional[int] = None
    company_name: Optional[str] = None
    audit_result_id: Optional[int] = None
    result_name: Optional[str] = None
    audit_start_date: Optional[str] = None
    audit_end_date: Optional[str] = None
    next_due_date: Optional[str] = None
    location: Optional[str] = None
    status: str
    remarks: Optional[str] = None
    created_by: Optional[int] = None
    findings_count: int = 0
    findings: list[FindingOut] = []


class _AuditDates(_Request):
    @model_validator(mode="after")
    def end_not_before_start(self):
        start = getattr(self, "audit_start_date", None)
        end = getattr(self, "audit_end_date", None)
        if start and end and end < start:
            raise ValueError("audit_end_date must not be before audit_start_date")
        return self


class AuditCreate(_AuditDates):
    audit_reference: Optional[str] = Field(default=None, max_length=50)
    vessel_id: int
    audit_type_id: int
    audit_party_id: int
    audit_company_id: Optional[int] = None
    audit_result_id: Optional[int] = None
    audit_start_date: Optional[date] = None
    audit_end_date: Optional[date] = None
    next_due_date: Optional[date] = None
    location: Optional[str] = Field(default=None, max_length=255)
    status: AuditStatus = AuditStatus.planned
    remarks: Optional[str] = None


class AuditUpdate(_AuditDates, _Update):
    NOT_NULL = ("audit_reference", "vessel_id", "audit_type_id", "audit_party_id", "status")

    audit_reference: Optional[str] = Field(default=None, min_length=1, max_length=50)
    vessel_id: Optional[int] = None
    audit_type_id: Optional[int] = None
    audit_party_id: Optional[int] = None
    audit_company_id: Optional[int] = None
    audit_result_id: Optional[int] = None
    audit_start_date: Optional[date] = None
    audit_end_date: Optional[date] = None
    next_due_date: Optional[date] = None
    location: Optional[str] = Field(default=None, max_length=255)
    status: Optional[AuditStatus] = None
    remarks: Optional[str] = None


class AssignmentOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    audit_id: int
    auditor_id: int
    auditor_name: Optional[str] = None
    company_name: Optional[str] = None
    role: str
    created_at: Optional[str] = None


class AssignmentCreate(_Request):
    auditor_id: int
    role: str = Field(default="Auditor", min_length=1, max_length=50)


class AssignmentUpdate(_Request):
    role: str = Field(min_length=1, max_length=50)


# ---------------------------------------------------------------------------
# Company settings
# ---------------------------------------------------------------------------


class CompanySettingsOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    company_email: Optional[str] = None
    contact_person: Optional[str] = None
    registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    website: Optional[str] = None
    logo_path: Optional[str] = None
    updated_at: Optional[str] = None


class CompanySettingsUpdate(_Request):
    company_name: Optional[str] = Field(default=None, max_length=255)
    company_address: Optional[str] = None
    company_phone: Optional[str] = Field(default=None, max_length=50)
    company_email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    contact_person: Optional[str] = Field(default=None, max_length=100)
    registration_number: Optional[str] = Field(default=None, max_length=100)
    tax_id: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = Field(default=None, max_length=255)
    logo_path: Optional[str] = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class AuditStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_ytd: int
    upcoming_30days: int
    completed: int
    overdue: int


class FindingStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    open: int
    overdue: int
    closed_this_month: int


class StatsOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    audits: AuditStats
    findings: FindingStats


class MonthCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str
    count: int


class CategoryCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    count: int


class PartyCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    party_name: str
    count: int


class ChartsOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    monthly_audit_trend: list[MonthCount]
    findings_by_category: list[CategoryCount]
    audits_by_party: list[PartyCount]


class TrendRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str
    vessel_name: str
    type_name: str
    finding_count: int


class MonthlyTotal(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str
    total_findings: int


class FindingsTrendOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    trend: list[TrendRow]
    monthly_totals: list[MonthlyTotal]
