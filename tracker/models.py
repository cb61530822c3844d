"""
tracker/models.py -- Domain dataclasses for the audit tracker.

These are pure data containers with zero logic. Business rules (foreign key
checks, reference numbers, the finding state machine) live in tracker/store.py.

Fields ending in _name on Auditor, Audit, Finding and Attachment are joined
display columns filled in by the store on read; they are not stored.

id is None before the record is written to the database.
"""

from dataclasses import dataclass, field
from typing import Optional

# Vessel status doubles as the vessel's active flag.
VESSEL_STATUSES = ("Active", "Inactive")
AUDIT_STATUSES = ("Planned", "Ongoing", "Completed", "Closed")
FINDING_CATEGORIES = ("Major", "Minor", "Observation")
FINDING_OPEN = "Open"
FINDING_CLOSED = "Closed"
ATTACHMENT_OWNERS = ("audit", "finding")


@dataclass
class Vessel:
    vessel_name: str
    vessel_code: str
    id: Optional[int] = None
    registration_number: Optional[str] = None
    status: str = "Active"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None


@dataclass
class AuditType:
    type_name: str
    id: Optional[int] = None
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None


@dataclass
class AuditParty:
    """The body an audit is performed for (flag state, class society, internal)."""

    party_name: str
    id: Optional[int] = None
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None


@dataclass
class AuditCompany:
    company_name: str
    id: Optional[int] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None


@dataclass
class Auditor:
    audit_company_id: int
    auditor_name: str
    id: Optional[int] = None
    company_name: Optional[str] = None
    certification: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None


@dataclass
class AuditResult:
    result_name: str
    id: Optional[int] = None
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None


@dataclass
class Audit:
    """A scheduled or performed audit of one vessel.

    audit_reference is generated as AUD-<YY>-<id:05d> when the caller does
    not supply one. findings is only populated by TrackerStore.get_audit().
    """

    vessel_id: int
    audit_type_id: int
    audit_party_id: int
    id: Optional[int] = None
    audit_reference: Optional[str] = None
    audit_company_id: Optional[int] = None
    audit_result_id: Optional[int] = None
    audit_start_date: Optional[str] = None  # YYYY-MM-DD
    audit_end_date: Optional[str] = None
    next_due_date: Optional[str] = None
    location: Optional[str] = None
    status: str = "Planned"
    remarks: Optional[str] = None
    created_by: Optional[int] = None
    vessel_name: Optional[str] = None
    type_name: Optional[str] = None
    party_name: Optional[str] = None
    company_name: Optional[str] = None
    result_name: Optional[str] = None
    findings_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None
    findings: list = field(default_factory=list)


@dataclass
class AuditAssignment:
    audit_id: int
    auditor_id: int
    id: Optional[int] = None
    role: str = "Auditor"
    auditor_name: Optional[str] = None
    company_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Finding:
    """A non-conformity raised during an audit.

    status is "Open" or "Closed" and only changes through close/reopen.
    is_overdue is computed on read: open with a target_date in the past.
    """

    audit_id: int
    category: str
    description: str
    id: Optional[int] = None
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    responsible_person: Optional[str] = None
    target_date: Optional[str] = None  # YYYY-MM-DD
    status: str = FINDING_OPEN
    closure_date: Optional[str] = None
    created_by: Optional[int] = None
    audit_reference: Optional[str] = None
    vessel_name: Optional[str] = None
    is_overdue: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[int] = None
    evidence: list = field(default_factory=list)


@dataclass
class Attachment:
    """A stored file owned by an audit (attachment) or a finding (evidence).

    file_path is the public relative path (/uploads/...), never a filesystem path.
    """

    entity_type: str
    entity_id: int
    file_name: str
    file_path: str
    id: Optional[int] = None
    file_type: Optional[str] = None
    file_size: int = 0
    uploaded_by: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class CompanySettings:
    """Singleton row of company-wide configuration shown on reports."""

    id: int = 1
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    company_email: Optional[str] = None
    contact_person: Optional[str] = None
    registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    website: Optional[str] = None
    logo_path: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
