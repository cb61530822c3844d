"""
tracker/store.py -- SQLAlchemy Core persistence layer for the audit tracker.

Pattern: Repository + Data Mapper (same as auth/store.py).
TrackerStore is the facade routes talk to. It owns one Repository subclass per
table (tracker.vessels, tracker.audits, ...) for the uniform CRUD surface and
adds the business rules that do not fit the generic shape:

  Foreign key validation -- an auditor's company, an audit's vessel/type/party
      (and optional company/result), a finding's audit, and both sides of an
      assignment must reference live rows. Violations raise UnknownReference
      (400) instead of surfacing a raw database error.

  Audit reference -- AUD-<YY>-<id:05d>, generated inside the INSERT
      transaction when the caller does not supply one.

  Finding state machine -- Open -> Closed (close) and Closed -> Open (reopen).
      Each transition is a conditional UPDATE on the expected current status;
      when it matches nothing the row is re-read to report NotFound or
      InvalidState. A finding can cycle between the two states indefinitely.

  Attachments -- rows only. Files live in storage/local.py; the route
      removes the row first and then asks storage to delete the file.

Soft-deleted tables: vessels, audit_types, audit_parties, audit_companies,
auditors, audit_results, audits, findings. audit_assignments and attachments
are hard-deleted. company_settings is a single row (id = 1).

Layer rule: no imports from api/ or auth/.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.engine import Engine

from core.config import get_settings
from core.database import make_engine, now_iso, soft_delete_columns, timestamp_columns, today_iso
from core.errors import InvalidState, NotFound, UnknownReference, ValidationError
from core.repository import Repository, row_to_model
from tracker.models import (
    FINDING_CLOSED,
    FINDING_OPEN,
    Attachment,
    Audit,
    AuditAssignment,
    AuditCompany,
    Auditor,
    AuditParty,
    AuditResult,
    AuditType,
    CompanySettings,
    Finding,
    Vessel,
)

logger = logging.getLogger("auditmonitor.tracker")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_vessels = Table(
    "vessels",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("vessel_name", String(100), nullable=False),
    Column("vessel_code", String(50), nullable=False, unique=True),
    Column("registration_number", String(100)),
    Column("status", String(20), nullable=False, server_default="Active"),
    *timestamp_columns(),
    *soft_delete_columns(),
)

_audit_types = Table(
    "audit_types",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("type_name", String(100), nullable=False, unique=True),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *timestamp_columns(),
    *soft_delete_columns(),
)

_audit_parties = Table(
    "audit_parties",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("party_name", String(100), nullable=False, unique=True),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *timestamp_columns(),
    *soft_delete_columns(),
)

_audit_companies = Table(
    "audit_companies",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_name", String(150), nullable=False, unique=True),
    Column("contact_person", String(100)),
    Column("email", String(255)),
    Column("phone", String(50)),
    Column("address", Text),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *timestamp_columns(),
    *soft_delete_columns(),
)

_auditors = Table(
    "auditors",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("audit_company_id", Integer, ForeignKey("audit_companies.id"), nullable=False),
    Column("auditor_name", String(100), nullable=False),
    Column("certification", String(255)),
    Column("email", String(255)),
    Column("phone", String(50)),
    Column("specialization", String(255)),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *timestamp_columns(),
    *soft_delete_columns(),
)

_audit_results = Table(
    "audit_results",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("result_name", String(100), nullable=False, unique=True),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *timestamp_columns(),
    *soft_delete_columns(),
)

_audits = Table(
    "audits",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # NULL only between INSERT and the reference UPDATE in the same transaction.
    Column("audit_reference", String(50), unique=True),
    Column("vessel_id", Integer, ForeignKey("vessels.id"), nullable=False),
    Column("audit_type_id", Integer, ForeignKey("audit_types.id"), nullable=False),
    Column("audit_party_id", Integer, ForeignKey("audit_parties.id"), nullable=False),
    Column("audit_company_id", Integer, ForeignKey("audit_companies.id")),
    Column("audit_result_id", Integer, ForeignKey("audit_results.id")),
    Column("audit_start_date", String(10)),
    Column("audit_end_date", String(10)),
    Column("next_due_date", String(10)),
    Column("location", String(255)),
    Column("status", String(20), nullable=False, server_default="Planned"),
    Column("remarks", Text),
    Column("created_by", Integer),
    *timestamp_columns(),
    *soft_delete_columns(),
)

_audit_assignments = Table(
    "audit_assignments",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("audit_id", Integer, ForeignKey("audits.id"), nullable=False),
    Column("auditor_id", Integer, ForeignKey("auditors.id"), nullable=False),
    Column("role", String(50), nullable=False, server_default="Auditor"),
    *timestamp_columns(),
    UniqueConstraint("audit_id", "auditor_id"),
)

_findings = Table(
    "findings",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("audit_id", Integer, ForeignKey("audits.id"), nullable=False),
    Column("category", String(20), nullable=False),
    Column("description", Text, nullable=False),
    Column("root_cause", Text),
    Column("corrective_action", Text),
    Column("responsible_person", String(100)),
    Column("target_date", String(10)),
    Column("status", String(20), nullable=False, server_default=FINDING_OPEN),
    Column("closure_date", String(10)),
    Column("created_by", Integer),
    *timestamp_columns(),
    *soft_delete_columns(),
)

# Polymorphic owner: entity_type is "audit" or "finding".
_attachments = Table(
    "attachments",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entity_type", String(20), nullable=False),
    Column("entity_id", Integer, nullable=False),
    Column("file_name", String(255), nullable=False),
    Column("file_path", String(500), nullable=False),
    Column("file_type", String(100)),
    Column("file_size", Integer, nullable=False, server_default="0"),
    Column("uploaded_by", Integer),
    *timestamp_columns(),
)

_company_settings = Table(
    "company_settings",
    _metadata,
    Column("id", Integer, primary_key=True),
    Column("company_name", String(255)),
    Column("company_address", Text),
    Column("company_phone", String(50)),
    Column("company_email", String(255)),
    Column("contact_person", String(100)),
    Column("registration_number", String(100)),
    Column("tax_id", String(100)),
    Column("website", String(255)),
    Column("logo_path", String(500)),
    *timestamp_columns(),
)


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class VesselRepository(Repository):
    table = _vessels
    model = Vessel
    entity = "Vessel"
    order_by = (_vessels.c.vessel_name,)

    def _active_clause(self):
        return _vessels.c.status == "Active"


class AuditTypeRepository(Repository):
    table = _audit_types
    model = AuditType
    entity = "Audit type"
    order_by = (_audit_types.c.type_name,)


class AuditPartyRepository(Repository):
    table = _audit_parties
    model = AuditParty
    entity = "Audit party"
    order_by = (_audit_parties.c.party_name,)


class AuditCompanyRepository(Repository):
    table = _audit_companies
    model = AuditCompany
    entity = "Audit company"
    order_by = (_audit_companies.c.company_name,)


class AuditResultRepository(Repository):
    table = _audit_results
    model = AuditResult
    entity = "Audit result"
    order_by = (_audit_results.c.result_name,)


class AuditorRepository(Repository):
    table = _auditors
    model = Auditor
    entity = "Auditor"
    order_by = (_auditors.c.auditor_name,)

    def _select(self):
        return select(_auditors, _audit_companies.c.company_name).select_from(
            _auditors.outerjoin(_audit_companies, _auditors.c.audit_company_id == _audit_companies.c.id)
        )


class AuditRepository(Repository):
    """Audits with vessel/type/party/company/result names and a live findings count."""

    table = _audits
    model = Audit
    entity = "Audit"
    order_by = (_audits.c.created_at.desc(), _audits.c.id.desc())

    def _select(self):
        findings_count = (
            select(func.count())
            .select_from(_findings)
            .where((_findings.c.audit_id == _audits.c.id) & _findings.c.deleted_at.is_(None))
            .correlate(_audits)
            .scalar_subquery()
            .label("findings_count")
        )
        joined = (
            _audits.outerjoin(_vessels, _audits.c.vessel_id == _vessels.c.id)
            .outerjoin(_audit_types, _audits.c.audit_type_id == _audit_types.c.id)
            .outerjoin(_audit_parties, _audits.c.audit_party_id == _audit_parties.c.id)
            .outerjoin(_audit_companies, _audits.c.audit_company_id == _audit_companies.c.id)
            .outerjoin(_audit_results, _audits.c.audit_result_id == _audit_results.c.id)
        )
        return select(
            _audits,
            _vessels.c.vessel_name,
            _audit_types.c.type_name,
            _audit_parties.c.party_name,
            _audit_companies.c.company_name,
            _audit_results.c.result_name,
            findings_count,
        ).select_from(joined)

    def _filter(self, stmt, include_deleted=False, active_only=False, date_from=None, date_to=None, **filters):
        """Equality filters plus an inclusive audit_start_date range."""
        stmt = super()._filter(stmt, include_deleted, active_only, **filters)
        if date_from:
            stmt = stmt.where(_audits.c.audit_start_date >= date_from)
        if date_to:
            stmt = stmt.where(_audits.c.audit_start_date <= date_to)
        return stmt

    def _after_insert(self, conn, record_id, values) -> None:
        if not values.get("audit_reference"):
            conn.execute(
                _audits.update().where(_audits.c.id == record_id).values(audit_reference=audit_reference(record_id))
            )


class AssignmentRepository(Repository):
    table = _audit_assignments
    model = AuditAssignment
    entity = "Auditor assignment"
    soft_delete = False
    order_by = (_audit_assignments.c.id,)

    def _select(self):
        return select(_audit_assignments, _auditors.c.auditor_name, _audit_companies.c.company_name).select_from(
            _audit_assignments.join(_auditors, _audit_assignments.c.auditor_id == _auditors.c.id).outerjoin(
                _audit_companies, _auditors.c.audit_company_id == _audit_companies.c.id
            )
        )


class FindingRepository(Repository):
    """Findings with the parent audit reference and vessel name; is_overdue computed on read."""

    table = _findings
    model = Finding
    entity = "Finding"
    order_by = (_findings.c.created_at.desc(), _findings.c.id.desc())

    def _select(self):
        return select(_findings, _audits.c.audit_reference, _vessels.c.vessel_name).select_from(
            _findings.outerjoin(_audits, _findings.c.audit_id == _audits.c.id).outerjoin(
                _vessels, _audits.c.vessel_id == _vessels.c.id
            )
        )

    def _to_model(self, row) -> Finding:
        finding = row_to_model(Finding, row)
        finding.is_overdue = is_overdue(finding.status, finding.target_date)
        return finding


class AttachmentRepository(Repository):
    table = _attachments
    model = Attachment
    entity = "Attachment"
    soft_delete = False
    order_by = (_attachments.c.created_at, _attachments.c.id)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def audit_reference(audit_id: int, year: Optional[int] = None) -> str:
    """Return AUD-<two-digit year>-<id zero-padded to 5>, e.g. AUD-26-00042."""
    yy = (year or date.today().year) % 100
    return f"AUD-{yy:02d}-{audit_id:05d}"


def is_overdue(status: str, target_date: Optional[str], today: Optional[str] = None) -> bool:
    """An open finding is overdue once its target date has passed."""
    if status != FINDING_OPEN or not target_date:
        return False
    return target_date < (today or today_iso())


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class TrackerStore:
    """Repository facade for every audit-domain entity.

    Usage:
        tracker = TrackerStore("sqlite:///auditmonitor.db")
        vessel = tracker.vessels.create(vessel_name="MV Aurora", vessel_code="AUR-01")
        tracker.close()
    """

    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)
        self.vessels = VesselRepository(self.engine)
        self.audit_types = AuditTypeRepository(self.engine)
        self.audit_parties = AuditPartyRepository(self.engine)
        self.audit_companies = AuditCompanyRepository(self.engine)
        self.audit_results = AuditResultRepository(self.engine)
        self.auditors = AuditorRepository(self.engine)
        self.audits = AuditRepository(self.engine)
        self.assignments = AssignmentRepository(self.engine)
        self.findings = FindingRepository(self.engine)
        self.attachments = AttachmentRepository(self.engine)
        self._ensure_settings_row()

    def _ensure_settings_row(self) -> None:
        with self.engine.connect() as conn:
            row = conn.execute(select(_company_settings.c.id).where(_company_settings.c.id == 1)).first()
            if row is None:
                now = now_iso()
                conn.execute(_company_settings.insert().values(id=1, created_at=now, updated_at=now))
                conn.commit()

    # ------------------------------------------------------------------
    # Auditors
    # ------------------------------------------------------------------

    def create_auditor(self, **values) -> Auditor:
        """Create an auditor. audit_company_id must reference a live audit company."""
        if not self.audit_companies.exists(values.get("audit_company_id")):
            raise UnknownReference("Audit company does not exist.")
        return self.auditors.create(**values)

    def update_auditor(self, auditor_id: int, **fields) -> Auditor:
        if "audit_company_id" in fields and not self.audit_companies.exists(fields["audit_company_id"]):
            raise UnknownReference("Audit company does not exist.")
        return self.auditors.update(auditor_id, **fields)

    # ------------------------------------------------------------------
    # Audits
    # ------------------------------------------------------------------

    def _check_audit_references(self, values: dict) -> None:
        required = (
            ("vessel_id", self.vessels, "Vessel"),
            ("audit_type_id", self.audit_types, "Audit type"),
            ("audit_party_id", self.audit_parties, "Audit party"),
        )
        optional = (
            ("audit_company_id", self.audit_companies, "Audit company"),
            ("audit_result_id", self.audit_results, "Audit result"),
        )
        for key, repo, label in required:
            if key in values and not repo.exists(values[key]):
                raise UnknownReference(f"{label} does not exist.")
        for key, repo, label in optional:
            if values.get(key) is not None and not repo.exists(values[key]):
                raise UnknownReference(f"{label} does not exist.")

    def create_audit(self, created_by: Optional[int] = None, **values) -> Audit:
        for key in ("vessel_id", "audit_type_id", "audit_party_id"):
            if values.get(key) is None:
                raise ValidationError(f"{key} is required.")
        self._check_audit_references(values)
        audit = self.audits.create(created_by=created_by, **values)
        logger.info("Created audit %s (id=%s)", audit.audit_reference, audit.id)
        return audit

    def update_audit(self, audit_id: int, **fields) -> Audit:
        """Partial update. The end date is checked against the stored start date and vice versa."""
        self._check_audit_references(fields)
        if "audit_start_date" in fields or "audit_end_date" in fields:
            current = self.audits.get(audit_id)
            start = fields.get("audit_start_date", current.audit_start_date)
            end = fields.get("audit_end_date", current.audit_end_date)
            if start and end and end < start:
                raise ValidationError("audit_end_date must not be before audit_start_date.")
        return self.audits.update(audit_id, **fields)

    def get_audit(self, audit_id: int, include_deleted: bool = False) -> Audit:
        """Return the audit with its live findings attached."""
        audit = self.audits.get(audit_id, include_deleted=include_deleted)
        audit.findings = self.findings.list(audit_id=audit_id)
        return audit

    # ------------------------------------------------------------------
    # Auditor assignments
    # ------------------------------------------------------------------

    def list_assignments(self, audit_id: int) -> list[AuditAssignment]:
        if not self.audits.exists(audit_id):
            raise NotFound("Audit not found.")
        return self.assignments.list(audit_id=audit_id)

    def assign_auditor(self, audit_id: int, auditor_id: int, role: str = "Auditor") -> AuditAssignment:
        """Assign an auditor to an audit. A repeated assignment raises Conflict."""
        if not self.audits.exists(audit_id):
            raise NotFound("Audit not found.")
        if not self.auditors.exists(auditor_id):
            raise UnknownReference("Auditor does not exist.")
        return self.assignments.create(audit_id=audit_id, auditor_id=auditor_id, role=role)

    def _owned_assignment(self, audit_id: int, assignment_id: int) -> AuditAssignment:
        assignment = self.assignments.get(assignment_id)
        if assignment.audit_id != audit_id:
            raise NotFound("Auditor assignment not found.")
        return assignment

    def update_assignment(self, audit_id: int, assignment_id: int, role: str) -> AuditAssignment:
        self._owned_assignment(audit_id, assignment_id)
        return self.assignments.update(assignment_id, role=role)

    def remove_assignment(self, audit_id: int, assignment_id: int) -> None:
        self._owned_assignment(audit_id, assignment_id)
        self.assignments.delete(assignment_id)

    # ------------------------------------------------------------------
    # Findings
    # ------------------------------------------------------------------

    def create_finding(self, created_by: Optional[int] = None, **values) -> Finding:
        """Create a finding in the Open state. audit_id must reference a live audit."""
        if not self.audits.exists(values.get("audit_id")):
            raise UnknownReference("Audit does not exist.")
        values.update(status=FINDING_OPEN, closure_date=None)
        return self.findings.create(created_by=created_by, **values)

    def update_finding(self, finding_id: int, **fields) -> Finding:
        if "status" in fields or "closure_date" in fields:
            raise ValidationError("Finding status changes only through close and reopen.")
        if "audit_id" in fields and not self.audits.exists(fields["audit_id"]):
            raise UnknownReference("Audit does not exist.")
        return self.findings.update(finding_id, **fields)

    def get_finding(self, finding_id: int, include_deleted: bool = False) -> Finding:
        """Return the finding with its evidence attachments."""
        finding = self.findings.get(finding_id, include_deleted=include_deleted)
        finding.evidence = self.attachments.list(entity_type="finding", entity_id=finding_id)
        return finding

    def close_finding(self, finding_id: int) -> Finding:
        """Open -> Closed. Stamps closure_date with today's date."""
        return self._transition(finding_id, FINDING_OPEN, FINDING_CLOSED, today_iso())

    def reopen_finding(self, finding_id: int) -> Finding:
        """Closed -> Open. Clears closure_date."""
        return self._transition(finding_id, FINDING_CLOSED, FINDING_OPEN, None)

    def _transition(self, finding_id: int, expected: str, target: str, closure_date: Optional[str]) -> Finding:
        with self.engine.connect() as conn:
            result = conn.execute(
                _findings.update()
                .where(
                    (_findings.c.id == finding_id)
                    & _findings.c.deleted_at.is_(None)
                    & (_findings.c.status == expected)
                )
                .values(status=target, closure_date=closure_date, updated_at=now_iso())
            )
            conn.commit()
        if result.rowcount == 0:
            # Raises NotFound for missing or deleted findings.
            current = self.findings.get(finding_id)
            raise InvalidState(f"Finding is already {current.status.lower()}.")
        logger.info("Finding %s moved %s -> %s", finding_id, expected, target)
        return self.findings.get(finding_id)

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def _owner(self, entity_type: str):
        owners = {"audit": self.audits, "finding": self.findings}
        if entity_type not in owners:
            raise ValidationError(f"Unknown attachment owner '{entity_type}'.")
        return owners[entity_type]

    def list_attachments(self, entity_type: str, entity_id: int) -> list[Attachment]:
        owner = self._owner(entity_type)
        if not owner.exists(entity_id):
            raise NotFound(f"{owner.entity} not found.")
        return self.attachments.list(entity_type=entity_type, entity_id=entity_id)

    def check_attachment_owner(self, entity_type: str, entity_id: int) -> None:
        """Raise NotFound unless the owning audit/finding is live. Run before storing files."""
        owner = self._owner(entity_type)
        if not owner.exists(entity_id):
            raise NotFound(f"{owner.entity} not found.")

    def add_attachment(
        self,
        entity_type: str,
        entity_id: int,
        file_name: str,
        file_path: str,
        file_type: Optional[str],
        file_size: int,
        uploaded_by: Optional[int],
    ) -> Attachment:
        self.check_attachment_owner(entity_type, entity_id)
        return self.attachments.create(
            entity_type=entity_type,
            entity_id=entity_id,
            file_name=file_name,
            file_path=file_path,
            file_type=file_type,
            file_size=file_size,
            uploaded_by=uploaded_by,
        )

    def delete_attachment(self, entity_type: str, entity_id: int, attachment_id: int) -> Attachment:
        """Remove the attachment row and return it so the caller can delete the file.

        The row removal is authoritative: it is committed before any file
        operation is attempted.
        """
        attachment = self.attachments.get(attachment_id)
        if attachment.entity_type != entity_type or attachment.entity_id != entity_id:
            raise NotFound("Attachment not found.")
        self.attachments.delete(attachment_id)
        return attachment

    # ------------------------------------------------------------------
    # Company settings (singleton)
    # ------------------------------------------------------------------

    def get_company_settings(self) -> CompanySettings:
        with self.engine.connect() as conn:
            row = conn.execute(select(_company_settings).where(_company_settings.c.id == 1)).fetchone()
        if row is None:
            return CompanySettings()
        return row_to_model(CompanySettings, row)

    def update_company_settings(self, **fields) -> CompanySettings:
        """Upsert the singleton row with the given fields; omitted fields keep their value."""
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _company_settings.update().where(_company_settings.c.id == 1).values(updated_at=now, **fields)
            )
            if result.rowcount == 0:
                conn.execute(_company_settings.insert().values(id=1, created_at=now, updated_at=now, **fields))
            conn.commit()
        return self.get_company_settings()

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            return conn.execute(select(1)).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()
