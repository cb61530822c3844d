"""
api/routes/audits.py -- Audit endpoints, auditor assignments and audit attachments.

Routes:
  GET    /api/audits                                     -- paginated list with filters
  POST   /api/audits                                     -- create (reference auto-generated)
  GET    /api/audits/{audit_id}                          -- detail including live findings
  PUT    /api/audits/{audit_id}                          -- partial update
  DELETE /api/audits/{audit_id}                          -- soft delete (Admin)
  POST   /api/audits/{audit_id}/restore                  -- undo soft delete (Admin)
  GET    /api/audits/{audit_id}/auditors                 -- assigned auditors
  POST   /api/audits/{audit_id}/auditors                 -- assign an auditor
  PUT    /api/audits/{audit_id}/auditors/{assignment_id} -- change the assignment role
  DELETE /api/audits/{audit_id}/auditors/{assignment_id} -- unassign
  GET    /api/audits/{audit_id}/attachments              -- list attachments
  POST   /api/audits/{audit_id}/attachments              -- upload (multipart, field "files")
  DELETE /api/audits/{audit_id}/attachments/{attachment_id}

List filters: vessel_id, audit_type_id, audit_party_id, status, date_from,
date_to (inclusive, on audit_start_date), page, limit, includeDeleted.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from api.attachments import remove_attachment, save_uploads
from api.models import (
    AssignmentCreate,
    AssignmentOut,
    AssignmentUpdate,
    AttachmentOut,
    AuditCreate,
    AuditOut,
    AuditStatus,
    AuditUpdate,
    Envelope,
    ok,
)
from auth.dependencies import require
from auth.models import Claims
from core.repository import DEFAULT_PAGE_SIZE
from tracker.store import TrackerStore

router = APIRouter()


def _tracker(request: Request) -> TrackerStore:
    return request.app.state.tracker


# ---------------------------------------------------------------------------
# Audits
# ---------------------------------------------------------------------------


@router.get("/audits", response_model=Envelope[list[AuditOut]])
def list_audits(
    request: Request,
    vessel_id: Optional[int] = None,
    audit_type_id: Optional[int] = None,
    audit_party_id: Optional[int] = None,
    status: Optional[AuditStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    claims: Claims = Depends(require("view_audit")),
) -> dict:
    audits, pagination = _tracker(request).audits.paginate(
        page=page,
        limit=limit,
        include_deleted=include_deleted,
        vessel_id=vessel_id,
        audit_type_id=audit_type_id,
        audit_party_id=audit_party_id,
        status=status.value if status else None,
        date_from=date_from.isoformat() if date_from else None,
        date_to=date_to.isoformat() if date_to else None,
    )
    return ok(audits, pagination=pagination)


@router.post("/audits", response_model=Envelope[AuditOut], status_code=201)
def create_audit(request: Request, body: AuditCreate, claims: Claims = Depends(require("create_audit"))) -> dict:
    audit = _tracker(request).create_audit(created_by=claims.user_id, **body.model_dump(mode="json"))
    return ok(audit, message="Audit created.")


@router.get("/audits/{audit_id}", response_model=Envelope[AuditOut])
def get_audit(
    request: Request,
    audit_id: int,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    claims: Claims = Depends(require("view_audit")),
) -> dict:
    return ok(_tracker(request).get_audit(audit_id, include_deleted=include_deleted))


@router.put("/audits/{audit_id}", response_model=Envelope[AuditOut])
def update_audit(
    request: Request,
    audit_id: int,
    body: AuditUpdate,
    claims: Claims = Depends(require("update_audit")),
) -> dict:
    audit = _tracker(request).update_audit(audit_id, **body.model_dump(mode="json", exclude_unset=True))
    return ok(audit, message="Audit updated.")


@router.delete("/audits/{audit_id}", response_model=Envelope[None])
def delete_audit(request: Request, audit_id: int, claims: Claims = Depends(require("delete_audit"))) -> dict:
    _tracker(request).audits.delete(audit_id, deleted_by=claims.user_id)
    return ok(message="Audit deleted.")


@router.post("/audits/{audit_id}/restore", response_model=Envelope[AuditOut])
def restore_audit(request: Request, audit_id: int, claims: Claims = Depends(require("restore_audit"))) -> dict:
    return ok(_tracker(request).audits.restore(audit_id), message="Audit restored.")


# ---------------------------------------------------------------------------
# Auditor assignments
# ---------------------------------------------------------------------------


@router.get("/audits/{audit_id}/auditors", response_model=Envelope[list[AssignmentOut]])
def list_assignments(request: Request, audit_id: int, claims: Claims = Depends(require("view_audit"))) -> dict:
    return ok(_tracker(request).list_assignments(audit_id))


@router.post("/audits/{audit_id}/auditors", response_model=Envelope[AssignmentOut], status_code=201)
def assign_auditor(
    request: Request,
    audit_id: int,
    body: AssignmentCreate,
    claims: Claims = Depends(require("manage_assignments")),
) -> dict:
    assignment = _tracker(request).assign_auditor(audit_id, body.auditor_id, body.role)
    return ok(assignment, message="Auditor assigned.")


@router.put("/audits/{audit_id}/auditors/{assignment_id}", response_model=Envelope[AssignmentOut])
def update_assignment(
    request: Request,
    audit_id: int,
    assignment_id: int,
    body: AssignmentUpdate,
    claims: Claims = Depends(require("manage_assignments")),
) -> dict:
    assignment = _tracker(request).update_assignment(audit_id, assignment_id, body.role)
    return ok(assignment, message="Assignment updated.")


@router.delete("/audits/{audit_id}/auditors/{assignment_id}", response_model=Envelope[None])
def remove_assignment(
    request: Request,
    audit_id: int,
    assignment_id: int,
    claims: Claims = Depends(require("manage_assignments")),
) -> dict:
    _tracker(request).remove_assignment(audit_id, assignment_id)
    return ok(message="Auditor removed from audit.")


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------


@router.get("/audits/{audit_id}/attachments", response_model=Envelope[list[AttachmentOut]])
def list_attachments(request: Request, audit_id: int, claims: Claims = Depends(require("view_audit"))) -> dict:
    return ok(_tracker(request).list_attachments("audit", audit_id))


@router.post("/audits/{audit_id}/attachments", response_model=Envelope[list[AttachmentOut]], status_code=201)
async def upload_attachments(
    request: Request,
    audit_id: int,
    files: list[UploadFile] = File(...),
    claims: Claims = Depends(require("upload_attachment")),
) -> dict:
    saved = await save_uploads(request, "audit", audit_id, files, claims)
    return ok(saved, message=f"{len(saved)} file(s) uploaded.")


@router.delete("/audits/{audit_id}/attachments/{attachment_id}", response_model=Envelope[None])
def delete_attachment(
    request: Request,
    audit_id: int,
    attachment_id: int,
    claims: Claims = Depends(require("delete_attachment")),
) -> dict:
    remove_attachment(request, "audit", audit_id, attachment_id)
    return ok(message="Attachment deleted.")
