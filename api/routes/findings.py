"""
api/routes/findings.py -- Finding endpoints, the Open/Closed state machine and evidence.

Routes:
  GET    /api/findings                                  -- paginated list with filters
  POST   /api/findings                                  -- create (always starts Open)
  GET    /api/findings/{finding_id}                     -- detail including evidence
  PUT    /api/findings/{finding_id}                     -- partial update (never status)
  DELETE /api/findings/{finding_id}                     -- soft delete (Admin)
  POST   /api/findings/{finding_id}/restore             -- undo soft delete (Admin)
  POST   /api/findings/{finding_id}/close               -- Open -> Closed (Admin, Encoder)
  POST   /api/findings/{finding_id}/reopen              -- Closed -> Open (Admin)
  GET    /api/findings/{finding_id}/evidence            -- list evidence files
  POST   /api/findings/{finding_id}/evidence            -- upload (multipart, field "files")
  DELETE /api/findings/{finding_id}/evidence/{evidence_id}

close on a Closed finding and reopen on an Open finding answer 400
invalid_state; nothing is written.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from api.attachments import remove_attachment, save_uploads
from api.models import (
    AttachmentOut,
    Envelope,
    FindingCategory,
    FindingCreate,
    FindingOut,
    FindingStatus,
    FindingUpdate,
    ok,
)
from auth.dependencies import require
from auth.models import Claims
from core.repository import DEFAULT_PAGE_SIZE
from tracker.store import TrackerStore

router = APIRouter()


def _tracker(request: Request) -> TrackerStore:
    return request.app.state.tracker


@router.get("/findings", response_model=Envelope[list[FindingOut]])
def list_findings(
    request: Request,
    audit_id: Optional[int] = None,
    category: Optional[FindingCategory] = None,
    status: Optional[FindingStatus] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    claims: Claims = Depends(require("view_finding")),
) -> dict:
    findings, pagination = _tracker(request).findings.paginate(
        page=page,
        limit=limit,
        include_deleted=include_deleted,
        audit_id=audit_id,
        category=category.value if category else None,
        status=status.value if status else None,
    )
    return ok(findings, pagination=pagination)


@router.post("/findings", response_model=Envelope[FindingOut], status_code=201)
def create_finding(
    request: Request,
    body: FindingCreate,
    claims: Claims = Depends(require("create_finding")),
) -> dict:
    finding = _tracker(request).create_finding(created_by=claims.user_id, **body.model_dump(mode="json"))
    return ok(finding, message="Finding created.")


@router.get("/findings/{finding_id}", response_model=Envelope[FindingOut])
def get_finding(
    request: Request,
    finding_id: int,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    claims: Claims = Depends(require("view_finding")),
) -> dict:
    return ok(_tracker(request).get_finding(finding_id, include_deleted=include_deleted))


@router.put("/findings/{finding_id}", response_model=Envelope[FindingOut])
def update_finding(
    request: Request,
    finding_id: int,
    body: FindingUpdate,
    claims: Claims = Depends(require("update_finding")),
) -> dict:
    finding = _tracker(request).update_finding(finding_id, **body.model_dump(mode="json", exclude_unset=True))
    return ok(finding, message="Finding updated.")


@router.delete("/findings/{finding_id}", response_model=Envelope[None])
def delete_finding(request: Request, finding_id: int, claims: Claims = Depends(require("delete_finding"))) -> dict:
    _tracker(request).findings.delete(finding_id, deleted_by=claims.user_id)
    return ok(message="Finding deleted.")


@router.post("/findings/{finding_id}/restore", response_model=Envelope[FindingOut])
def restore_finding(
    request: Request,
    finding_id: int,
    claims: Claims = Depends(require("restore_finding")),
) -> dict:
    return ok(_tracker(request).findings.restore(finding_id), message="Finding restored.")


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------


@router.post("/findings/{finding_id}/close", response_model=Envelope[FindingOut])
def close_finding(request: Request, finding_id: int, claims: Claims = Depends(require("close_finding"))) -> dict:
    return ok(_tracker(request).close_finding(finding_id), message="Finding closed.")


@router.post("/findings/{finding_id}/reopen", response_model=Envelope[FindingOut])
def reopen_finding(request: Request, finding_id: int, claims: Claims = Depends(require("reopen_finding"))) -> dict:
    return ok(_tracker(request).reopen_finding(finding_id), message="Finding reopened.")


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------


@router.get("/findings/{finding_id}/evidence", response_model=Envelope[list[AttachmentOut]])
def list_evidence(request: Request, finding_id: int, claims: Claims = Depends(require("view_finding"))) -> dict:
    return ok(_tracker(request).list_attachments("finding", finding_id))


@router.post("/findings/{finding_id}/evidence", response_model=Envelope[list[AttachmentOut]], status_code=201)
async def upload_evidence(
    request: Request,
    finding_id: int,
    files: list[UploadFile] = File(...),
    claims: Claims = Depends(require("upload_attachment")),
) -> dict:
    saved = await save_uploads(request, "finding", finding_id, files, claims)
    return ok(saved, message=f"{len(saved)} evidence file(s) uploaded.")


@router.delete("/findings/{finding_id}/evidence/{evidence_id}", response_model=Envelope[None])
def delete_evidence(
    request: Request,
    finding_id: int,
    evidence_id: int,
    claims: Claims = Depends(require("delete_attachment")),
) -> dict:
    """Remove the evidence row, then its file. A missing file does not change the response."""
    remove_attachment(request, "finding", finding_id, evidence_id)
    return ok(message="Evidence deleted.")
