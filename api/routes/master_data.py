"""
api/routes/master_data.py -- Reference data CRUD: vessels, audit types, audit
parties, audit companies, auditors and audit results.

Every entity gets the same route set from crud_router():

  GET    /api/<path>                   -- list (?includeDeleted=true, ?active_only=true)
  POST   /api/<path>                   -- create
  GET    /api/<path>/{item_id}         -- detail (?includeDeleted=true)
  PUT    /api/<path>/{item_id}         -- partial update
  DELETE /api/<path>/{item_id}         -- soft delete
  POST   /api/<path>/{item_id}/restore -- undo soft delete

Reads need view_master_data (every role); writes need the entity's manage_*
action (Admin). Auditors add ?company_id= scoping to the list route and
validate audit_company_id on create/update.

Note: this module must NOT use `from __future__ import annotations`.
crud_router() declares handler parameters with types held in local variables
(body: create_model); FastAPI needs those annotations as real classes, not
strings it would try to resolve against module globals.
"""

from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from api.models import (
    AuditCompanyCreate,
    AuditCompanyOut,
    AuditCompanyUpdate,
    AuditorCreate,
    AuditorOut,
    AuditorUpdate,
    AuditPartyCreate,
    AuditPartyOut,
    AuditPartyUpdate,
    AuditResultCreate,
    AuditResultOut,
    AuditResultUpdate,
    AuditTypeCreate,
    AuditTypeOut,
    AuditTypeUpdate,
    Envelope,
    VesselCreate,
    VesselOut,
    VesselUpdate,
    ok,
)
from auth.dependencies import require
from auth.models import Claims
from tracker.store import TrackerStore

_view = require("view_master_data")


def crud_router(
    *,
    path: str,
    store_attr: str,
    label: str,
    out_model: type[BaseModel],
    create_model: type[BaseModel],
    update_model: type[BaseModel],
    manage_action: str,
    create: Optional[Callable] = None,
    update: Optional[Callable] = None,
    with_list: bool = True,
) -> APIRouter:
    """Build the uniform CRUD router for one soft-deletable entity.

    create/update override the plain repository calls when the entity has
    extra rules (foreign key checks); they receive (tracker, ...) and the
    validated field values.
    """
    router = APIRouter()
    manage = require(manage_action)

    def repo(request: Request):
        tracker: TrackerStore = request.app.state.tracker
        return getattr(tracker, store_attr)

    if with_list:

        @router.get(path, response_model=Envelope[list[out_model]])
        def list_items(
            request: Request,
            include_deleted: bool = Query(False, alias="includeDeleted"),
            active_only: bool = Query(False),
            claims: Claims = Depends(_view),
        ) -> dict:
            return ok(repo(request).list(include_deleted=include_deleted, active_only=active_only))

    @router.post(path, response_model=Envelope[out_model], status_code=201)
    def create_item(request: Request, body: create_model, claims: Claims = Depends(manage)) -> dict:
        values = body.model_dump(mode="json")
        if create is not None:
            item = create(request.app.state.tracker, **values)
        else:
            item = repo(request).create(**values)
        return ok(item, message=f"{label} created.")

    @router.get(path + "/{item_id}", response_model=Envelope[out_model])
    def get_item(
        request: Request,
        item_id: int,
        include_deleted: bool = Query(False, alias="includeDeleted"),
        claims: Claims = Depends(_view),
    ) -> dict:
        return ok(repo(request).get(item_id, include_deleted=include_deleted))

    @router.put(path + "/{item_id}", response_model=Envelope[out_model])
    def update_item(request: Request, item_id: int, body: update_model, claims: Claims = Depends(manage)) -> dict:
        fields = body.model_dump(mode="json", exclude_unset=True)
        if update is not None:
            item = update(request.app.state.tracker, item_id, **fields)
        else:
            item = repo(request).update(item_id, **fields)
        return ok(item, message=f"{label} updated.")

    @router.delete(path + "/{item_id}", response_model=Envelope[None])
    def delete_item(request: Request, item_id: int, claims: Claims = Depends(manage)) -> dict:
        repo(request).delete(item_id, deleted_by=claims.user_id)
        return ok(message=f"{label} deleted.")

    @router.post(path + "/{item_id}/restore", response_model=Envelope[out_model])
    def restore_item(request: Request, item_id: int, claims: Claims = Depends(manage)) -> dict:
        return ok(repo(request).restore(item_id), message=f"{label} restored.")

    return router


vessels_router = crud_router(
    path="/vessels",
    store_attr="vessels",
    label="Vessel",
    out_model=VesselOut,
    create_model=VesselCreate,
    update_model=VesselUpdate,
    manage_action="manage_vessels",
)

audit_types_router = crud_router(
    path="/audit-types",
    store_attr="audit_types",
    label="Audit type",
    out_model=AuditTypeOut,
    create_model=AuditTypeCreate,
    update_model=AuditTypeUpdate,
    manage_action="manage_audit_types",
)

audit_parties_router = crud_router(
    path="/audit-parties",
    store_attr="audit_parties",
    label="Audit party",
    out_model=AuditPartyOut,
    create_model=AuditPartyCreate,
    update_model=AuditPartyUpdate,
    manage_action="manage_audit_parties",
)

audit_companies_router = crud_router(
    path="/audit-companies",
    store_attr="audit_companies",
    label="Audit company",
    out_model=AuditCompanyOut,
    create_model=AuditCompanyCreate,
    update_model=AuditCompanyUpdate,
    manage_action="manage_audit_companies",
)

audit_results_router = crud_router(
    path="/audit-results",
    store_attr="audit_results",
    label="Audit result",
    out_model=AuditResultOut,
    create_model=AuditResultCreate,
    update_model=AuditResultUpdate,
    manage_action="manage_audit_results",
)

auditors_router = crud_router(
    path="/auditors",
    store_attr="auditors",
    label="Auditor",
    out_model=AuditorOut,
    create_model=AuditorCreate,
    update_model=AuditorUpdate,
    manage_action="manage_auditors",
    create=TrackerStore.create_auditor,
    update=TrackerStore.update_auditor,
    with_list=False,
)


@auditors_router.get("/auditors", response_model=Envelope[list[AuditorOut]])
def list_auditors(
    request: Request,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    active_only: bool = Query(False),
    company_id: Optional[int] = Query(None),
    claims: Claims = Depends(_view),
) -> dict:
    """List auditors, optionally only those of one audit company."""
    tracker: TrackerStore = request.app.state.tracker
    return ok(
        tracker.auditors.list(include_deleted=include_deleted, active_only=active_only, audit_company_id=company_id)
    )


routers = (
    vessels_router,
    audit_types_router,
    audit_parties_router,
    audit_companies_router,
    audit_results_router,
    auditors_router,
)
