"""
api/routes/settings.py -- Company-wide settings (singleton).

Routes:
  GET /api/settings  -- any authenticated role
  PUT /api/settings  -- Admin; partial upsert, omitted fields keep their value
"""

from fastapi import APIRouter, Depends, Request

from api.models import CompanySettingsOut, CompanySettingsUpdate, Envelope, ok
from auth.dependencies import require
from auth.models import Claims
from tracker.store import TrackerStore

router = APIRouter()


@router.get("/settings", response_model=Envelope[CompanySettingsOut])
def get_company_settings(request: Request, claims: Claims = Depends(require("view_settings"))) -> dict:
    tracker: TrackerStore = request.app.state.tracker
    return ok(tracker.get_company_settings())


@router.put("/settings", response_model=Envelope[CompanySettingsOut])
def update_company_settings(
    request: Request,
    body: CompanySettingsUpdate,
    claims: Claims = Depends(require("manage_settings")),
) -> dict:
    tracker: TrackerStore = request.app.state.tracker
    updated = tracker.update_company_settings(**body.model_dump(exclude_unset=True))
    return ok(updated, message="Settings updated.")
