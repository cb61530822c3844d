"""
api/routes/dashboard.py -- Aggregated metrics for the dashboard widgets.

Routes:
  GET /api/dashboard/stats           -- headline audit and finding counters
  GET /api/dashboard/charts          -- monthly audit trend, findings by category, audits by party
  GET /api/dashboard/findings-trend  -- findings per month/vessel/audit type plus monthly totals

All three accept the same optional audit filters: vessel_id, audit_type_id,
audit_party_id, status, date_from, date_to. Read-only -- no mutations here.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import AuditStatus, ChartsOut, Envelope, FindingsTrendOut, StatsOut, ok
from auth.dependencies import require
from tracker import dashboard
from tracker.store import TrackerStore

# Auth policy: every role may view the dashboard.
# Router-level dependency enforces it; the handlers do not repeat it.
router = APIRouter(dependencies=[Depends(require("view_dashboard"))])


def audit_filters(
    vessel_id: Optional[int] = None,
    audit_type_id: Optional[int] = None,
    audit_party_id: Optional[int] = None,
    status: Optional[AuditStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> dict:
    return {
        "vessel_id": vessel_id,
        "audit_type_id": audit_type_id,
        "audit_party_id": audit_party_id,
        "status": status.value if status else None,
        "date_from": date_from.isoformat() if date_from else None,
        "date_to": date_to.isoformat() if date_to else None,
    }


@router.get("/dashboard/stats", response_model=Envelope[StatsOut])
def get_stats(request: Request, filters: dict = Depends(audit_filters)) -> dict:
    tracker: TrackerStore = request.app.state.tracker
    return ok(dashboard.stats(tracker, **filters))


@router.get("/dashboard/charts", response_model=Envelope[ChartsOut])
def get_charts(request: Request, filters: dict = Depends(audit_filters)) -> dict:
    tracker: TrackerStore = request.app.state.tracker
    return ok(dashboard.charts(tracker, **filters))


@router.get("/dashboard/findings-trend", response_model=Envelope[FindingsTrendOut])
def get_findings_trend(request: Request, filters: dict = Depends(audit_filters)) -> dict:
    tracker: TrackerStore = request.app.state.tracker
    return ok(dashboard.findings_trend(tracker, **filters))
