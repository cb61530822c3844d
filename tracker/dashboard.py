"""
tracker/dashboard.py -- Read-only aggregates behind the dashboard widgets.

All three reports share the same audit filters (vessel_id, audit_type_id,
audit_party_id, status, date_from, date_to). Findings are scoped through their
audit: a finding counts when its audit passes the filters. Soft-deleted
audits and findings never count.

Uses Python date arithmetic over the filtered rows rather than database date
functions, so the same code runs on SQLite and any other backend. Tradeoff:
the filtered audits and findings are loaded into memory. For an internal
tracker this is acceptable.

Dates are YYYY-MM-DD strings, so lexicographic comparison is date order and
the first seven characters are the month key (YYYY-MM).
"""

from collections import Counter
from datetime import date, timedelta
from typing import Optional

from tracker.models import FINDING_CLOSED, FINDING_OPEN, Audit, Finding
from tracker.store import TrackerStore, is_overdue

_DONE_STATUSES = ("Completed", "Closed")


def _year_ago(today: date) -> date:
    try:
        return today.replace(year=today.year - 1)
    except ValueError:
        # Feb 29
        return today.replace(year=today.year - 1, day=28)


def _load(store: TrackerStore, filters: dict) -> tuple[list[Audit], list[Finding]]:
    audits = store.audits.list(**filters)
    audit_ids = {a.id for a in audits}
    findings = [f for f in store.findings.list() if f.audit_id in audit_ids]
    return audits, findings


def stats(store: TrackerStore, today: Optional[date] = None, **filters) -> dict:
    """Headline counters for audits (this year) and findings.

    audits.total_ytd        -- audits starting on or after 1 January
    audits.upcoming_30days  -- of those, next_due_date within the next 30 days
    audits.completed        -- of those, status Completed
    audits.overdue          -- of those, next_due_date past and not Completed/Closed
    findings.total / open   -- all / Open findings
    findings.overdue        -- Open with a past target_date
    findings.closed_this_month -- Closed with closure_date in the current month
    """
    today = today or date.today()
    today_s = today.isoformat()
    horizon = (today + timedelta(days=30)).isoformat()
    year_start = date(today.year, 1, 1).isoformat()
    month_key = today_s[:7]

    audits, findings = _load(store, filters)
    ytd = [a for a in audits if a.audit_start_date and a.audit_start_date >= year_start]

    return {
        "audits": {
            "total_ytd": len(ytd),
            "upcoming_30days": sum(1 for a in ytd if a.next_due_date and today_s <= a.next_due_date <= horizon),
            "completed": sum(1 for a in ytd if a.status == "Completed"),
            "overdue": sum(
                1 for a in ytd if a.next_due_date and a.next_due_date < today_s and a.status not in _DONE_STATUSES
            ),
        },
        "findings": {
            "total": len(findings),
            "open": sum(1 for f in findings if f.status == FINDING_OPEN),
            "overdue": sum(1 for f in findings if is_overdue(f.status, f.target_date, today_s)),
            "closed_this_month": sum(
                1
                for f in findings
                if f.status == FINDING_CLOSED and f.closure_date and f.closure_date[:7] == month_key
            ),
        },
    }


def charts(store: TrackerStore, today: Optional[date] = None, **filters) -> dict:
    """Monthly audit trend (last 12 months), findings by category, audits by party."""
    today = today or date.today()
    cutoff = _year_ago(today).isoformat()

    audits, findings = _load(store, filters)
    trend = Counter(a.audit_start_date[:7] for a in audits if a.audit_start_date and a.audit_start_date >= cutoff)
    by_category = Counter(f.category for f in findings)
    by_party = Counter(a.party_name for a in audits if a.party_name)

    return {
        "monthly_audit_trend": [{"month": m, "count": n} for m, n in sorted(trend.items())],
        "findings_by_category": [{"category": c, "count": n} for c, n in sorted(by_category.items())],
        "audits_by_party": [{"party_name": p, "count": n} for p, n in sorted(by_party.items())],
    }


def findings_trend(store: TrackerStore, today: Optional[date] = None, **filters) -> dict:
    """Findings per (month, vessel, audit type) over the last 12 months, plus monthly totals.

    The month is the parent audit's start month. Audits without findings still
    produce a row with finding_count 0 so the chart shows the audit happened.
    """
    today = today or date.today()
    cutoff = _year_ago(today).isoformat()

    audits, findings = _load(store, filters)
    recent = {a.id: a for a in audits if a.audit_start_date and a.audit_start_date >= cutoff}
    per_audit = Counter(f.audit_id for f in findings if f.audit_id in recent)

    groups: Counter = Counter()
    totals: Counter = Counter()
    for audit in recent.values():
        month = audit.audit_start_date[:7]
        count = per_audit.get(audit.id, 0)
        groups[(month, audit.vessel_name or "", audit.type_name or "")] += count
        totals[month] += count

    return {
        "trend": [
            {"month": m, "vessel_name": v, "type_name": t, "finding_count": n}
            for (m, v, t), n in sorted(groups.items())
        ],
        "monthly_totals": [{"month": m, "total_findings": n} for m, n in sorted(totals.items())],
    }
