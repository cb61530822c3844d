"""
tests/test_api_admin.py -- Integration tests for access control administration,
company settings and the dashboard endpoints.

Coverage:
  - Roles: list, create, role in use cannot be deleted (409), unused role deleted
  - Pages/permissions CRUD and grant replacement via POST /roles/{id}/permissions
  - Unknown page in a grant set 400 unknown_reference, previous grants kept
  - Settings: every role reads, only Admin writes, partial update
  - Dashboard: all three endpoints answer every role with the expected shape
"""

from __future__ import annotations

from fastapi.testclient import TestClient

ApiClient = tuple[TestClient, dict, dict]


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestRoles:
    def test_builtin_roles_listed(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        resp = client.get("/api/roles", headers=_headers(tokens["Admin"]))
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        names = {r["name"] for r in resp.json()["data"]}
        assert {"Admin", "Encoder", "Auditor", "Viewer"} <= names

    def test_non_admin_forbidden(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        assert client.get("/api/roles", headers=_headers(tokens["Encoder"])).status_code == 403

    def test_role_in_use_cannot_be_deleted(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        roles = client.get("/api/roles", headers=_headers(tokens["Admin"])).json()["data"]
        viewer_id = next(r["id"] for r in roles if r["name"] == "Viewer")
        resp = client.delete(f"/api/roles/{viewer_id}", headers=_headers(tokens["Admin"]))
        assert resp.status_code == 409, f"Expected 409, got {resp.status_code}: {resp.text}"

    def test_create_and_delete_unused_role(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        created = client.post("/api/roles", json={"name": "Superintendent"}, headers=headers)
        assert created.status_code == 201, f"Expected 201, got {created.status_code}: {created.text}"
        role_id = created.json()["data"]["id"]
        assert client.delete(f"/api/roles/{role_id}", headers=headers).status_code == 200
        assert client.get(f"/api/roles/{role_id}", headers=headers).status_code == 404


class TestGrants:
    def test_grant_replacement(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        page_a = client.post("/api/pages", json={"name": "Audit List", "path": "/audits"}, headers=headers)
        page_b = client.post("/api/pages", json={"name": "Finding List", "path": "/findings"}, headers=headers)
        perm = client.post("/api/permissions", json={"name": "read"}, headers=headers)
        assert page_a.status_code == 201, page_a.text
        assert page_b.status_code == 201, page_b.text
        assert perm.status_code == 201, perm.text
        a_id, b_id, p_id = page_a.json()["data"]["id"], page_b.json()["data"]["id"], perm.json()["data"]["id"]

        roles = client.get("/api/roles", headers=headers).json()["data"]
        encoder_id = next(r["id"] for r in roles if r["name"] == "Encoder")
        path = f"/api/roles/{encoder_id}/permissions"

        first = client.post(path, json={"permissions": [{"page_id": a_id, "permission_id": p_id}]}, headers=headers)
        assert first.status_code == 200, f"Expected 200, got {first.status_code}: {first.text}"

        second = client.post(path, json={"permissions": [{"page_id": b_id, "permission_id": p_id}]}, headers=headers)
        assert [g["page_name"] for g in second.json()["data"]] == ["Finding List"]

        bad = client.post(path, json={"permissions": [{"page_id": 99999, "permission_id": p_id}]}, headers=headers)
        assert bad.status_code == 400
        assert bad.json()["error"]["code"] == "unknown_reference"

        current = client.get(path, headers=headers).json()["data"]
        assert [g["page_path"] for g in current] == ["/findings"]

        detail = client.get(f"/api/roles/{encoder_id}", headers=headers).json()["data"]
        assert [g["permission_name"] for g in detail["permissions"]] == ["read"]

    def test_duplicate_page_path_conflicts(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        body = {"name": "Settings Page", "path": "/settings"}
        assert client.post("/api/pages", json=body, headers=headers).status_code == 201
        resp = client.post("/api/pages", json={"name": "Settings Copy", "path": "/settings"}, headers=headers)
        assert resp.status_code == 409


class TestCompanySettings:
    def test_everyone_reads(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        for role in ("Admin", "Encoder", "Auditor", "Viewer"):
            resp = client.get("/api/settings", headers=_headers(tokens[role]))
            assert resp.status_code == 200, f"{role}: expected 200, got {resp.status_code}"

    def test_only_admin_writes(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        denied = client.put("/api/settings", json={"company_name": "Nope"}, headers=_headers(tokens["Encoder"]))
        assert denied.status_code == 403

    def test_partial_update(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        client.put("/api/settings", json={"company_name": "Blue Fleet Shipping"}, headers=headers)
        resp = client.put("/api/settings", json={"website": "https://bluefleet.example"}, headers=headers)
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        data = resp.json()["data"]
        assert data["company_name"] == "Blue Fleet Shipping"
        assert data["website"] == "https://bluefleet.example"


class TestDashboard:
    def test_stats_shape(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        resp = client.get("/api/dashboard/stats", headers=_headers(tokens["Viewer"]))
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        data = resp.json()["data"]
        assert set(data["audits"]) == {"total_ytd", "upcoming_30days", "completed", "overdue"}
        assert set(data["findings"]) == {"total", "open", "overdue", "closed_this_month"}

    def test_charts_and_trend_with_filters(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        params = {"status": "Planned", "date_from": "2025-01-01"}
        charts = client.get("/api/dashboard/charts", params=params, headers=_headers(tokens["Auditor"]))
        assert charts.status_code == 200, f"Expected 200, got {charts.status_code}: {charts.text}"
        assert set(charts.json()["data"]) == {"monthly_audit_trend", "findings_by_category", "audits_by_party"}

        trend = client.get("/api/dashboard/findings-trend", params=params, headers=_headers(tokens["Encoder"]))
        assert trend.status_code == 200, f"Expected 200, got {trend.status_code}: {trend.text}"
        assert set(trend.json()["data"]) == {"trend", "monthly_totals"}

    def test_bad_filter_value(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        resp = client.get("/api/dashboard/stats", params={"date_from": "yesterday"}, headers=_headers(tokens["Admin"]))
        assert resp.status_code == 400

    def test_requires_auth(self, api_client: ApiClient) -> None:
        client, _tokens, _ids = api_client
        assert client.get("/api/dashboard/charts").status_code == 401
