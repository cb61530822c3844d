"""
tests/test_api_master_data.py -- Integration tests for reference data routes
(vessels, audit types, audit parties, audit companies, auditors, results).

Coverage:
  - Reads open to every role; writes Admin-only
  - Soft delete lifecycle over HTTP: delete, includeDeleted, repeated delete
    400 invalid_state, restore, repeated restore 400 invalid_state
  - Uniqueness conflicts 409, missing rows 404, bad enum values 400
  - Auditor company validation (400 unknown_reference) and ?company_id= filter
"""

from __future__ import annotations

from fastapi.testclient import TestClient

ApiClient = tuple[TestClient, dict, dict]


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestVessels:
    def test_admin_creates_viewer_reads(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        resp = client.post(
            "/api/vessels",
            json={"vessel_name": "MV Northern Star", "vessel_code": "NST-01"},
            headers=_headers(tokens["Admin"]),
        )
        assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
        vessel = resp.json()["data"]
        assert vessel["status"] == "Active"
        assert vessel["deleted_at"] is None

        listed = client.get("/api/vessels", headers=_headers(tokens["Viewer"]))
        assert listed.status_code == 200, f"Expected 200, got {listed.status_code}: {listed.text}"
        assert vessel["id"] in {v["id"] for v in listed.json()["data"]}

    def test_encoder_cannot_create(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        resp = client.post(
            "/api/vessels",
            json={"vessel_name": "MV Denied", "vessel_code": "DEN-01"},
            headers=_headers(tokens["Encoder"]),
        )
        assert resp.status_code == 403, f"Expected 403, got {resp.status_code}: {resp.text}"

    def test_duplicate_code_conflict(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        body = {"vessel_name": "MV Twin", "vessel_code": "TWN-01"}
        assert client.post("/api/vessels", json=body, headers=headers).status_code == 201
        resp = client.post("/api/vessels", json=body, headers=headers)
        assert resp.status_code == 409, f"Expected 409, got {resp.status_code}: {resp.text}"
        assert resp.json()["error"]["code"] == "conflict"

    def test_bad_status_rejected(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        resp = client.post(
            "/api/vessels",
            json={"vessel_name": "MV Odd", "vessel_code": "ODD-01", "status": "Sunk"},
            headers=_headers(tokens["Admin"]),
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_soft_delete_lifecycle(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        vessel_id = client.post(
            "/api/vessels", json={"vessel_name": "MV Short", "vessel_code": "SHT-01"}, headers=headers
        ).json()["data"]["id"]

        assert client.delete(f"/api/vessels/{vessel_id}", headers=headers).status_code == 200
        assert client.get(f"/api/vessels/{vessel_id}", headers=headers).status_code == 404

        hidden = client.get("/api/vessels", headers=headers).json()["data"]
        assert vessel_id not in {v["id"] for v in hidden}
        shown = client.get("/api/vessels", params={"includeDeleted": "true"}, headers=headers).json()["data"]
        deleted = next(v for v in shown if v["id"] == vessel_id)
        assert deleted["deleted_at"] is not None

        again = client.delete(f"/api/vessels/{vessel_id}", headers=headers)
        assert again.status_code == 400
        assert again.json()["error"]["code"] == "invalid_state"

        restored = client.post(f"/api/vessels/{vessel_id}/restore", headers=headers)
        assert restored.status_code == 200, f"Expected 200, got {restored.status_code}: {restored.text}"
        assert restored.json()["data"]["deleted_at"] is None

        twice = client.post(f"/api/vessels/{vessel_id}/restore", headers=headers)
        assert twice.status_code == 400
        assert twice.json()["error"]["code"] == "invalid_state"

    def test_missing_vessel(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        assert client.get("/api/vessels/99999", headers=_headers(tokens["Viewer"])).status_code == 404
        resp = client.delete("/api/vessels/99999", headers=_headers(tokens["Admin"]))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_partial_update(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        vessel_id = client.post(
            "/api/vessels", json={"vessel_name": "MV Rename", "vessel_code": "REN-01"}, headers=headers
        ).json()["data"]["id"]
        resp = client.put(f"/api/vessels/{vessel_id}", json={"status": "Inactive"}, headers=headers)
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        assert resp.json()["data"]["status"] == "Inactive"
        assert resp.json()["data"]["vessel_name"] == "MV Rename"

        active = client.get("/api/vessels", params={"active_only": "true"}, headers=headers).json()["data"]
        assert vessel_id not in {v["id"] for v in active}

    def test_explicit_null_on_required_field(self, api_client: ApiClient) -> None:
        """Omitting a field leaves it alone; sending null for a required one is a 400."""
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        vessel_id = client.post(
            "/api/vessels", json={"vessel_name": "MV Nullable", "vessel_code": "NUL-01"}, headers=headers
        ).json()["data"]["id"]
        for body in ({"vessel_name": None}, {"vessel_code": None}, {"status": None}):
            resp = client.put(f"/api/vessels/{vessel_id}", json=body, headers=headers)
            assert resp.status_code == 400, f"{body}: expected 400, got {resp.status_code}: {resp.text}"
            assert resp.json()["error"]["code"] == "validation_error"

        cleared = client.put(f"/api/vessels/{vessel_id}", json={"registration_number": None}, headers=headers)
        assert cleared.status_code == 200, f"Expected 200, got {cleared.status_code}: {cleared.text}"
        assert cleared.json()["data"]["vessel_name"] == "MV Nullable"

    def test_explicit_null_on_flag(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        created = client.post("/api/audit-types", json={"type_name": "Null Flag Type"}, headers=headers)
        type_id = created.json()["data"]["id"]
        resp = client.put(f"/api/audit-types/{type_id}", json={"is_active": None}, headers=headers)
        assert resp.status_code == 400, f"Expected 400, got {resp.status_code}: {resp.text}"


class TestOtherReferenceData:
    def test_audit_types_parties_results(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        for path, body in (
            ("/api/audit-types", {"type_name": "ISPS Verification"}),
            ("/api/audit-parties", {"party_name": "Port State Control"}),
            ("/api/audit-results", {"result_name": "Satisfactory"}),
            ("/api/audit-companies", {"company_name": "Harbour Assurance"}),
        ):
            resp = client.post(path, json=body, headers=headers)
            assert resp.status_code == 201, f"{path}: expected 201, got {resp.status_code}: {resp.text}"
            listed = client.get(path, headers=_headers(tokens["Auditor"]))
            assert listed.status_code == 200
            assert resp.json()["data"]["id"] in {item["id"] for item in listed.json()["data"]}


class TestAuditors:
    def test_unknown_company_rejected(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        resp = client.post(
            "/api/auditors",
            json={"audit_company_id": 99999, "auditor_name": "Orphan Auditor"},
            headers=_headers(tokens["Admin"]),
        )
        assert resp.status_code == 400, f"Expected 400, got {resp.status_code}: {resp.text}"
        assert resp.json()["error"]["code"] == "unknown_reference"

    def test_company_filter(self, api_client: ApiClient) -> None:
        client, tokens, _ids = api_client
        headers = _headers(tokens["Admin"])
        first = client.post("/api/audit-companies", json={"company_name": "First Survey Co"}, headers=headers)
        second = client.post("/api/audit-companies", json={"company_name": "Second Survey Co"}, headers=headers)
        first_id, second_id = first.json()["data"]["id"], second.json()["data"]["id"]

        a = client.post("/api/auditors", json={"audit_company_id": first_id, "auditor_name": "A. One"}, headers=headers)
        assert a.status_code == 201, f"Expected 201, got {a.status_code}: {a.text}"
        assert a.json()["data"]["company_name"] == "First Survey Co"
        client.post("/api/auditors", json={"audit_company_id": second_id, "auditor_name": "B. Two"}, headers=headers)

        scoped = client.get("/api/auditors", params={"company_id": first_id}, headers=_headers(tokens["Viewer"]))
        assert scoped.status_code == 200
        assert [x["auditor_name"] for x in scoped.json()["data"]] == ["A. One"]
