"""Tests for the workboard JSON API (/api/v1/)."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from workboard.database import get_connection, init_db
from workboard.web.middleware import CUSTOMER_HEADER, USER_HEADER

_NOW = datetime.now(timezone.utc)
_TS = _NOW.isoformat()

CUST_ID = "cust-test"
USER_ID = "user-admin"
USER2_ID = "user-other"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def tmp_db(tmp_path, monkeypatch):
    db_file = tmp_path / "test.db"
    monkeypatch.setattr("workboard.config.DB_PATH", db_file)
    monkeypatch.setattr("workboard.config.AUTH_ENABLED", False)
    monkeypatch.setattr("workboard.config.DEFAULT_SLA_DAYS", {"proposal": 14})
    init_db(db_file)

    with get_connection() as conn:
        conn.execute(
            "INSERT INTO customers (id, name, slug, is_active, created_at, updated_at) "
            "VALUES (?, 'Test Org', 'test', 1, ?, ?)",
            (CUST_ID, _TS, _TS),
        )
        for uid, email, name in [(USER_ID, "admin@test.com", "Admin"),
                                 (USER2_ID, "other@test.com", "Other")]:
            conn.execute(
                "INSERT INTO users "
                "(id, customer_id, email, name, role, is_active, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, 'admin', 1, ?, ?)",
                (uid, CUST_ID, email, name, _TS, _TS),
            )
        deals = [
            ("deal-1", "Acme License", 50000, "proposal", 20),
            ("deal-2", "TechStart Growth", 30000, "negotiation", 3),
            ("deal-3", "Global Pilot", 20000, "proposal", 2),
            ("deal-4", "Innovate Starter", 10000, "lead", 1),
            ("deal-5", "Acme Support", 90000, "closed_won", 40),
        ]
        for n, (did, name, value, stage, days) in enumerate(deals):
            conn.execute(
                "INSERT INTO deals (id, customer_id, name, value, stage, owner_id, "
                "stage_entered_at, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (did, CUST_ID, name, value, stage, USER_ID,
                 (_NOW - timedelta(days=days)).isoformat(),
                 (_NOW - timedelta(minutes=10 - n)).isoformat(), _TS),
            )
    return db_file


def _make_client() -> TestClient:
    from workboard.web.app import create_app
    app = create_app()
    return TestClient(app, raise_server_exceptions=False)


def _pipeline_id(client) -> str:
    boards = client.get("/api/v1/workboards", params={"entity_type": "deals"}).json()
    return next(b["id"] for b in boards if b["is_default"])


def _create(client, **body) -> dict:
    payload = {"name": "My Deals", "entity_type": "deals"}
    payload.update(body)
    resp = client.post("/api/v1/workboards", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Health and identity
# ---------------------------------------------------------------------------

class TestHealth:
    def test_health(self, tmp_db):
        resp = _make_client().get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestIdentity:
    def test_missing_headers_rejected(self, tmp_db, monkeypatch):
        monkeypatch.setattr("workboard.config.AUTH_ENABLED", True)
        resp = _make_client().get("/api/v1/workboards")
        assert resp.status_code == 401
        assert resp.json()["code"] == "not_authenticated"

    def test_unknown_user_rejected(self, tmp_db, monkeypatch):
        monkeypatch.setattr("workboard.config.AUTH_ENABLED", True)
        resp = _make_client().get(
            "/api/v1/workboards",
            headers={CUSTOMER_HEADER: CUST_ID, USER_HEADER: "nobody"},
        )
        assert resp.status_code == 401

    def test_headers_resolve_user(self, tmp_db, monkeypatch):
        monkeypatch.setattr("workboard.config.AUTH_ENABLED", True)
        client = _make_client()
        headers = {CUSTOMER_HEADER: CUST_ID, USER_HEADER: USER2_ID}
        resp = client.post("/api/v1/workboards", json={"name": "Theirs", "entity_type": "deals"},
                           headers=headers)
        assert resp.status_code == 201
        assert resp.json()["owner_id"] == USER2_ID

    def test_health_is_public(self, tmp_db, monkeypatch):
        monkeypatch.setattr("workboard.config.AUTH_ENABLED", True)
        assert _make_client().get("/api/v1/health").status_code == 200


# ---------------------------------------------------------------------------
# Field registry
# ---------------------------------------------------------------------------

class TestRegistryApi:
    def test_columns(self, tmp_db):
        resp = _make_client().get("/api/v1/entity-types/deals/columns")
        assert resp.status_code == 200
        fields = [c["field"] for c in resp.json()]
        assert "spin_score" in fields and "name" in fields

    def test_columns_exclude_present(self, tmp_db):
        client = _make_client()
        wb_id = _pipeline_id(client)
        fields = [c["field"] for c in client.get(
            "/api/v1/entity-types/deals/columns", params={"workboard_id": wb_id}).json()]
        assert "name" not in fields
        assert "probability" in fields

    def test_unknown_entity_type(self, tmp_db):
        resp = _make_client().get("/api/v1/entity-types/tickets/columns")
        assert resp.status_code == 400
        assert resp.json()["code"] == "unknown_entity_type"

    def test_operators(self, tmp_db):
        resp = _make_client().get("/api/v1/entity-types/deals/operators",
                                  params={"field": "stage"})
        assert resp.json() == ["eq", "neq", "in", "not_in"]

    def test_validate_filter(self, tmp_db):
        resp = _make_client().post(
            "/api/v1/entity-types/deals/filters",
            json={"field": "value", "operator": "gte", "value": "5000"},
        )
        assert resp.status_code == 200
        assert resp.json()["filter"]["value"] == "5000"
        assert resp.json()["label"] == "Value is at least 5000"

    def test_validate_filter_bad_operator(self, tmp_db):
        resp = _make_client().post(
            "/api/v1/entity-types/deals/filters",
            json={"field": "stage", "operator": "gt", "value": "lead"},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_filter_operator"


# ---------------------------------------------------------------------------
# Workboards
# ---------------------------------------------------------------------------

class TestWorkboards:
    def test_list_creates_defaults(self, tmp_db):
        boards = _make_client().get("/api/v1/workboards").json()
        assert sorted(b["name"] for b in boards if b["is_default"]) == [
            "All Companies", "All Contacts", "Pipeline Board"]

    def test_filter_labels(self, tmp_db):
        client = _make_client()
        wb = client.get(f"/api/v1/workboards/{_pipeline_id(client)}").json()
        assert wb["filter_labels"] == ["Stage is not one of closed_won, closed_lost"]

    def test_templates(self, tmp_db):
        templates = _make_client().get("/api/v1/workboards/templates").json()
        assert "pipeline_by_rep" in [t["id"] for t in templates]

    def test_create_from_template(self, tmp_db):
        resp = _make_client().post("/api/v1/workboards", json={"template_id": "stale_deals"})
        assert resp.status_code == 201
        assert resp.json()["name"] == "Stale Deals"
        assert resp.json()["sort_column"] == "last_activity_days"

    def test_create_from_template_with_name(self, tmp_db):
        wb = _create(_make_client(), template_id="stale_deals")
        assert wb["name"] == "My Deals"
        assert wb["sort_column"] == "last_activity_days"

    def test_create_invalid(self, tmp_db):
        resp = _make_client().post("/api/v1/workboards",
                                   json={"name": "", "entity_type": "deals"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_workboard"

    def test_create_invalid_json(self, tmp_db):
        resp = _make_client().post("/api/v1/workboards", content=b"{not json",
                                   headers={"Content-Type": "application/json"})
        assert resp.status_code == 400

    def test_get_missing(self, tmp_db):
        resp = _make_client().get("/api/v1/workboards/nope")
        assert resp.status_code == 404
        assert resp.json()["code"] == "workboard_not_found"

    def test_save(self, tmp_db):
        client = _make_client()
        wb = _create(client)
        resp = client.put(f"/api/v1/workboards/{wb['id']}", json={
            "columns": [{"id": "name", "field": "name", "label": "Deal", "type": "raw"}],
            "filters": [{"field": "value", "operator": "gt", "value": 25000}],
            "expected_version": 1,
        })
        assert resp.status_code == 200
        assert resp.json()["version"] == 2
        assert [c["label"] for c in resp.json()["columns"]] == ["Deal"]

    def test_saved_filters_reload_as_written(self, tmp_db):
        client = _make_client()
        wb = _create(client)
        filters = [{"field": "close_date", "operator": "gt", "value": "2026-01-01"},
                   {"field": "value", "operator": "gte", "value": "5000"}]
        client.put(f"/api/v1/workboards/{wb['id']}",
                   json={"columns": wb["columns"], "filters": filters})
        reloaded = client.get(f"/api/v1/workboards/{wb['id']}").json()
        assert reloaded["filters"] == filters
        assert reloaded["filter_labels"] == ["Close Date is greater than 2026-01-01",
                                             "Value is at least 5000"]

    def test_save_non_object_filter(self, tmp_db):
        client = _make_client()
        wb = _create(client)
        resp = client.put(f"/api/v1/workboards/{wb['id']}",
                          json={"columns": wb["columns"], "filters": ["x"]})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_filter_value"

    def test_save_conflict(self, tmp_db):
        client = _make_client()
        wb = _create(client)
        body = {"columns": [], "filters": [], "expected_version": 1}
        client.put(f"/api/v1/workboards/{wb['id']}", json=body)
        resp = client.put(f"/api/v1/workboards/{wb['id']}", json=body)
        assert resp.status_code == 409
        assert resp.json()["code"] == "workboard_conflict"

    def test_save_bad_version(self, tmp_db):
        client = _make_client()
        wb = _create(client)
        resp = client.put(f"/api/v1/workboards/{wb['id']}",
                          json={"columns": [], "filters": [], "expected_version": "one"})
        assert resp.status_code == 400

    def test_save_default_forbidden(self, tmp_db):
        client = _make_client()
        resp = client.put(f"/api/v1/workboards/{_pipeline_id(client)}",
                          json={"columns": [], "filters": []})
        assert resp.status_code == 403
        assert resp.json()["code"] == "default_view_immutable"

    def test_patch(self, tmp_db):
        client = _make_client()
        wb = _create(client)
        resp = client.patch(f"/api/v1/workboards/{wb['id']}",
                            json={"name": "Renamed", "sort_column": "value",
                                  "sort_direction": "desc", "owner_id": "someone"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Renamed"
        assert data["sort_direction"] == "desc"
        assert data["owner_id"] == USER_ID

    def test_delete(self, tmp_db):
        client = _make_client()
        wb = _create(client)
        assert client.delete(f"/api/v1/workboards/{wb['id']}").json() == {"ok": True}
        assert client.get(f"/api/v1/workboards/{wb['id']}").status_code == 404

    def test_duplicate(self, tmp_db):
        client = _make_client()
        resp = client.post(f"/api/v1/workboards/{_pipeline_id(client)}/duplicate")
        assert resp.status_code == 201
        assert resp.json()["name"] == "Pipeline Board (Copy)"
        assert resp.json()["is_default"] is False


# ---------------------------------------------------------------------------
# Data and inline editing
# ---------------------------------------------------------------------------

class TestData:
    def test_pipeline_board_data(self, tmp_db):
        client = _make_client()
        resp = client.get(f"/api/v1/workboards/{_pipeline_id(client)}/data")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 4
        assert [r["value"] for r in data["rows"]] == [50000, 30000, 20000, 10000]
        first = data["rows"][0]
        assert first["days_in_stage"] == 20
        assert first["sla_breach"] is True

    def test_sort_override(self, tmp_db):
        client = _make_client()
        resp = client.get(f"/api/v1/workboards/{_pipeline_id(client)}/data",
                          params={"sort_column": "name", "sort_direction": "asc"})
        names = [r["name"] for r in resp.json()["rows"]]
        assert names == sorted(names, key=str.lower)

    def test_unsaved_filters(self, tmp_db):
        client = _make_client()
        filters = json.dumps([{"field": "stage", "operator": "in",
                               "value": ["proposal", "negotiation"]}])
        resp = client.get(f"/api/v1/workboards/{_pipeline_id(client)}/data",
                          params={"filters": filters})
        assert resp.json()["total"] == 3

    def test_bad_filters_param(self, tmp_db):
        client = _make_client()
        resp = client.get(f"/api/v1/workboards/{_pipeline_id(client)}/data",
                          params={"filters": "not json"})
        assert resp.status_code == 400

    def test_invalid_filter_field(self, tmp_db):
        client = _make_client()
        filters = json.dumps([{"field": "bogus", "operator": "eq", "value": "x"}])
        resp = client.get(f"/api/v1/workboards/{_pipeline_id(client)}/data",
                          params={"filters": filters})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_filter_field"

    def test_non_object_filter(self, tmp_db):
        client = _make_client()
        resp = client.get(f"/api/v1/workboards/{_pipeline_id(client)}/data",
                          params={"filters": json.dumps(["stage"])})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_filter_value"

    def test_tenant_sla_setting_applies(self, tmp_db):
        from workboard.settings import set_sla_days

        set_sla_days(CUST_ID, "proposal", None)
        client = _make_client()
        rows = client.get(f"/api/v1/workboards/{_pipeline_id(client)}/data").json()["rows"]
        assert not any(r["sla_breach"] for r in rows)


class TestCellEdit:
    def test_edit_name(self, tmp_db):
        client = _make_client()
        resp = client.post(f"/api/v1/workboards/{_pipeline_id(client)}/cell-edit",
                           json={"row_id": "deal-1", "field": "name", "value": "Acme Renewal"})
        assert resp.status_code == 200
        assert resp.json()["ok"] is True
        assert resp.json()["row"]["name"] == "Acme Renewal"

    def test_formula_rejected(self, tmp_db):
        client = _make_client()
        resp = client.post(f"/api/v1/workboards/{_pipeline_id(client)}/cell-edit",
                           json={"row_id": "deal-1", "field": "days_in_stage", "value": 1})
        assert resp.status_code == 400
        assert resp.json() == {
            "ok": False,
            "code": "formula_field_read_only",
            "error": "Field 'days_in_stage' is a formula and cannot be edited",
        }

    def test_missing_record(self, tmp_db):
        client = _make_client()
        resp = client.post(f"/api/v1/workboards/{_pipeline_id(client)}/cell-edit",
                           json={"row_id": "deal-404", "field": "name", "value": "X"})
        assert resp.status_code == 404
        assert resp.json()["code"] == "record_not_found"

    def test_missing_fields(self, tmp_db):
        client = _make_client()
        resp = client.post(f"/api/v1/workboards/{_pipeline_id(client)}/cell-edit",
                           json={"field": "name"})
        assert resp.status_code == 400
