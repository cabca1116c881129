"""Tests for tenant settings and SLA threshold resolution."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from workboard.config import _parse_sla_days
from workboard.database import get_connection, init_db
from workboard.settings import (
    get_setting,
    get_sla_thresholds,
    list_settings,
    set_setting,
    set_sla_days,
)

_NOW = datetime.now(timezone.utc).isoformat()

CUST_ID = "cust-test"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def tmp_db(tmp_path, monkeypatch):
    db_file = tmp_path / "test.db"
    monkeypatch.setattr("workboard.config.DB_PATH", db_file)
    monkeypatch.setattr("workboard.config.DEFAULT_SLA_DAYS", {"proposal": 14})
    init_db(db_file)

    with get_connection() as conn:
        conn.execute(
            "INSERT INTO customers (id, name, slug, is_active, created_at, updated_at) "
            "VALUES (?, 'Test Org', 'test', 1, ?, ?)",
            (CUST_ID, _NOW, _NOW),
        )
    return db_file


# ---------------------------------------------------------------------------
# Settings cascade
# ---------------------------------------------------------------------------

class TestSettings:
    def test_hardcoded_fallback(self, tmp_db):
        assert get_setting(CUST_ID, "currency") == "USD"

    def test_unknown_setting(self, tmp_db):
        assert get_setting(CUST_ID, "nonexistent") is None

    def test_set_and_get(self, tmp_db):
        result = set_setting(CUST_ID, "currency", "EUR")
        assert result["setting_value"] == "EUR"
        assert get_setting(CUST_ID, "currency") == "EUR"

    def test_upsert_keeps_id(self, tmp_db):
        first = set_setting(CUST_ID, "currency", "EUR")
        second = set_setting(CUST_ID, "currency", "GBP")
        assert first["id"] == second["id"]
        assert get_setting(CUST_ID, "currency") == "GBP"

    def test_setting_default_column(self, tmp_db):
        set_setting(CUST_ID, "region", None, default="us-east")
        assert get_setting(CUST_ID, "region") == "us-east"

    def test_list(self, tmp_db):
        set_setting(CUST_ID, "b_setting", "2")
        set_setting(CUST_ID, "a_setting", "1")
        names = [s["setting_name"] for s in list_settings(CUST_ID)]
        assert names == ["a_setting", "b_setting"]


# ---------------------------------------------------------------------------
# SLA thresholds
# ---------------------------------------------------------------------------

class TestSlaThresholds:
    def test_config_defaults(self, tmp_db):
        assert get_sla_thresholds(CUST_ID) == {"proposal": 14}

    def test_tenant_override(self, tmp_db):
        set_sla_days(CUST_ID, "proposal", 7)
        set_sla_days(CUST_ID, "negotiation", 10)
        assert get_sla_thresholds(CUST_ID) == {"proposal": 7, "negotiation": 10}

    def test_clear_removes_stage(self, tmp_db):
        set_sla_days(CUST_ID, "proposal", None)
        assert get_sla_thresholds(CUST_ID) == {}

    def test_thresholds_are_per_tenant(self, tmp_db):
        set_sla_days(CUST_ID, "proposal", 3)
        assert get_sla_thresholds("other-cust") == {"proposal": 14}

    def test_negative_rejected(self, tmp_db):
        with pytest.raises(ValueError):
            set_sla_days(CUST_ID, "proposal", -1)

    def test_invalid_stored_value_ignored(self, tmp_db):
        set_setting(CUST_ID, "sla_days.lead", "soon")
        assert get_sla_thresholds(CUST_ID) == {"proposal": 14}

    def test_parse_env_value(self):
        assert _parse_sla_days("proposal=14, negotiation=10,,bad=x") == {
            "proposal": 14, "negotiation": 10,
        }
