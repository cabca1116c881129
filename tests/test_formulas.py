"""Tests for formula fields, the SPIN score and cell formatting."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from workboard.models import (
    ColumnFormat,
    FilterOperator,
    FormulaColumn,
    FormulaFieldType,
    RawColumn,
    WorkboardFilter,
)
from workboard.workboards.formatting import render_cell
from workboard.workboards.formulas import attach_formulas, compute, formulas_needed
from workboard.workboards.spin import calculate_spin_score, score_field, spin_score_label

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
F = FormulaFieldType


def _ago(days: int) -> str:
    return (NOW - timedelta(days=days)).isoformat()


# ---------------------------------------------------------------------------
# SPIN score
# ---------------------------------------------------------------------------

class TestSpinScore:
    def test_field_buckets(self):
        assert score_field(None) == 0
        assert score_field("   ") == 0
        assert score_field("x" * 10) == 5
        assert score_field("x" * 50) == 15
        assert score_field("x" * 149) == 15
        assert score_field("x" * 150) == 25

    def test_whitespace_trimmed(self):
        assert score_field("  " + "x" * 49 + "  ") == 5

    def test_total(self):
        record = {
            "spin_situation": "x" * 200,
            "spin_problem": "x" * 60,
            "spin_implication": "short",
            "spin_need_payoff": None,
        }
        assert calculate_spin_score(record) == 45

    def test_empty_record(self):
        assert calculate_spin_score({}) == 0

    def test_labels(self):
        assert spin_score_label(100) == "Complete"
        assert spin_score_label(75) == "Complete"
        assert spin_score_label(50) == "Good"
        assert spin_score_label(25) == "Partial"
        assert spin_score_label(5) == "Needs Work"
        assert spin_score_label(None) == "Needs Work"


# ---------------------------------------------------------------------------
# Formula evaluation
# ---------------------------------------------------------------------------

class TestCompute:
    def test_days_in_stage(self):
        row = {"stage": "proposal", "stage_entered_at": _ago(20)}
        assert compute(F.DAYS_IN_STAGE, row, NOW) == 20

    def test_days_in_stage_missing(self):
        assert compute(F.DAYS_IN_STAGE, {"stage": "lead"}, NOW) == 0

    def test_days_in_stage_future_floored(self):
        row = {"stage_entered_at": (NOW + timedelta(days=3)).isoformat()}
        assert compute(F.DAYS_IN_STAGE, row, NOW) == 0

    def test_sla_breach_over_threshold(self):
        row = {"stage": "proposal", "stage_entered_at": _ago(20)}
        assert compute(F.SLA_BREACH, row, NOW, sla_thresholds={"proposal": 14}) is True

    def test_sla_breach_at_threshold(self):
        row = {"stage": "proposal", "stage_entered_at": _ago(14)}
        assert compute(F.SLA_BREACH, row, NOW, sla_thresholds={"proposal": 14}) is False

    def test_sla_breach_no_threshold_for_stage(self):
        row = {"stage": "negotiation", "stage_entered_at": _ago(400)}
        assert compute(F.SLA_BREACH, row, NOW, sla_thresholds={"proposal": 14}) is False

    def test_sla_uses_config_defaults(self, monkeypatch):
        monkeypatch.setattr("workboard.config.DEFAULT_SLA_DAYS", {"lead": 2})
        row = {"stage": "lead", "stage_entered_at": _ago(3)}
        assert compute(F.SLA_BREACH, row, NOW) is True

    def test_last_activity_days(self):
        assert compute(F.LAST_ACTIVITY_DAYS, {"latest_activity_at": _ago(4)}, NOW) == 4

    def test_last_activity_none(self):
        assert compute(F.LAST_ACTIVITY_DAYS, {}, NOW) == 999

    def test_spin_score_clamped(self):
        assert compute(F.SPIN_SCORE, {"spin_score": 140}, NOW) == 100
        assert compute(F.SPIN_SCORE, {"spin_score": 45}, NOW) == 45
        assert compute(F.SPIN_SCORE, {}, NOW) is None

    def test_deterministic_for_fixed_now(self):
        row = {"stage": "proposal", "stage_entered_at": _ago(9), "latest_activity_at": _ago(1)}
        for formula in F:
            assert compute(formula, row, NOW) == compute(formula, row, NOW)


class TestAttach:
    def test_adds_values_without_mutating(self):
        rows = [{"id": "d1", "stage": "proposal", "stage_entered_at": _ago(20)}]
        out = attach_formulas(rows, {"days_in_stage": F.DAYS_IN_STAGE}, NOW)
        assert out[0]["days_in_stage"] == 20
        assert "days_in_stage" not in rows[0]

    def test_malformed_timestamp_degrades(self, caplog):
        rows = [{"id": "bad", "stage_entered_at": "not-a-date"}]
        with caplog.at_level(logging.WARNING):
            out = attach_formulas(rows, {"days_in_stage": F.DAYS_IN_STAGE}, NOW)
        assert out[0]["days_in_stage"] is None
        assert "bad" in caplog.text

    def test_malformed_activity_falls_back_to_sentinel(self):
        rows = [{"id": "c1", "latest_activity_at": "garbage"}]
        out = attach_formulas(rows, {"last_activity_days": F.LAST_ACTIVITY_DAYS}, NOW)
        assert out[0]["last_activity_days"] == 999

    def test_no_formulas_copies(self):
        rows = [{"id": "x"}]
        out = attach_formulas(rows, {}, NOW)
        assert out == rows and out[0] is not rows[0]


class TestFormulasNeeded:
    def test_columns_filters_and_sort(self):
        columns = [
            RawColumn(id="name", field="name", label="Name"),
            FormulaColumn(id="age", field="age", label="Age", formula=F.DAYS_IN_STAGE),
        ]
        filters = [WorkboardFilter(field="sla_breach", operator=FilterOperator.EQ, value=True)]
        needed = formulas_needed(columns, filters, sort_field="spin_score")
        assert needed == {
            "age": F.DAYS_IN_STAGE,
            "sla_breach": F.SLA_BREACH,
            "spin_score": F.SPIN_SCORE,
        }

    def test_raw_fields_ignored(self):
        assert formulas_needed([], [], sort_field="value") == {}


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

class TestRenderCell:
    def test_currency(self):
        col = RawColumn(id="v", field="value", label="Value", format=ColumnFormat.CURRENCY)
        assert render_cell(col, 70000) == "$70,000"

    def test_number(self):
        col = RawColumn(id="n", field="n", label="N", format=ColumnFormat.NUMBER)
        assert render_cell(col, 1500) == "1,500"
        assert render_cell(col, 2.5) == "2.50"

    def test_date(self):
        col = RawColumn(id="d", field="close_date", label="Close", format=ColumnFormat.DATE)
        assert render_cell(col, "2026-11-01T09:30:00+00:00") == "2026-11-01"

    def test_missing(self):
        col = RawColumn(id="d", field="close_date", label="Close", format=ColumnFormat.DATE)
        assert render_cell(col, None) == ""

    def test_sla_breach(self):
        col = FormulaColumn(id="s", field="sla_breach", label="SLA", formula=F.SLA_BREACH)
        assert render_cell(col, True) == "Breach"
        assert render_cell(col, False) == "OK"

    def test_last_activity(self):
        col = FormulaColumn(id="a", field="last_activity_days", label="Activity",
                            formula=F.LAST_ACTIVITY_DAYS)
        assert render_cell(col, 999) == "No activity"
        assert render_cell(col, 1) == "1 day"
        assert render_cell(col, 6) == "6 days"

    def test_spin_score(self):
        col = FormulaColumn(id="s", field="spin_score", label="SPIN", formula=F.SPIN_SCORE)
        assert render_cell(col, 60) == "60 (Good)"
