"""Formula fields: values derived per row at query time.

Formulas are pure functions of a record and an injected ``now``. They are
attached to rows after fetch and before filtering/sorting so the rest of
the pipeline treats them like any other field.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .. import config
from ..models import FormulaColumn, FormulaFieldType, WorkboardColumn, WorkboardFilter
from .values import days_between, parse_datetime

log = logging.getLogger(__name__)


def _spin_score(row: dict, now: datetime, thresholds: dict[str, int]) -> int | None:
    raw = row.get("spin_score")
    if raw is None:
        return None
    return max(0, min(100, int(round(float(raw)))))


def _days_in_stage(row: dict, now: datetime, thresholds: dict[str, int]) -> int:
    entered = parse_datetime(row.get("stage_entered_at"))
    if entered is None:
        return 0
    return days_between(entered, now)


def _sla_breach(row: dict, now: datetime, thresholds: dict[str, int]) -> bool:
    threshold = thresholds.get(row.get("stage") or "")
    if threshold is None:
        return False
    return _days_in_stage(row, now, thresholds) > threshold


def _last_activity_days(row: dict, now: datetime, thresholds: dict[str, int]) -> int:
    latest = parse_datetime(row.get("latest_activity_at"))
    if latest is None:
        return config.NO_ACTIVITY_DAYS
    return days_between(latest, now)


_EVALUATORS = {
    FormulaFieldType.SPIN_SCORE: _spin_score,
    FormulaFieldType.DAYS_IN_STAGE: _days_in_stage,
    FormulaFieldType.SLA_BREACH: _sla_breach,
    FormulaFieldType.LAST_ACTIVITY_DAYS: _last_activity_days,
}


def fallback_value(formula: FormulaFieldType):
    if formula is FormulaFieldType.LAST_ACTIVITY_DAYS:
        return config.NO_ACTIVITY_DAYS
    return None


def compute(
    formula: FormulaFieldType,
    row: dict,
    now: datetime,
    *,
    sla_thresholds: dict[str, int] | None = None,
):
    """Evaluate one formula for one record.

    Raises ValueError (or TypeError) when a source timestamp is malformed;
    see attach_formulas for the degrading wrapper.
    """
    thresholds = config.DEFAULT_SLA_DAYS if sla_thresholds is None else sla_thresholds
    return _EVALUATORS[formula](row, now, thresholds)


def formulas_needed(
    columns: list[WorkboardColumn],
    filters: list[WorkboardFilter] = (),
    sort_field: str | None = None,
) -> dict[str, FormulaFieldType]:
    """Map of row key -> formula for every formula the query touches.

    Formula columns are keyed by their column field; filters and the sort
    may name a formula field directly.
    """
    needed: dict[str, FormulaFieldType] = {}
    for col in columns:
        if isinstance(col, FormulaColumn):
            needed[col.field] = col.formula
    referenced = [f.field for f in filters]
    if sort_field:
        referenced.append(sort_field)
    for key in referenced:
        if key in needed:
            continue
        try:
            needed[key] = FormulaFieldType(key)
        except ValueError:
            continue
    return needed


def attach_formulas(
    rows: list[dict],
    formulas: dict[str, FormulaFieldType],
    now: datetime,
    *,
    sla_thresholds: dict[str, int] | None = None,
) -> list[dict]:
    """Return copies of ``rows`` widened with the requested formula values.

    A formula that fails on one row degrades that cell to its fallback and
    is logged; the query continues.
    """
    if not formulas:
        return [dict(r) for r in rows]

    out = []
    for row in rows:
        widened = dict(row)
        for key, formula in formulas.items():
            try:
                widened[key] = compute(formula, row, now, sla_thresholds=sla_thresholds)
            except (ValueError, TypeError) as exc:
                log.warning(
                    "Formula %s failed for record %s: %s",
                    formula.value, row.get("id"), exc,
                )
                widened[key] = fallback_value(formula)
        out.append(widened)
    return out
