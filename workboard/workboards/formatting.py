"""Display formatting for workboard cells (CLI tables and API previews)."""

from __future__ import annotations

from .. import config
from ..models import ColumnFormat, FormulaColumn, FormulaFieldType, WorkboardColumn
from .spin import spin_score_label
from .values import parse_datetime, to_number


def _format_raw(fmt: ColumnFormat | None, value) -> str:
    if value is None or value == "":
        return ""
    if fmt is ColumnFormat.CURRENCY:
        number = to_number(value)
        return str(value) if number is None else f"${number:,.0f}"
    if fmt is ColumnFormat.NUMBER:
        number = to_number(value)
        if number is None:
            return str(value)
        return f"{number:,.0f}" if number.is_integer() else f"{number:,.2f}"
    if fmt is ColumnFormat.DATE:
        try:
            dt = parse_datetime(value)
        except ValueError:
            return str(value)
        return dt.date().isoformat() if dt else ""
    if fmt is ColumnFormat.BOOLEAN:
        return "Yes" if value else "No"
    return str(value)


def _format_formula(formula: FormulaFieldType, value) -> str:
    if formula is FormulaFieldType.SLA_BREACH:
        return "Breach" if value else "OK"
    if formula is FormulaFieldType.LAST_ACTIVITY_DAYS:
        if value is None or value >= config.NO_ACTIVITY_DAYS:
            return "No activity"
        return "1 day" if value == 1 else f"{value} days"
    if formula is FormulaFieldType.DAYS_IN_STAGE:
        if value is None:
            return ""
        return "1 day" if value == 1 else f"{value} days"
    if formula is FormulaFieldType.SPIN_SCORE:
        if value is None:
            return ""
        return f"{value} ({spin_score_label(value)})"
    return "" if value is None else str(value)


def render_cell(column: WorkboardColumn, value) -> str:
    """Render one cell; formula columns use their formula's rule, not ``format``."""
    if isinstance(column, FormulaColumn):
        return _format_formula(column.formula, value)
    return _format_raw(column.format, value)
