"""Inline cell editing: the gate between a grid edit and the entity store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..errors import FieldNotEditable, FormulaFieldReadOnly, InvalidCellValue
from ..models import (
    ColumnFormat,
    EditResult,
    FormulaColumn,
    FormulaFieldType,
    RawColumn,
    Workboard,
    WorkboardColumn,
)
from ..store import EntityStore
from .formulas import attach_formulas, formulas_needed
from .registry import get_field, parse_entity_type

log = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "value", "description")

_NUMERIC_FORMATS = (ColumnFormat.CURRENCY, ColumnFormat.NUMBER)
_FORMULA_KEYS = {f.value for f in FormulaFieldType}


def check_edit(entity_type, column: WorkboardColumn | None, field_key: str) -> None:
    """Raise if ``field_key`` may not be written through the grid."""
    et = parse_entity_type(entity_type)
    fdef = get_field(et, field_key)
    if isinstance(column, FormulaColumn) or field_key in _FORMULA_KEYS \
            or (fdef is not None and fdef.is_formula):
        raise FormulaFieldReadOnly(field_key)
    if field_key not in EDITABLE_FIELDS or fdef is None:
        raise FieldNotEditable(field_key)


def coerce_value(column_format: ColumnFormat | None, value):
    """Convert the submitted cell text to the stored type."""
    if column_format in _NUMERIC_FORMATS:
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise InvalidCellValue(f"'{value}' is not a number")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise InvalidCellValue(f"'{value}' is not a number") from None
    if value is None:
        return None
    return str(value)


def _find_column(workboard: Workboard, field_key: str) -> WorkboardColumn | None:
    for col in workboard.columns:
        if col.field == field_key:
            return col
    return None


def apply_edit(
    store: EntityStore,
    workboard: Workboard,
    row_id: str,
    field_key: str,
    value,
    *,
    now: datetime | None = None,
    sla_thresholds: dict[str, int] | None = None,
) -> EditResult:
    """Validate and forward one cell edit, returning the re-derived row.

    Gate rejections come back as ``EditResult.rejected``; store failures
    (RecordNotFound, StoreUnavailable) propagate.
    """
    et = workboard.entity_type
    column = _find_column(workboard, field_key)
    try:
        check_edit(et, column, field_key)
        fdef = get_field(et, field_key)
        fmt = column.format if isinstance(column, RawColumn) and column.format else fdef.format
        coerced = coerce_value(fmt, value)
        if field_key == "name" and not (coerced or "").strip():
            raise InvalidCellValue("Name cannot be empty")
    except (FormulaFieldReadOnly, FieldNotEditable, InvalidCellValue) as exc:
        log.info("Rejected edit of %s.%s on %s: %s", et.value, field_key, row_id, exc)
        return EditResult.rejected(exc.code, str(exc))

    record = store.update_field(et, row_id, field_key, coerced, workboard.customer_id)
    now = now or datetime.now(timezone.utc)
    row = attach_formulas(
        [record], formulas_needed(workboard.columns), now,
        sla_thresholds=sla_thresholds,
    )[0]
    return EditResult.ok(row)
