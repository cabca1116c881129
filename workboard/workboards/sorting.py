"""Single-key, stable, type-aware row sorting."""

from __future__ import annotations

from ..models import SortDirection
from .registry import FieldDef, get_field
from .values import to_millis, to_number

_TEXT_KINDS = ("text", "select")


def _direction(value) -> SortDirection:
    if isinstance(value, SortDirection):
        return value
    return SortDirection(value or "asc")


def sort_key(row: dict, field_key: str, field_def: FieldDef):
    """Comparable key: lower-cased text, else a float with missing as 0."""
    value = row.get(field_key)
    if field_def.kind in _TEXT_KINDS:
        return "" if value is None else str(value).lower()
    if field_def.kind == "date":
        number = to_millis(value)
    else:
        number = to_number(value)
    return 0.0 if number is None else number


def compare(row_a: dict, row_b: dict, field_key: str, direction, *, entity_type) -> int:
    """-1, 0 or 1 for ``row_a`` versus ``row_b`` under the given direction."""
    fdef = get_field(entity_type, field_key)
    if fdef is None:
        return 0
    a = sort_key(row_a, field_key, fdef)
    b = sort_key(row_b, field_key, fdef)
    result = (a > b) - (a < b)
    if _direction(direction) is SortDirection.DESC:
        result = -result
    return result


def sort_rows(
    rows: list[dict],
    field_key: str | None,
    direction=SortDirection.ASC,
    *,
    entity_type,
    field_def: FieldDef | None = None,
) -> list[dict]:
    """Stable sort by one field. Unknown or unsortable fields keep the input order."""
    fdef = field_def or (get_field(entity_type, field_key) if field_key else None)
    if fdef is None or not fdef.sortable:
        return list(rows)
    return sorted(
        rows,
        key=lambda r: sort_key(r, field_key, fdef),
        reverse=_direction(direction) is SortDirection.DESC,
    )


def toggle_sort(
    current_field: str | None, current_direction, clicked_field: str,
) -> tuple[str, SortDirection]:
    """Header click: same column flips direction, a new column starts ascending."""
    if clicked_field == current_field:
        if _direction(current_direction) is SortDirection.ASC:
            return clicked_field, SortDirection.DESC
        return clicked_field, SortDirection.ASC
    return clicked_field, SortDirection.ASC
