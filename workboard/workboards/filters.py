"""Filter predicates: operator legality per field kind, validation and evaluation."""

from __future__ import annotations

from datetime import datetime, timezone

from ..errors import InvalidFilterField, InvalidFilterOperator, InvalidFilterValue
from ..models import FilterOperator, WorkboardFilter, filter_from_dict
from .registry import FieldDef, get_field, parse_entity_type, resolve_field
from .values import to_bool, to_millis, to_number

Op = FilterOperator

# Legal operators per field kind
OPERATORS_BY_KIND: dict[str, tuple[FilterOperator, ...]] = {
    "text": (Op.EQ, Op.NEQ, Op.CONTAINS, Op.NOT_CONTAINS,
             Op.STARTS_WITH, Op.ENDS_WITH, Op.IS_NULL, Op.IS_NOT_NULL),
    "number": (Op.EQ, Op.NEQ, Op.GT, Op.GTE, Op.LT, Op.LTE),
    "date": (Op.EQ, Op.NEQ, Op.GT, Op.GTE, Op.LT, Op.LTE),
    "select": (Op.EQ, Op.NEQ, Op.IN, Op.NOT_IN),
    "boolean": (Op.EQ, Op.NEQ),
}

_OPERATOR_LABELS = {
    Op.EQ: "is",
    Op.NEQ: "is not",
    Op.GT: "is greater than",
    Op.GTE: "is at least",
    Op.LT: "is less than",
    Op.LTE: "is at most",
    Op.CONTAINS: "contains",
    Op.NOT_CONTAINS: "does not contain",
    Op.STARTS_WITH: "starts with",
    Op.ENDS_WITH: "ends with",
    Op.IS_NULL: "is empty",
    Op.IS_NOT_NULL: "is not empty",
    Op.IN: "is one of",
    Op.NOT_IN: "is not one of",
}

_NULL_OPS = (Op.IS_NULL, Op.IS_NOT_NULL)
_LIST_OPS = (Op.IN, Op.NOT_IN)


def _filterable_field(entity_type, field_key: str, columns=()) -> FieldDef:
    et = parse_entity_type(entity_type)
    fdef = resolve_field(et, field_key, columns)
    if fdef is None or not fdef.filterable:
        raise InvalidFilterField(et.value, field_key)
    return fdef


def operators_for(entity_type, field_key: str) -> list[FilterOperator]:
    """Operators legal for ``field_key`` on ``entity_type``."""
    fdef = _filterable_field(entity_type, field_key)
    return list(OPERATORS_BY_KIND[fdef.kind])


# ---------------------------------------------------------------------------
# Validation (the add-filter boundary)
# ---------------------------------------------------------------------------

def _coerce_scalar(fdef: FieldDef, field_key: str, value):
    if value is None or value == "":
        raise InvalidFilterValue(f"Filter on '{field_key}' requires a value")
    if fdef.kind == "number":
        if isinstance(value, bool) or to_number(value) is None:
            raise InvalidFilterValue(f"'{value}' is not a number")
        return to_number(value)
    if fdef.kind == "date":
        millis = to_millis(value)
        if millis is None:
            raise InvalidFilterValue(f"'{value}' is not a valid date")
        return millis
    if fdef.kind == "boolean":
        flag = to_bool(value)
        if flag is None:
            raise InvalidFilterValue(f"'{value}' is not true or false")
        return flag
    return str(value)


def _as_filter(raw) -> WorkboardFilter:
    return raw if isinstance(raw, WorkboardFilter) else filter_from_dict(raw or {})


def validate_filter(entity_type, raw, columns=()) -> WorkboardFilter:
    """Check field, operator and value; return the filter ready for evaluation.

    ``raw`` is a dict (``{field, operator, value}``) or a WorkboardFilter.
    Values are coerced here so evaluation never has to. ``columns`` lets
    formula columns with a custom field key resolve to their formula.
    """
    filt = _as_filter(raw)
    fdef = _filterable_field(entity_type, filt.field, columns)

    allowed = OPERATORS_BY_KIND[fdef.kind]
    if filt.operator not in allowed:
        raise InvalidFilterOperator(
            filt.field, filt.operator.value, [o.value for o in allowed],
        )

    if filt.operator in _NULL_OPS:
        value = None
    elif filt.operator in _LIST_OPS:
        items = filt.value
        if isinstance(items, str):
            items = [v.strip() for v in items.split(",") if v.strip()]
        if not isinstance(items, (list, tuple)) or not items:
            raise InvalidFilterValue(
                f"Operator '{filt.operator.value}' requires a non-empty list"
            )
        value = tuple(str(v) for v in items)
    else:
        value = _coerce_scalar(fdef, filt.field, filt.value)

    return WorkboardFilter(field=filt.field, operator=filt.operator, value=value)


def check_filter(entity_type, raw, columns=()) -> WorkboardFilter:
    """Validate ``raw`` but keep the value as the user wrote it.

    This is the persisted form; ``validate_filter`` coerces it again at
    query time. Null operators carry no value.
    """
    filt = _as_filter(raw)
    validate_filter(entity_type, filt, columns)
    if filt.operator in _NULL_OPS:
        return WorkboardFilter(field=filt.field, operator=filt.operator)
    return filt


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def _compare(op: FilterOperator, left: float | None, right: float) -> bool:
    if left is None:
        return op is Op.NEQ
    if op is Op.EQ:
        return left == right
    if op is Op.NEQ:
        return left != right
    if op is Op.GT:
        return left > right
    if op is Op.GTE:
        return left >= right
    if op is Op.LT:
        return left < right
    if op is Op.LTE:
        return left <= right
    return False


def matches(row: dict, filt: WorkboardFilter, field_def: FieldDef) -> bool:
    """Whether ``row`` satisfies one validated filter."""
    op = filt.operator
    value = row.get(filt.field)

    if op is Op.IS_NULL:
        return value is None
    if op is Op.IS_NOT_NULL:
        return value is not None

    kind = field_def.kind
    if kind == "number":
        return _compare(op, to_number(value), filt.value)
    if kind == "date":
        return _compare(op, to_millis(value), filt.value)
    if kind == "boolean":
        flag = to_bool(value)
        if flag is None:
            return op is Op.NEQ
        return (flag == filt.value) if op is Op.EQ else (flag != filt.value)

    if op is Op.IN:
        return value is not None and str(value) in filt.value
    if op is Op.NOT_IN:
        return value is None or str(value) not in filt.value
    if op is Op.EQ:
        return value is not None and str(value) == filt.value
    if op is Op.NEQ:
        return value is None or str(value) != filt.value

    # Substring operators are case-insensitive; missing reads as ""
    haystack = ("" if value is None else str(value)).lower()
    needle = str(filt.value).lower()
    if op is Op.CONTAINS:
        return needle in haystack
    if op is Op.NOT_CONTAINS:
        return needle not in haystack
    if op is Op.STARTS_WITH:
        return haystack.startswith(needle)
    if op is Op.ENDS_WITH:
        return haystack.endswith(needle)
    return False


def matches_all(row: dict, filters: list[WorkboardFilter], entity_type, columns=()) -> bool:
    """AND of every validated filter; an empty list matches everything."""
    et = parse_entity_type(entity_type)
    for filt in filters:
        fdef = resolve_field(et, filt.field, columns)
        if fdef is None:
            raise InvalidFilterField(et.value, filt.field)
        if not matches(row, filt, fdef):
            return False
    return True


def describe_filter(filt: WorkboardFilter, entity_type=None) -> str:
    """Human label for the filter bar, e.g. "Stage is one of proposal, negotiation"."""
    label = filt.field
    fdef = get_field(entity_type, filt.field) if entity_type is not None else None
    if fdef is not None:
        label = fdef.label

    op_label = _OPERATOR_LABELS[filt.operator]
    if filt.operator in _NULL_OPS:
        return f"{label} {op_label}"
    if isinstance(filt.value, (list, tuple)):
        shown = ", ".join(str(v) for v in filt.value)
    elif fdef is not None and fdef.kind == "date" and isinstance(filt.value, (int, float)):
        shown = datetime.fromtimestamp(filt.value / 1000, tz=timezone.utc).date().isoformat()
    elif isinstance(filt.value, bool):
        shown = "true" if filt.value else "false"
    elif isinstance(filt.value, float) and filt.value.is_integer():
        shown = str(int(filt.value))
    else:
        shown = str(filt.value)
    return f"{label} {op_label} {shown}"
