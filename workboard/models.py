"""Data models for workboards: columns, filters, view definitions and results."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .errors import InvalidColumn, InvalidFilterOperator, InvalidFilterValue


class EntityType(Enum):
    DEALS = "deals"
    CONTACTS = "contacts"
    COMPANIES = "companies"


class ColumnType(Enum):
    RAW = "raw"
    FORMULA = "formula"


class ColumnFormat(Enum):
    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    BOOLEAN = "boolean"


class FormulaFieldType(Enum):
    SPIN_SCORE = "spin_score"
    DAYS_IN_STAGE = "days_in_stage"
    SLA_BREACH = "sla_breach"
    LAST_ACTIVITY_DAYS = "last_activity_days"


class FilterOperator(Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    IN = "in"
    NOT_IN = "not_in"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawColumn:
    """A column whose value comes straight from the entity record."""

    id: str
    field: str
    label: str
    format: ColumnFormat | None = None
    width: int | None = None

    @property
    def type(self) -> ColumnType:
        return ColumnType.RAW

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "id": self.id,
            "field": self.field,
            "label": self.label,
            "type": self.type.value,
        }
        if self.format is not None:
            d["format"] = self.format.value
        if self.width is not None:
            d["width"] = self.width
        return d


@dataclass(frozen=True)
class FormulaColumn:
    """A column computed at query time.

    ``format`` is carried for round-tripping only; rendering follows the
    formula's own rule.
    """

    id: str
    field: str
    label: str
    formula: FormulaFieldType
    format: ColumnFormat | None = None
    width: int | None = None

    @property
    def type(self) -> ColumnType:
        return ColumnType.FORMULA

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "id": self.id,
            "field": self.field,
            "label": self.label,
            "type": self.type.value,
            "formula": self.formula.value,
        }
        if self.format is not None:
            d["format"] = self.format.value
        if self.width is not None:
            d["width"] = self.width
        return d


WorkboardColumn = Union[RawColumn, FormulaColumn]


def _parse_format(value: Any) -> ColumnFormat | None:
    if value in (None, ""):
        return None
    try:
        return ColumnFormat(value)
    except ValueError:
        raise InvalidColumn(f"Invalid column format: {value!r}") from None


def _parse_width(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        width = int(value)
    except (TypeError, ValueError):
        raise InvalidColumn(f"Invalid column width: {value!r}") from None
    if width <= 0 or width > 1000:
        raise InvalidColumn(f"Column width out of range: {width}")
    return width


def column_from_dict(data: dict) -> WorkboardColumn:
    """Parse the persisted column shape into a RawColumn or FormulaColumn."""
    if not isinstance(data, dict):
        raise InvalidColumn(f"Column must be an object, got {type(data).__name__}")

    col_type = data.get("type") or ColumnType.RAW.value
    fmt = _parse_format(data.get("format"))
    width = _parse_width(data.get("width"))

    if col_type == ColumnType.FORMULA.value:
        try:
            formula = FormulaFieldType(data.get("formula"))
        except ValueError:
            raise InvalidColumn(
                f"Formula column requires a valid formula, got {data.get('formula')!r}"
            ) from None
        fk = data.get("field") or formula.value
        return FormulaColumn(
            id=data.get("id") or fk,
            field=fk,
            label=data.get("label") or fk,
            formula=formula,
            format=fmt,
            width=width,
        )

    if col_type != ColumnType.RAW.value:
        raise InvalidColumn(f"Invalid column type: {col_type!r}")

    fk = data.get("field")
    if not fk:
        raise InvalidColumn("Raw column requires a field")
    return RawColumn(
        id=data.get("id") or fk,
        field=fk,
        label=data.get("label") or fk,
        format=fmt,
        width=width,
    )


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkboardFilter:
    field: str
    operator: FilterOperator
    value: Any = None

    def to_dict(self) -> dict:
        value = self.value
        if isinstance(value, tuple):
            value = list(value)
        return {"field": self.field, "operator": self.operator.value, "value": value}


def filter_from_dict(data: dict) -> WorkboardFilter:
    """Parse a filter dict without kind checks (see filters.validate_filter)."""
    if not isinstance(data, dict):
        raise InvalidFilterValue(f"Filter must be an object, got {type(data).__name__}")
    fk = data.get("field", "")
    op = data.get("operator", "")
    try:
        operator = FilterOperator(op)
    except ValueError:
        raise InvalidFilterOperator(
            fk, str(op), [o.value for o in FilterOperator],
        ) from None
    value = data.get("value")
    if isinstance(value, list):
        value = tuple(value)
    return WorkboardFilter(field=fk, operator=operator, value=value)


# ---------------------------------------------------------------------------
# Workboards
# ---------------------------------------------------------------------------

@dataclass
class Workboard:
    """A named, persisted view definition over one entity type."""

    id: str
    customer_id: str
    name: str
    entity_type: EntityType
    columns: list[WorkboardColumn] = field(default_factory=list)
    filters: list[WorkboardFilter] = field(default_factory=list)
    description: str | None = None
    owner_id: str | None = None
    is_default: bool = False
    is_shared: bool = False
    sort_column: str | None = None
    sort_direction: SortDirection = SortDirection.ASC
    version: int = 1
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "entity_type": self.entity_type.value,
            "owner_id": self.owner_id,
            "is_default": self.is_default,
            "is_shared": self.is_shared,
            "columns": [c.to_dict() for c in self.columns],
            "filters": [f.to_dict() for f in self.filters],
            "sort_column": self.sort_column,
            "sort_direction": self.sort_direction.value,
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row) -> Workboard:
        """Construct from a sqlite3.Row or dict of the workboards table."""
        r = dict(row)
        return cls(
            id=r["id"],
            customer_id=r["customer_id"],
            name=r["name"],
            description=r.get("description"),
            entity_type=EntityType(r["entity_type"]),
            owner_id=r.get("owner_id"),
            is_default=bool(r.get("is_default")),
            is_shared=bool(r.get("is_shared")),
            columns=[column_from_dict(c) for c in json.loads(r.get("columns") or "[]")],
            filters=[filter_from_dict(f) for f in json.loads(r.get("filters") or "[]")],
            sort_column=r.get("sort_column"),
            sort_direction=SortDirection(r.get("sort_direction") or "asc"),
            version=r.get("version") or 1,
            created_at=r.get("created_at") or "",
            updated_at=r.get("updated_at") or "",
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class QueryResult:
    rows: list[dict]
    total: int
    page: int
    per_page: int
    has_more: bool
    signature: str = ""

    def to_dict(self) -> dict:
        return {
            "rows": self.rows,
            "total": self.total,
            "page": self.page,
            "per_page": self.per_page,
            "has_more": self.has_more,
            "signature": self.signature,
        }


@dataclass
class EditResult:
    """Outcome of an inline cell edit: accepted with the re-derived row, or rejected."""

    accepted: bool
    row: dict | None = None
    reason: str | None = None
    message: str = ""

    @classmethod
    def ok(cls, row: dict) -> EditResult:
        return cls(accepted=True, row=row)

    @classmethod
    def rejected(cls, reason: str, message: str = "") -> EditResult:
        return cls(accepted=False, reason=reason, message=message)

    def to_dict(self) -> dict:
        if self.accepted:
            return {"ok": True, "row": self.row}
        return {"ok": False, "code": self.reason, "error": self.message}
