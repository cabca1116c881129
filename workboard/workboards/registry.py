"""Entity field registry: defines available workboard fields per entity type.

Each entity type declares its fields (raw or formula), their semantic kind
(which decides legal filter operators and comparison rules) and their
display format. Cross-entity values such as ``company_name`` are
denormalised into rows by the entity store; the registry only names them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import InvalidColumn, UnknownEntityType
from ..models import (
    ColumnFormat,
    ColumnType,
    EntityType,
    FormulaColumn,
    FormulaFieldType,
    RawColumn,
    WorkboardColumn,
)

DEAL_STAGES = ("lead", "qualified", "proposal", "negotiation", "closed_won", "closed_lost")
CLOSED_STAGES = ("closed_won", "closed_lost")
CONTACT_STATUSES = ("active", "inactive", "lead")


@dataclass(frozen=True)
class FieldDef:
    """A single workboard field for an entity type."""

    label: str
    kind: str = "text"  # text, number, date, select, boolean
    format: ColumnFormat | None = None
    type: ColumnType = ColumnType.RAW
    formula: FormulaFieldType | None = None
    options: tuple[str, ...] = ()
    sortable: bool = True
    filterable: bool = True

    @property
    def is_formula(self) -> bool:
        return self.type is ColumnType.FORMULA


@dataclass(frozen=True)
class AvailableColumn:
    """Catalog entry offered by the column configurator."""

    field: str
    label: str
    type: ColumnType
    formula: FormulaFieldType | None = None
    format: ColumnFormat | None = None

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "label": self.label,
            "type": self.type.value,
            "formula": self.formula.value if self.formula else None,
            "format": self.format.value if self.format else None,
        }


@dataclass(frozen=True)
class EntityDef:
    """Schema definition for one entity type in the workboard engine."""

    label: str
    fields: dict[str, FieldDef]
    default_columns: list[str]
    default_sort: tuple[str, str]  # (field_key, "asc"|"desc")
    default_filters: list[dict] = field(default_factory=list)


def _formula(label: str, formula: FormulaFieldType, kind: str = "number") -> FieldDef:
    return FieldDef(
        label=label,
        kind=kind,
        format=ColumnFormat.BOOLEAN if kind == "boolean" else ColumnFormat.NUMBER,
        type=ColumnType.FORMULA,
        formula=formula,
    )


_LAST_ACTIVITY = _formula("Days Since Activity", FormulaFieldType.LAST_ACTIVITY_DAYS)


ENTITY_TYPES: dict[EntityType, EntityDef] = {
    # -----------------------------------------------------------------
    # Deals
    # -----------------------------------------------------------------
    EntityType.DEALS: EntityDef(
        label="Deals",
        fields={
            "name": FieldDef(label="Deal Name"),
            "company_name": FieldDef(label="Company"),
            "contact_name": FieldDef(label="Contact"),
            "value": FieldDef(label="Value", kind="number", format=ColumnFormat.CURRENCY),
            "stage": FieldDef(label="Stage", kind="select", options=DEAL_STAGES),
            "probability": FieldDef(label="Probability", kind="number", format=ColumnFormat.NUMBER),
            "close_date": FieldDef(label="Close Date", kind="date", format=ColumnFormat.DATE),
            "owner_name": FieldDef(label="Owner"),
            "description": FieldDef(label="Description", filterable=False),
            "spin_situation": FieldDef(label="Situation", filterable=False, sortable=False),
            "spin_problem": FieldDef(label="Problem", filterable=False, sortable=False),
            "spin_implication": FieldDef(label="Implication", filterable=False, sortable=False),
            "spin_need_payoff": FieldDef(label="Need-Payoff", filterable=False, sortable=False),
            "stage_entered_at": FieldDef(label="Stage Entered", kind="date", format=ColumnFormat.DATE),
            "created_at": FieldDef(label="Created", kind="date", format=ColumnFormat.DATE),
            "spin_score": _formula("SPIN Score", FormulaFieldType.SPIN_SCORE),
            "days_in_stage": _formula("Days in Stage", FormulaFieldType.DAYS_IN_STAGE),
            "sla_breach": _formula("SLA Breach", FormulaFieldType.SLA_BREACH, kind="boolean"),
            "last_activity_days": _LAST_ACTIVITY,
        },
        default_columns=[
            "name", "company_name", "value", "stage",
            "spin_score", "days_in_stage", "sla_breach", "close_date",
        ],
        default_sort=("value", "desc"),
        default_filters=[
            {"field": "stage", "operator": "not_in", "value": list(CLOSED_STAGES)},
        ],
    ),

    # -----------------------------------------------------------------
    # Contacts
    # -----------------------------------------------------------------
    EntityType.CONTACTS: EntityDef(
        label="Contacts",
        fields={
            "name": FieldDef(label="Name"),
            "email": FieldDef(label="Email"),
            "phone": FieldDef(label="Phone"),
            "title": FieldDef(label="Title"),
            "company_name": FieldDef(label="Company"),
            "status": FieldDef(label="Status", kind="select", options=CONTACT_STATUSES),
            "source": FieldDef(label="Source"),
            "owner_name": FieldDef(label="Owner"),
            "last_contacted_at": FieldDef(label="Last Contacted", kind="date", format=ColumnFormat.DATE),
            "created_at": FieldDef(label="Created", kind="date", format=ColumnFormat.DATE),
            "last_activity_days": _LAST_ACTIVITY,
        },
        default_columns=["name", "email", "phone", "company_name", "status", "owner_name"],
        default_sort=("name", "asc"),
    ),

    # -----------------------------------------------------------------
    # Companies
    # -----------------------------------------------------------------
    EntityType.COMPANIES: EntityDef(
        label="Companies",
        fields={
            "name": FieldDef(label="Name"),
            "domain": FieldDef(label="Domain"),
            "industry": FieldDef(label="Industry"),
            "website": FieldDef(label="Website"),
            "description": FieldDef(label="Description", filterable=False),
            "employee_count": FieldDef(label="Employees", kind="number", format=ColumnFormat.NUMBER),
            "annual_revenue": FieldDef(label="Annual Revenue", kind="number", format=ColumnFormat.CURRENCY),
            "owner_name": FieldDef(label="Owner"),
            "contact_count": FieldDef(label="Contacts", kind="number", format=ColumnFormat.NUMBER),
            "deal_count": FieldDef(label="Deals", kind="number", format=ColumnFormat.NUMBER),
            "total_revenue": FieldDef(label="Total Revenue", kind="number", format=ColumnFormat.CURRENCY),
            "created_at": FieldDef(label="Created", kind="date", format=ColumnFormat.DATE),
            "last_activity_days": _LAST_ACTIVITY,
        },
        default_columns=["name", "domain", "industry", "employee_count", "deal_count", "total_revenue"],
        default_sort=("name", "asc"),
    ),
}


def parse_entity_type(value) -> EntityType:
    """Accept an EntityType or its string value."""
    if isinstance(value, EntityType):
        return value
    try:
        return EntityType(value)
    except ValueError:
        raise UnknownEntityType(str(value)) from None


def get_entity_def(entity_type) -> EntityDef:
    return ENTITY_TYPES[parse_entity_type(entity_type)]


def get_field(entity_type, field_key: str) -> FieldDef | None:
    return get_entity_def(entity_type).fields.get(field_key)


def resolve_field(entity_type, field_key: str, columns=()) -> FieldDef | None:
    """Registry entry for ``field_key``, following formula columns with custom keys."""
    fdef = get_field(entity_type, field_key)
    if fdef is not None:
        return fdef
    for col in columns:
        if isinstance(col, FormulaColumn) and col.field == field_key:
            for candidate in get_entity_def(entity_type).fields.values():
                if candidate.formula is col.formula:
                    return candidate
    return None


def fields_for(entity_type) -> list[AvailableColumn]:
    """Return the static column catalog for an entity type, in declaration order."""
    return [
        AvailableColumn(
            field=fk,
            label=fdef.label,
            type=fdef.type,
            formula=fdef.formula,
            format=fdef.format,
        )
        for fk, fdef in get_entity_def(entity_type).fields.items()
    ]


def available_columns(
    entity_type, columns: list[WorkboardColumn],
) -> list[AvailableColumn]:
    """Catalog entries not already present in the view."""
    present = {c.field for c in columns}
    return [ac for ac in fields_for(entity_type) if ac.field not in present]


def make_column(entity_type, field_key: str, *, width: int = 150) -> WorkboardColumn:
    """Build a column for ``field_key`` from its catalog entry."""
    fdef = get_field(entity_type, field_key)
    if fdef is None:
        raise InvalidColumn(
            f"Field '{field_key}' is not available for {parse_entity_type(entity_type).value}"
        )
    if fdef.is_formula:
        return FormulaColumn(
            id=field_key, field=field_key, label=fdef.label,
            formula=fdef.formula, width=width,
        )
    return RawColumn(
        id=field_key, field=field_key, label=fdef.label,
        format=fdef.format, width=width,
    )


def validate_columns(entity_type, columns: list[WorkboardColumn]) -> None:
    """Reject raw columns outside the registry and formulas the entity doesn't offer."""
    et = parse_entity_type(entity_type)
    fields = ENTITY_TYPES[et].fields
    offered = {fd.formula for fd in fields.values() if fd.formula}
    for col in columns:
        if isinstance(col, FormulaColumn):
            if col.formula not in offered:
                raise InvalidColumn(
                    f"Formula '{col.formula.value}' is not available for {et.value}"
                )
        elif col.field not in fields or fields[col.field].is_formula:
            raise InvalidColumn(f"Field '{col.field}' is not available for {et.value}")
