"""Workboard CRUD: create, read, update, delete saved view definitions."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone

from ..errors import (
    DefaultViewImmutable,
    InvalidWorkboard,
    NotWorkboardOwner,
    WorkboardConflict,
    WorkboardNotFound,
)
from ..models import (
    EntityType,
    SortDirection,
    Workboard,
    WorkboardColumn,
    WorkboardFilter,
    column_from_dict,
)
from .filters import check_filter
from .registry import ENTITY_TYPES, get_field, make_column, parse_entity_type, validate_columns
from .templates import get_template

log = logging.getLogger(__name__)

MAX_COLUMNS = 50
MAX_FILTERS = 20
MAX_NAME_LENGTH = 100


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


# -----------------------------------------------------------------------
# Validation helpers
# -----------------------------------------------------------------------

def _parse_columns(entity_type: EntityType, columns) -> list[WorkboardColumn]:
    parsed = [c if not isinstance(c, dict) else column_from_dict(c) for c in columns]
    if len(parsed) > MAX_COLUMNS:
        raise InvalidWorkboard(f"A workboard may have at most {MAX_COLUMNS} columns")
    validate_columns(entity_type, parsed)
    return parsed


def _parse_filters(
    entity_type: EntityType, filters, columns: list[WorkboardColumn] = (),
) -> list[WorkboardFilter]:
    filters = list(filters)
    if len(filters) > MAX_FILTERS:
        raise InvalidWorkboard(f"A workboard may have at most {MAX_FILTERS} filters")
    return [check_filter(entity_type, f, columns) for f in filters]


def _clean_name(name) -> str:
    name = (name or "").strip() if isinstance(name, str) else ""
    if not name:
        raise InvalidWorkboard("Name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidWorkboard(f"Name must be at most {MAX_NAME_LENGTH} characters")
    return name


def _clean_sort(
    entity_type: EntityType, columns: list[WorkboardColumn],
    sort_column: str | None, sort_direction,
) -> tuple[str | None, SortDirection]:
    try:
        direction = (sort_direction if isinstance(sort_direction, SortDirection)
                     else SortDirection(sort_direction or "asc"))
    except ValueError:
        raise InvalidWorkboard(f"Invalid sort direction: {sort_direction!r}") from None
    if sort_column and get_field(entity_type, sort_column) is None \
            and sort_column not in {c.field for c in columns}:
        raise InvalidWorkboard(f"Cannot sort by unknown field '{sort_column}'")
    return sort_column or None, direction


def _dump_columns(columns: list[WorkboardColumn]) -> str:
    return json.dumps([c.to_dict() for c in columns])


def _dump_filters(filters: list[WorkboardFilter]) -> str:
    return json.dumps([f.to_dict() for f in filters])


# -----------------------------------------------------------------------
# Defaults
# -----------------------------------------------------------------------

_DEFAULT_NAMES = {
    EntityType.DEALS: ("Pipeline Board",
                       "Active deals with SPIN score, days in stage, and SLA tracking"),
    EntityType.CONTACTS: ("All Contacts", "Every contact in the workspace"),
    EntityType.COMPANIES: ("All Companies", "Every company in the workspace"),
}


def ensure_default_workboards(conn: sqlite3.Connection, customer_id: str) -> None:
    """Create the default workboard per entity type for a tenant if missing."""
    now = _now()
    for et, entity_def in ENTITY_TYPES.items():
        existing = conn.execute(
            "SELECT 1 FROM workboards "
            "WHERE customer_id = ? AND entity_type = ? AND is_default = 1 LIMIT 1",
            (customer_id, et.value),
        ).fetchone()
        if existing:
            continue
        name, description = _DEFAULT_NAMES[et]
        columns = [make_column(et, fk) for fk in entity_def.default_columns]
        filters = [check_filter(et, f) for f in entity_def.default_filters]
        sort_field, sort_dir = entity_def.default_sort
        conn.execute(
            "INSERT INTO workboards "
            "(id, customer_id, name, description, entity_type, owner_id, "
            " is_default, is_shared, columns, filters, sort_column, sort_direction, "
            " version, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, NULL, 1, 1, ?, ?, ?, ?, 1, ?, ?)",
            (_uuid(), customer_id, name, description, et.value,
             _dump_columns(columns), _dump_filters(filters),
             sort_field, sort_dir, now, now),
        )
        log.info("Created default %s workboard for %s", et.value, customer_id)


# -----------------------------------------------------------------------
# Reads
# -----------------------------------------------------------------------

def get_workboard(
    conn: sqlite3.Connection,
    workboard_id: str,
    customer_id: str,
    user_id: str | None = None,
) -> Workboard:
    """Load a workboard visible to the user (own, shared or default)."""
    row = conn.execute(
        "SELECT * FROM workboards WHERE id = ? AND customer_id = ?",
        (workboard_id, customer_id),
    ).fetchone()
    if not row:
        raise WorkboardNotFound(workboard_id)
    wb = Workboard.from_row(row)
    if user_id and not (wb.is_default or wb.is_shared or wb.owner_id == user_id):
        raise WorkboardNotFound(workboard_id)
    return wb


def list_workboards(
    conn: sqlite3.Connection,
    customer_id: str,
    user_id: str,
    entity_type=None,
) -> list[Workboard]:
    """Own, shared and default workboards; defaults first, then by name."""
    ensure_default_workboards(conn, customer_id)
    sql = (
        "SELECT * FROM workboards WHERE customer_id = ? "
        "AND (owner_id = ? OR is_default = 1 OR is_shared = 1)"
    )
    params: list = [customer_id, user_id]
    if entity_type is not None:
        sql += " AND entity_type = ?"
        params.append(parse_entity_type(entity_type).value)
    sql += " ORDER BY is_default DESC, name COLLATE NOCASE"
    return [Workboard.from_row(r) for r in conn.execute(sql, params).fetchall()]


# -----------------------------------------------------------------------
# Writes
# -----------------------------------------------------------------------

def create_workboard(
    conn: sqlite3.Connection,
    *,
    customer_id: str,
    user_id: str,
    name: str,
    entity_type,
    columns: list | None = None,
    filters: list | None = None,
    description: str | None = None,
    is_shared: bool = False,
    sort_column: str | None = None,
    sort_direction="asc",
) -> Workboard:
    """Create a custom workboard. ``columns=None`` starts from the entity defaults."""
    et = parse_entity_type(entity_type)
    name = _clean_name(name)
    if columns is None:
        parsed_cols = [make_column(et, fk) for fk in ENTITY_TYPES[et].default_columns]
    else:
        parsed_cols = _parse_columns(et, columns)
    parsed_filters = _parse_filters(et, filters or [], parsed_cols)
    sort_column, direction = _clean_sort(et, parsed_cols, sort_column, sort_direction)

    now = _now()
    wb_id = _uuid()
    conn.execute(
        "INSERT INTO workboards "
        "(id, customer_id, name, description, entity_type, owner_id, "
        " is_default, is_shared, columns, filters, sort_column, sort_direction, "
        " version, created_at, updated_at) "
        "VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?, ?, ?, ?, 1, ?, ?)",
        (wb_id, customer_id, name, description, et.value, user_id,
         1 if is_shared else 0, _dump_columns(parsed_cols),
         _dump_filters(parsed_filters), sort_column, direction.value, now, now),
    )
    log.info("Created workboard %s (%s) for %s", wb_id, et.value, user_id)
    return get_workboard(conn, wb_id, customer_id)


def create_from_template(
    conn: sqlite3.Connection,
    *,
    customer_id: str,
    user_id: str,
    template_id: str,
    name: str | None = None,
    owner_name: str | None = None,
    is_shared: bool = False,
) -> Workboard:
    """Instantiate a starter template as a new custom workboard."""
    template = get_template(template_id)
    if template is None:
        raise InvalidWorkboard(f"Unknown template: {template_id}")

    filters = list(template.filters)
    if template.requires_rep:
        if not owner_name:
            raise InvalidWorkboard(f"Template '{template.name}' requires a rep")
        filters.append({"field": "owner_name", "operator": "eq", "value": owner_name})

    default_name = template.name
    if owner_name and template.requires_rep:
        default_name = f"{template.name}: {owner_name}"

    return create_workboard(
        conn,
        customer_id=customer_id,
        user_id=user_id,
        name=name or default_name,
        entity_type=template.entity_type,
        columns=template.columns,
        filters=filters,
        description=template.description,
        is_shared=is_shared,
        sort_column=template.sort_column,
        sort_direction=template.sort_direction,
    )


def _load_mutable(
    conn: sqlite3.Connection, workboard_id: str, customer_id: str, user_id: str | None,
) -> Workboard:
    wb = get_workboard(conn, workboard_id, customer_id, user_id)
    if wb.is_default:
        log.info("Rejected change to default workboard %s", workboard_id)
        raise DefaultViewImmutable(workboard_id)
    if user_id and wb.owner_id != user_id:
        raise NotWorkboardOwner(workboard_id)
    return wb


def save_workboard(
    conn: sqlite3.Connection,
    workboard_id: str,
    customer_id: str,
    columns: list,
    filters: list,
    *,
    user_id: str | None = None,
    expected_version: int | None = None,
) -> Workboard:
    """Persist a workboard's columns and filters, replacing the previous set.

    Column order is kept as given. With ``expected_version`` the save only
    succeeds if nobody saved in between.
    """
    wb = _load_mutable(conn, workboard_id, customer_id, user_id)
    if expected_version is not None and expected_version != wb.version:
        raise WorkboardConflict(workboard_id, expected_version, wb.version)

    parsed_cols = _parse_columns(wb.entity_type, columns)
    parsed_filters = _parse_filters(wb.entity_type, filters, parsed_cols)

    cur = conn.execute(
        "UPDATE workboards SET columns = ?, filters = ?, version = version + 1, "
        "updated_at = ? WHERE id = ? AND version = ?",
        (_dump_columns(parsed_cols), _dump_filters(parsed_filters),
         _now(), workboard_id, wb.version),
    )
    if cur.rowcount == 0:
        actual = get_workboard(conn, workboard_id, customer_id).version
        raise WorkboardConflict(workboard_id, wb.version, actual)
    log.info("Saved workboard %s (%d columns, %d filters)",
             workboard_id, len(parsed_cols), len(parsed_filters))
    return get_workboard(conn, workboard_id, customer_id)


def update_workboard_details(
    conn: sqlite3.Connection,
    workboard_id: str,
    customer_id: str,
    *,
    user_id: str | None = None,
    **fields,
) -> Workboard:
    """Update metadata (name, description, is_shared, sort_column, sort_direction)."""
    allowed = {"name", "description", "is_shared", "sort_column", "sort_direction"}
    wb = _load_mutable(conn, workboard_id, customer_id, user_id)
    updates = {k: v for k, v in fields.items() if k in allowed}
    if not updates:
        return wb

    if "name" in updates:
        updates["name"] = _clean_name(updates["name"])
    if "is_shared" in updates:
        updates["is_shared"] = 1 if updates["is_shared"] else 0
    if "sort_column" in updates or "sort_direction" in updates:
        sort_column, direction = _clean_sort(
            wb.entity_type, wb.columns,
            updates.get("sort_column", wb.sort_column),
            updates.get("sort_direction", wb.sort_direction),
        )
        updates["sort_column"] = sort_column
        updates["sort_direction"] = direction.value

    updates["updated_at"] = _now()
    set_clause = ", ".join(f"{k} = ?" for k in updates)
    conn.execute(
        f"UPDATE workboards SET {set_clause}, version = version + 1 WHERE id = ?",
        list(updates.values()) + [workboard_id],
    )
    return get_workboard(conn, workboard_id, customer_id)


def delete_workboard(
    conn: sqlite3.Connection,
    workboard_id: str,
    customer_id: str,
    *,
    user_id: str | None = None,
) -> None:
    """Delete a custom workboard. Defaults cannot be deleted."""
    _load_mutable(conn, workboard_id, customer_id, user_id)
    conn.execute("DELETE FROM workboards WHERE id = ?", (workboard_id,))
    log.info("Deleted workboard %s", workboard_id)


def duplicate_workboard(
    conn: sqlite3.Connection,
    workboard_id: str,
    customer_id: str,
    user_id: str,
    name: str | None = None,
) -> Workboard:
    """Copy any visible workboard into a new custom one owned by ``user_id``."""
    source = get_workboard(conn, workboard_id, customer_id, user_id)
    now = _now()
    new_id = _uuid()
    conn.execute(
        "INSERT INTO workboards "
        "(id, customer_id, name, description, entity_type, owner_id, "
        " is_default, is_shared, columns, filters, sort_column, sort_direction, "
        " version, created_at, updated_at) "
        "VALUES (?, ?, ?, ?, ?, ?, 0, 0, ?, ?, ?, ?, 1, ?, ?)",
        (new_id, customer_id, _clean_name(name or f"{source.name} (Copy)"),
         source.description, source.entity_type.value, user_id,
         _dump_columns(source.columns), _dump_filters(source.filters),
         source.sort_column, source.sort_direction.value, now, now),
    )
    return get_workboard(conn, new_id, customer_id)
