"""Entity store: the record source the workboard engine reads and writes.

The engine only needs three operations, so any backend satisfying
``EntityStore`` will do. ``SqliteEntityStore`` is the implementation over
the package database: tenant-scoped, with cross-entity values (company
name, owner name, latest activity, rollups) denormalised into each row.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from .database import get_connection
from .errors import RecordNotFound, StoreUnavailable
from .models import EntityType
from .workboards.spin import calculate_spin_score

log = logging.getLogger(__name__)


class EntityStore(Protocol):
    def fetch_all(self, entity_type: EntityType, customer_id: str) -> list[dict]: ...

    def fetch_one(
        self, entity_type: EntityType, record_id: str, customer_id: str,
    ) -> dict | None: ...

    def update_field(
        self, entity_type: EntityType, record_id: str, field: str, value: Any,
        customer_id: str,
    ) -> dict: ...


# -----------------------------------------------------------------------
# SQL per entity type
# -----------------------------------------------------------------------

_LATEST_ACTIVITY = (
    "(SELECT MAX(a.occurred_at) FROM activities a "
    "WHERE a.entity_type = '{et}' AND a.entity_id = {alias}.id)"
)

_SELECT_SQL = {
    EntityType.DEALS: (
        "SELECT d.*, co.name AS company_name, c.name AS contact_name, "
        "u.name AS owner_name, "
        + _LATEST_ACTIVITY.format(et="deals", alias="d") + " AS latest_activity_at "
        "FROM deals d "
        "LEFT JOIN companies co ON co.id = d.company_id "
        "LEFT JOIN contacts c ON c.id = d.contact_id "
        "LEFT JOIN users u ON u.id = d.owner_id "
        "WHERE d.customer_id = ?"
    ),
    EntityType.CONTACTS: (
        "SELECT c.*, co.name AS company_name, u.name AS owner_name, "
        + _LATEST_ACTIVITY.format(et="contacts", alias="c") + " AS latest_activity_at "
        "FROM contacts c "
        "LEFT JOIN companies co ON co.id = c.company_id "
        "LEFT JOIN users u ON u.id = c.owner_id "
        "WHERE c.customer_id = ?"
    ),
    EntityType.COMPANIES: (
        "SELECT co.*, u.name AS owner_name, "
        "(SELECT COUNT(*) FROM contacts c WHERE c.company_id = co.id) AS contact_count, "
        "(SELECT COUNT(*) FROM deals d WHERE d.company_id = co.id) AS deal_count, "
        "(SELECT COALESCE(SUM(d.value), 0) FROM deals d "
        " WHERE d.company_id = co.id AND d.stage = 'closed_won') AS total_revenue, "
        + _LATEST_ACTIVITY.format(et="companies", alias="co") + " AS latest_activity_at "
        "FROM companies co "
        "LEFT JOIN users u ON u.id = co.owner_id "
        "WHERE co.customer_id = ?"
    ),
}

_ALIAS = {
    EntityType.DEALS: "d",
    EntityType.CONTACTS: "c",
    EntityType.COMPANIES: "co",
}

# Real columns the store will write; anything else is derived
_WRITABLE = {
    EntityType.DEALS: {
        "name", "value", "stage", "probability", "close_date", "description",
        "spin_situation", "spin_problem", "spin_implication", "spin_need_payoff",
    },
    EntityType.CONTACTS: {
        "name", "email", "phone", "title", "status", "source", "description",
    },
    EntityType.COMPANIES: {
        "name", "domain", "industry", "website", "description",
        "employee_count", "annual_revenue",
    },
}


def _to_record(entity_type: EntityType, row: sqlite3.Row) -> dict:
    d = dict(row)
    if entity_type is EntityType.DEALS:
        d["spin_score"] = calculate_spin_score(d)
    return d


class SqliteEntityStore:
    """EntityStore over the package's SQLite database."""

    source = "sqlite"

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path

    def fetch_all(self, entity_type: EntityType, customer_id: str) -> list[dict]:
        alias = _ALIAS[entity_type]
        sql = _SELECT_SQL[entity_type] + f" ORDER BY {alias}.created_at, {alias}.id"
        try:
            with get_connection(self.db_path) as conn:
                rows = conn.execute(sql, (customer_id,)).fetchall()
        except sqlite3.Error as exc:
            log.error("Fetch of %s failed for %s: %s", entity_type.value, customer_id, exc)
            raise StoreUnavailable(f"Could not load {entity_type.value}") from exc
        return [_to_record(entity_type, r) for r in rows]

    def fetch_one(
        self, entity_type: EntityType, record_id: str, customer_id: str,
    ) -> dict | None:
        alias = _ALIAS[entity_type]
        sql = _SELECT_SQL[entity_type] + f" AND {alias}.id = ?"
        try:
            with get_connection(self.db_path) as conn:
                row = conn.execute(sql, (customer_id, record_id)).fetchone()
        except sqlite3.Error as exc:
            log.error("Fetch of %s/%s failed: %s", entity_type.value, record_id, exc)
            raise StoreUnavailable(f"Could not load {entity_type.value}") from exc
        return _to_record(entity_type, row) if row else None

    def update_field(
        self, entity_type: EntityType, record_id: str, field: str, value: Any,
        customer_id: str,
    ) -> dict:
        """Write one column and return the refreshed record."""
        if field not in _WRITABLE[entity_type]:
            raise ValueError(f"Column '{field}' is not writable on {entity_type.value}")
        now = datetime.now(timezone.utc).isoformat()
        try:
            with get_connection(self.db_path) as conn:
                cur = conn.execute(
                    f"UPDATE {entity_type.value} SET {field} = ?, updated_at = ? "
                    "WHERE id = ? AND customer_id = ?",
                    (value, now, record_id, customer_id),
                )
                if cur.rowcount == 0:
                    raise RecordNotFound(entity_type.value, record_id)
        except sqlite3.Error as exc:
            log.error("Update of %s/%s.%s failed: %s",
                      entity_type.value, record_id, field, exc)
            raise StoreUnavailable(f"Could not update {entity_type.value}") from exc

        log.info("Updated %s/%s field %s", entity_type.value, record_id, field)
        record = self.fetch_one(entity_type, record_id, customer_id)
        if record is None:
            raise RecordNotFound(entity_type.value, record_id)
        return record
