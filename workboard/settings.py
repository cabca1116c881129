"""Tenant settings (system scope) and SLA threshold resolution."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from . import config
from .database import get_connection

log = logging.getLogger(__name__)

SLA_PREFIX = "sla_days."

# Hardcoded fallback defaults (last resort)
_HARDCODED_DEFAULTS = {
    "default_timezone": "UTC",
    "company_name": "CRM Workboard",
    "currency": "USD",
}


def get_setting(customer_id: str, name: str, *, db_path=None) -> str | None:
    """Resolve a setting value using the cascade:

    1. System setting value (customer-wide)
    2. Setting default (from setting_default column)
    3. Hardcoded fallback
    """
    with get_connection(db_path) as conn:
        row = conn.execute(
            "SELECT setting_value, setting_default FROM settings "
            "WHERE customer_id = ? AND setting_name = ?",
            (customer_id, name),
        ).fetchone()
    if row:
        if row["setting_value"] is not None:
            return row["setting_value"]
        if row["setting_default"] is not None:
            return row["setting_default"]
    return _HARDCODED_DEFAULTS.get(name)


def set_setting(
    customer_id: str,
    name: str,
    value: str | None,
    *,
    description: str | None = None,
    default: str | None = None,
    db_path=None,
) -> dict:
    """Set a setting value. Creates the row if it doesn't exist (upsert)."""
    now = datetime.now(timezone.utc).isoformat()

    with get_connection(db_path) as conn:
        existing = conn.execute(
            "SELECT id FROM settings WHERE customer_id = ? AND setting_name = ?",
            (customer_id, name),
        ).fetchone()

        if existing:
            setting_id = existing["id"]
            conn.execute(
                "UPDATE settings SET setting_value = ?, updated_at = ? WHERE id = ?",
                (value, now, setting_id),
            )
        else:
            setting_id = str(uuid.uuid4())
            conn.execute(
                "INSERT INTO settings "
                "(id, customer_id, setting_name, setting_value, "
                "setting_description, setting_default, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (setting_id, customer_id, name, value, description, default, now, now),
            )

    return {
        "id": setting_id,
        "customer_id": customer_id,
        "setting_name": name,
        "setting_value": value,
    }


def list_settings(customer_id: str, *, db_path=None) -> list[dict]:
    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM settings WHERE customer_id = ? ORDER BY setting_name",
            (customer_id,),
        ).fetchall()
    return [dict(r) for r in rows]


# ---------------------------------------------------------------------------
# SLA thresholds
# ---------------------------------------------------------------------------

def get_sla_thresholds(customer_id: str, *, db_path=None) -> dict[str, int]:
    """Configured per-stage SLA days, overridden by the tenant's settings.

    A stored value of ``""`` or ``None`` removes the stage's threshold.
    """
    thresholds = dict(config.DEFAULT_SLA_DAYS)
    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT setting_name, setting_value FROM settings "
            "WHERE customer_id = ? AND setting_name LIKE ?",
            (customer_id, SLA_PREFIX + "%"),
        ).fetchall()

    for row in rows:
        stage = row["setting_name"][len(SLA_PREFIX):]
        raw = row["setting_value"]
        if raw in (None, ""):
            thresholds.pop(stage, None)
            continue
        try:
            thresholds[stage] = int(raw)
        except ValueError:
            log.warning("Ignoring invalid SLA setting %s=%r for %s",
                        row["setting_name"], raw, customer_id)
    return thresholds


def set_sla_days(customer_id: str, stage: str, days: int | None, *, db_path=None) -> dict:
    """Set (or clear, with ``None``) the SLA threshold for a deal stage."""
    if days is not None and days < 0:
        raise ValueError("SLA days must be non-negative")
    return set_setting(
        customer_id, SLA_PREFIX + stage,
        None if days is None else str(days),
        description=f"Days a deal may stay in '{stage}' before breaching SLA",
        db_path=db_path,
    )
