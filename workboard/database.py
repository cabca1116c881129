"""SQLite connection management, schema initialization, and helpers."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from . import config

log = logging.getLogger(__name__)

_SCHEMA_SQL = """\
-- Tenants
CREATE TABLE IF NOT EXISTS customers (
    id         TEXT PRIMARY KEY,
    name       TEXT NOT NULL,
    slug       TEXT NOT NULL UNIQUE,
    is_active  INTEGER DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Users (FK target for ownership columns)
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    customer_id TEXT NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    email       TEXT NOT NULL,
    name        TEXT,
    role        TEXT DEFAULT 'user',
    is_active   INTEGER DEFAULT 1,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,
    UNIQUE(customer_id, email)
);

-- Companies
CREATE TABLE IF NOT EXISTS companies (
    id             TEXT PRIMARY KEY,
    customer_id    TEXT NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    name           TEXT NOT NULL,
    domain         TEXT,
    industry       TEXT,
    website        TEXT,
    description    TEXT,
    employee_count INTEGER,
    annual_revenue REAL,
    owner_id       TEXT REFERENCES users(id) ON DELETE SET NULL,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);

-- Contacts
CREATE TABLE IF NOT EXISTS contacts (
    id                TEXT PRIMARY KEY,
    customer_id       TEXT NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    name              TEXT,
    email             TEXT,
    phone             TEXT,
    title             TEXT,
    company_id        TEXT REFERENCES companies(id) ON DELETE SET NULL,
    status            TEXT DEFAULT 'active',
    source            TEXT,
    description       TEXT,
    owner_id          TEXT REFERENCES users(id) ON DELETE SET NULL,
    last_contacted_at TEXT,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

-- Deals
CREATE TABLE IF NOT EXISTS deals (
    id               TEXT PRIMARY KEY,
    customer_id      TEXT NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    name             TEXT NOT NULL,
    value            REAL,
    stage            TEXT NOT NULL DEFAULT 'lead',
    probability      REAL,
    close_date       TEXT,
    description      TEXT,
    company_id       TEXT REFERENCES companies(id) ON DELETE SET NULL,
    contact_id       TEXT REFERENCES contacts(id) ON DELETE SET NULL,
    owner_id         TEXT REFERENCES users(id) ON DELETE SET NULL,
    spin_situation   TEXT,
    spin_problem     TEXT,
    spin_implication TEXT,
    spin_need_payoff TEXT,
    stage_entered_at TEXT,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);

-- Activities (calls, emails, meetings, notes) attached to any entity
CREATE TABLE IF NOT EXISTS activities (
    id          TEXT PRIMARY KEY,
    customer_id TEXT NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    entity_type TEXT NOT NULL,
    entity_id   TEXT NOT NULL,
    kind        TEXT NOT NULL DEFAULT 'note',
    subject     TEXT,
    occurred_at TEXT NOT NULL,
    created_at  TEXT NOT NULL
);

-- Workboards (saved view definitions)
CREATE TABLE IF NOT EXISTS workboards (
    id             TEXT PRIMARY KEY,
    customer_id    TEXT NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    name           TEXT NOT NULL,
    description    TEXT,
    entity_type    TEXT NOT NULL,
    owner_id       TEXT REFERENCES users(id) ON DELETE SET NULL,
    is_default     INTEGER DEFAULT 0,
    is_shared      INTEGER DEFAULT 0,
    columns        TEXT NOT NULL DEFAULT '[]',
    filters        TEXT NOT NULL DEFAULT '[]',
    sort_column    TEXT,
    sort_direction TEXT DEFAULT 'asc',
    version        INTEGER NOT NULL DEFAULT 1,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);

-- Tenant settings
CREATE TABLE IF NOT EXISTS settings (
    id                  TEXT PRIMARY KEY,
    customer_id         TEXT NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    setting_name        TEXT NOT NULL,
    setting_value       TEXT,
    setting_description TEXT,
    setting_default     TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,
    UNIQUE(customer_id, setting_name)
);
"""

_INDEX_SQL = """\
CREATE INDEX IF NOT EXISTS idx_users_customer        ON users(customer_id);
CREATE INDEX IF NOT EXISTS idx_companies_customer    ON companies(customer_id);
CREATE INDEX IF NOT EXISTS idx_contacts_customer     ON contacts(customer_id);
CREATE INDEX IF NOT EXISTS idx_contacts_company      ON contacts(company_id);
CREATE INDEX IF NOT EXISTS idx_deals_customer        ON deals(customer_id);
CREATE INDEX IF NOT EXISTS idx_deals_company         ON deals(company_id);
CREATE INDEX IF NOT EXISTS idx_activities_entity     ON activities(entity_type, entity_id);
CREATE INDEX IF NOT EXISTS idx_workboards_customer   ON workboards(customer_id, entity_type);
CREATE INDEX IF NOT EXISTS idx_workboards_owner      ON workboards(owner_id);
"""


def _db_path() -> Path:
    return config.DB_PATH


def init_db(db_path: Path | None = None) -> None:
    """Create the database file and initialize all tables and indexes."""
    path = db_path or _db_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA foreign_keys=ON;")
        conn.executescript(_SCHEMA_SQL)
        conn.executescript(_INDEX_SQL)
        conn.commit()
        log.info("Database initialized at %s", path)
    finally:
        conn.close()


@contextmanager
def get_connection(db_path: Path | None = None) -> Iterator[sqlite3.Connection]:
    """Context manager yielding a SQLite connection with WAL and FK enforcement.

    Commits on clean exit, rolls back on exception.
    """
    path = db_path or _db_path()
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
